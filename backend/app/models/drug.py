"""
Drug catalog.

A drug is bought in a purchase form (e.g. Box) and sold in a sale form
(e.g. Tablet); `units_per_purchase` is the fixed ratio between them.
`stock` is always counted in sale-form units.

unit_cost, pos_price and prescription_price are stored, not computed on read.
They must only be written through app.services.drug_service.save_drug, which
recomputes them from the pricing inputs.
"""
from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, Boolean, Date, Text, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.db.base import Base


class DrugCategory(Base):
    __tablename__ = "drug_categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text, nullable=True)


class DrugForm(Base):
    __tablename__ = "drug_forms"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)  # Tablet, Box, Bottle, ...
    description = Column(Text, nullable=True)


class Drug(Base):
    __tablename__ = "drugs"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("drug_categories.id"), nullable=False)
    purchase_form_id = Column(Integer, ForeignKey("drug_forms.id"), nullable=False)
    sale_form_id = Column(Integer, ForeignKey("drug_forms.id"), nullable=False)

    # Pricing inputs
    purchase_price = Column(Numeric(14, 4), nullable=False, default=0)  # per purchase unit
    units_per_purchase = Column(Integer, nullable=False, default=1)
    pos_markup = Column(Numeric(8, 4), nullable=False, default=0)  # 0.25 == 25%
    prescription_markup = Column(Numeric(8, 4), nullable=False, default=0)

    # Derived pricing, per sale unit
    unit_cost = Column(Numeric(asdecimal=True), nullable=False, default=0)
    pos_price = Column(Numeric(asdecimal=True), nullable=False, default=0)
    prescription_price = Column(Numeric(asdecimal=True), nullable=False, default=0)

    strength = Column(String(64), nullable=True)
    unit = Column(String(32), nullable=True)  # mg, ml, ...
    stock = Column(Integer, nullable=False, default=0)
    min_stock = Column(Integer, nullable=False, default=0)
    expiry_date = Column(Date, nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    category = relationship("DrugCategory", backref="drugs")
    purchase_form = relationship("DrugForm", foreign_keys=[purchase_form_id])
    sale_form = relationship("DrugForm", foreign_keys=[sale_form_id])

    @property
    def same_form(self) -> bool:
        return self.purchase_form_id == self.sale_form_id
