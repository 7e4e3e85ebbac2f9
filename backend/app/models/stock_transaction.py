"""
StockTransaction: one restock line item.
Status flow: pending -> approved | rejected. Both outcomes are terminal.
Stock is incremented by sale_quantity exactly once, when the row becomes approved.
"""
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Date, Numeric, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.db.base import Base

PENDING = "pending"
APPROVED = "approved"
REJECTED = "rejected"


class StockTransaction(Base):
    __tablename__ = "stock_transactions"

    id = Column(Integer, primary_key=True, index=True)
    drug_id = Column(Integer, ForeignKey("drugs.id"), nullable=False, index=True)
    vendor_id = Column(Integer, ForeignKey("vendors.id"), nullable=True)
    type = Column(String(8), nullable=False, default="in")
    purchase_unit = Column(String(16), nullable=False, default="purchase")  # unit the requester entered
    purchase_quantity = Column(Integer, nullable=False)
    sale_quantity = Column(Integer, nullable=False)  # always sale-form units
    batch_number = Column(String(100), nullable=True)
    expiry_date = Column(Date, nullable=True)
    reference_number = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)

    # Pricing snapshot from the restock line; applied to the drug on approval
    purchase_price = Column(Numeric(14, 4), nullable=True)  # per purchase unit
    pos_markup = Column(Numeric(8, 4), nullable=True)
    prescription_markup = Column(Numeric(8, 4), nullable=True)
    unit_cost = Column(Numeric(asdecimal=True), nullable=True)
    pos_price = Column(Numeric(asdecimal=True), nullable=True)
    prescription_price = Column(Numeric(asdecimal=True), nullable=True)

    status = Column(String(16), nullable=False, default=PENDING, index=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    approved_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    drug = relationship("Drug", backref="stock_transactions")
    vendor = relationship("Vendor", backref="stock_transactions")
    requester = relationship("User", foreign_keys=[created_by])
    approver = relationship("User", foreign_keys=[approved_by])

    @property
    def has_pricing(self) -> bool:
        return self.purchase_price is not None
