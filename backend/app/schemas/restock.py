from datetime import date, datetime
from typing import List, Optional

from app.core.exceptions import InvalidInput
from app.schemas.common import CamelModel


class RestockItem(CamelModel):
    """One restock line. quantity is expressed in `purchase_unit`.

    purchase_price, when given, is the price of one `purchase_unit` (a box
    when the unit is "purchase", a tablet when it is "sale").
    """
    drug_id: int
    purchase_unit: str = "purchase"
    quantity: int
    batch_number: Optional[str] = None
    expiry_date: Optional[date] = None
    purchase_price: Optional[float] = None
    pos_markup: Optional[float] = None
    prescription_markup: Optional[float] = None

    @property
    def has_pricing(self) -> bool:
        return any(v is not None for v in (self.purchase_price, self.pos_markup, self.prescription_markup))


class RestockBatchRequest(CamelModel):
    vendor_id: int
    reference_number: Optional[str] = None
    items: List[RestockItem]


class RestockDrugRequest(CamelModel):
    """Single-drug restock. Accepts either quantity + purchaseUnit, or the
    older explicit purchaseQuantity / saleQuantity pair."""
    purchase_unit: str = "purchase"
    quantity: Optional[int] = None
    purchase_quantity: Optional[int] = None
    sale_quantity: Optional[int] = None
    batch_number: Optional[str] = None
    expiry_date: Optional[date] = None
    notes: Optional[str] = None
    vendor_id: Optional[int] = None
    reference_number: Optional[str] = None
    purchase_price: Optional[float] = None
    pos_markup: Optional[float] = None
    prescription_markup: Optional[float] = None

    def as_item(self, drug_id: int) -> RestockItem:
        if self.quantity is not None:
            unit, quantity = self.purchase_unit, self.quantity
        elif self.sale_quantity is not None:
            unit, quantity = "sale", self.sale_quantity
        elif self.purchase_quantity is not None:
            unit, quantity = "purchase", self.purchase_quantity
        else:
            raise InvalidInput("Quantity is required")
        return RestockItem(
            drug_id=drug_id,
            purchase_unit=unit,
            quantity=quantity,
            batch_number=self.batch_number,
            expiry_date=self.expiry_date,
            purchase_price=self.purchase_price,
            pos_markup=self.pos_markup,
            prescription_markup=self.prescription_markup,
        )


class RestockDecision(CamelModel):
    status: str  # "approved" | "rejected"


class RestockRecord(CamelModel):
    """Restock row joined with drug, form, vendor and user names."""
    id: int
    drug_id: int
    drug_name: str
    vendor_id: Optional[int] = None
    vendor_name: Optional[str] = None
    reference_number: Optional[str] = None
    purchase_unit: str
    purchase_quantity: int
    sale_quantity: int
    purchase_form: str
    sale_form: str
    batch_number: Optional[str] = None
    expiry_date: Optional[date] = None
    notes: Optional[str] = None
    status: str
    created_by: str
    approver_name: Optional[str] = None
    approved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    purchase_price: float
    unit_cost: float
    pos_price: float
    prescription_price: float
    pos_markup: float
    prescription_markup: float
