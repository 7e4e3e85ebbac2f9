from datetime import date
from typing import Optional

from app.schemas.common import CamelModel


class DrugCreate(CamelModel):
    name: str
    category: str  # category name
    purchase_form_id: int
    sale_form_id: int
    purchase_price: float
    units_per_purchase: int = 1
    pos_markup: float = 0
    prescription_markup: float = 0
    strength: Optional[str] = None
    unit: Optional[str] = None
    min_stock: int = 0
    expiry_date: Optional[date] = None


class DrugUpdate(CamelModel):
    name: Optional[str] = None
    category: Optional[str] = None
    purchase_form_id: Optional[int] = None
    sale_form_id: Optional[int] = None
    purchase_price: Optional[float] = None
    units_per_purchase: Optional[int] = None
    pos_markup: Optional[float] = None
    prescription_markup: Optional[float] = None
    strength: Optional[str] = None
    unit: Optional[str] = None
    min_stock: Optional[int] = None
    expiry_date: Optional[date] = None
    active: Optional[bool] = None


class LookupCreate(CamelModel):
    """Body for both drug categories and drug forms."""
    name: str
    description: Optional[str] = None


class LookupResponse(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
