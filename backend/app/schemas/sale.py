from datetime import datetime
from typing import Dict, List, Optional

from app.schemas.common import CamelModel


class SaleItemIn(CamelModel):
    drug_id: int
    quantity: int  # sale-form units
    price_per_unit: Optional[float] = None  # defaults to the drug's POS / prescription price


class SaleCreate(CamelModel):
    items: List[SaleItemIn]
    payments: Dict[str, float] = {}  # method -> amount


class SaleItemResponse(CamelModel):
    drug_id: int
    quantity: int
    price_per_unit: float


class SaleResponse(CamelModel):
    id: int
    sale_type: str
    total_amount: float
    created_by: int
    created_at: Optional[datetime] = None
    items: List[SaleItemResponse] = []
