"""POS sales (/sales) and prescription dispensing (/pharmacy)."""
from typing import List

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_current_user
from app.core.audit import get_client_ip
from app.models.sale import Sale
from app.models.user import User
from app.schemas.sale import SaleCreate, SaleResponse
from app.services import sales_service

router = APIRouter()
pharmacy_router = APIRouter()


def _sale_dict(sale: Sale) -> dict:
    return {
        "id": sale.id,
        "saleType": sale.sale_type,
        "totalAmount": float(sale.total_amount),
        "createdBy": sale.created_by,
        "createdAt": sale.created_at.isoformat() if sale.created_at else None,
        "items": [
            {"drugId": i.drug_id, "quantity": i.quantity, "pricePerUnit": float(i.price_per_unit)}
            for i in sale.items
        ],
        "payments": {p.payment_method: float(p.amount) for p in sale.payments},
    }


@router.post("", status_code=status.HTTP_201_CREATED)
def create_sale(
    data: SaleCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    sale = sales_service.create_sale(
        db, data.items, data.payments, current_user, sale_type="pos", ip_address=get_client_ip(request)
    )
    return _sale_dict(sale)


@router.get("", response_model=List[SaleResponse])
def list_sales(
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return sales_service.list_sales(db, limit)


@router.get("/today")
def todays_summary(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return sales_service.todays_summary(db)


@pharmacy_router.post("/dispense", status_code=status.HTTP_201_CREATED)
def dispense(
    data: SaleCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Dispense drugs against a prescription, priced at prescription prices by default."""
    sale = sales_service.create_sale(
        db, data.items, data.payments, current_user, sale_type="prescription", ip_address=get_client_ip(request)
    )
    return _sale_dict(sale)
