"""
POS sales and prescription dispensing.

Both are recorded as a Sale; dispensing uses sale_type "prescription" and
defaults each line to the drug's prescription price instead of its POS
price. Every line decrements stock through the ledger, so a sale that
exceeds stock on any line is rejected whole.
"""
import logging
from datetime import datetime, time, timezone
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from app.core.audit import AuditLog
from app.core.exceptions import InvalidInput
from app.db.transaction import atomic
from app.models.sale import Sale, SaleItem, SalePayment
from app.models.user import User
from app.schemas.sale import SaleItemIn
from app.services import stock_ledger
from app.services.pricing import to_decimal

logger = logging.getLogger(__name__)

SALE_TYPES = ("pos", "prescription")


def create_sale(
    db: Session,
    items: List[SaleItemIn],
    payments: Dict[str, float],
    user: User,
    sale_type: str = "pos",
    ip_address: Optional[str] = None,
) -> Sale:
    """
    Record a sale and take its quantities out of stock.

    Raises:
        InvalidInput: no items, unknown sale type, negative price or payment.
        NotFound: unknown drug.
        InsufficientStock: a line exceeds what is on hand. Nothing is written.
    """
    if sale_type not in SALE_TYPES:
        raise InvalidInput(f"Unknown sale type '{sale_type}'")
    if not items:
        raise InvalidInput("At least one item is required")

    with atomic(db):
        sale = Sale(sale_type=sale_type, created_by=user.id, total_amount=Decimal("0"))
        total = Decimal("0")
        for line in items:
            drug = stock_ledger.decrement(db, line.drug_id, line.quantity)
            if line.price_per_unit is not None:
                price = to_decimal(line.price_per_unit, "Price")
                if price < 0:
                    raise InvalidInput("Price cannot be negative")
            elif sale_type == "prescription":
                price = drug.prescription_price
            else:
                price = drug.pos_price
            sale.items.append(SaleItem(drug_id=drug.id, quantity=line.quantity, price_per_unit=price))
            total += Decimal(str(price)) * line.quantity

        for method, amount in payments.items():
            amount = to_decimal(amount, "Payment amount")
            if amount < 0:
                raise InvalidInput("Payment amount cannot be negative")
            if amount > 0:
                sale.payments.append(SalePayment(payment_method=method, amount=amount))

        sale.total_amount = total.quantize(Decimal("0.01"))
        db.add(sale)
        db.flush()
        sale_id = sale.id
        details = {
            "saleType": sale_type,
            "total": float(sale.total_amount),
            "items": [{"drugId": i.drug_id, "quantity": i.quantity} for i in items],
        }
    db.refresh(sale)

    logger.info(f"Sale {sale_id} ({sale_type}) by user {user.id}: {details['total']}")
    AuditLog.log_action(db, "create", "sale", sale_id, user.id, details, ip_address)
    return sale


def list_sales(db: Session, limit: int = 50) -> List[Sale]:
    return (
        db.query(Sale)
        .options(selectinload(Sale.items), selectinload(Sale.payments))
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .limit(limit)
        .all()
    )


def todays_summary(db: Session) -> dict:
    # created_at is stored in UTC
    today = datetime.now(timezone.utc).date()
    start = datetime.combine(today, time.min)
    sales = db.query(Sale).filter(Sale.created_at >= start)

    by_method = (
        db.query(SalePayment.payment_method, func.sum(SalePayment.amount))
        .join(Sale, Sale.id == SalePayment.sale_id)
        .filter(Sale.created_at >= start)
        .group_by(SalePayment.payment_method)
        .all()
    )
    return {
        "date": today.isoformat(),
        "count": sales.count(),
        "total": float(sales.with_entities(func.sum(Sale.total_amount)).scalar() or 0),
        "payments": {method: float(amount or 0) for method, amount in by_method},
    }
