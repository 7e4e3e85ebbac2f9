"""
Drug catalog writes and inventory read models.

save_drug is the only function that writes a drug's pricing columns. It
recomputes unit_cost, pos_price and prescription_price from the pricing
inputs every time, so the stored derived prices cannot drift.
"""
import logging
import math
from datetime import date, timedelta
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.audit import AuditLog
from app.core.config import settings
from app.core.exceptions import InvalidInput, NotFound
from app.db.transaction import atomic
from app.models.drug import Drug, DrugCategory, DrugForm
from app.models.stock_transaction import StockTransaction, PENDING
from app.models.user import User
from app.models.vendor import Vendor
from app.schemas.drug import DrugCreate, DrugUpdate
from app.services.pricing import compute_prices

logger = logging.getLogger(__name__)

# Columns a PUT may clear by sending null
CLEARABLE_FIELDS = ("strength", "unit", "expiry_date")


def save_drug(db: Session, drug: Drug, **fields) -> Drug:
    """Apply `fields` to `drug` and recompute its derived prices. Does not commit.

    Raises:
        InvalidInput: bad pricing inputs, or a ratio other than 1 when the
            purchase and sale forms are the same.
    """
    for key, value in fields.items():
        setattr(drug, key, value)

    if drug.purchase_form_id == drug.sale_form_id and drug.units_per_purchase != 1:
        raise InvalidInput("Units per purchase must be 1 when purchase and sale forms are the same")

    prices = compute_prices(
        drug.purchase_price,
        drug.units_per_purchase,
        drug.pos_markup,
        drug.prescription_markup,
    )
    drug.purchase_price = Decimal(str(drug.purchase_price))
    drug.pos_markup = Decimal(str(drug.pos_markup))
    drug.prescription_markup = Decimal(str(drug.prescription_markup))
    drug.unit_cost = prices.unit_cost
    drug.pos_price = prices.pos_price
    drug.prescription_price = prices.prescription_price

    if drug.id is None:
        db.add(drug)
    return drug


def get_drug(db: Session, drug_id: int) -> Drug:
    drug = db.query(Drug).filter(Drug.id == drug_id).first()
    if not drug:
        raise NotFound("Drug")
    return drug


def _category_id(db: Session, name: str) -> int:
    category = db.query(DrugCategory).filter(DrugCategory.name == name).first()
    if not category:
        raise InvalidInput("Invalid category")
    return category.id


def _check_form(db: Session, form_id: int) -> None:
    if not db.query(DrugForm).filter(DrugForm.id == form_id).first():
        raise InvalidInput(f"Invalid drug form {form_id}")


def create_drug(db: Session, data: DrugCreate, user: User, ip_address: Optional[str] = None) -> Drug:
    if not data.name.strip():
        raise InvalidInput("Drug name cannot be empty")
    if data.min_stock < 0:
        raise InvalidInput("Minimum stock cannot be negative")

    with atomic(db):
        _check_form(db, data.purchase_form_id)
        _check_form(db, data.sale_form_id)
        drug = save_drug(
            db,
            Drug(stock=0, active=True),
            name=data.name.strip(),
            category_id=_category_id(db, data.category),
            purchase_form_id=data.purchase_form_id,
            sale_form_id=data.sale_form_id,
            purchase_price=data.purchase_price,
            units_per_purchase=data.units_per_purchase,
            pos_markup=data.pos_markup,
            prescription_markup=data.prescription_markup,
            strength=data.strength,
            unit=data.unit,
            min_stock=data.min_stock,
            expiry_date=data.expiry_date,
        )
        db.flush()
    db.refresh(drug)

    logger.info(f"Drug {drug.id} '{drug.name}' created by user {user.id}")
    AuditLog.log_action(
        db, "create", "drug", drug.id, user.id,
        details=data.model_dump(mode="json"), ip_address=ip_address,
    )
    return drug


def update_drug(db: Session, drug_id: int, data: DrugUpdate, user: User, ip_address: Optional[str] = None) -> Drug:
    changes = data.model_dump(exclude_unset=True)
    if "name" in changes and not (changes["name"] or "").strip():
        raise InvalidInput("Drug name cannot be empty")
    if changes.get("min_stock") is not None and changes["min_stock"] < 0:
        raise InvalidInput("Minimum stock cannot be negative")

    with atomic(db):
        drug = get_drug(db, drug_id)
        fields = {}
        for key, value in changes.items():
            if key == "category":
                fields["category_id"] = _category_id(db, value)
            elif key in ("purchase_form_id", "sale_form_id"):
                _check_form(db, value)
                fields[key] = value
            elif value is not None or key in CLEARABLE_FIELDS:
                fields[key] = value.strip() if key == "name" else value
        save_drug(db, drug, **fields)
    db.refresh(drug)

    logger.info(f"Drug {drug.id} updated by user {user.id}: {sorted(changes)}")
    AuditLog.log_action(
        db, "update", "drug", drug.id, user.id,
        details=data.model_dump(mode="json", exclude_unset=True), ip_address=ip_address,
    )
    return drug


def list_drugs(db: Session, search: Optional[str] = None) -> List[Drug]:
    q = db.query(Drug)
    if search:
        q = q.filter(Drug.name.ilike(f"%{search}%"))
    return q.order_by(Drug.name.asc()).all()


def low_stock(db: Session) -> List[Drug]:
    return (
        db.query(Drug)
        .filter(Drug.stock <= Drug.min_stock, Drug.active.is_(True))
        .order_by(Drug.stock.asc())
        .all()
    )


def expiring(db: Session, days: int = None) -> List[Drug]:
    cutoff = date.today() + timedelta(days=days if days is not None else settings.EXPIRY_WINDOW_DAYS)
    return (
        db.query(Drug)
        .filter(
            Drug.expiry_date.isnot(None),
            Drug.expiry_date <= cutoff,
            Drug.stock > 0,
            Drug.active.is_(True),
        )
        .order_by(Drug.expiry_date.asc())
        .all()
    )


def inventory_stats(db: Session) -> dict:
    cutoff = date.today() + timedelta(days=settings.EXPIRY_WINDOW_DAYS)
    active = db.query(Drug).filter(Drug.active.is_(True))
    stock_value = (
        db.query(func.sum(Drug.stock * Drug.unit_cost)).filter(Drug.active.is_(True)).scalar()
        or Decimal("0")
    )
    return {
        "total_drugs": db.query(func.count(Drug.id)).scalar() or 0,
        "active_drugs": active.count(),
        "low_stock": active.filter(Drug.stock <= Drug.min_stock).count(),
        "out_of_stock": active.filter(Drug.stock == 0).count(),
        "expiring_soon": active.filter(
            Drug.expiry_date.isnot(None), Drug.expiry_date <= cutoff, Drug.stock > 0
        ).count(),
        "pending_restocks": db.query(func.count(StockTransaction.id))
        .filter(StockTransaction.status == PENDING)
        .scalar() or 0,
        "active_vendors": db.query(func.count(Vendor.id)).filter(Vendor.active.is_(True)).scalar() or 0,
        "stock_value": float(stock_value),
    }


# ==============================================================================
# CATEGORIES & FORMS
# ==============================================================================

def paginate(db: Session, model, page: int, limit: int) -> dict:
    page = max(page, 1)
    limit = max(limit, 1)
    offset = (page - 1) * limit
    total = db.query(func.count(model.id)).scalar() or 0
    rows = db.query(model).order_by(model.name.asc()).limit(limit).offset(offset).all()
    return {
        "data": rows,
        "page": page,
        "total_pages": math.ceil(total / limit),
        "has_more": offset + len(rows) < total,
    }


def create_lookup(db: Session, model, name: str, description: Optional[str], user: User,
                  ip_address: Optional[str] = None):
    """Create a DrugCategory or DrugForm."""
    label = "Category" if model is DrugCategory else "Form"
    name = (name or "").strip()
    if not name:
        raise InvalidInput(f"{label} name cannot be empty")

    with atomic(db):
        if db.query(model).filter(model.name == name).first():
            raise InvalidInput(f"{label} already exists")
        row = model(name=name, description=description)
        db.add(row)
        db.flush()
    db.refresh(row)

    AuditLog.log_action(
        db, "create", label.lower(), row.id, user.id,
        details={"name": name, "description": description}, ip_address=ip_address,
    )
    return row


def delete_lookup(db: Session, model, row_id: int, user: User, ip_address: Optional[str] = None) -> None:
    label = "Category" if model is DrugCategory else "Form"
    if model is DrugCategory:
        in_use = db.query(Drug).filter(Drug.category_id == row_id).count()
    else:
        in_use = (
            db.query(Drug)
            .filter((Drug.purchase_form_id == row_id) | (Drug.sale_form_id == row_id))
            .count()
        )
    if in_use:
        raise InvalidInput(f"Cannot delete {label.lower()} that is in use by drugs")

    with atomic(db):
        row = db.query(model).filter(model.id == row_id).first()
        if not row:
            raise NotFound(label)
        db.delete(row)

    AuditLog.log_action(db, "delete", label.lower(), row_id, user.id, ip_address=ip_address)
