"""
Restock workflow: requests, admin approval and the restock read models.

    pending -> approved | rejected     (both terminal)

Stock moves only when a row becomes approved, either on creation (when the
initial-status policy says so) or through approve_or_reject. Every write path
runs inside one atomic() unit: a batch is all-or-nothing, and an approval
flips the status, moves stock and notifies the requester together.

Batch submission is not idempotent. A retried request creates a second batch.
"""
import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional

from sqlalchemy.orm import Session, joinedload

from app.core.audit import AuditLog
from app.core.config import settings
from app.core.exceptions import InvalidInput, InvalidState, NotFound
from app.db.transaction import atomic
from app.models.drug import Drug
from app.models.notification import RESTOCK_PENDING, RESTOCK_APPROVED, RESTOCK_REJECTED
from app.models.stock_transaction import StockTransaction, PENDING, APPROVED, REJECTED
from app.models.user import User
from app.schemas.restock import RestockDrugRequest, RestockItem, RestockRecord
from app.services import stock_ledger
from app.services.drug_service import save_drug
from app.services.notification_service import notify
from app.services.pricing import line_prices, to_decimal
from app.services.units import PURCHASE, convert_price, to_purchase_units, to_sale_units
from app.services.vendor_service import get_active_vendor

logger = logging.getLogger(__name__)

StatusPolicy = Callable[[str], str]


def decide_initial_status(role: str) -> str:
    """Admins restock directly; everyone else needs an admin's approval."""
    return APPROVED if role == "admin" else PENDING


def _display_name(user: User) -> str:
    return user.full_name or user.username


def _price_line(txn: StockTransaction, item: RestockItem, drug: Drug) -> None:
    """Snapshot the line's pricing onto the transaction.

    Missing parts fall back to the drug's current values, the price converted
    into the line's unit first.
    """
    same = drug.same_form
    price = item.purchase_price
    if price is None:
        price = convert_price(drug.purchase_price, PURCHASE, item.purchase_unit, drug.units_per_purchase, same)
    pos = item.pos_markup if item.pos_markup is not None else drug.pos_markup
    rx = item.prescription_markup if item.prescription_markup is not None else drug.prescription_markup

    purchase_price, prices = line_prices(price, item.purchase_unit, drug.units_per_purchase, pos, rx, same)
    txn.purchase_price = purchase_price
    txn.pos_markup = to_decimal(pos, "POS markup")
    txn.prescription_markup = to_decimal(rx, "Prescription markup")
    txn.unit_cost = prices.unit_cost
    txn.pos_price = prices.pos_price
    txn.prescription_price = prices.prescription_price


def _new_transaction(
    db: Session,
    item: RestockItem,
    requester: User,
    status: str,
    vendor_id: Optional[int] = None,
    reference_number: Optional[str] = None,
    notes: Optional[str] = None,
):
    drug = db.query(Drug).filter(Drug.id == item.drug_id).first()
    if not drug:
        raise NotFound("Drug")

    same = drug.same_form
    txn = StockTransaction(
        drug_id=drug.id,
        vendor_id=vendor_id,
        type="in",
        purchase_unit=item.purchase_unit,
        purchase_quantity=to_purchase_units(item.quantity, item.purchase_unit, drug.units_per_purchase, same),
        sale_quantity=to_sale_units(item.quantity, item.purchase_unit, drug.units_per_purchase, same),
        batch_number=item.batch_number,
        expiry_date=item.expiry_date,
        reference_number=reference_number,
        notes=notes,
        status=status,
        created_by=requester.id,
    )
    if item.has_pricing:
        _price_line(txn, item, drug)
    db.add(txn)
    return txn, drug


def _receive(db: Session, txn: StockTransaction, drug: Drug) -> None:
    """Apply an approved row to its drug: stock first, then any pricing snapshot."""
    stock_ledger.increment(db, drug.id, txn.sale_quantity)
    if txn.has_pricing:
        save_drug(
            db,
            drug,
            purchase_price=txn.purchase_price,
            pos_markup=txn.pos_markup,
            prescription_markup=txn.prescription_markup,
        )


def _submit(db: Session, item: RestockItem, requester: User, status: str, **kwargs) -> StockTransaction:
    txn, drug = _new_transaction(db, item, requester, status, **kwargs)
    if status == APPROVED:
        txn.approved_by = requester.id
        txn.approved_at = datetime.now(timezone.utc)
        _receive(db, txn, drug)
    else:
        notify(
            db,
            None,
            RESTOCK_PENDING,
            f"{_display_name(requester)} requested a restock of {txn.purchase_quantity} "
            f"{drug.purchase_form.name} of {drug.name} ({txn.sale_quantity} {drug.sale_form.name})",
        )
    return txn


def _audit_details(txn: StockTransaction) -> dict:
    details = {
        "drugId": txn.drug_id,
        "vendorId": txn.vendor_id,
        "purchaseUnit": txn.purchase_unit,
        "purchaseQuantity": txn.purchase_quantity,
        "saleQuantity": txn.sale_quantity,
        "batchNumber": txn.batch_number,
        "expiryDate": txn.expiry_date.isoformat() if txn.expiry_date else None,
        "status": txn.status,
    }
    if txn.has_pricing:
        details["purchasePrice"] = float(txn.purchase_price)
    return details


def create_restock_batch(
    db: Session,
    vendor_id: int,
    reference_number: Optional[str],
    items: List[RestockItem],
    requester: User,
    policy: StatusPolicy = decide_initial_status,
    ip_address: Optional[str] = None,
) -> dict:
    """
    Record a multi-line restock from one vendor.

    Lines are processed in order inside a single transaction; the first
    failing line (unknown drug, bad quantity or price) rolls back the batch.

    Returns:
        {"message": ..., "ids": [...]} ids in submission order.
    """
    if not items:
        raise InvalidInput("At least one item is required")

    status = policy(requester.role)
    with atomic(db):
        get_active_vendor(db, vendor_id)
        created = [
            _submit(db, item, requester, status, vendor_id=vendor_id, reference_number=reference_number)
            for item in items
        ]
        db.flush()
        audit_rows = [(txn.id, _audit_details(txn)) for txn in created]

    logger.info(
        f"Restock batch of {len(audit_rows)} item(s) from vendor {vendor_id} "
        f"by user {requester.id}: {status}"
    )
    for txn_id, details in audit_rows:
        details["referenceNumber"] = reference_number
        AuditLog.log_action(db, "create", "stock", txn_id, requester.id, details, ip_address)

    message = "Restock completed successfully" if status == APPROVED else "Restock submitted for approval"
    return {"message": message, "ids": [txn_id for txn_id, _ in audit_rows]}


def restock_drug(
    db: Session,
    drug_id: int,
    data: RestockDrugRequest,
    requester: User,
    policy: StatusPolicy = decide_initial_status,
    ip_address: Optional[str] = None,
) -> dict:
    """Single-drug restock; behaves like a batch of one with an optional vendor."""
    item = data.as_item(drug_id)
    status = policy(requester.role)

    with atomic(db):
        if data.vendor_id is not None:
            get_active_vendor(db, data.vendor_id)
        txn = _submit(
            db, item, requester, status,
            vendor_id=data.vendor_id,
            reference_number=data.reference_number,
            notes=data.notes,
        )
        db.flush()
        txn_id, details = txn.id, _audit_details(txn)

    logger.info(f"Restock {txn_id} of drug {drug_id} by user {requester.id}: {status}")
    details["notes"] = data.notes
    AuditLog.log_action(db, "create", "stock", txn_id, requester.id, details, ip_address)

    message = "Stock added successfully" if status == APPROVED else "Restock submitted for approval"
    return {"message": message, "id": txn_id}


def approve_or_reject(
    db: Session,
    transaction_id: int,
    decision: str,
    approver: User,
    ip_address: Optional[str] = None,
) -> dict:
    """
    Resolve a pending restock.

    The row is locked for the duration of the transaction, and the status
    flip is itself conditional on the row still being pending, so of two
    concurrent resolutions exactly one wins and the other gets InvalidState.

    Raises:
        InvalidInput: decision is not "approved" or "rejected".
        NotFound: unknown transaction id.
        InvalidState: the restock was already approved or rejected.
    """
    if decision not in (APPROVED, REJECTED):
        raise InvalidInput("Status must be 'approved' or 'rejected'")

    with atomic(db):
        txn = (
            db.query(StockTransaction)
            .filter(StockTransaction.id == transaction_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if not txn:
            raise NotFound("Restock")
        if txn.status != PENDING:
            raise InvalidState(f"Restock has already been {txn.status}")

        updated = (
            db.query(StockTransaction)
            .filter(StockTransaction.id == transaction_id, StockTransaction.status == PENDING)
            .update(
                {
                    StockTransaction.status: decision,
                    StockTransaction.approved_by: approver.id,
                    StockTransaction.approved_at: datetime.now(timezone.utc),
                },
                synchronize_session=False,
            )
        )
        db.expire(txn)
        if not updated:
            raise InvalidState(f"Restock has already been {txn.status}")

        drug = txn.drug
        quantity = f"{txn.purchase_quantity} {drug.purchase_form.name} of {drug.name}"
        if decision == APPROVED:
            _receive(db, txn, drug)
            notify(db, txn.created_by, RESTOCK_APPROVED, f"Your restock of {quantity} was approved")
        else:
            notify(db, txn.created_by, RESTOCK_REJECTED, f"Your restock of {quantity} was rejected")
        details = _audit_details(txn)

    logger.info(f"Restock {transaction_id} {decision} by user {approver.id}")
    action = "approve" if decision == APPROVED else "reject"
    AuditLog.log_action(db, action, "stock", transaction_id, approver.id, details, ip_address)

    return {"message": f"Restock {decision} successfully"}


# ==============================================================================
# READ MODELS
# ==============================================================================

def _with_names(db: Session):
    return db.query(StockTransaction).options(
        joinedload(StockTransaction.drug).joinedload(Drug.purchase_form),
        joinedload(StockTransaction.drug).joinedload(Drug.sale_form),
        joinedload(StockTransaction.vendor),
        joinedload(StockTransaction.requester),
        joinedload(StockTransaction.approver),
    )


def _pick(snapshot, current) -> float:
    return float(snapshot if snapshot is not None else current)


def to_record(txn: StockTransaction) -> RestockRecord:
    """Project a restock row. Rows without a pricing snapshot show the drug's current prices."""
    drug = txn.drug
    return RestockRecord(
        id=txn.id,
        drug_id=txn.drug_id,
        drug_name=drug.name,
        vendor_id=txn.vendor_id,
        vendor_name=txn.vendor.name if txn.vendor else None,
        reference_number=txn.reference_number,
        purchase_unit=txn.purchase_unit,
        purchase_quantity=txn.purchase_quantity,
        sale_quantity=txn.sale_quantity,
        purchase_form=drug.purchase_form.name,
        sale_form=drug.sale_form.name,
        batch_number=txn.batch_number,
        expiry_date=txn.expiry_date,
        notes=txn.notes,
        status=txn.status,
        created_by=_display_name(txn.requester),
        approver_name=_display_name(txn.approver) if txn.approver else None,
        approved_at=txn.approved_at,
        created_at=txn.created_at,
        purchase_price=_pick(txn.purchase_price, drug.purchase_price),
        unit_cost=_pick(txn.unit_cost, drug.unit_cost),
        pos_price=_pick(txn.pos_price, drug.pos_price),
        prescription_price=_pick(txn.prescription_price, drug.prescription_price),
        pos_markup=_pick(txn.pos_markup, drug.pos_markup),
        prescription_markup=_pick(txn.prescription_markup, drug.prescription_markup),
    )


def list_pending(db: Session) -> List[RestockRecord]:
    """Oldest first, the order admins work through them."""
    rows = (
        _with_names(db)
        .filter(StockTransaction.status == PENDING)
        .order_by(StockTransaction.created_at.asc(), StockTransaction.id.asc())
        .all()
    )
    return [to_record(r) for r in rows]


def list_history(db: Session, limit: int = None) -> List[RestockRecord]:
    rows = (
        _with_names(db)
        .filter(StockTransaction.status != PENDING)
        .order_by(StockTransaction.created_at.desc(), StockTransaction.id.desc())
        .limit(limit or settings.RESTOCK_HISTORY_LIMIT)
        .all()
    )
    return [to_record(r) for r in rows]


def list_transactions(db: Session, limit: int = None) -> List[RestockRecord]:
    rows = (
        _with_names(db)
        .order_by(StockTransaction.created_at.desc(), StockTransaction.id.desc())
        .limit(limit or settings.RESTOCK_HISTORY_LIMIT)
        .all()
    )
    return [to_record(r) for r in rows]
