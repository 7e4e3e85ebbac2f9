"""
Drug stock ledger. `drugs.stock` is the running balance in sale-form units.

Increments come only from approved restocks; decrements from POS sales and
prescription dispensing. Both are conditional UPDATEs so concurrent writers
cannot lose an update, and a decrement can never take stock below zero.
Nothing here commits: the caller owns the transaction.
"""
import logging

from sqlalchemy.orm import Session

from app.core.exceptions import InsufficientStock, InvalidInput, NotFound
from app.models.drug import Drug

logger = logging.getLogger(__name__)


def _lock_drug(db: Session, drug_id: int) -> Drug:
    # populate_existing would discard unflushed edits to an already loaded drug
    db.flush()
    drug = (
        db.query(Drug)
        .filter(Drug.id == drug_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if not drug:
        raise NotFound("Drug")
    return drug


def _check_quantity(quantity) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidInput("Quantity must be a positive whole number")


def increment(db: Session, drug_id: int, quantity: int) -> Drug:
    """Add sale units to stock. Called only when a restock becomes approved."""
    _check_quantity(quantity)
    drug = _lock_drug(db, drug_id)
    db.query(Drug).filter(Drug.id == drug_id).update(
        {Drug.stock: Drug.stock + quantity}, synchronize_session=False
    )
    db.expire(drug, ["stock"])
    logger.info(f"Stock +{quantity} for drug {drug_id} ({drug.name})")
    return drug


def decrement(db: Session, drug_id: int, quantity: int) -> Drug:
    """Remove sale units from stock.

    Raises:
        InsufficientStock: fewer than `quantity` units on hand. Nothing is written.
    """
    _check_quantity(quantity)
    drug = _lock_drug(db, drug_id)
    updated = (
        db.query(Drug)
        .filter(Drug.id == drug_id, Drug.stock >= quantity)
        .update({Drug.stock: Drug.stock - quantity}, synchronize_session=False)
    )
    if not updated:
        raise InsufficientStock(drug.name, drug.stock, quantity)
    db.expire(drug, ["stock"])
    logger.info(f"Stock -{quantity} for drug {drug_id} ({drug.name})")
    return drug
