import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.audit import AuditLog
from app.core.exceptions import InvalidInput, NotFound
from app.db.transaction import atomic
from app.models.user import User
from app.models.vendor import Vendor
from app.schemas.vendor import VendorCreate, VendorUpdate

logger = logging.getLogger(__name__)


def get_vendor(db: Session, vendor_id: int) -> Vendor:
    vendor = db.query(Vendor).filter(Vendor.id == vendor_id).first()
    if not vendor:
        raise NotFound("Vendor")
    return vendor


def get_active_vendor(db: Session, vendor_id: int) -> Vendor:
    """Vendor usable on a new restock."""
    vendor = get_vendor(db, vendor_id)
    if not vendor.active:
        raise InvalidInput(f"Vendor '{vendor.name}' is inactive")
    return vendor


def list_vendors(db: Session, active_only: bool = False) -> List[Vendor]:
    q = db.query(Vendor)
    if active_only:
        q = q.filter(Vendor.active.is_(True))
    return q.order_by(Vendor.name.asc()).all()


def create_vendor(db: Session, data: VendorCreate, user: User, ip_address: Optional[str] = None) -> Vendor:
    if not data.name.strip():
        raise InvalidInput("Vendor name cannot be empty")

    with atomic(db):
        vendor = Vendor(**data.model_dump())
        vendor.name = data.name.strip()
        db.add(vendor)
        db.flush()
    db.refresh(vendor)

    logger.info(f"Vendor {vendor.id} '{vendor.name}' created by user {user.id}")
    AuditLog.log_action(db, "create", "vendor", vendor.id, user.id, details=data.model_dump(), ip_address=ip_address)
    return vendor


def update_vendor(db: Session, vendor_id: int, data: VendorUpdate, user: User,
                  ip_address: Optional[str] = None) -> Vendor:
    changes = data.model_dump(exclude_unset=True)
    if "name" in changes and not (changes["name"] or "").strip():
        raise InvalidInput("Vendor name cannot be empty")

    with atomic(db):
        vendor = get_vendor(db, vendor_id)
        for key, value in changes.items():
            setattr(vendor, key, value.strip() if key == "name" else value)
    db.refresh(vendor)

    AuditLog.log_action(db, "update", "vendor", vendor.id, user.id, details=changes, ip_address=ip_address)
    return vendor


def toggle_active(db: Session, vendor_id: int, user: User, ip_address: Optional[str] = None) -> Vendor:
    with atomic(db):
        vendor = get_vendor(db, vendor_id)
        vendor.active = not vendor.active
    db.refresh(vendor)

    logger.info(f"Vendor {vendor.id} {'activated' if vendor.active else 'deactivated'} by user {user.id}")
    AuditLog.log_action(
        db, "update", "vendor", vendor.id, user.id,
        details={"active": vendor.active}, ip_address=ip_address,
    )
    return vendor
