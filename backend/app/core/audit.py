"""
Audit trail for inventory operations.

Every entry is written twice: as a JSON line on the dedicated `audit` logger
(shippable to centralized logging) and as an `audit_log` row.

Writing is fire-and-forget. Callers invoke it after their own commit, and a
failure here is logged and dropped so it never undoes or blocks the primary
operation.
"""
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.audit_log import AuditLogEntry

audit_logger = logging.getLogger("audit")
logger = logging.getLogger(__name__)


def get_client_ip(request: Optional[Request]) -> Optional[str]:
    """Forwarded-for header first (proxy deployments), then the socket peer."""
    if request is None:
        return None
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


class AuditLog:
    """Central audit logging for inventory and auth events."""

    @staticmethod
    def log_action(
        db: Session,
        action: str,  # "create", "update", "delete", "approve", "reject", "login"
        entity_type: str,  # "drug", "stock", "vendor", "category", "form", "sale", "user"
        entity_id: Optional[int],
        user_id: Optional[int],
        details: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
    ) -> None:
        """
        Record who did what to which entity.

        Usage:
            AuditLog.log_action(db, "approve", "stock", txn.id, admin.id, {"saleQuantity": 50})
        """
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event_type": f"{entity_type}.{action}",
            "user_id": user_id,
            "entity_id": entity_id,
        }
        if details:
            log_entry["details"] = details
        if ip_address:
            log_entry["ip_address"] = ip_address

        audit_logger.info(json.dumps(log_entry, default=str))

        try:
            db.add(
                AuditLogEntry(
                    user_id=user_id,
                    action_type=action,
                    entity_type=entity_type,
                    entity_id=str(entity_id) if entity_id is not None else None,
                    details=json.loads(json.dumps(details or {}, default=str)),
                    ip_address=ip_address,
                )
            )
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to write audit log for {entity_type}.{action} #{entity_id}: {e}")

    @staticmethod
    def log_authentication(username: str, ip_address: Optional[str], success: bool, reason: str = "") -> None:
        """Login attempts go to the audit logger only; passwords are never logged."""
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event_type": "auth.login" if success else "auth.failed_login",
            "username": username,
            "ip_address": ip_address,
            "success": success,
        }
        if reason and not success:
            log_entry["reason"] = reason
        if success:
            audit_logger.info(json.dumps(log_entry))
        else:
            audit_logger.warning(json.dumps(log_entry))
