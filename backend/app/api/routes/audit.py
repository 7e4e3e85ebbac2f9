from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_admin
from app.core.config import settings
from app.models.audit_log import AuditLogEntry
from app.models.user import User

router = APIRouter()


@router.get("", response_model=list)
def list_audit_logs(
    entity_type: Optional[str] = Query(None, alias="entityType"),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Newest entries first."""
    q = db.query(AuditLogEntry)
    if entity_type:
        q = q.filter(AuditLogEntry.entity_type == entity_type)
    rows = (
        q.order_by(AuditLogEntry.created_at.desc(), AuditLogEntry.id.desc())
        .limit(limit or settings.AUDIT_LIST_LIMIT)
        .all()
    )
    return [
        {
            "id": r.id,
            "userId": r.user_id,
            "actionType": r.action_type,
            "entityType": r.entity_type,
            "entityId": r.entity_id,
            "details": r.details,
            "ipAddress": r.ip_address,
            "createdAt": r.created_at.isoformat() if r.created_at else None,
        }
        for r in rows
    ]
