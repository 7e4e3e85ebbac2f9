"""Notifications: restock alerts for admins and outcomes for requesters."""
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import NotFound
from app.models.notification import Notification, RESTOCK_PENDING, RESTOCK_APPROVED, RESTOCK_REJECTED
from app.models.user import User


def notify(db: Session, user_id: Optional[int], type: str, message: str) -> Notification:
    """Insert one notification. user_id=None broadcasts to every admin. Does not commit."""
    notification = Notification(user_id=user_id, type=type, message=message)
    db.add(notification)
    return notification


def list_for_user(db: Session, user: User, limit: int = None) -> List[Notification]:
    q = db.query(Notification)
    if user.is_admin:
        q = q.filter(Notification.type == RESTOCK_PENDING)
    else:
        q = q.filter(
            Notification.user_id == user.id,
            Notification.type.in_([RESTOCK_APPROVED, RESTOCK_REJECTED]),
        )
    return (
        q.order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit or settings.NOTIFICATION_LIMIT)
        .all()
    )


def mark_as_read(db: Session, notification_id: int, user: User) -> Notification:
    """Own notifications only; admins may also mark broadcasts."""
    visible = [Notification.user_id == user.id]
    if user.is_admin:
        visible.append(Notification.user_id.is_(None))
    notification = (
        db.query(Notification)
        .filter(Notification.id == notification_id, or_(*visible))
        .first()
    )
    if not notification:
        raise NotFound("Notification")
    notification.is_read = True
    db.commit()
    return notification
