from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_current_user
from app.models.user import User
from app.schemas.common import MessageResponse
from app.schemas.notification import NotificationResponse
from app.services import notification_service

router = APIRouter()


@router.get("", response_model=List[NotificationResponse])
def list_notifications(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Admins see pending-restock alerts; everyone else sees outcomes of their own restocks."""
    return notification_service.list_for_user(db, current_user)


@router.post("/{notification_id}/read", response_model=MessageResponse)
def mark_as_read(notification_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    notification_service.mark_as_read(db, notification_id, current_user)
    return {"message": "Notification marked as read"}
