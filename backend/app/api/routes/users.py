"""Staff accounts. Admin only."""
from typing import List

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_admin
from app.core.audit import AuditLog, get_client_ip
from app.core.config import settings
from app.core.exceptions import InvalidInput
from app.core.security import get_password_hash
from app.models.user import User
from app.schemas.user import UserCreate, UserResponse

router = APIRouter()


@router.get("", response_model=List[UserResponse])
def list_users(db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    return db.query(User).order_by(User.username.asc()).all()


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(data: UserCreate, request: Request, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    if len(data.password) < settings.MIN_PASSWORD_LENGTH:
        raise InvalidInput(f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters")
    if db.query(User).filter(User.username == data.username).first():
        raise InvalidInput("Username already exists")

    user = User(
        username=data.username,
        full_name=data.full_name,
        role=data.role,
        hashed_password=get_password_hash(data.password),
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    AuditLog.log_action(
        db, "create", "user", user.id, admin.id,
        details={"username": user.username, "role": user.role},
        ip_address=get_client_ip(request),
    )
    return user
