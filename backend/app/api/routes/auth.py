"""Auth: login, logout and the current user.

- bcrypt password hashes, HS256 JWT carrying user id and role
- token returned in the body and set as an httpOnly cookie
- one generic error for every failed login (no user enumeration)
"""
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_current_user
from app.core.audit import AuditLog, get_client_ip
from app.core.config import settings
from app.core.exceptions import BusinessError
from app.core.security import verify_password, create_access_token
from app.models.user import User
from app.schemas.common import MessageResponse
from app.schemas.user import UserLogin, UserResponse, LoginResponse

router = APIRouter()


@router.post("/login", response_model=LoginResponse)
def login(data: UserLogin, request: Request, response: Response, db: Session = Depends(get_db)):
    ip = get_client_ip(request)
    user = db.query(User).filter(User.username == data.username.strip()).first()
    if not user or not verify_password(data.password, user.hashed_password):
        AuditLog.log_authentication(data.username, ip, success=False, reason="invalid credentials")
        raise BusinessError.unauthorized("invalid credentials", detail="Invalid username or password")
    if not user.is_active:
        AuditLog.log_authentication(data.username, ip, success=False, reason="inactive user")
        raise BusinessError.unauthorized("inactive user", detail="Invalid username or password")

    token = create_access_token(subject=str(user.id), role=user.role)
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        secure=settings.SECURE_COOKIES,
        httponly=True,
        samesite="lax",
    )
    AuditLog.log_authentication(user.username, ip, success=True)
    AuditLog.log_action(db, "login", "user", user.id, user.id, ip_address=ip)
    return LoginResponse(token=token, user=UserResponse.model_validate(user))


@router.post("/logout", response_model=MessageResponse)
def logout(response: Response, current_user: User = Depends(get_current_user)):
    response.delete_cookie(
        key=settings.AUTH_COOKIE_NAME,
        secure=settings.SECURE_COOKIES,
        httponly=True,
        samesite="lax",
    )
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)):
    return current_user
