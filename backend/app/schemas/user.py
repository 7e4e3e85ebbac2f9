from typing import Optional
from pydantic import BaseModel, field_validator

from app.models.user import ROLES
from app.schemas.common import CamelModel


class UserCreate(CamelModel):
    username: str
    password: str
    full_name: Optional[str] = None
    role: str = "pharmacist"

    @field_validator("username")
    @classmethod
    def username_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Username cannot be empty")
        return v

    @field_validator("role")
    @classmethod
    def known_role(cls, v: str) -> str:
        if v not in ROLES:
            raise ValueError(f"Role must be one of: {', '.join(ROLES)}")
        return v


class UserLogin(BaseModel):
    username: str
    password: str


class UserResponse(CamelModel):
    id: int
    username: str
    full_name: Optional[str] = None
    role: str
    is_active: bool


class LoginResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    user: UserResponse
