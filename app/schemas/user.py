# app/schemas/user.py
from datetime import datetime
from pydantic import BaseModel, EmailStr
from typing import Optional

from app.models.enums import Role, STAFF_ROLES


class SessionUser(BaseModel):
    """
    The caller, as resolved from the bearer token.
    Passed explicitly into every service operation.
    """
    id: int
    role: Role
    email: str | None = None

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES


# Returned by login and register
class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class RegisterRequest(BaseModel):
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    name: Optional[str] = None
    phone: Optional[str] = None
    referral_code: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[EmailStr] = None
    password: Optional[str] = None


class UserProfile(BaseModel):
    id: int
    email: str
    name: str | None = None
    phone: str | None = None
    role: Role
    referral_code: str | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True
