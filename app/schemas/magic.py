# app/schemas/magic.py
from typing import Any, Optional
from pydantic import BaseModel


class MagicValidateRequest(BaseModel):
    token: Optional[str] = None


class MagicLoginRequest(BaseModel):
    token: Optional[str] = None
    email: Optional[str] = None


class MagicValidateResult(BaseModel):
    email: str
    user_id: int
    target_type: str
    target_id: int | None = None
    meta: dict[str, Any] | None = None
    has_password: bool
