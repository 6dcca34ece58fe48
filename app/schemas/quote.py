# app/schemas/quote.py
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field, field_validator

from app.models.enums import QuoteStatus, CustomRequestStatus
from app.schemas.plan import ProjectPlan
from app.utils.money import to_number


class CustomRequestCreate(BaseModel):
    full_name: str = Field(..., min_length=1)
    email: EmailStr
    project_type: Optional[str] = None
    budget_range: Optional[str] = None
    timeline: Optional[str] = None
    details: Optional[str] = None


class CustomRequestOut(BaseModel):
    id: int
    full_name: str
    email: str
    project_type: str | None = None
    budget_range: str | None = None
    timeline: str | None = None
    details: str | None = None
    status: CustomRequestStatus
    order_id: int | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class QuoteCreate(BaseModel):
    amount: float = Field(..., gt=0, allow_inf_nan=False)
    scope: Optional[str] = None
    plan: Optional[ProjectPlan] = None
    expires_at: Optional[datetime] = None


class QuoteOut(BaseModel):
    id: int
    custom_request_id: int
    amount: float
    scope: str | None = None
    plan: ProjectPlan | None = None
    status: QuoteStatus
    sent_at: datetime | None = None
    expires_at: datetime | None = None
    accepted_at: datetime | None = None
    rejected_at: datetime | None = None
    archived_at: datetime | None = None

    @field_validator('amount', mode='before')
    @classmethod
    def normalize_amount(cls, v):
        return to_number(v)

    class Config:
        from_attributes = True


class QuoteSendResult(BaseModel):
    quote: QuoteOut
    magic_link: str


class QuoteDecisionRequest(BaseModel):
    token: Optional[str] = None
    quote_id: Optional[int] = None
    referral_code: Optional[str] = None
    reason: Optional[str] = None


class QuoteAcceptResult(BaseModel):
    quote_id: int
    order_id: int
    project_id: int
    magic_link: str
