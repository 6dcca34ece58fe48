# app/schemas/referral.py
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field

from app.models.enums import ReferralStatus


class CommissionBreakdown(BaseModel):
    available: float
    pending: float
    available_total: float


class ReferralItem(BaseModel):
    id: int
    referred_user_id: int | None
    referred_email: str | None = None
    order_id: int | None
    order_total: float
    paid_amount: float
    commission_amount: float
    commission_rate: float
    commission_paid_out: float
    available: float
    pending: float
    status: ReferralStatus
    created_at: datetime | None = None


class ReferralSummary(BaseModel):
    link: str
    code: str
    referrals: int  # distinct referred users
    earned: float
    available: float
    pending: float
    paid_out: float
    items: List[ReferralItem]


class AdminReferralItem(ReferralItem):
    referrer_id: int
    referrer_email: str


class ReferralUpdate(BaseModel):
    status: Optional[ReferralStatus] = None
    commission_amount: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
