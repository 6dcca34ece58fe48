# app/schemas/payment.py
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, field_validator

from app.models.enums import MilestoneStatus
from app.utils.money import to_number


class PaymentCreate(BaseModel):
    project_id: int
    label: Optional[str] = None
    amount: float = Field(..., gt=0, allow_inf_nan=False)
    due_date: Optional[datetime] = None


class PaymentReview(BaseModel):
    status: Optional[MilestoneStatus] = None
    archived: Optional[bool] = None
    note: Optional[str] = None


class PaymentOut(BaseModel):
    id: int
    project_id: int
    project_title: str | None = None
    label: str
    amount: float
    status: MilestoneStatus
    proof_url: str | None = None
    due_date: datetime | None = None
    gate_phase_id: int | None = None
    change_request_id: int | None = None
    archived_at: datetime | None = None
    reviewed_by: int | None = None
    reviewed_at: datetime | None = None

    @field_validator('amount', mode='before')
    @classmethod
    def normalize_amount(cls, v):
        return to_number(v)
