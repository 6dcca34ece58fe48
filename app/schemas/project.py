# app/schemas/project.py
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

from app.models.enums import (
    ProjectStatus, PhaseStatus, PhaseAssetType, ChangeRequestStatus
)
from app.schemas.payment import PaymentOut
from app.schemas.plan import ProjectPlan
from app.utils.money import to_number


# --- Phases ---
class PhaseCreate(BaseModel):
    title: Optional[str] = None
    group: Optional[ProjectStatus] = None
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    status: PhaseStatus = PhaseStatus.PENDING
    order: Optional[int] = None


class PhaseStatusUpdate(BaseModel):
    status: PhaseStatus


class PhaseAssetOut(BaseModel):
    id: int
    type: PhaseAssetType
    url: str
    label: str | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class DeliverableLinkCreate(BaseModel):
    url: str = Field(..., min_length=1)
    label: Optional[str] = None


class CommentAttachmentOut(BaseModel):
    id: int
    url: str

    class Config:
        from_attributes = True


class PhaseCommentOut(BaseModel):
    id: int
    phase_id: int
    author_id: int | None
    author_name: str | None = None
    body: str
    attachments: List[CommentAttachmentOut] = []
    created_at: datetime | None = None


class PhaseOut(BaseModel):
    id: int
    project_id: int
    group: ProjectStatus
    title: str
    description: str | None = None
    due_date: datetime | None = None
    status: PhaseStatus
    order: int
    deliverables: List[PhaseAssetOut] = []
    comments: List[PhaseCommentOut] = []


# --- Change requests ---
class ChangeRequestCreate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    amount: Optional[float | str] = None


class ChangeRequestUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    amount: Optional[float] = Field(None, allow_inf_nan=False)


class ChangeRequestOut(BaseModel):
    id: int
    project_id: int
    title: str
    description: str | None = None
    amount: float
    status: ChangeRequestStatus
    created_by_id: int | None = None
    decided_at: datetime | None = None
    created_at: datetime | None = None

    @field_validator('amount', mode='before')
    @classmethod
    def normalize_amount(cls, v):
        return to_number(v)

    class Config:
        from_attributes = True


# --- Reviews ---
class ReviewCreate(BaseModel):
    rating: Optional[int | float | str] = None
    comment: Optional[str] = None


class ReviewOut(BaseModel):
    id: int
    project_id: int
    rating: int
    comment: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


# --- Projects ---
class ProjectListItem(BaseModel):
    id: int
    order_id: int
    title: str
    status: ProjectStatus
    due_date: datetime | None = None
    archived_at: datetime | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class InvoiceOut(BaseModel):
    id: int
    number: str
    amount_due: float
    amount_paid: float
    status: str
    due_date: datetime | None = None

    @field_validator('amount_due', 'amount_paid', mode='before')
    @classmethod
    def normalize_amounts(cls, v):
        return to_number(v)

    class Config:
        from_attributes = True


class RevisionOut(BaseModel):
    id: int
    title: str
    details: str | None = None
    amount: float
    status: str

    @field_validator('amount', mode='before')
    @classmethod
    def normalize_amount(cls, v):
        return to_number(v)

    class Config:
        from_attributes = True


class ProjectDetail(ProjectListItem):
    description: str | None = None
    phases: List[PhaseOut] = []
    payments: List[PaymentOut] = []
    invoices: List[InvoiceOut] = []
    revisions: List[RevisionOut] = []
    change_requests: List[ChangeRequestOut] = []
    review: ReviewOut | None = None
    review_locked: bool = False
    plan: ProjectPlan | None = None


class ProjectMilestoneCreate(BaseModel):
    label: str = Field(..., min_length=1)
    amount: float = Field(..., gt=0, allow_inf_nan=False)
    due_date: Optional[datetime] = None


class ProjectUpdate(BaseModel):
    status: Optional[ProjectStatus] = None
    archived: Optional[bool] = None
    due_date: Optional[datetime] = None
    milestone: Optional[ProjectMilestoneCreate] = None
    note: Optional[str] = None
