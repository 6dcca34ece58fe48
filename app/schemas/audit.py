# app/schemas/audit.py
"""
Typed payloads for audit log entries.

Every AuditLog row stores one of these models (dumped to JSON) in its `data`
column. The model is picked by the row's action, so readers get the payload
back as a typed object instead of a free-form dict.
"""
import enum
from datetime import datetime
from typing import Optional, Type
from pydantic import BaseModel

from app.models.enums import MilestoneStatus, PhaseStatus, ProjectStatus, QuoteStatus
from app.schemas.plan import ProjectPlan


class AuditAction(str, enum.Enum):
    PAYMENT_REVIEW = "PAYMENT_REVIEW"
    UPLOAD_PROOF = "UPLOAD_PROOF"
    QUOTE_SENT = "QUOTE_SENT"
    QUOTE_ACCEPTED = "QUOTE_ACCEPTED"
    QUOTE_REJECTED = "QUOTE_REJECTED"
    PROJECT_PLAN = "PROJECT_PLAN"
    PROJECT_NOTE = "PROJECT_NOTE"
    PHASE_STATUS = "PHASE_STATUS"
    USER_ACTIVATED = "USER_ACTIVATED"
    MAGIC_LOGIN = "MAGIC_LOGIN"


class AuditTarget(str, enum.Enum):
    PAYMENT = "PAYMENT"
    QUOTE = "QUOTE"
    PROJECT = "PROJECT"
    PHASE = "PHASE"
    USER = "USER"
    ORDER = "ORDER"


class PaymentReviewData(BaseModel):
    status: MilestoneStatus
    note: str


class UploadProofData(BaseModel):
    proof_url: Optional[str] = None
    previous_status: Optional[MilestoneStatus] = None


class QuoteSentData(BaseModel):
    # Hash only, never the raw token
    token_hash: str
    expires_at: datetime


class QuoteAcceptedData(BaseModel):
    order_id: int
    project_id: int
    user_id: int


class QuoteRejectedData(BaseModel):
    previous_status: QuoteStatus
    reason: Optional[str] = None


class ProjectPlanData(BaseModel):
    source: str  # "quote" or "order"
    source_id: int
    plan: ProjectPlan


class ProjectNoteData(BaseModel):
    note: str


class PhaseStatusData(BaseModel):
    phase_id: int
    previous_status: PhaseStatus
    status: PhaseStatus
    project_status: ProjectStatus


class UserActivatedData(BaseModel):
    email: str
    quote_id: int
    created: bool


class MagicLoginData(BaseModel):
    token_hash: str
    email: str
    target_type: str
    target_id: Optional[int] = None
    expires_at: datetime


AUDIT_PAYLOADS: dict[AuditAction, Type[BaseModel]] = {
    AuditAction.PAYMENT_REVIEW: PaymentReviewData,
    AuditAction.UPLOAD_PROOF: UploadProofData,
    AuditAction.QUOTE_SENT: QuoteSentData,
    AuditAction.QUOTE_ACCEPTED: QuoteAcceptedData,
    AuditAction.QUOTE_REJECTED: QuoteRejectedData,
    AuditAction.PROJECT_PLAN: ProjectPlanData,
    AuditAction.PROJECT_NOTE: ProjectNoteData,
    AuditAction.PHASE_STATUS: PhaseStatusData,
    AuditAction.USER_ACTIVATED: UserActivatedData,
    AuditAction.MAGIC_LOGIN: MagicLoginData,
}


def parse_audit_data(action: str, data: dict | None) -> BaseModel | None:
    """Rebuilds the typed payload of a stored audit row."""
    if data is None:
        return None
    model = AUDIT_PAYLOADS[AuditAction(action)]
    return model.model_validate(data)
