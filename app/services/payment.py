# app/services/payment.py

import logging
from fastapi import UploadFile
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError, ValidationFailedError
from app.crud import audit as crud_audit
from app.crud import payment as crud_payment
from app.models.enums import MilestoneStatus
from app.models.payment import MilestonePayment
from app.schemas.audit import AuditAction, AuditTarget, PaymentReviewData, UploadProofData
from app.schemas.payment import PaymentCreate, PaymentOut, PaymentReview
from app.schemas.user import SessionUser
from app.services import storage as storage_service
from app.services.access import ensure_project_access, require_staff
from app.utils.date_utils import utcnow
from app.utils.text import clean_text

logger = logging.getLogger(__name__)


def to_payment_out(payment: MilestonePayment) -> PaymentOut:
    return PaymentOut(
        id=payment.id,
        project_id=payment.project_id,
        project_title=payment.project.title if payment.project else None,
        label=payment.label,
        amount=payment.amount,
        status=payment.status,
        proof_url=payment.proof_url,
        due_date=payment.due_date,
        gate_phase_id=payment.gate_phase_id,
        change_request_id=payment.change_request_id,
        archived_at=payment.archived_at,
        reviewed_by=payment.reviewed_by,
        reviewed_at=payment.reviewed_at,
    )


def list_payments(db: Session, session: SessionUser, archived: bool | None = None) -> list[PaymentOut]:
    """Staff see every payment (optionally filtered); clients only their own live ones."""
    if session.is_staff:
        payments = crud_payment.get_payments(db, archived=archived)
    else:
        payments = crud_payment.get_payments(db, user_id=session.id, archived=False)
    return [to_payment_out(p) for p in payments]


def create_payment(db: Session, session: SessionUser, data: PaymentCreate) -> PaymentOut:
    """A payment the client reports as made. Goes straight to review."""
    project = ensure_project_access(db, data.project_id, session)

    label = clean_text(data.label)
    if not label:
        raise ValidationFailedError("Label is required", field="label")

    payment = crud_payment.create_payment(
        db,
        project_id=project.id,
        label=label,
        amount=data.amount,
        status=MilestoneStatus.UNDER_REVIEW,
        due_date=data.due_date,
    )
    crud_audit.create_audit_log(
        db, session.id, AuditAction.UPLOAD_PROOF, AuditTarget.PAYMENT, payment.id,
        UploadProofData(proof_url=None, previous_status=None),
    )
    db.commit()
    db.refresh(payment)
    logger.info(f"Payment {payment.id} created on project {project.id} by user {session.id}.")
    return to_payment_out(payment)


def review_payment(db: Session, session: SessionUser, payment_id: int, data: PaymentReview) -> PaymentOut:
    """
    Staff decision on a milestone payment.
    A status change stamps the reviewer; `archived` toggles the archive timestamp.
    A note is only recorded (as an audit entry) together with a status.
    """
    require_staff(session)

    if data.status is None and data.archived is None:
        raise ValidationFailedError("Missing update")

    payment = crud_payment.get_payment_by_id(db, payment_id)
    if not payment:
        raise NotFoundError("Payment not found")

    now = utcnow()
    if data.status is not None:
        payment.status = data.status
        payment.reviewed_by = session.id
        payment.reviewed_at = now
    if data.archived is not None:
        payment.archived_at = now if data.archived else None

    note = clean_text(data.note)
    if note and data.status is not None:
        crud_audit.create_audit_log(
            db, session.id, AuditAction.PAYMENT_REVIEW, AuditTarget.PAYMENT, payment.id,
            PaymentReviewData(status=data.status, note=note),
        )

    db.commit()
    db.refresh(payment)
    logger.info(
        f"Payment {payment.id} reviewed by user {session.id}: "
        f"status={payment.status.value}, archived={payment.archived_at is not None}."
    )
    return to_payment_out(payment)


async def upload_payment_proof(
    db: Session, session: SessionUser, payment_id: int, file: UploadFile | None
) -> PaymentOut:
    """
    Attaches a proof of payment and puts the payment (back) under review.
    Any previous status is overwritten, APPROVED included; the previous
    status is kept in the UPLOAD_PROOF audit entry.
    """
    payment = crud_payment.get_payment_by_id(db, payment_id)
    if not payment:
        raise NotFoundError("Payment not found")
    ensure_project_access(db, payment.project_id, session)

    if file is None:
        raise ValidationFailedError("File is required", field="file")

    uploaded = await storage_service.upload_proof_image(file)

    previous_status = payment.status
    payment.proof_url = uploaded.url
    payment.status = MilestoneStatus.UNDER_REVIEW
    crud_audit.create_audit_log(
        db, session.id, AuditAction.UPLOAD_PROOF, AuditTarget.PAYMENT, payment.id,
        UploadProofData(proof_url=uploaded.url, previous_status=previous_status),
    )
    db.commit()
    db.refresh(payment)

    if previous_status != MilestoneStatus.PENDING:
        logger.warning(f"Proof re-uploaded on payment {payment.id}; status {previous_status.value} -> UNDER_REVIEW.")
    else:
        logger.info(f"Proof uploaded on payment {payment.id} by user {session.id}.")
    return to_payment_out(payment)
