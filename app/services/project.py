# app/services/project.py

import logging
from sqlalchemy.orm import Session

from app.core.exceptions import ValidationFailedError
from app.crud import audit as crud_audit
from app.crud import payment as crud_payment
from app.crud import project as crud_project
from app.models.enums import MilestoneStatus, ProjectStatus
from app.schemas.audit import AuditAction, AuditTarget, ProjectNoteData
from app.schemas.project import (
    ChangeRequestOut, InvoiceOut, ProjectDetail, ProjectListItem, ProjectUpdate, ReviewOut, RevisionOut
)
from app.schemas.user import SessionUser
from app.services.access import ensure_project_access, require_staff
from app.services.payment import to_payment_out
from app.services.phase import handle_delivered_project, to_phase_out
from app.services.plan import get_latest_plan
from app.services.review import is_review_locked
from app.utils.date_utils import utcnow
from app.utils.text import clean_text

logger = logging.getLogger(__name__)


def list_projects(db: Session, session: SessionUser, archived: bool | None = None) -> list[ProjectListItem]:
    if session.is_staff:
        projects = crud_project.get_projects(db, archived=archived)
    else:
        projects = crud_project.get_projects(db, user_id=session.id, archived=False)
    return [ProjectListItem.model_validate(p) for p in projects]


def get_project_detail(db: Session, session: SessionUser, project_id: int) -> ProjectDetail:
    project = ensure_project_access(db, project_id, session)

    # Clients don't see archived payments
    payments = crud_payment.get_payments(
        db, project_id=project.id, archived=None if session.is_staff else False
    )
    return ProjectDetail(
        id=project.id,
        order_id=project.order_id,
        title=project.title,
        description=project.description,
        status=project.status,
        due_date=project.due_date,
        archived_at=project.archived_at,
        created_at=project.created_at,
        phases=[to_phase_out(p) for p in crud_project.get_phases_for_project(db, project.id)],
        payments=[to_payment_out(p) for p in payments],
        invoices=[InvoiceOut.model_validate(i) for i in project.invoices],
        revisions=[RevisionOut.model_validate(r) for r in project.revisions],
        change_requests=[
            ChangeRequestOut.model_validate(c) for c in crud_project.get_change_requests_for_project(db, project.id)
        ],
        review=ReviewOut.model_validate(project.review) if project.review else None,
        review_locked=is_review_locked(db, project.id),
        plan=get_latest_plan(db, project.id),
    )


def update_project(db: Session, session: SessionUser, project_id: int, data: ProjectUpdate) -> ProjectDetail:
    """Staff edits: status, archive flag, due date, an ad-hoc milestone, a note."""
    require_staff(session)
    project = ensure_project_access(db, project_id, session)

    if (
        data.status is None and data.archived is None and data.due_date is None
        and data.milestone is None and not clean_text(data.note)
    ):
        raise ValidationFailedError("Missing update")

    if data.status is not None and data.status != project.status:
        logger.info(f"Project {project.id} status {project.status.value} -> {data.status.value} (manual).")
        project.status = data.status
        if data.status == ProjectStatus.DELIVERED:
            handle_delivered_project(db, project)
    if data.archived is not None:
        project.archived_at = utcnow() if data.archived else None
    if data.due_date is not None:
        project.due_date = data.due_date
    if data.milestone is not None:
        crud_payment.create_payment(
            db,
            project_id=project.id,
            label=data.milestone.label.strip(),
            amount=data.milestone.amount,
            status=MilestoneStatus.PENDING,
            due_date=data.milestone.due_date,
        )
    note = clean_text(data.note)
    if note:
        crud_audit.create_audit_log(
            db, session.id, AuditAction.PROJECT_NOTE, AuditTarget.PROJECT, project.id, ProjectNoteData(note=note)
        )

    db.commit()
    db.refresh(project)
    return get_project_detail(db, session, project.id)
