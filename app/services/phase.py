# app/services/phase.py

import logging
from fastapi import UploadFile
from sqlalchemy.orm import Session

from app.bot.services import notification as notification_service
from app.core.exceptions import NotFoundError, ValidationFailedError
from app.crud import audit as crud_audit
from app.crud import project as crud_project
from app.models.enums import (
    OrderStatus, PhaseAssetType, PhaseStatus, ProjectStatus, PROJECT_PIPELINE
)
from app.models.project import Project, ProjectPhase, PhaseComment
from app.schemas.audit import AuditAction, AuditTarget, PhaseStatusData
from app.schemas.project import (
    CommentAttachmentOut, DeliverableLinkCreate, PhaseAssetOut, PhaseCommentOut, PhaseCreate, PhaseOut
)
from app.schemas.user import SessionUser
from app.services import storage as storage_service
from app.services.access import ensure_project_access, require_staff
from app.utils.text import clean_text, slugify

logger = logging.getLogger(__name__)


# --- Serialization ---

def to_comment_out(comment: PhaseComment) -> PhaseCommentOut:
    return PhaseCommentOut(
        id=comment.id,
        phase_id=comment.phase_id,
        author_id=comment.author_id,
        author_name=(comment.author.name or comment.author.email) if comment.author else None,
        body=comment.body,
        attachments=[CommentAttachmentOut.model_validate(a) for a in comment.attachments],
        created_at=comment.created_at,
    )


def to_phase_out(phase: ProjectPhase) -> PhaseOut:
    return PhaseOut(
        id=phase.id,
        project_id=phase.project_id,
        group=phase.group,
        title=phase.title,
        description=phase.description,
        due_date=phase.due_date,
        status=phase.status,
        order=phase.sort_order,
        deliverables=[PhaseAssetOut.model_validate(a) for a in phase.deliverables],
        comments=[to_comment_out(c) for c in phase.comments],
    )


def _get_project_phase(db: Session, project_id: int, phase_id: int) -> ProjectPhase:
    phase = crud_project.get_phase_by_id(db, phase_id)
    if not phase or phase.project_id != project_id:
        raise NotFoundError("Phase not found")
    return phase


# --- Phases ---

def list_phases(db: Session, session: SessionUser, project_id: int) -> list[PhaseOut]:
    ensure_project_access(db, project_id, session)
    return [to_phase_out(p) for p in crud_project.get_phases_for_project(db, project_id)]


def create_phase(db: Session, session: SessionUser, project_id: int, data: PhaseCreate) -> PhaseOut:
    """Staff only. The order is a display sort and defaults to 0."""
    require_staff(session)
    project = ensure_project_access(db, project_id, session)

    title = clean_text(data.title)
    if not title or data.group is None:
        raise ValidationFailedError("Missing fields")

    phase = crud_project.create_phase(
        db,
        project_id=project.id,
        group=data.group,
        title=title,
        description=clean_text(data.description),
        due_date=data.due_date,
        status=data.status,
        sort_order=data.order if data.order is not None else 0,
    )
    db.commit()
    db.refresh(phase)
    logger.info(f"Phase {phase.id} '{phase.title}' ({phase.group.value}) added to project {project.id}.")
    return to_phase_out(phase)


def derive_project_status(phases: list[ProjectPhase]) -> ProjectStatus | None:
    """
    Walks the pipeline groups that have phases, in pipeline order.
    The first group with an unfinished phase is the project status; DELIVERED if none.
    None when the project has no phases.
    """
    if not phases:
        return None

    groups_with_phases = {phase.group for phase in phases}
    for group in PROJECT_PIPELINE:
        if group not in groups_with_phases:
            continue
        if any(p.status != PhaseStatus.COMPLETED for p in phases if p.group == group):
            return group
    return ProjectStatus.DELIVERED


def handle_delivered_project(db: Session, project: Project) -> None:
    """Marks the order delivered and drafts a portfolio item (once per project)."""
    order = project.order
    if order and order.status not in (OrderStatus.DELIVERED, OrderStatus.CANCELLED):
        order.status = OrderStatus.DELIVERED
        logger.info(f"Order {order.id} delivered with project {project.id}.")

    if crud_project.get_portfolio_item_for_project(db, project.id):
        return

    title = (project.title or "").strip() or "Project"
    crud_project.create_portfolio_item(
        db,
        project_id=project.id,
        title=title,
        slug=f"{slugify(title)}-{project.id}",
        description=project.description,
        project_type=order.service.title if order and order.service else None,
        locale="en",
        is_published=False,
    )
    logger.info(f"Draft portfolio item created for project {project.id}.")


def sync_project_status(db: Session, project: Project) -> ProjectStatus | None:
    phases = crud_project.get_phases_for_project(db, project.id)
    next_status = derive_project_status(phases)
    if next_status is None:
        return None

    if project.status != next_status:
        logger.info(f"Project {project.id} status {project.status.value} -> {next_status.value}.")
    project.status = next_status
    if next_status == ProjectStatus.DELIVERED:
        handle_delivered_project(db, project)
    return next_status


def update_phase_status(
    db: Session, session: SessionUser, project_id: int, phase_id: int, status: PhaseStatus
) -> PhaseOut:
    """Any status is allowed; the project status is re-derived afterwards."""
    require_staff(session)
    project = ensure_project_access(db, project_id, session)
    phase = _get_project_phase(db, project_id, phase_id)

    previous_status = phase.status
    phase.status = status
    db.flush()

    project_status = sync_project_status(db, project) or project.status
    crud_audit.create_audit_log(
        db, session.id, AuditAction.PHASE_STATUS, AuditTarget.PROJECT, project.id,
        PhaseStatusData(
            phase_id=phase.id, previous_status=previous_status, status=status, project_status=project_status
        ),
    )
    db.commit()
    db.refresh(phase)
    return to_phase_out(phase)


# --- Deliverables ---

async def add_image_deliverable(
    db: Session, session: SessionUser, project_id: int, phase_id: int, file: UploadFile | None, label: str | None
) -> PhaseAssetOut:
    require_staff(session)
    ensure_project_access(db, project_id, session)
    phase = _get_project_phase(db, project_id, phase_id)

    uploaded = await storage_service.upload_project_image(file)
    asset = crud_project.create_phase_asset(
        db, phase.id, PhaseAssetType.IMAGE, uploaded.url, clean_text(label), session.id
    )
    db.commit()
    db.refresh(asset)
    logger.info(f"Image deliverable {asset.id} attached to phase {phase.id}.")
    return PhaseAssetOut.model_validate(asset)


def add_link_deliverable(
    db: Session, session: SessionUser, project_id: int, phase_id: int, data: DeliverableLinkCreate
) -> PhaseAssetOut:
    require_staff(session)
    ensure_project_access(db, project_id, session)
    phase = _get_project_phase(db, project_id, phase_id)

    asset = crud_project.create_phase_asset(
        db, phase.id, PhaseAssetType.LINK, data.url.strip(), clean_text(data.label), session.id
    )
    db.commit()
    db.refresh(asset)
    logger.info(f"Link deliverable {asset.id} attached to phase {phase.id}.")
    return PhaseAssetOut.model_validate(asset)


# --- Comments ---

async def add_phase_comment(
    db: Session,
    session: SessionUser,
    project_id: int,
    phase_id: int,
    body: str | None,
    file: UploadFile | None = None,
) -> PhaseCommentOut:
    """
    Posts a comment on a phase. Needs text, an attachment, or both.
    Staff get a notification with the project, phase, author and text.
    """
    project = ensure_project_access(db, project_id, session)
    phase = _get_project_phase(db, project_id, phase_id)

    text = clean_text(body)
    attachment_url = None
    if await storage_service.has_content(file):
        uploaded = await storage_service.upload_project_image(file)
        attachment_url = uploaded.url

    if not text and not attachment_url:
        raise ValidationFailedError("Comment body or attachment is required", field="body")

    comment = crud_project.create_comment(
        db, phase_id=phase.id, author_id=session.id, body=text or "Attachment", attachment_url=attachment_url
    )
    db.commit()
    db.refresh(comment)
    logger.info(f"Comment {comment.id} posted on phase {phase.id} of project {project.id} by user {session.id}.")

    author = comment.author.email if comment.author else str(session.id)
    await notification_service.send_admin_notification(
        subject="New project comment",
        text="\n".join([
            f"Project ID: {project.id}",
            f"Phase: {phase.title}",
            f"By: {author}",
            f"Comment: {comment.body}",
        ]),
    )
    return to_comment_out(comment)
