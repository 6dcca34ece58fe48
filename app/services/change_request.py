# app/services/change_request.py

import logging
import math
from sqlalchemy.orm import Session

from app.core.exceptions import ForbiddenError, NotFoundError, ValidationFailedError
from app.crud import payment as crud_payment
from app.crud import project as crud_project
from app.models.enums import ChangeRequestStatus, MilestoneStatus
from app.models.project import ChangeRequest
from app.schemas.project import ChangeRequestCreate, ChangeRequestOut, ChangeRequestUpdate
from app.schemas.user import SessionUser
from app.services.access import ensure_project_access, require_staff
from app.utils.date_utils import utcnow
from app.utils.money import round_money, to_number
from app.utils.text import clean_text

logger = logging.getLogger(__name__)


def _parse_amount(value) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = to_number(value)
    except (TypeError, ValueError):
        return None
    return amount if math.isfinite(amount) else None


def list_change_requests(db: Session, session: SessionUser, project_id: int) -> list[ChangeRequestOut]:
    ensure_project_access(db, project_id, session)
    return [ChangeRequestOut.model_validate(c) for c in crud_project.get_change_requests_for_project(db, project_id)]


def create_change_request(
    db: Session, session: SessionUser, project_id: int, data: ChangeRequestCreate
) -> ChangeRequestOut:
    """
    Staff must price the request (amount > 0), the description is optional for them.
    Clients cannot set an amount (it is stored as 0) but must describe the change.
    """
    project = ensure_project_access(db, project_id, session)

    title = clean_text(data.title)
    if not title:
        raise ValidationFailedError("Missing fields", field="title")

    description = clean_text(data.description)
    if session.is_staff:
        amount = _parse_amount(data.amount)
        if amount is None or amount <= 0:
            raise ValidationFailedError("Amount must be greater than 0", field="amount")
        amount = round_money(amount)
    else:
        amount = 0
        if not description:
            raise ValidationFailedError("Description is required", field="description")

    change_request = crud_project.create_change_request(
        db, project_id=project.id, title=title, description=description, amount=amount, created_by_id=session.id
    )
    db.commit()
    db.refresh(change_request)
    logger.info(f"Change request {change_request.id} created on project {project.id} by user {session.id}.")
    return ChangeRequestOut.model_validate(change_request)


def _get_project_change_request(db: Session, project_id: int, change_request_id: int) -> ChangeRequest:
    change_request = crud_project.get_change_request_by_id(db, change_request_id)
    if not change_request or change_request.project_id != project_id:
        raise NotFoundError("Change request not found")
    return change_request


def update_change_request(
    db: Session, session: SessionUser, project_id: int, change_request_id: int, data: ChangeRequestUpdate
) -> ChangeRequestOut:
    require_staff(session)
    ensure_project_access(db, project_id, session)
    change_request = _get_project_change_request(db, project_id, change_request_id)

    updates = data.model_dump(exclude_unset=True)
    changed = False
    title = clean_text(updates.get("title"))
    if title:
        change_request.title = title
        changed = True
    if "description" in updates:
        change_request.description = clean_text(updates["description"])
        changed = True
    if "amount" in updates:
        amount = _parse_amount(updates["amount"])
        if amount is None or amount <= 0:
            raise ValidationFailedError("Invalid amount", field="amount")
        change_request.amount = round_money(amount)
        changed = True

    if not changed:
        raise ValidationFailedError("Missing update")

    db.commit()
    db.refresh(change_request)
    return ChangeRequestOut.model_validate(change_request)


def accept_change_request(
    db: Session, session: SessionUser, project_id: int, change_request_id: int
) -> ChangeRequestOut:
    """
    Accepting a priced request bills it: a PENDING milestone payment is added
    and the order total grows by the request amount. Repeated accepts are no-ops.
    """
    project = ensure_project_access(db, project_id, session)
    change_request = _get_project_change_request(db, project_id, change_request_id)

    if change_request.status == ChangeRequestStatus.ACCEPTED:
        return ChangeRequestOut.model_validate(change_request)
    if change_request.status == ChangeRequestStatus.REJECTED and not session.is_staff:
        raise ForbiddenError("Change request was rejected")

    amount = to_number(change_request.amount)
    if amount <= 0:
        raise ValidationFailedError("Amount not set", field="amount")

    change_request.status = ChangeRequestStatus.ACCEPTED
    change_request.decided_at = utcnow()
    crud_payment.create_payment(
        db,
        project_id=project.id,
        label=f"Change request: {change_request.title}",
        amount=amount,
        status=MilestoneStatus.PENDING,
        change_request_id=change_request.id,
    )
    project.order.total_amount = round_money(to_number(project.order.total_amount) + amount)

    db.commit()
    db.refresh(change_request)
    logger.info(f"Change request {change_request.id} accepted; order {project.order_id} total +{amount}.")
    return ChangeRequestOut.model_validate(change_request)


def reject_change_request(
    db: Session, session: SessionUser, project_id: int, change_request_id: int
) -> ChangeRequestOut:
    ensure_project_access(db, project_id, session)
    change_request = _get_project_change_request(db, project_id, change_request_id)

    if change_request.status == ChangeRequestStatus.ACCEPTED:
        raise ForbiddenError("Change request already accepted")

    change_request.status = ChangeRequestStatus.REJECTED
    change_request.decided_at = utcnow()
    db.commit()
    db.refresh(change_request)
    logger.info(f"Change request {change_request.id} rejected by user {session.id}.")
    return ChangeRequestOut.model_validate(change_request)
