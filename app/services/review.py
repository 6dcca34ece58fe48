# app/services/review.py

import logging
from sqlalchemy.orm import Session

from app.core.exceptions import ForbiddenError, StateConflictError, ValidationFailedError
from app.crud import project as crud_project
from app.models.enums import ProjectStatus
from app.schemas.project import ReviewCreate, ReviewOut
from app.schemas.user import SessionUser
from app.services.access import ensure_project_access
from app.utils.text import clean_text

logger = logging.getLogger(__name__)


def _parse_rating(value) -> int | None:
    """Accepts whole numbers 1..5 (also given as float or numeric string)."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if isinstance(value, float):
        if not value.is_integer():
            return None
        value = int(value)
    if not isinstance(value, int) or not 1 <= value <= 5:
        return None
    return value


def is_review_locked(db: Session, project_id: int) -> bool:
    """A review freezes once the project is shown in a published portfolio item."""
    return crud_project.has_published_portfolio_item(db, project_id)


def submit_review(db: Session, session: SessionUser, project_id: int, data: ReviewCreate) -> ReviewOut:
    """
    Creates or updates the single review of a delivered project.
    Concurrent submissions for the same project are last-write-wins.
    """
    project = ensure_project_access(db, project_id, session)

    if project.status != ProjectStatus.DELIVERED:
        raise StateConflictError("Project not completed")

    rating = _parse_rating(data.rating)
    if rating is None:
        raise ValidationFailedError("Invalid rating", field="rating")

    comment = clean_text(data.comment)
    review = crud_project.get_review_by_project(db, project.id)
    if review:
        if is_review_locked(db, project.id):
            logger.warning(f"User {session.id} tried to edit locked review of project {project.id}.")
            raise ForbiddenError("Review is locked")
        review.rating = rating
        review.comment = comment
    else:
        review = crud_project.create_review(db, project.id, rating, comment)

    db.commit()
    db.refresh(review)
    logger.info(f"Review for project {project.id} saved by user {session.id} (rating {rating}).")
    return ReviewOut.model_validate(review)


def get_review(db: Session, session: SessionUser, project_id: int) -> ReviewOut | None:
    ensure_project_access(db, project_id, session)
    review = crud_project.get_review_by_project(db, project_id)
    return ReviewOut.model_validate(review) if review else None
