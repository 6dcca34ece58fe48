# app/services/access.py

import logging
from sqlalchemy.orm import Session

from app.core.exceptions import ForbiddenError, NotFoundError
from app.crud import project as crud_project
from app.models.enums import Role
from app.models.project import Project
from app.schemas.user import SessionUser

logger = logging.getLogger(__name__)


def require_staff(session: SessionUser) -> None:
    if not session.is_staff:
        logger.warning(f"User {session.id} ({session.role.value}) tried a staff-only operation.")
        raise ForbiddenError("Forbidden")


def require_admin(session: SessionUser) -> None:
    if session.role != Role.ADMIN:
        logger.warning(f"User {session.id} ({session.role.value}) tried an admin-only operation.")
        raise ForbiddenError("Forbidden")


def can_access_project(project: Project, session: SessionUser) -> bool:
    return session.is_staff or project.order.user_id == session.id


def ensure_project_access(db: Session, project_id: int, session: SessionUser) -> Project:
    """
    Resolves project -> order and checks the caller may touch it.
    Staff pass for any project, clients only for their own orders.
    """
    project = crud_project.get_project_by_id(db, project_id)
    if not project:
        raise NotFoundError("Project not found")

    if not can_access_project(project, session):
        logger.warning(f"Access to project {project_id} denied for user {session.id}.")
        raise ForbiddenError("Forbidden")

    return project
