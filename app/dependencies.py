# app/dependencies.py

import logging
from typing import Optional, Iterator

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app.core.exceptions import UnauthorizedError
from app.crud import user as crud_user
from app.db.session import SessionLocal
from app.models.user import User
from app.schemas.user import SessionUser
from app.services import auth as auth_service
from app.services.access import require_admin, require_staff

# --- Logger ---
logger = logging.getLogger(__name__)

# --- Auth schemes ---
# Missing credentials are reported through UnauthorizedError, not HTTPBearer's own 403
bearer_scheme = HTTPBearer(auto_error=False)

# --- DB session management ---
def get_db_session_instance() -> Session:
    return SessionLocal()

def get_db() -> Iterator[Session]:
    """
    Main FastAPI dependency for a DB session.
    A generator, so it works with `Depends`.
    """
    db = get_db_session_instance()
    try:
        yield db
    finally:
        db.close()

# --- Authentication & authorization ---

def get_current_session(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> SessionUser:
    """
    REQUIRED dependency.
    A valid bearer token is mandatory; otherwise 401.
    """
    if not credentials:
        raise UnauthorizedError("Unauthorized")

    session = auth_service.decode_session(credentials.credentials)
    request.state.session_user = session
    logger.debug(f"Authenticated user ID: {session.id} ({session.role.value})")
    return session


def get_optional_session(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[SessionUser]:
    """
    OPTIONAL dependency.
    Returns the session for a valid token, None when the token is missing or invalid.
    """
    if not credentials:
        return None
    try:
        session = auth_service.decode_session(credentials.credentials)
    except UnauthorizedError:
        logger.warning("Optional token is invalid.")
        return None
    request.state.session_user = session
    return session


def get_current_user(
    session: SessionUser = Depends(get_current_session),
    db: Session = Depends(get_db),
) -> User:
    """The caller's User row. 401 if the account no longer exists."""
    user = crud_user.get_user_by_id(db, session.id)
    if user is None:
        logger.warning(f"User with ID {session.id} from token not found in DB.")
        raise UnauthorizedError("Could not validate credentials")
    return user


def get_staff_session(session: SessionUser = Depends(get_current_session)) -> SessionUser:
    """ADMIN or PARTNER."""
    require_staff(session)
    return session


def get_admin_session(session: SessionUser = Depends(get_current_session)) -> SessionUser:
    require_admin(session)
    return session
