# app/services/magic_login.py

import logging
from datetime import datetime, timedelta
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import StateConflictError, ValidationFailedError
from app.core.security import generate_magic_token, hash_token
from app.crud import audit as crud_audit
from app.crud import user as crud_user
from app.models.audit import MagicLoginToken
from app.models.user import User
from app.schemas.audit import AuditAction, AuditTarget, MagicLoginData
from app.schemas.magic import MagicValidateResult
from app.utils.date_utils import as_utc, utcnow

logger = logging.getLogger(__name__)


def create_magic_login_token(
    db: Session,
    user_id: int,
    email: str,
    target_type: str,
    target_id: int | None,
    expires_at: datetime | None = None,
    meta: dict | None = None,
) -> str:
    """
    Issues a single-use login token and returns the raw value.
    Only its hash is stored. Flushes only; the caller commits.
    """
    token, token_hash = generate_magic_token()
    if expires_at is None or as_utc(expires_at) <= utcnow():
        expires_at = utcnow() + timedelta(days=settings.MAGIC_LOGIN_LIFETIME_DAYS)
    email = email.strip().lower()

    crud_audit.create_magic_login_token(
        db,
        token_hash=token_hash,
        user_id=user_id,
        email=email,
        target_type=target_type,
        target_id=target_id,
        meta=meta,
        expires_at=expires_at,
    )
    crud_audit.create_audit_log(
        db, user_id, AuditAction.MAGIC_LOGIN, AuditTarget.USER, user_id,
        MagicLoginData(
            token_hash=token_hash, email=email, target_type=target_type,
            target_id=target_id, expires_at=expires_at,
        ),
    )
    logger.info(f"Magic login token issued for user {user_id} -> {target_type} {target_id}.")
    return token


def _get_usable_token(db: Session, token: str | None) -> MagicLoginToken:
    if not token or not token.strip():
        raise ValidationFailedError("Token is required", field="token")

    record = crud_audit.get_magic_login_token_by_hash(db, hash_token(token.strip()))
    if not record:
        raise StateConflictError("Invalid or expired token")
    if record.used_at is not None:
        raise StateConflictError("Token already used")
    if as_utc(record.expires_at) <= utcnow():
        raise StateConflictError("Token expired")
    return record


def validate_magic_login_token(db: Session, token: str | None) -> MagicValidateResult:
    """
    Checks a magic token without consuming it.
    Unknown, used and expired tokens are state errors with distinct messages.
    """
    record = _get_usable_token(db, token)
    return MagicValidateResult(
        email=record.email,
        user_id=record.user_id,
        target_type=record.target_type,
        target_id=record.target_id,
        meta=record.meta,
        has_password=bool(record.user and record.user.password_hash),
    )


def redeem_magic_login_token(db: Session, token: str | None, email: str | None = None) -> User:
    """
    Consumes the token and returns the account it signs in.
    Flushes only; the caller commits.
    """
    record = _get_usable_token(db, token)
    if email and email.strip().lower() != record.email:
        raise StateConflictError("Invalid or expired token")

    user = record.user or crud_user.get_user_by_email(db, record.email)
    if not user:
        raise StateConflictError("Invalid or expired token")

    record.used_at = utcnow()
    db.flush()
    logger.info(f"Magic login token {record.id} redeemed by user {user.id}.")
    return user
