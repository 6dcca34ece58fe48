# app/services/auth.py

import logging
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import UnauthorizedError, ValidationFailedError
from app.core.security import create_access_token, hash_password, verify_password
from app.crud import user as crud_user
from app.models.enums import Role
from app.models.user import User
from app.schemas.magic import MagicLoginRequest
from app.schemas.user import LoginRequest, RegisterRequest, SessionUser, Token
from app.services import magic_login as magic_login_service
from app.services import quote as quote_service
from app.services import referral as referral_service
from app.utils.text import clean_text

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def issue_token(user: User) -> Token:
    access_token = create_access_token(data={"sub": str(user.id), "role": user.role.value, "email": user.email})
    return Token(access_token=access_token)


def decode_session(token: str) -> SessionUser:
    """Builds the caller session from a bearer token."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT Error during token decoding: {e}")
        raise UnauthorizedError("Could not validate credentials")

    user_id = payload.get("sub")
    try:
        role = Role(payload.get("role"))
    except ValueError:
        role = None
    if user_id is None or role is None:
        logger.warning("Token payload is missing 'sub' or has an unknown 'role'.")
        raise UnauthorizedError("Could not validate credentials")

    return SessionUser(id=int(user_id), role=role, email=payload.get("email"))


def register_user(db: Session, data: RegisterRequest) -> Token:
    """
    Registers a client, or sets the password of a passwordless account
    created earlier from an accepted quote.
    The referrer is linked at most once and never to the user themself.
    """
    email = (data.email or "").strip().lower()
    password = data.password or ""
    if not email or not password:
        raise ValidationFailedError("Email and password are required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationFailedError("Password must be at least 6 characters", field="password")

    existing = crud_user.get_user_by_email(db, email)
    if existing and existing.password_hash:
        raise ValidationFailedError("Email already registered", field="email")

    referral_code = clean_text(data.referral_code)
    referrer = crud_user.get_user_by_referral_code(db, referral_code) if referral_code else None

    if existing:
        user = existing
        user.password_hash = hash_password(password)
        user.name = data.name or user.name
        user.phone = clean_text(data.phone) or user.phone
        if not user.referral_code:
            user.referral_code = referral_service.new_unique_referral_code(db)
        logger.info(f"Passwordless user {user.id} activated through registration.")
    else:
        user = crud_user.create_user(
            db,
            email=email,
            password_hash=hash_password(password),
            name=clean_text(data.name),
            phone=clean_text(data.phone),
            role=Role.CLIENT,
            referral_code=referral_service.new_unique_referral_code(db),
            referred_by_id=referrer.id if referrer else None,
        )
        logger.info(f"New user {user.id} registered.")

    if referrer and referrer.id != user.id and user.referred_by_id in (None, referrer.id):
        user.referred_by_id = referrer.id
        referral_service.ensure_referral_signup(db, referrer.id, user.id)

    db.commit()
    db.refresh(user)
    return issue_token(user)


def login_user(db: Session, data: LoginRequest) -> Token:
    email = (data.email or "").strip().lower()
    if not email or not data.password:
        raise ValidationFailedError("Email and password are required")

    user = crud_user.get_user_by_email(db, email)
    if not user or not verify_password(data.password, user.password_hash):
        logger.warning(f"Failed login attempt for '{email}'.")
        raise UnauthorizedError("Invalid email or password")

    logger.info(f"User {user.id} logged in.")
    return issue_token(user)


def magic_login(db: Session, data: MagicLoginRequest) -> Token:
    """
    Exchanges a single-use token for a session.
    A quote token is tried first, then a magic login token.
    """
    token = (data.token or "").strip()
    if not token:
        raise ValidationFailedError("Token is required", field="token")

    user = quote_service.redeem_quote_token(db, token, data.email)
    if user is None:
        user = magic_login_service.redeem_magic_login_token(db, token, data.email)

    db.commit()
    db.refresh(user)
    logger.info(f"User {user.id} signed in with a magic token.")
    return issue_token(user)
