# app/services/quote.py

import logging
from datetime import timedelta
from sqlalchemy.orm import Session

from app.bot.services import notification as notification_service
from app.core.config import settings
from app.core.exceptions import (
    ForbiddenError, NotFoundError, StateConflictError, UnauthorizedError, ValidationFailedError
)
from app.core.security import generate_magic_token, hash_token
from app.crud import audit as crud_audit
from app.crud import order as crud_order
from app.crud import quote as crud_quote
from app.crud import user as crud_user
from app.models.enums import CustomRequestStatus, OrderStatus, QuoteStatus, Role
from app.models.order import CustomProjectRequest, Service
from app.models.quote import Quote
from app.models.user import User
from app.schemas.audit import (
    AuditAction, AuditTarget, QuoteAcceptedData, QuoteRejectedData, QuoteSentData, UserActivatedData
)
from app.schemas.plan import ProjectPlan
from app.schemas.quote import (
    CustomRequestCreate, CustomRequestOut, QuoteAcceptResult, QuoteCreate, QuoteOut, QuoteSendResult
)
from app.schemas.user import SessionUser
from app.services import referral as referral_service
from app.services.access import require_staff
from app.services.magic_login import create_magic_login_token
from app.services.plan import apply_plan, normalize_plan
from app.utils.date_utils import as_utc, utcnow
from app.utils.money import to_number
from app.utils.text import clean_text

logger = logging.getLogger(__name__)


# --- Custom project requests ---

async def submit_custom_request(
    db: Session, data: CustomRequestCreate, session: SessionUser | None = None
) -> CustomRequestOut:
    request = crud_order.create_custom_request(
        db,
        full_name=data.full_name.strip(),
        email=data.email.lower(),
        project_type=clean_text(data.project_type),
        budget_range=clean_text(data.budget_range),
        timeline=clean_text(data.timeline),
        details=clean_text(data.details),
        user_id=session.id if session else None,
    )
    db.commit()
    db.refresh(request)
    logger.info(f"Custom project request {request.id} submitted by {request.email}.")

    await notification_service.send_admin_notification(
        subject="New custom project request",
        text="\n".join([
            f"Request ID: {request.id}",
            f"Name: {request.full_name}",
            f"Email: {request.email}",
            f"Type: {request.project_type or '-'}",
        ]),
    )
    return CustomRequestOut.model_validate(request)


def list_custom_requests(
    db: Session, session: SessionUser, status: CustomRequestStatus | None = None
) -> list[CustomRequestOut]:
    require_staff(session)
    return [CustomRequestOut.model_validate(r) for r in crud_order.get_custom_requests(db, status)]


# --- Quotes ---

def create_quote(db: Session, session: SessionUser, request_id: int, data: QuoteCreate) -> QuoteOut:
    require_staff(session)
    request = crud_order.get_custom_request_by_id(db, request_id)
    if not request:
        raise NotFoundError("Custom request not found")

    plan = normalize_plan(data.plan) if data.plan else None
    quote = crud_quote.create_quote(
        db,
        custom_request_id=request.id,
        amount=data.amount,
        scope=clean_text(data.scope),
        plan=plan.model_dump(mode="json") if plan else None,
        expires_at=data.expires_at,
        created_by_id=session.id,
    )
    if request.status == CustomRequestStatus.NEW:
        request.status = CustomRequestStatus.QUOTED
    db.commit()
    db.refresh(quote)
    logger.info(f"Quote {quote.id} drafted for request {request.id} by user {session.id}.")
    return QuoteOut.model_validate(quote)


def list_quotes(db: Session, session: SessionUser, request_id: int) -> list[QuoteOut]:
    require_staff(session)
    return [QuoteOut.model_validate(q) for q in crud_quote.get_quotes_for_request(db, request_id)]


def send_quote(db: Session, session: SessionUser, quote_id: int) -> QuoteSendResult:
    """
    Marks the quote SENT and issues its magic link.
    The status change and the QUOTE_SENT audit entry commit together or not at all.
    """
    require_staff(session)
    quote = crud_quote.get_quote_by_id(db, quote_id)
    if not quote:
        raise NotFoundError("Quote not found")

    if quote.status == QuoteStatus.ACCEPTED:
        raise StateConflictError("Quote already accepted")
    if quote.status == QuoteStatus.REJECTED:
        raise StateConflictError("Quote was rejected")

    sent_at = utcnow()
    current_expiry = as_utc(quote.expires_at)
    if current_expiry and current_expiry > sent_at:
        expires_at = current_expiry
    else:
        expires_at = sent_at + timedelta(days=settings.QUOTE_LIFETIME_DAYS)

    token, token_hash = generate_magic_token()
    try:
        quote.status = QuoteStatus.SENT
        quote.sent_at = sent_at
        quote.expires_at = expires_at
        quote.magic_token = token_hash
        crud_audit.create_audit_log(
            db, session.id, AuditAction.QUOTE_SENT, AuditTarget.QUOTE, quote.id,
            QuoteSentData(token_hash=token_hash, expires_at=expires_at),
        )
        db.commit()
    except Exception:
        db.rollback()
        logger.error(f"Failed to send quote {quote_id}; nothing was saved.", exc_info=True)
        raise

    db.refresh(quote)
    logger.info(f"Quote {quote.id} sent by user {session.id}, expires {expires_at.isoformat()}.")
    return QuoteSendResult(
        quote=QuoteOut.model_validate(quote),
        magic_link=f"{settings.SITE_URL}/magic/quote?token={token}",
    )


def _resolve_quote(
    db: Session, session: SessionUser | None, quote_id: int | None, token: str | None
) -> tuple[Quote, str | None]:
    """
    Finds the quote by id or by magic token and checks who is asking.
    Without a session the token itself must match the quote.
    """
    token = token.strip() if token else None
    token_hash = hash_token(token) if token else None

    if session is None and token_hash is None:
        raise UnauthorizedError("Unauthorized")

    quote = None
    if quote_id is not None:
        quote = crud_quote.get_quote_by_id(db, quote_id)
    elif token_hash:
        quote = crud_quote.get_quote_by_token_hash(db, token_hash)
    if not quote:
        raise NotFoundError("Quote not found")

    request = quote.custom_request
    if session is None:
        if quote.magic_token != token_hash:
            raise ForbiddenError("Invalid token")
    elif not session.is_staff:
        is_owner = request.user_id == session.id or (
            session.email and request.email.lower() == session.email.lower()
        )
        if not is_owner:
            logger.warning(f"User {session.id} tried to act on quote {quote.id} of another client.")
            raise ForbiddenError("Forbidden")

    return quote, token_hash


def _ensure_open(quote: Quote) -> None:
    if quote.archived_at:
        raise StateConflictError("Quote archived")
    if quote.status == QuoteStatus.ACCEPTED:
        raise StateConflictError("Quote already accepted")
    if quote.status == QuoteStatus.REJECTED:
        raise StateConflictError("Quote was rejected")
    expires_at = as_utc(quote.expires_at)
    if expires_at is None or expires_at <= utcnow():
        raise StateConflictError("Quote expired")


def get_quote_by_token(db: Session, token: str | None) -> QuoteOut:
    """Public view of a sent quote behind its magic link."""
    if not token or not token.strip():
        raise ValidationFailedError("Token is required", field="token")
    quote = crud_quote.get_quote_by_token_hash(db, hash_token(token.strip()))
    if not quote or quote.archived_at or (as_utc(quote.expires_at) or utcnow()) <= utcnow():
        raise StateConflictError("Invalid or expired token")
    return QuoteOut.model_validate(quote)


def _resolve_service(db: Session) -> Service:
    service = crud_order.get_service_by_slug(db, settings.CUSTOM_PROJECT_SERVICE_SLUG) or crud_order.get_first_service(db)
    if not service:
        raise ValidationFailedError("No service configured", field="service_id")
    return service


def _ensure_client_user(
    db: Session, request: CustomProjectRequest, referral_code: str | None
) -> tuple[User, bool]:
    """Finds or creates the client account for the request email. Returns (user, created)."""
    email = request.email.lower()
    user = crud_user.get_user_by_email(db, email)
    created = False
    if not user:
        referrer = crud_user.get_user_by_referral_code(db, referral_code) if referral_code else None
        user = crud_user.create_user(
            db,
            email=email,
            name=request.full_name,
            role=Role.CLIENT,
            referral_code=referral_service.new_unique_referral_code(db),
            referred_by_id=referrer.id if referrer else None,
        )
        created = True
        if referrer:
            referral_service.ensure_referral_signup(db, referrer.id, user.id)

    if request.user_id != user.id:
        request.user_id = user.id
    return user, created


def redeem_quote_token(db: Session, token: str, email: str | None = None) -> User | None:
    """
    Signs the client in with the token of a sent quote, creating the
    account on first use. Returns None when the token is not a quote token.
    Flushes only; the caller commits.
    """
    token_hash = hash_token(token.strip())
    quote = crud_quote.get_quote_by_token_hash(db, token_hash)
    if not quote:
        if crud_quote.get_quote_by_token_hash(db, f"used:{token_hash}"):
            raise StateConflictError("Token already used")
        return None

    request = quote.custom_request
    expires_at = as_utc(quote.expires_at)
    if quote.status != QuoteStatus.SENT or quote.archived_at or expires_at is None or expires_at <= utcnow():
        raise StateConflictError("Invalid or expired token")
    if email and email.strip().lower() != request.email.lower():
        raise StateConflictError("Invalid or expired token")

    user, _ = _ensure_client_user(db, request, None)
    quote.magic_token = f"used:{token_hash}"
    db.flush()
    logger.info(f"Quote {quote.id} token redeemed by user {user.id}.")
    return user


async def accept_quote(
    db: Session,
    session: SessionUser | None,
    quote_id: int | None = None,
    token: str | None = None,
    referral_code: str | None = None,
) -> QuoteAcceptResult:
    """
    Converts a sent quote into a running order.

    Creates (if needed) the client account, the order, its project with
    phases and gated payments, the audit trail and a magic login link to
    the project. Every write lands in a single commit.
    """
    quote, token_hash = _resolve_quote(db, session, quote_id, token)
    _ensure_open(quote)

    request = quote.custom_request
    service = _resolve_service(db)
    plan = ProjectPlan.model_validate(quote.plan) if quote.plan else ProjectPlan()

    try:
        user, created = _ensure_client_user(db, request, clean_text(referral_code))
        actor_id = session.id if session else user.id

        order = crud_order.create_order(
            db, user_id=user.id, service_id=service.id, total_amount=quote.amount, status=OrderStatus.IN_PROGRESS
        )
        project = apply_plan(
            db,
            order,
            plan,
            default_title=f"Custom project for {request.full_name}",
            default_description=quote.scope,
            actor_id=actor_id,
            source="quote",
            source_id=quote.id,
        )

        request.order_id = order.id
        request.status = CustomRequestStatus.CONVERTED_TO_ORDER

        quote.status = QuoteStatus.ACCEPTED
        quote.accepted_at = utcnow()
        if token_hash:
            quote.magic_token = f"used:{token_hash}"

        magic_token = create_magic_login_token(
            db,
            user_id=user.id,
            email=user.email,
            target_type=AuditTarget.PROJECT.value,
            target_id=project.id,
            meta={"quote_id": quote.id, "order_id": order.id, "project_id": project.id},
        )
        crud_audit.create_audit_log(
            db, actor_id, AuditAction.QUOTE_ACCEPTED, AuditTarget.QUOTE, quote.id,
            QuoteAcceptedData(order_id=order.id, project_id=project.id, user_id=user.id),
        )
        crud_audit.create_audit_log(
            db, actor_id, AuditAction.USER_ACTIVATED, AuditTarget.USER, user.id,
            UserActivatedData(email=user.email, quote_id=quote.id, created=created),
        )
        referral_service.create_referral_commission_for_order(db, order.id, user.id, to_number(order.total_amount))
        db.commit()
    except Exception:
        db.rollback()
        logger.error(f"Failed to accept quote {quote.id}; rolled back.", exc_info=True)
        raise

    logger.info(f"Quote {quote.id} accepted: order {order.id}, project {project.id}, user {user.id}.")
    await notification_service.send_admin_notification(
        subject="Quote accepted",
        text="\n".join([
            f"Client: {user.email}",
            f"Quote ID: {quote.id}",
            f"Order ID: {order.id}",
            f"Project ID: {project.id}",
            f"Amount: {to_number(order.total_amount)}",
        ]),
    )
    return QuoteAcceptResult(
        quote_id=quote.id,
        order_id=order.id,
        project_id=project.id,
        magic_link=f"{settings.SITE_URL}/magic/order?token={magic_token}",
    )


def reject_quote(
    db: Session,
    session: SessionUser | None,
    quote_id: int | None = None,
    token: str | None = None,
    reason: str | None = None,
) -> QuoteOut:
    quote, token_hash = _resolve_quote(db, session, quote_id, token)
    _ensure_open(quote)

    previous_status = quote.status
    quote.status = QuoteStatus.REJECTED
    quote.rejected_at = utcnow()
    if token_hash:
        quote.magic_token = f"used:{token_hash}"
    quote.custom_request.status = CustomRequestStatus.REJECTED
    crud_audit.create_audit_log(
        db, session.id if session else quote.custom_request.user_id, AuditAction.QUOTE_REJECTED,
        AuditTarget.QUOTE, quote.id,
        QuoteRejectedData(previous_status=previous_status, reason=clean_text(reason)),
    )
    db.commit()
    db.refresh(quote)
    logger.info(f"Quote {quote.id} rejected.")
    return QuoteOut.model_validate(quote)
