# app/routers/quote.py
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.core.limiter import limiter, MAGIC_LINK_RATE_LIMIT
from app.dependencies import get_db, get_optional_session, get_staff_session
from app.models.enums import CustomRequestStatus
from app.schemas.magic import MagicValidateRequest, MagicValidateResult
from app.schemas.quote import (
    CustomRequestCreate, CustomRequestOut, QuoteAcceptResult, QuoteCreate, QuoteDecisionRequest,
    QuoteOut, QuoteSendResult,
)
from app.schemas.user import SessionUser
from app.services import magic_login as magic_login_service
from app.services import quote as quote_service

router = APIRouter()


# --- Custom project requests ---

@router.post("/custom-requests", response_model=CustomRequestOut)
async def submit_custom_request(
    data: CustomRequestCreate,
    session: Optional[SessionUser] = Depends(get_optional_session),
    db: Session = Depends(get_db),
):
    """Public form: ask for a custom project quote."""
    return await quote_service.submit_custom_request(db, data, session)


@router.get("/custom-requests", response_model=List[CustomRequestOut])
def list_custom_requests(
    status: Optional[CustomRequestStatus] = Query(None),
    session: SessionUser = Depends(get_staff_session),
    db: Session = Depends(get_db),
):
    return quote_service.list_custom_requests(db, session, status)


@router.post("/custom-requests/{request_id}/quotes", response_model=QuoteOut)
def create_quote(
    request_id: int,
    data: QuoteCreate,
    session: SessionUser = Depends(get_staff_session),
    db: Session = Depends(get_db),
):
    return quote_service.create_quote(db, session, request_id, data)


@router.get("/custom-requests/{request_id}/quotes", response_model=List[QuoteOut])
def list_quotes(request_id: int, session: SessionUser = Depends(get_staff_session), db: Session = Depends(get_db)):
    return quote_service.list_quotes(db, session, request_id)


# --- Quotes ---

@router.post("/quotes/{quote_id}/send", response_model=QuoteSendResult)
def send_quote(quote_id: int, session: SessionUser = Depends(get_staff_session), db: Session = Depends(get_db)):
    """[STAFF] Marks the quote SENT and returns the client's magic link."""
    return quote_service.send_quote(db, session, quote_id)


@router.post("/quotes/magic/view", response_model=QuoteOut)
@limiter.limit(MAGIC_LINK_RATE_LIMIT)
def view_quote_by_token(request: Request, data: MagicValidateRequest, db: Session = Depends(get_db)):
    return quote_service.get_quote_by_token(db, data.token)


@router.post("/quotes/accept", response_model=QuoteAcceptResult)
@limiter.limit(MAGIC_LINK_RATE_LIMIT)
async def accept_quote(
    request: Request,
    data: QuoteDecisionRequest,
    session: Optional[SessionUser] = Depends(get_optional_session),
    db: Session = Depends(get_db),
):
    """Accepts a quote by id (signed-in owner or staff) or by magic token."""
    return await quote_service.accept_quote(
        db, session, quote_id=data.quote_id, token=data.token, referral_code=data.referral_code
    )


@router.post("/quotes/reject", response_model=QuoteOut)
@limiter.limit(MAGIC_LINK_RATE_LIMIT)
def reject_quote(
    request: Request,
    data: QuoteDecisionRequest,
    session: Optional[SessionUser] = Depends(get_optional_session),
    db: Session = Depends(get_db),
):
    return quote_service.reject_quote(db, session, quote_id=data.quote_id, token=data.token, reason=data.reason)


# --- Magic login ---

@router.post("/magic/login/validate", response_model=MagicValidateResult)
@limiter.limit(MAGIC_LINK_RATE_LIMIT)
def validate_magic_login(request: Request, data: MagicValidateRequest, db: Session = Depends(get_db)):
    return magic_login_service.validate_magic_login_token(db, data.token)
