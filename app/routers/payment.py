# app/routers/payment.py
from typing import List, Optional
from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.orm import Session

from app.dependencies import get_current_session, get_db
from app.schemas.payment import PaymentCreate, PaymentOut, PaymentReview
from app.schemas.user import SessionUser
from app.services import payment as payment_service

router = APIRouter()


@router.get("/payments", response_model=List[PaymentOut])
def list_payments(
    archived: Optional[bool] = Query(None),
    session: SessionUser = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return payment_service.list_payments(db, session, archived)


@router.post("/payments", response_model=PaymentOut)
def create_payment(
    data: PaymentCreate,
    session: SessionUser = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return payment_service.create_payment(db, session, data)


@router.patch("/payments/{payment_id}", response_model=PaymentOut)
def review_payment(
    payment_id: int,
    data: PaymentReview,
    session: SessionUser = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """[STAFF] Approve / reject / archive a milestone payment."""
    return payment_service.review_payment(db, session, payment_id, data)


@router.post("/payments/{payment_id}/proof", response_model=PaymentOut)
async def upload_payment_proof(
    payment_id: int,
    file: Optional[UploadFile] = File(None),
    session: SessionUser = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Uploads a proof of payment. The payment goes back under review."""
    return await payment_service.upload_payment_proof(db, session, payment_id, file)
