# app/routers/admin.py
from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.dependencies import get_db, get_admin_session
from app.schemas.referral import AdminReferralItem, ReferralUpdate
from app.schemas.user import SessionUser
from app.services import referral as referral_service

router = APIRouter()


@router.get("/referrals", response_model=List[AdminReferralItem])
def list_referrals(session: SessionUser = Depends(get_admin_session), db: Session = Depends(get_db)):
    """[ADMIN] Every tracking row with its commission breakdown."""
    return referral_service.list_all_referrals(db)


@router.patch("/referrals/{referral_id}", response_model=AdminReferralItem)
def update_referral(
    referral_id: int,
    data: ReferralUpdate,
    session: SessionUser = Depends(get_admin_session),
    db: Session = Depends(get_db),
):
    return referral_service.update_referral(db, referral_id, data)


@router.post("/referrals/{referral_id}/payout", response_model=AdminReferralItem)
def pay_out_referral(
    referral_id: int,
    session: SessionUser = Depends(get_admin_session),
    db: Session = Depends(get_db),
):
    """[ADMIN] Pays out the available part of a single row."""
    return referral_service.pay_out_referral(db, referral_id)
