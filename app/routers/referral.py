# app/routers/referral.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.dependencies import get_db, get_current_user
from app.models.user import User
from app.schemas.referral import ReferralSummary
from app.services import referral as referral_service

router = APIRouter()


@router.get("/referrals", response_model=ReferralSummary)
def get_my_referrals(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Referral link plus earned / available / pending commission."""
    return referral_service.build_referral_summary(db, current_user)


@router.post("/referrals/payout", response_model=ReferralSummary)
def request_payout(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Moves everything currently available into paid-out."""
    return referral_service.request_payout(db, current_user)
