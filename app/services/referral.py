# app/services/referral.py
import logging
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import NotFoundError
from app.core.security import generate_referral_code
from app.crud import referral as crud_referral
from app.crud import user as crud_user
from app.models.enums import ReferralStatus
from app.models.referral import ReferralTracking
from app.models.user import User
from app.schemas.referral import (
    AdminReferralItem, CommissionBreakdown, ReferralItem, ReferralSummary, ReferralUpdate
)
from app.utils.money import round_money, to_number

logger = logging.getLogger(__name__)


# --- Commission arithmetic ---

def calculate_commission_breakdown(
    commission_amount: float,
    commission_paid_out: float,
    order_total: float,
    paid_amount: float,
) -> CommissionBreakdown:
    """
    Prorates a commission by how much of the order has been paid.

    ratio = paid / total, clamped to [0, 1] (0 when the total is 0).
    The part already paid out is subtracted from the available share only.
    """
    ratio = min(paid_amount / order_total, 1) if order_total > 0 else 0
    available_total = commission_amount * ratio
    available = max(available_total - commission_paid_out, 0)
    pending = max(commission_amount - available_total, 0)
    return CommissionBreakdown(available=available, pending=pending, available_total=available_total)


def _commission_rate(referrer: User) -> float:
    if referrer.referral_commission_rate is None:
        return settings.DEFAULT_REFERRAL_COMMISSION_RATE
    return referrer.referral_commission_rate


# --- Ledger writes ---

def ensure_referral_signup(db: Session, referrer_id: int, referred_user_id: int) -> ReferralTracking | None:
    """
    Returns the signup row for the pair, creating it (PENDING) if needed.
    Self-referrals and unknown referrers yield None.
    """
    if referrer_id == referred_user_id:
        logger.warning(f"Ignoring self-referral for user {referrer_id}.")
        return None

    existing = crud_referral.get_signup_tracking(db, referrer_id, referred_user_id)
    if existing:
        return existing

    referrer = crud_user.get_user_by_id(db, referrer_id)
    if not referrer:
        logger.warning(f"Referrer {referrer_id} not found; signup of user {referred_user_id} not tracked.")
        return None

    tracking = crud_referral.create_tracking(
        db,
        referrer_id=referrer_id,
        referred_user_id=referred_user_id,
        order_id=None,
        commission_amount=0,
        commission_rate=_commission_rate(referrer),
        commission_paid_out=0,
        status=ReferralStatus.PENDING,
    )
    if tracking is None:
        # Lost a race with a concurrent signup
        return crud_referral.get_signup_tracking(db, referrer_id, referred_user_id)

    logger.info(f"Tracked signup of user {referred_user_id} referred by {referrer_id}.")
    return tracking


def create_referral_commission_for_order(
    db: Session, order_id: int, user_id: int, order_total: float
) -> ReferralTracking | None:
    """
    Creates the EARNED commission row for an order, at most once per order.
    None when the user was not referred (or referred themself) or the referrer is gone.
    """
    user = crud_user.get_user_by_id(db, user_id)
    if not user or not user.referred_by_id or user.referred_by_id == user.id:
        return None

    existing = crud_referral.get_tracking_by_order(db, order_id)
    if existing:
        return existing

    referrer = crud_user.get_user_by_id(db, user.referred_by_id)
    if not referrer:
        logger.warning(f"Referrer {user.referred_by_id} of user {user_id} not found.")
        return None

    rate = _commission_rate(referrer)
    tracking = crud_referral.create_tracking(
        db,
        referrer_id=referrer.id,
        referred_user_id=user.id,
        order_id=order_id,
        commission_amount=round_money(order_total * rate),
        commission_rate=rate,
        commission_paid_out=0,
        status=ReferralStatus.EARNED,
    )
    if tracking is None:
        return crud_referral.get_tracking_by_order(db, order_id)

    logger.info(f"Referral commission {tracking.commission_amount} for order {order_id} earned by user {referrer.id}.")
    return tracking


# --- Summary & payouts ---

def _breakdown_for(db: Session, tracking: ReferralTracking) -> tuple[CommissionBreakdown, float, float]:
    order_total = to_number(tracking.order.total_amount) if tracking.order else 0.0
    paid_amount = to_number(crud_referral.get_approved_paid_amount(db, tracking.order_id)) if tracking.order_id else 0.0
    breakdown = calculate_commission_breakdown(
        to_number(tracking.commission_amount),
        to_number(tracking.commission_paid_out),
        order_total,
        paid_amount,
    )
    return breakdown, order_total, paid_amount


def _build_item(db: Session, tracking: ReferralTracking) -> ReferralItem:
    breakdown, order_total, paid_amount = _breakdown_for(db, tracking)
    return ReferralItem(
        id=tracking.id,
        referred_user_id=tracking.referred_user_id,
        referred_email=tracking.referred_user.email if tracking.referred_user else None,
        order_id=tracking.order_id,
        order_total=order_total,
        paid_amount=paid_amount,
        commission_amount=to_number(tracking.commission_amount),
        commission_rate=tracking.commission_rate,
        commission_paid_out=to_number(tracking.commission_paid_out),
        available=round_money(breakdown.available),
        pending=round_money(breakdown.pending),
        status=tracking.status,
        created_at=tracking.created_at,
    )


def new_unique_referral_code(db: Session) -> str:
    new_code = generate_referral_code()
    while crud_user.get_user_by_referral_code(db, code=new_code):
        new_code = generate_referral_code()
    return new_code


def ensure_referral_code(db: Session, user: User) -> str:
    """Assigns a unique referral code on first use."""
    if not user.referral_code:
        new_code = new_unique_referral_code(db)
        user.referral_code = new_code
        db.commit()
        db.refresh(user)
        logger.info(f"Assigned new referral code '{new_code}' to user {user.id}")
    return user.referral_code


def build_referral_summary(db: Session, user: User) -> ReferralSummary:
    code = ensure_referral_code(db, user)
    items = [_build_item(db, t) for t in crud_referral.get_trackings_for_referrer(db, user.id)]
    referred_users = {item.referred_user_id for item in items if item.referred_user_id is not None}

    return ReferralSummary(
        link=f"{settings.SITE_URL}/?ref={code}",
        code=code,
        referrals=len(referred_users),
        earned=round_money(sum(item.commission_amount for item in items)),
        available=round_money(sum(item.available for item in items)),
        pending=round_money(sum(item.pending for item in items)),
        paid_out=round_money(sum(item.commission_paid_out for item in items)),
        items=items,
    )


def _pay_out(db: Session, tracking: ReferralTracking) -> float:
    """Moves the available share into paid-out. Returns the amount moved."""
    commission = to_number(tracking.commission_amount)
    if not tracking.order_id or commission <= 0:
        return 0.0

    breakdown, _, _ = _breakdown_for(db, tracking)
    amount = round_money(breakdown.available)
    if amount > 0:
        paid_out = round_money(to_number(tracking.commission_paid_out) + amount)
        tracking.commission_paid_out = paid_out
        tracking.status = ReferralStatus.PAID if paid_out >= commission else ReferralStatus.EARNED
    return amount


def request_payout(db: Session, user: User) -> ReferralSummary:
    total = 0.0
    for tracking in crud_referral.get_trackings_for_referrer(db, user.id):
        total += _pay_out(db, tracking)
    db.commit()
    logger.info(f"Payout of {round_money(total)} processed for user {user.id}.")
    return build_referral_summary(db, user)


# --- Admin ---

def _build_admin_item(db: Session, tracking: ReferralTracking) -> AdminReferralItem:
    item = _build_item(db, tracking)
    return AdminReferralItem(
        **item.model_dump(),
        referrer_id=tracking.referrer_id,
        referrer_email=tracking.referrer.email,
    )


def list_all_referrals(db: Session) -> list[AdminReferralItem]:
    return [_build_admin_item(db, t) for t in crud_referral.get_all_trackings(db)]


def update_referral(db: Session, tracking_id: int, data: ReferralUpdate) -> AdminReferralItem:
    tracking = crud_referral.get_tracking_by_id(db, tracking_id)
    if not tracking:
        raise NotFoundError("Referral not found")

    if data.status is not None:
        tracking.status = data.status
    if data.commission_amount is not None:
        tracking.commission_amount = round_money(data.commission_amount)
    db.commit()
    db.refresh(tracking)
    logger.info(f"Referral {tracking_id} updated: {data.model_dump(exclude_none=True)}")
    return _build_admin_item(db, tracking)


def pay_out_referral(db: Session, tracking_id: int) -> AdminReferralItem:
    tracking = crud_referral.get_tracking_by_id(db, tracking_id)
    if not tracking:
        raise NotFoundError("Referral not found")

    amount = _pay_out(db, tracking)
    db.commit()
    db.refresh(tracking)
    logger.info(f"Referral {tracking_id} paid out {amount}.")
    return _build_admin_item(db, tracking)
