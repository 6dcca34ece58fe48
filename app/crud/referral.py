# app/crud/referral.py
import logging
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from app.models.enums import MilestoneStatus
from app.models.payment import MilestonePayment
from app.models.project import Project
from app.models.referral import ReferralTracking

logger = logging.getLogger(__name__)


def get_tracking_by_id(db: Session, tracking_id: int) -> ReferralTracking | None:
    return db.query(ReferralTracking).filter(ReferralTracking.id == tracking_id).first()

def get_signup_tracking(db: Session, referrer_id: int, referred_user_id: int) -> ReferralTracking | None:
    """The order-less signup row for a (referrer, referred user) pair, whatever its status."""
    return db.query(ReferralTracking).filter(
        ReferralTracking.referrer_id == referrer_id,
        ReferralTracking.referred_user_id == referred_user_id,
        ReferralTracking.order_id.is_(None),
    ).first()

def get_tracking_by_order(db: Session, order_id: int) -> ReferralTracking | None:
    return db.query(ReferralTracking).filter(ReferralTracking.order_id == order_id).first()

def create_tracking(db: Session, **fields) -> ReferralTracking | None:
    """
    Inserts a tracking row inside a savepoint.
    Returns None if a unique constraint (order_id, signup pair) rejected it,
    leaving the outer transaction usable.
    """
    tracking = ReferralTracking(**fields)
    try:
        with db.begin_nested():
            db.add(tracking)
    except IntegrityError:
        logger.warning(f"Referral tracking insert hit a unique constraint: {fields}")
        return None
    return tracking

def get_trackings_for_referrer(db: Session, referrer_id: int) -> list[ReferralTracking]:
    return (
        db.query(ReferralTracking)
        .options(joinedload(ReferralTracking.referred_user), joinedload(ReferralTracking.order))
        .filter(ReferralTracking.referrer_id == referrer_id)
        .order_by(ReferralTracking.created_at.desc(), ReferralTracking.id.desc())
        .all()
    )

def get_all_trackings(db: Session) -> list[ReferralTracking]:
    return (
        db.query(ReferralTracking)
        .options(
            joinedload(ReferralTracking.referrer),
            joinedload(ReferralTracking.referred_user),
            joinedload(ReferralTracking.order),
        )
        .order_by(ReferralTracking.created_at.desc(), ReferralTracking.id.desc())
        .all()
    )

def get_approved_paid_amount(db: Session, order_id: int):
    """Sum of APPROVED milestone payments across every project of the order."""
    return (
        db.query(func.coalesce(func.sum(MilestonePayment.amount), 0))
        .join(Project, MilestonePayment.project_id == Project.id)
        .filter(Project.order_id == order_id, MilestonePayment.status == MilestoneStatus.APPROVED)
        .scalar()
    )
