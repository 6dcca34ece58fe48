# app/models/referral.py
from sqlalchemy import Column, Integer, Float, Numeric, ForeignKey, DateTime, Enum, Index, func
from sqlalchemy.orm import relationship
from app.db.session import Base
from app.models.enums import ReferralStatus

class ReferralTracking(Base):
    __tablename__ = "referral_tracking"
    id = Column(Integer, primary_key=True, index=True)

    referrer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    referred_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    # Null for the signup row; at most one row per order
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=True, unique=True)

    commission_amount = Column(Numeric(12, 2), nullable=False, default=0)
    commission_rate = Column(Float, nullable=False)
    commission_paid_out = Column(Numeric(12, 2), nullable=False, default=0)
    status = Column(Enum(ReferralStatus, native_enum=False), default=ReferralStatus.PENDING, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    referrer = relationship("User", foreign_keys=[referrer_id])
    referred_user = relationship("User", foreign_keys=[referred_user_id])
    order = relationship("Order")

    __table_args__ = (
        # One signup row per (referrer, referred user)
        Index(
            "uq_referral_signup_pair",
            "referrer_id",
            "referred_user_id",
            unique=True,
            postgresql_where=order_id.is_(None),
            sqlite_where=order_id.is_(None),
        ),
    )
