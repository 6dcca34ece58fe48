# app/models/user.py

from sqlalchemy import Column, Integer, String, Float, DateTime, Enum, ForeignKey, func
from sqlalchemy.orm import relationship
from app.db.session import Base
from app.models.enums import Role

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    # Users created from an accepted quote have no password until they register
    password_hash = Column(String, nullable=True)
    role = Column(Enum(Role, native_enum=False), default=Role.CLIENT, nullable=False)

    referral_code = Column(String, unique=True, index=True, nullable=True)
    # Who referred this user. Set at most once.
    referred_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    referral_commission_rate = Column(Float, nullable=True, default=0.1)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    referred_by = relationship("User", remote_side=[id])
    orders = relationship("Order", back_populates="user")
