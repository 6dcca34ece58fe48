# app/models/quote.py
from sqlalchemy import Column, Integer, Text, Numeric, JSON, ForeignKey, DateTime, Enum, String, func
from sqlalchemy.orm import relationship
from app.db.session import Base
from app.models.enums import QuoteStatus

class Quote(Base):
    __tablename__ = "quotes"

    id = Column(Integer, primary_key=True, index=True)
    custom_request_id = Column(Integer, ForeignKey("custom_project_requests.id"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    scope = Column(Text, nullable=True)
    # QuotePlan: project title/description, phases and payment schedule
    plan = Column(JSON, nullable=True)
    status = Column(Enum(QuoteStatus, native_enum=False), default=QuoteStatus.DRAFT, nullable=False)

    # sha256 of the magic token, prefixed with "used:" once consumed
    magic_token = Column(String, nullable=True, index=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    accepted_at = Column(DateTime(timezone=True), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    archived_at = Column(DateTime(timezone=True), nullable=True)

    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    custom_request = relationship("CustomProjectRequest", back_populates="quotes")
