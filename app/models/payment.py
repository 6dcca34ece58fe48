# app/models/payment.py
from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, DateTime, Enum, func
from sqlalchemy.orm import relationship
from app.db.session import Base
from app.models.enums import MilestoneStatus

class MilestonePayment(Base):
    __tablename__ = "milestone_payments"
    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)

    label = Column(String, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    status = Column(Enum(MilestoneStatus, native_enum=False), default=MilestoneStatus.PENDING, nullable=False)
    proof_url = Column(String, nullable=True)
    due_date = Column(DateTime(timezone=True), nullable=True)

    # What unlocked this payment: a phase gate or an accepted change request
    gate_phase_id = Column(Integer, ForeignKey("project_phases.id", ondelete="SET NULL"), nullable=True)
    change_request_id = Column(Integer, ForeignKey("change_requests.id", ondelete="SET NULL"), nullable=True)

    archived_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    project = relationship("Project", back_populates="milestone_payments")
