# app/crud/payment.py
from sqlalchemy.orm import Session, joinedload

from app.models.enums import MilestoneStatus
from app.models.order import Order
from app.models.payment import MilestonePayment
from app.models.project import Project


def get_payment_by_id(db: Session, payment_id: int) -> MilestonePayment | None:
    return (
        db.query(MilestonePayment)
        .options(joinedload(MilestonePayment.project))
        .filter(MilestonePayment.id == payment_id)
        .first()
    )

def get_payments(
    db: Session,
    user_id: int | None = None,
    project_id: int | None = None,
    archived: bool | None = None,
) -> list[MilestonePayment]:
    query = (
        db.query(MilestonePayment)
        .options(joinedload(MilestonePayment.project))
        .join(Project, MilestonePayment.project_id == Project.id)
    )
    if user_id is not None:
        query = query.join(Order, Project.order_id == Order.id).filter(Order.user_id == user_id)
    if project_id is not None:
        query = query.filter(MilestonePayment.project_id == project_id)
    if archived is True:
        query = query.filter(MilestonePayment.archived_at.isnot(None))
    elif archived is False:
        query = query.filter(MilestonePayment.archived_at.is_(None))
    return query.order_by(MilestonePayment.created_at.desc(), MilestonePayment.id.desc()).all()

def create_payment(
    db: Session,
    project_id: int,
    label: str,
    amount,
    status: MilestoneStatus = MilestoneStatus.PENDING,
    due_date=None,
    proof_url: str | None = None,
    gate_phase_id: int | None = None,
    change_request_id: int | None = None,
) -> MilestonePayment:
    payment = MilestonePayment(
        project_id=project_id, label=label, amount=amount, status=status, due_date=due_date,
        proof_url=proof_url, gate_phase_id=gate_phase_id, change_request_id=change_request_id,
    )
    db.add(payment)
    db.flush()
    return payment
