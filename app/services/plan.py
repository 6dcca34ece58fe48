# app/services/plan.py
"""
Turns a ProjectPlan (phases + payment schedule) into a project with
phases and gated milestone payments. Used when staff attach a plan to an
order and when a client accepts a quote.
"""
import logging
from sqlalchemy.orm import Session

from app.crud import audit as crud_audit
from app.crud import payment as crud_payment
from app.crud import project as crud_project
from app.models.enums import MilestoneStatus, ProjectStatus
from app.models.order import Order
from app.models.project import Project
from app.schemas.audit import AuditAction, AuditTarget, ProjectPlanData
from app.schemas.plan import PlanPayment, PlanPhase, ProjectPlan
from app.utils.text import clean_text

logger = logging.getLogger(__name__)


def normalize_plan(plan: ProjectPlan | None) -> ProjectPlan:
    """Fills in phase keys, titles and orders, and payment labels."""
    if plan is None:
        return ProjectPlan()

    phases = [
        PlanPhase(
            key=phase.key or f"phase-{index + 1}",
            group=phase.group,
            title=clean_text(phase.title) or f"Phase {index + 1}",
            description=clean_text(phase.description),
            due_date=phase.due_date,
            order=phase.order if phase.order is not None else index,
        )
        for index, phase in enumerate(plan.phases)
    ]
    payments = [
        PlanPayment(
            label=clean_text(payment.label) or f"Payment {index + 1}",
            amount=payment.amount,
            due_date=payment.due_date,
            before_phase_key=payment.before_phase_key,
        )
        for index, payment in enumerate(plan.payment_schedule)
    ]
    return ProjectPlan(
        project_title=clean_text(plan.project_title),
        project_description=clean_text(plan.project_description),
        due_date=plan.due_date,
        phases=phases,
        payment_schedule=payments,
    )


def apply_plan(
    db: Session,
    order: Order,
    plan: ProjectPlan,
    default_title: str,
    default_description: str | None,
    actor_id: int | None,
    source: str,
    source_id: int,
) -> Project:
    """
    Creates the project for an order from a plan. Flushes only; the caller commits.
    The project starts in the group of its first phase.
    """
    plan = normalize_plan(plan)

    project = crud_project.create_project(
        db,
        order_id=order.id,
        title=plan.project_title or default_title,
        description=plan.project_description or default_description,
        due_date=plan.due_date,
    )

    phase_ids: dict[str, int] = {}
    phase_due: dict[str, object] = {}
    for seed in plan.phases:
        phase = crud_project.create_phase(
            db,
            project_id=project.id,
            group=seed.group,
            title=seed.title,
            description=seed.description,
            due_date=seed.due_date,
            sort_order=seed.order,
        )
        phase_ids[seed.key] = phase.id
        phase_due[seed.key] = seed.due_date

    if plan.phases:
        first = min(plan.phases, key=lambda p: p.order)
        project.status = first.group
    else:
        project.status = ProjectStatus.REQUIREMENTS

    for seed in plan.payment_schedule:
        gate_key = seed.before_phase_key
        crud_payment.create_payment(
            db,
            project_id=project.id,
            label=seed.label,
            amount=seed.amount,
            status=MilestoneStatus.PENDING,
            due_date=seed.due_date or (phase_due.get(gate_key) if gate_key else None),
            gate_phase_id=phase_ids.get(gate_key) if gate_key else None,
        )

    crud_audit.create_audit_log(
        db, actor_id, AuditAction.PROJECT_PLAN, AuditTarget.PROJECT, project.id,
        ProjectPlanData(source=source, source_id=source_id, plan=plan),
    )
    db.flush()
    logger.info(
        f"Project {project.id} planned for order {order.id}: "
        f"{len(plan.phases)} phases, {len(plan.payment_schedule)} payments."
    )
    return project


def get_latest_plan(db: Session, project_id: int) -> ProjectPlan | None:
    """The most recent PROJECT_PLAN recorded for the project."""
    data = crud_audit.get_latest_audit_data(db, AuditTarget.PROJECT, project_id, AuditAction.PROJECT_PLAN)
    return data.plan if data else None
