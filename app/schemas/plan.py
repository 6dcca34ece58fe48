# app/schemas/plan.py
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field

from app.models.enums import ProjectStatus


class PlanPhase(BaseModel):
    key: Optional[str] = None
    group: ProjectStatus = ProjectStatus.REQUIREMENTS
    title: Optional[str] = None
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    order: Optional[int] = None


class PlanPayment(BaseModel):
    label: Optional[str] = None
    amount: float = Field(..., gt=0, allow_inf_nan=False)
    due_date: Optional[datetime] = None
    # Payment unlocks when the phase with this key is reached
    before_phase_key: Optional[str] = None


class ProjectPlan(BaseModel):
    """Phases and payment schedule attached to a quote or an order."""
    project_title: Optional[str] = None
    project_description: Optional[str] = None
    due_date: Optional[datetime] = None
    phases: List[PlanPhase] = []
    payment_schedule: List[PlanPayment] = Field(default=[], alias="paymentSchedule")

    model_config = {"populate_by_name": True}
