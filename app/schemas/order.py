# app/schemas/order.py
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

from app.models.enums import OrderStatus
from app.schemas.plan import ProjectPlan
from app.utils.money import to_number


class ServiceOut(BaseModel):
    id: int
    title: str
    slug: str
    price: float | None = None
    is_active: bool = True

    @field_validator('price', mode='before')
    @classmethod
    def normalize_price(cls, v):
        return None if v is None else to_number(v)

    class Config:
        from_attributes = True


class ServiceCreate(BaseModel):
    title: str = Field(..., min_length=1)
    slug: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)


class OrderCreate(BaseModel):
    service_id: int
    # Falls back to the service price
    total_amount: Optional[float] = Field(None, ge=0, allow_inf_nan=False)


class OrderUpdate(BaseModel):
    status: Optional[OrderStatus] = None
    archived: Optional[bool] = None
    plan: Optional[ProjectPlan] = None


class OrderOut(BaseModel):
    id: int
    user_id: int
    user_email: str | None = None
    service_id: int
    service_title: str | None = None
    status: OrderStatus
    total_amount: float
    archived_at: datetime | None = None
    created_at: datetime | None = None
    project_ids: List[int] = []

    @field_validator('total_amount', mode='before')
    @classmethod
    def normalize_total(cls, v):
        return to_number(v)
