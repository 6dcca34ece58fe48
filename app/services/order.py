# app/services/order.py

import logging
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError, ValidationFailedError
from app.crud import order as crud_order
from app.models.order import Order
from app.schemas.order import OrderCreate, OrderOut, OrderUpdate, ServiceCreate, ServiceOut
from app.schemas.user import SessionUser
from app.services import referral as referral_service
from app.services.access import require_admin, require_staff
from app.services.plan import apply_plan
from app.utils.date_utils import utcnow
from app.utils.money import round_money, to_number
from app.utils.text import slugify

logger = logging.getLogger(__name__)


# --- Services ---

def list_services(db: Session, session: SessionUser | None, include_inactive: bool = False) -> list[ServiceOut]:
    include_inactive = include_inactive and session is not None and session.is_staff
    return [ServiceOut.model_validate(s) for s in crud_order.get_services(db, include_inactive)]


def create_service(db: Session, session: SessionUser, data: ServiceCreate) -> ServiceOut:
    require_admin(session)
    slug = slugify(data.slug or data.title, fallback="service")
    if crud_order.get_service_by_slug(db, slug):
        raise ValidationFailedError("Slug already in use", field="slug")

    service = crud_order.create_service(db, title=data.title.strip(), slug=slug, price=data.price)
    db.commit()
    db.refresh(service)
    logger.info(f"Service '{slug}' created by user {session.id}.")
    return ServiceOut.model_validate(service)


# --- Orders ---

def to_order_out(order: Order) -> OrderOut:
    return OrderOut(
        id=order.id,
        user_id=order.user_id,
        user_email=order.user.email if order.user else None,
        service_id=order.service_id,
        service_title=order.service.title if order.service else None,
        status=order.status,
        total_amount=order.total_amount,
        archived_at=order.archived_at,
        created_at=order.created_at,
        project_ids=[p.id for p in order.projects],
    )


def create_order(db: Session, session: SessionUser, data: OrderCreate) -> OrderOut:
    """Places an order for a service and books the referral commission, if any."""
    service = crud_order.get_service_by_id(db, data.service_id)
    if not service:
        raise NotFoundError("Service not found")

    total = data.total_amount if data.total_amount is not None else to_number(service.price)
    order = crud_order.create_order(db, user_id=session.id, service_id=service.id, total_amount=round_money(total))
    referral_service.create_referral_commission_for_order(db, order.id, session.id, to_number(order.total_amount))
    db.commit()
    db.refresh(order)
    logger.info(f"Order {order.id} for service '{service.slug}' created by user {session.id}.")
    return to_order_out(order)


def list_orders(db: Session, session: SessionUser, archived: bool | None = None) -> list[OrderOut]:
    if session.is_staff:
        orders = crud_order.get_orders(db, archived=archived)
    else:
        orders = crud_order.get_orders(db, user_id=session.id, archived=False)
    return [to_order_out(o) for o in orders]


def update_order(db: Session, session: SessionUser, order_id: int, data: OrderUpdate) -> OrderOut:
    """Staff: change status/archive flag, optionally attach a plan (creates a project)."""
    require_staff(session)

    if data.status is None and data.archived is None and data.plan is None:
        raise ValidationFailedError("Missing update")

    order = crud_order.get_order_by_id(db, order_id)
    if not order:
        raise NotFoundError("Order not found")

    if data.status is not None:
        order.status = data.status
    if data.archived is not None:
        order.archived_at = utcnow() if data.archived else None
    if data.plan is not None:
        apply_plan(
            db,
            order,
            data.plan,
            default_title=order.service.title if order.service else f"Order #{order.id}",
            default_description=None,
            actor_id=session.id,
            source="order",
            source_id=order.id,
        )

    db.commit()
    db.refresh(order)
    logger.info(f"Order {order.id} updated by user {session.id}.")
    return to_order_out(order)
