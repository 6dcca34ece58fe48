# app/crud/order.py
from sqlalchemy.orm import Session, joinedload

from app.models.enums import OrderStatus, CustomRequestStatus
from app.models.order import Order, Service, CustomProjectRequest


# --- Services ---
def get_service_by_id(db: Session, service_id: int) -> Service | None:
    return db.query(Service).filter(Service.id == service_id).first()

def get_service_by_slug(db: Session, slug: str) -> Service | None:
    return db.query(Service).filter(Service.slug == slug).first()

def create_service(db: Session, title: str, slug: str, price=None) -> Service:
    service = Service(title=title, slug=slug, price=price)
    db.add(service)
    db.flush()
    return service

def get_services(db: Session, include_inactive: bool = False) -> list[Service]:
    query = db.query(Service)
    if not include_inactive:
        query = query.filter(Service.is_active.is_(True))
    return query.order_by(Service.title).all()


# --- Orders ---
def get_order_by_id(db: Session, order_id: int) -> Order | None:
    return (
        db.query(Order)
        .options(joinedload(Order.user), joinedload(Order.service))
        .filter(Order.id == order_id)
        .first()
    )

def get_orders(db: Session, user_id: int | None = None, archived: bool | None = None) -> list[Order]:
    query = db.query(Order).options(joinedload(Order.user), joinedload(Order.service))
    if user_id is not None:
        query = query.filter(Order.user_id == user_id)
    if archived is True:
        query = query.filter(Order.archived_at.isnot(None))
    elif archived is False:
        query = query.filter(Order.archived_at.is_(None))
    return query.order_by(Order.created_at.desc(), Order.id.desc()).all()

def create_order(
    db: Session,
    user_id: int,
    service_id: int,
    total_amount,
    status: OrderStatus = OrderStatus.PENDING,
) -> Order:
    order = Order(user_id=user_id, service_id=service_id, total_amount=total_amount, status=status)
    db.add(order)
    db.flush()
    return order


# --- Custom project requests ---
def create_custom_request(db: Session, **fields) -> CustomProjectRequest:
    request = CustomProjectRequest(status=CustomRequestStatus.NEW, **fields)
    db.add(request)
    db.flush()
    return request

def get_custom_request_by_id(db: Session, request_id: int) -> CustomProjectRequest | None:
    return db.query(CustomProjectRequest).filter(CustomProjectRequest.id == request_id).first()

def get_custom_requests(db: Session, status: CustomRequestStatus | None = None) -> list[CustomProjectRequest]:
    query = db.query(CustomProjectRequest)
    if status:
        query = query.filter(CustomProjectRequest.status == status)
    return query.order_by(CustomProjectRequest.created_at.desc(), CustomProjectRequest.id.desc()).all()

def get_first_service(db: Session) -> Service | None:
    return db.query(Service).order_by(Service.created_at, Service.id).first()
