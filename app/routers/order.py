# app/routers/order.py
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.dependencies import get_current_session, get_db, get_optional_session
from app.schemas.order import OrderCreate, OrderOut, OrderUpdate, ServiceCreate, ServiceOut
from app.schemas.user import SessionUser
from app.services import order as order_service

router = APIRouter()


@router.get("/services", response_model=List[ServiceOut])
def list_services(
    include_inactive: bool = Query(False),
    session: Optional[SessionUser] = Depends(get_optional_session),
    db: Session = Depends(get_db),
):
    return order_service.list_services(db, session, include_inactive)


@router.post("/services", response_model=ServiceOut)
def create_service(
    data: ServiceCreate,
    session: SessionUser = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """[ADMIN]"""
    return order_service.create_service(db, session, data)


@router.post("/orders", response_model=OrderOut)
def create_order(
    data: OrderCreate,
    session: SessionUser = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return order_service.create_order(db, session, data)


@router.get("/orders", response_model=List[OrderOut])
def list_orders(
    archived: Optional[bool] = Query(None, description="Staff only: filter by archive state."),
    session: SessionUser = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Staff see every order, clients their own."""
    return order_service.list_orders(db, session, archived)


@router.patch("/orders/{order_id}", response_model=OrderOut)
def update_order(
    order_id: int,
    data: OrderUpdate,
    session: SessionUser = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """[STAFF] Status, archive flag, and an optional project plan."""
    return order_service.update_order(db, session, order_id, data)
