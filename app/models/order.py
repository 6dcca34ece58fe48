# app/models/order.py
from sqlalchemy import Column, Integer, String, Text, Boolean, Numeric, ForeignKey, DateTime, Enum, func
from sqlalchemy.orm import relationship
from app.db.session import Base
from app.models.enums import OrderStatus, CustomRequestStatus

class Service(Base):
    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    slug = Column(String, unique=True, index=True, nullable=False)
    price = Column(Numeric(12, 2), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)
    status = Column(Enum(OrderStatus, native_enum=False), default=OrderStatus.PENDING, nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False)
    archived_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="orders")
    service = relationship("Service")
    projects = relationship("Project", back_populates="order", order_by="Project.id.desc()")
    custom_request = relationship("CustomProjectRequest", back_populates="order", uselist=False)


class CustomProjectRequest(Base):
    __tablename__ = "custom_project_requests"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String, nullable=False)
    email = Column(String, nullable=False, index=True)
    project_type = Column(String, nullable=True)
    budget_range = Column(String, nullable=True)
    timeline = Column(String, nullable=True)
    details = Column(Text, nullable=True)
    status = Column(Enum(CustomRequestStatus, native_enum=False), default=CustomRequestStatus.NEW, nullable=False)

    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User")
    order = relationship("Order", back_populates="custom_request")
    quotes = relationship("Quote", back_populates="custom_request")
