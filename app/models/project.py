# app/models/project.py

from datetime import datetime
from typing import List
from sqlalchemy import Column, Integer, String, Text, Boolean, Numeric, DateTime, Enum, ForeignKey, func
from sqlalchemy.orm import relationship, Mapped
from app.db.session import Base
from app.models.enums import ProjectStatus, PhaseStatus, PhaseAssetType, ChangeRequestStatus

class Project(Base):
    __tablename__ = "projects"

    id: Mapped[int] = Column(Integer, primary_key=True, index=True)
    order_id: Mapped[int] = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    title: Mapped[str] = Column(String, nullable=False)
    description: Mapped[str] = Column(Text, nullable=True)
    status: Mapped[ProjectStatus] = Column(Enum(ProjectStatus, native_enum=False), default=ProjectStatus.REQUIREMENTS, nullable=False)
    due_date: Mapped[datetime] = Column(DateTime(timezone=True), nullable=True)
    archived_at: Mapped[datetime] = Column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = Column(DateTime(timezone=True), server_default=func.now())

    order: Mapped["Order"] = relationship(back_populates="projects")
    phases: Mapped[List["ProjectPhase"]] = relationship(
        back_populates="project", cascade="all, delete-orphan",
        order_by="(ProjectPhase.sort_order, ProjectPhase.id)"
    )
    milestone_payments: Mapped[List["MilestonePayment"]] = relationship(
        back_populates="project", cascade="all, delete-orphan", order_by="MilestonePayment.id"
    )
    change_requests: Mapped[List["ChangeRequest"]] = relationship(
        back_populates="project", cascade="all, delete-orphan", order_by="ChangeRequest.id.desc()"
    )
    invoices: Mapped[List["Invoice"]] = relationship(back_populates="project", cascade="all, delete-orphan")
    revisions: Mapped[List["Revision"]] = relationship(back_populates="project", cascade="all, delete-orphan")
    review: Mapped["Review"] = relationship(back_populates="project", uselist=False, cascade="all, delete-orphan")
    portfolio_items: Mapped[List["PortfolioItem"]] = relationship(back_populates="project")


class ProjectPhase(Base):
    __tablename__ = "project_phases"

    id: Mapped[int] = Column(Integer, primary_key=True, index=True)
    project_id: Mapped[int] = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    # Which pipeline stage this phase belongs to
    group: Mapped[ProjectStatus] = Column(Enum(ProjectStatus, native_enum=False), nullable=False)
    title: Mapped[str] = Column(String, nullable=False)
    description: Mapped[str] = Column(Text, nullable=True)
    due_date: Mapped[datetime] = Column(DateTime(timezone=True), nullable=True)
    status: Mapped[PhaseStatus] = Column(Enum(PhaseStatus, native_enum=False), default=PhaseStatus.PENDING, nullable=False)
    # Display sort only
    sort_order: Mapped[int] = Column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = Column(DateTime(timezone=True), server_default=func.now())

    project: Mapped["Project"] = relationship(back_populates="phases")
    deliverables: Mapped[List["PhaseAsset"]] = relationship(
        back_populates="phase", cascade="all, delete-orphan", order_by="PhaseAsset.id"
    )
    comments: Mapped[List["PhaseComment"]] = relationship(
        back_populates="phase", cascade="all, delete-orphan", order_by="PhaseComment.id"
    )


class PhaseAsset(Base):
    __tablename__ = "phase_assets"

    id: Mapped[int] = Column(Integer, primary_key=True)
    phase_id: Mapped[int] = Column(Integer, ForeignKey("project_phases.id", ondelete="CASCADE"), nullable=False, index=True)
    type: Mapped[PhaseAssetType] = Column(Enum(PhaseAssetType, native_enum=False), nullable=False)
    url: Mapped[str] = Column(String, nullable=False)
    label: Mapped[str] = Column(String, nullable=True)
    created_by_id: Mapped[int] = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = Column(DateTime(timezone=True), server_default=func.now())

    phase: Mapped["ProjectPhase"] = relationship(back_populates="deliverables")


class PhaseComment(Base):
    __tablename__ = "phase_comments"

    id: Mapped[int] = Column(Integer, primary_key=True)
    phase_id: Mapped[int] = Column(Integer, ForeignKey("project_phases.id", ondelete="CASCADE"), nullable=False, index=True)
    author_id: Mapped[int] = Column(Integer, ForeignKey("users.id"), nullable=True)
    body: Mapped[str] = Column(Text, nullable=False)
    created_at: Mapped[datetime] = Column(DateTime(timezone=True), server_default=func.now())

    phase: Mapped["ProjectPhase"] = relationship(back_populates="comments")
    author: Mapped["User"] = relationship()
    attachments: Mapped[List["PhaseCommentAsset"]] = relationship(back_populates="comment", cascade="all, delete-orphan")


class PhaseCommentAsset(Base):
    __tablename__ = "phase_comment_assets"

    id: Mapped[int] = Column(Integer, primary_key=True)
    comment_id: Mapped[int] = Column(Integer, ForeignKey("phase_comments.id", ondelete="CASCADE"), nullable=False, index=True)
    url: Mapped[str] = Column(String, nullable=False)
    created_at: Mapped[datetime] = Column(DateTime(timezone=True), server_default=func.now())

    comment: Mapped["PhaseComment"] = relationship(back_populates="attachments")


class ChangeRequest(Base):
    __tablename__ = "change_requests"

    id: Mapped[int] = Column(Integer, primary_key=True, index=True)
    project_id: Mapped[int] = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    title: Mapped[str] = Column(String, nullable=False)
    description: Mapped[str] = Column(Text, nullable=True)
    # Zero until staff price it
    amount = Column(Numeric(12, 2), nullable=False, default=0)
    status: Mapped[ChangeRequestStatus] = Column(
        Enum(ChangeRequestStatus, native_enum=False), default=ChangeRequestStatus.PENDING, nullable=False
    )
    created_by_id: Mapped[int] = Column(Integer, ForeignKey("users.id"), nullable=True)
    decided_at: Mapped[datetime] = Column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = Column(DateTime(timezone=True), server_default=func.now())

    project: Mapped["Project"] = relationship(back_populates="change_requests")


class Review(Base):
    __tablename__ = "reviews"

    id: Mapped[int] = Column(Integer, primary_key=True)
    project_id: Mapped[int] = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, unique=True)
    rating: Mapped[int] = Column(Integer, nullable=False)
    comment: Mapped[str] = Column(Text, nullable=True)
    created_at: Mapped[datetime] = Column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    project: Mapped["Project"] = relationship(back_populates="review")


class PortfolioItem(Base):
    __tablename__ = "portfolio_items"

    id: Mapped[int] = Column(Integer, primary_key=True)
    project_id: Mapped[int] = Column(Integer, ForeignKey("projects.id"), nullable=True, index=True)
    title: Mapped[str] = Column(String, nullable=False)
    slug: Mapped[str] = Column(String, unique=True, nullable=False)
    description: Mapped[str] = Column(Text, nullable=True)
    project_type: Mapped[str] = Column(String, nullable=True)
    locale: Mapped[str] = Column(String(5), default="en", nullable=False)
    is_published: Mapped[bool] = Column(Boolean, default=False, nullable=False, server_default='false')
    created_at: Mapped[datetime] = Column(DateTime(timezone=True), server_default=func.now())

    project: Mapped["Project"] = relationship(back_populates="portfolio_items")


class Invoice(Base):
    __tablename__ = "invoices"

    id: Mapped[int] = Column(Integer, primary_key=True)
    project_id: Mapped[int] = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    number: Mapped[str] = Column(String, nullable=False)
    amount_due = Column(Numeric(12, 2), nullable=False, default=0)
    amount_paid = Column(Numeric(12, 2), nullable=False, default=0)
    status: Mapped[str] = Column(String, default="OPEN", nullable=False)
    due_date: Mapped[datetime] = Column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = Column(DateTime(timezone=True), server_default=func.now())

    project: Mapped["Project"] = relationship(back_populates="invoices")


class Revision(Base):
    __tablename__ = "revisions"

    id: Mapped[int] = Column(Integer, primary_key=True)
    project_id: Mapped[int] = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    title: Mapped[str] = Column(String, nullable=False)
    details: Mapped[str] = Column(Text, nullable=True)
    amount = Column(Numeric(12, 2), nullable=False, default=0)
    status: Mapped[str] = Column(String, default="REQUESTED", nullable=False)
    created_at: Mapped[datetime] = Column(DateTime(timezone=True), server_default=func.now())

    project: Mapped["Project"] = relationship(back_populates="revisions")
