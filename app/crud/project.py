# app/crud/project.py
from sqlalchemy.orm import Session, joinedload, selectinload

from app.models.enums import ProjectStatus, PhaseStatus, PhaseAssetType
from app.models.order import Order
from app.models.project import (
    Project, ProjectPhase, PhaseAsset, PhaseComment, PhaseCommentAsset,
    ChangeRequest, Review, PortfolioItem,
)


# --- Projects ---
def get_project_by_id(db: Session, project_id: int) -> Project | None:
    """Loads the project together with its order and owner."""
    return (
        db.query(Project)
        .options(joinedload(Project.order).joinedload(Order.user))
        .filter(Project.id == project_id)
        .first()
    )

def get_projects(db: Session, user_id: int | None = None, archived: bool | None = None) -> list[Project]:
    query = db.query(Project).join(Order, Project.order_id == Order.id)
    if user_id is not None:
        query = query.filter(Order.user_id == user_id)
    if archived is True:
        query = query.filter(Project.archived_at.isnot(None))
    elif archived is False:
        query = query.filter(Project.archived_at.is_(None))
    return query.order_by(Project.created_at.desc(), Project.id.desc()).all()

def create_project(
    db: Session,
    order_id: int,
    title: str,
    description: str | None = None,
    status: ProjectStatus = ProjectStatus.REQUIREMENTS,
    due_date=None,
) -> Project:
    project = Project(order_id=order_id, title=title, description=description, status=status, due_date=due_date)
    db.add(project)
    db.flush()
    return project


# --- Phases ---
def get_phase_by_id(db: Session, phase_id: int) -> ProjectPhase | None:
    return db.query(ProjectPhase).filter(ProjectPhase.id == phase_id).first()

def get_phases_for_project(db: Session, project_id: int) -> list[ProjectPhase]:
    return (
        db.query(ProjectPhase)
        .options(
            selectinload(ProjectPhase.deliverables),
            selectinload(ProjectPhase.comments).selectinload(PhaseComment.attachments),
            selectinload(ProjectPhase.comments).joinedload(PhaseComment.author),
        )
        .filter(ProjectPhase.project_id == project_id)
        .order_by(ProjectPhase.sort_order, ProjectPhase.id)
        .all()
    )

def create_phase(
    db: Session,
    project_id: int,
    group: ProjectStatus,
    title: str,
    description: str | None = None,
    due_date=None,
    status: PhaseStatus = PhaseStatus.PENDING,
    sort_order: int = 0,
) -> ProjectPhase:
    phase = ProjectPhase(
        project_id=project_id, group=group, title=title, description=description,
        due_date=due_date, status=status, sort_order=sort_order,
    )
    db.add(phase)
    db.flush()
    return phase

def create_phase_asset(
    db: Session, phase_id: int, type: PhaseAssetType, url: str, label: str | None, created_by_id: int | None
) -> PhaseAsset:
    asset = PhaseAsset(phase_id=phase_id, type=type, url=url, label=label, created_by_id=created_by_id)
    db.add(asset)
    db.flush()
    return asset


# --- Comments ---
def create_comment(db: Session, phase_id: int, author_id: int, body: str, attachment_url: str | None = None) -> PhaseComment:
    comment = PhaseComment(phase_id=phase_id, author_id=author_id, body=body)
    if attachment_url:
        comment.attachments.append(PhaseCommentAsset(url=attachment_url))
    db.add(comment)
    db.flush()
    return comment


# --- Change requests ---
def get_change_request_by_id(db: Session, change_request_id: int) -> ChangeRequest | None:
    return db.query(ChangeRequest).filter(ChangeRequest.id == change_request_id).first()

def get_change_requests_for_project(db: Session, project_id: int) -> list[ChangeRequest]:
    return (
        db.query(ChangeRequest)
        .filter(ChangeRequest.project_id == project_id)
        .order_by(ChangeRequest.created_at.desc(), ChangeRequest.id.desc())
        .all()
    )

def create_change_request(
    db: Session, project_id: int, title: str, description: str | None, amount, created_by_id: int
) -> ChangeRequest:
    change_request = ChangeRequest(
        project_id=project_id, title=title, description=description,
        amount=amount, created_by_id=created_by_id,
    )
    db.add(change_request)
    db.flush()
    return change_request


# --- Reviews & portfolio ---
def get_review_by_project(db: Session, project_id: int) -> Review | None:
    return db.query(Review).filter(Review.project_id == project_id).first()

def create_review(db: Session, project_id: int, rating: int, comment: str | None) -> Review:
    review = Review(project_id=project_id, rating=rating, comment=comment)
    db.add(review)
    db.flush()
    return review

def has_published_portfolio_item(db: Session, project_id: int) -> bool:
    return db.query(PortfolioItem).filter(
        PortfolioItem.project_id == project_id,
        PortfolioItem.is_published.is_(True),
    ).first() is not None

def get_portfolio_item_for_project(db: Session, project_id: int) -> PortfolioItem | None:
    return db.query(PortfolioItem).filter(PortfolioItem.project_id == project_id).first()

def create_portfolio_item(db: Session, **fields) -> PortfolioItem:
    item = PortfolioItem(**fields)
    db.add(item)
    db.flush()
    return item
