# app/routers/project.py
from typing import List, Optional
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.orm import Session

from app.dependencies import get_current_session, get_db
from app.schemas.project import (
    ChangeRequestCreate, ChangeRequestOut, ChangeRequestUpdate, DeliverableLinkCreate,
    PhaseAssetOut, PhaseCommentOut, PhaseCreate, PhaseOut, PhaseStatusUpdate,
    ProjectDetail, ProjectListItem, ProjectUpdate, ReviewCreate, ReviewOut,
)
from app.schemas.user import SessionUser
from app.services import change_request as change_request_service
from app.services import phase as phase_service
from app.services import project as project_service
from app.services import review as review_service

router = APIRouter(prefix="/projects")


# --- Projects ---

@router.get("", response_model=List[ProjectListItem])
def list_projects(
    archived: Optional[bool] = Query(None),
    session: SessionUser = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return project_service.list_projects(db, session, archived)


@router.get("/{project_id}", response_model=ProjectDetail)
def get_project(project_id: int, session: SessionUser = Depends(get_current_session), db: Session = Depends(get_db)):
    return project_service.get_project_detail(db, session, project_id)


@router.patch("/{project_id}", response_model=ProjectDetail)
def update_project(
    project_id: int,
    data: ProjectUpdate,
    session: SessionUser = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """[STAFF] Status, archive, due date, ad-hoc milestone, note."""
    return project_service.update_project(db, session, project_id, data)


# --- Phases ---

@router.get("/{project_id}/phases", response_model=List[PhaseOut])
def list_phases(project_id: int, session: SessionUser = Depends(get_current_session), db: Session = Depends(get_db)):
    return phase_service.list_phases(db, session, project_id)


@router.post("/{project_id}/phases", response_model=PhaseOut)
def create_phase(
    project_id: int,
    data: PhaseCreate,
    session: SessionUser = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return phase_service.create_phase(db, session, project_id, data)


@router.patch("/{project_id}/phases/{phase_id}", response_model=PhaseOut)
def update_phase_status(
    project_id: int,
    phase_id: int,
    data: PhaseStatusUpdate,
    session: SessionUser = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """[STAFF] Sets a phase status and re-derives the project status."""
    return phase_service.update_phase_status(db, session, project_id, phase_id, data.status)


@router.post("/{project_id}/phases/{phase_id}/comments", response_model=PhaseCommentOut)
async def add_phase_comment(
    project_id: int,
    phase_id: int,
    body: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    session: SessionUser = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return await phase_service.add_phase_comment(db, session, project_id, phase_id, body, file)


@router.post("/{project_id}/phases/{phase_id}/deliverables", response_model=PhaseAssetOut)
async def add_image_deliverable(
    project_id: int,
    phase_id: int,
    file: Optional[UploadFile] = File(None),
    label: Optional[str] = Form(None),
    session: SessionUser = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return await phase_service.add_image_deliverable(db, session, project_id, phase_id, file, label)


@router.post("/{project_id}/phases/{phase_id}/links", response_model=PhaseAssetOut)
def add_link_deliverable(
    project_id: int,
    phase_id: int,
    data: DeliverableLinkCreate,
    session: SessionUser = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return phase_service.add_link_deliverable(db, session, project_id, phase_id, data)


# --- Change requests ---

@router.get("/{project_id}/changes", response_model=List[ChangeRequestOut])
def list_change_requests(
    project_id: int, session: SessionUser = Depends(get_current_session), db: Session = Depends(get_db)
):
    return change_request_service.list_change_requests(db, session, project_id)


@router.post("/{project_id}/changes", response_model=ChangeRequestOut)
def create_change_request(
    project_id: int,
    data: ChangeRequestCreate,
    session: SessionUser = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return change_request_service.create_change_request(db, session, project_id, data)


@router.patch("/{project_id}/changes/{change_id}", response_model=ChangeRequestOut)
def update_change_request(
    project_id: int,
    change_id: int,
    data: ChangeRequestUpdate,
    session: SessionUser = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return change_request_service.update_change_request(db, session, project_id, change_id, data)


@router.post("/{project_id}/changes/{change_id}/accept", response_model=ChangeRequestOut)
def accept_change_request(
    project_id: int, change_id: int,
    session: SessionUser = Depends(get_current_session), db: Session = Depends(get_db),
):
    return change_request_service.accept_change_request(db, session, project_id, change_id)


@router.post("/{project_id}/changes/{change_id}/reject", response_model=ChangeRequestOut)
def reject_change_request(
    project_id: int, change_id: int,
    session: SessionUser = Depends(get_current_session), db: Session = Depends(get_db),
):
    return change_request_service.reject_change_request(db, session, project_id, change_id)


# --- Review ---

@router.get("/{project_id}/review", response_model=Optional[ReviewOut])
def get_review(project_id: int, session: SessionUser = Depends(get_current_session), db: Session = Depends(get_db)):
    return review_service.get_review(db, session, project_id)


@router.post("/{project_id}/review", response_model=ReviewOut)
def submit_review(
    project_id: int,
    data: ReviewCreate,
    session: SessionUser = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Only once the project is DELIVERED. Locked after publication in the portfolio."""
    return review_service.submit_review(db, session, project_id, data)
