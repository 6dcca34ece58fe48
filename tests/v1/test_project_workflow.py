# tests/v1/test_project_workflow.py
import pytest

from app.core.exceptions import ForbiddenError, ValidationFailedError
from app.models.audit import AuditLog
from app.models.enums import (
    ChangeRequestStatus, MilestoneStatus, OrderStatus, PhaseStatus, ProjectStatus
)
from app.models.payment import MilestonePayment
from app.models.project import ChangeRequest, PhaseComment, PortfolioItem, ProjectPhase, Review
from app.schemas.project import ChangeRequestCreate, ReviewCreate
from app.services import change_request as change_request_service
from app.services import review as review_service
from tests.helpers import headers_for, session_for


# --- Reviews ---

async def test_review_rejected_until_project_delivered(client, db_session, client_user, client_headers, make_project):
    project = make_project(client_user, status=ProjectStatus.DEV)

    response = await client.post(f"/api/v1/projects/{project.id}/review", json={"rating": 5}, headers=client_headers)

    assert response.status_code == 400
    assert response.json()["detail"] == "Project not completed"
    assert db_session.query(Review).count() == 0


async def test_review_of_another_clients_project_is_forbidden(
    client, db_session, client_user, other_client, admin_auth_headers, make_project
):
    project = make_project(client_user, status=ProjectStatus.DELIVERED)

    forbidden = await client.post(
        f"/api/v1/projects/{project.id}/review", json={"rating": 4}, headers=headers_for(other_client)
    )
    allowed = await client.post(
        f"/api/v1/projects/{project.id}/review", json={"rating": 4, "comment": "Great"}, headers=admin_auth_headers
    )

    assert forbidden.status_code == 403
    assert allowed.status_code == 200
    assert allowed.json()["rating"] == 4


@pytest.mark.parametrize("rating", [0, 6, 4.5, "abc", None])
def test_review_rating_must_be_whole_1_to_5(db_session, client_user, make_project, rating):
    project = make_project(client_user, status=ProjectStatus.DELIVERED)

    with pytest.raises(ValidationFailedError, match="Invalid rating"):
        review_service.submit_review(db_session, session_for(client_user), project.id, ReviewCreate(rating=rating))


def test_review_resubmission_updates_single_row(db_session, client_user, make_project):
    project = make_project(client_user, status=ProjectStatus.DELIVERED)
    session = session_for(client_user)

    review_service.submit_review(db_session, session, project.id, ReviewCreate(rating="3"))
    updated = review_service.submit_review(db_session, session, project.id, ReviewCreate(rating=5, comment="Better"))

    assert updated.rating == 5
    assert db_session.query(Review).filter_by(project_id=project.id).count() == 1


def test_review_locked_once_portfolio_item_published(db_session, client_user, make_project):
    project = make_project(client_user, status=ProjectStatus.DELIVERED)
    session = session_for(client_user)
    review_service.submit_review(db_session, session, project.id, ReviewCreate(rating=4))
    db_session.add(PortfolioItem(project_id=project.id, title="Site", slug="site-1", is_published=True))
    db_session.commit()

    with pytest.raises(ForbiddenError, match="Review is locked"):
        review_service.submit_review(db_session, session, project.id, ReviewCreate(rating=2))


# --- Change requests ---

@pytest.mark.parametrize("amount", [0, -5, "nan", "inf", "-inf", "abc"])
def test_staff_change_request_requires_positive_amount(db_session, client_user, admin_user, make_project, amount):
    project = make_project(client_user)

    with pytest.raises(ValidationFailedError, match="Amount must be greater than 0"):
        change_request_service.create_change_request(
            db_session, session_for(admin_user), project.id, ChangeRequestCreate(title="Extra page", amount=amount)
        )
    assert db_session.query(ChangeRequest).count() == 0


async def test_non_finite_change_request_amounts_are_rejected(
    client, db_session, client_user, admin_auth_headers, make_project
):
    project = make_project(client_user)
    created = await client.post(
        f"/api/v1/projects/{project.id}/changes", json={"title": "Blog", "amount": "inf"}, headers=admin_auth_headers
    )
    assert created.status_code == 400
    assert created.json() == {"detail": "Amount must be greater than 0", "field": "amount"}

    change = ChangeRequest(project_id=project.id, title="Blog", amount=100)
    db_session.add(change)
    db_session.commit()
    updated = await client.patch(
        f"/api/v1/projects/{project.id}/changes/{change.id}", json={"amount": "nan"}, headers=admin_auth_headers
    )

    assert updated.status_code == 422
    db_session.refresh(change)
    assert float(change.amount) == 100


def test_client_change_request_requires_description(db_session, client_user, make_project):
    project = make_project(client_user)

    with pytest.raises(ValidationFailedError, match="Description is required"):
        change_request_service.create_change_request(
            db_session, session_for(client_user), project.id, ChangeRequestCreate(title="Extra page")
        )


def test_client_change_request_amount_is_ignored(db_session, client_user, make_project):
    project = make_project(client_user)

    created = change_request_service.create_change_request(
        db_session, session_for(client_user), project.id,
        ChangeRequestCreate(title="Extra page", description="A pricing page", amount=500),
    )

    assert created.amount == 0
    assert created.status == ChangeRequestStatus.PENDING


def test_change_request_missing_title(db_session, client_user, make_project):
    project = make_project(client_user)

    with pytest.raises(ValidationFailedError, match="Missing fields"):
        change_request_service.create_change_request(
            db_session, session_for(client_user), project.id, ChangeRequestCreate(title="  ", description="x")
        )


async def test_accepting_change_request_bills_it(client, db_session, client_user, client_headers, admin_auth_headers, make_project):
    project = make_project(client_user, total_amount=1000)
    created = await client.post(
        f"/api/v1/projects/{project.id}/changes",
        json={"title": "Blog", "amount": "250"},
        headers=admin_auth_headers,
    )
    assert created.status_code == 200
    change_id = created.json()["id"]

    accepted = await client.post(f"/api/v1/projects/{project.id}/changes/{change_id}/accept", headers=client_headers)
    again = await client.post(f"/api/v1/projects/{project.id}/changes/{change_id}/accept", headers=client_headers)

    assert accepted.status_code == 200
    assert accepted.json()["status"] == "ACCEPTED"
    assert again.status_code == 200
    payments = db_session.query(MilestonePayment).filter_by(change_request_id=change_id).all()
    assert len(payments) == 1
    assert payments[0].label == "Change request: Blog"
    assert payments[0].status == MilestoneStatus.PENDING
    db_session.refresh(project.order)
    assert float(project.order.total_amount) == 1250


# --- Phases ---

async def test_completing_all_phases_delivers_project(client, db_session, client_user, admin_auth_headers, make_project):
    project = make_project(client_user)
    phase_ids = []
    for group in (ProjectStatus.REQUIREMENTS, ProjectStatus.DEV):
        response = await client.post(
            f"/api/v1/projects/{project.id}/phases",
            json={"title": f"{group.value} work", "group": group.value},
            headers=admin_auth_headers,
        )
        assert response.status_code == 200
        phase_ids.append(response.json()["id"])

    await client.patch(
        f"/api/v1/projects/{project.id}/phases/{phase_ids[0]}", json={"status": "COMPLETED"}, headers=admin_auth_headers
    )
    db_session.refresh(project)
    assert project.status == ProjectStatus.DEV

    await client.patch(
        f"/api/v1/projects/{project.id}/phases/{phase_ids[1]}", json={"status": "COMPLETED"}, headers=admin_auth_headers
    )
    db_session.refresh(project)
    assert project.status == ProjectStatus.DELIVERED
    assert project.order.status == OrderStatus.DELIVERED

    portfolio = db_session.query(PortfolioItem).filter_by(project_id=project.id).one()
    assert portfolio.slug == f"website-redesign-{project.id}"
    assert portfolio.is_published is False
    assert db_session.query(AuditLog).filter_by(action="PHASE_STATUS").count() == 2


async def test_client_cannot_create_phase(client, client_user, client_headers, make_project):
    project = make_project(client_user)

    response = await client.post(
        f"/api/v1/projects/{project.id}/phases", json={"title": "x", "group": "DESIGN"}, headers=client_headers
    )

    assert response.status_code == 403


async def test_phase_comment_notifies_staff(client, db_session, client_user, client_headers, make_project, mock_notifications):
    project = make_project(client_user)
    phase = ProjectPhase(project_id=project.id, group=ProjectStatus.REQUIREMENTS, title="Kickoff", status=PhaseStatus.IN_PROGRESS)
    db_session.add(phase)
    db_session.commit()

    response = await client.post(
        f"/api/v1/projects/{project.id}/phases/{phase.id}/comments",
        data={"body": "Looks good"},
        headers=client_headers,
    )

    assert response.status_code == 200
    assert response.json()["body"] == "Looks good"
    mock_notifications.assert_awaited_once()
    assert mock_notifications.call_args.kwargs["subject"] == "New project comment"
    assert "Looks good" in mock_notifications.call_args.kwargs["text"]


async def test_empty_phase_comment_is_rejected(client, db_session, client_user, client_headers, make_project, mock_notifications):
    project = make_project(client_user)
    phase = ProjectPhase(project_id=project.id, group=ProjectStatus.REQUIREMENTS, title="Kickoff")
    db_session.add(phase)
    db_session.commit()

    response = await client.post(
        f"/api/v1/projects/{project.id}/phases/{phase.id}/comments", data={"body": "  "}, headers=client_headers
    )

    assert response.status_code == 400
    assert response.json()["field"] == "body"
    mock_notifications.assert_not_awaited()


async def test_phase_comment_with_attachment_only(client, db_session, client_user, client_headers, make_project, mock_upload):
    project = make_project(client_user)
    phase = ProjectPhase(project_id=project.id, group=ProjectStatus.DESIGN, title="Mockups")
    db_session.add(phase)
    db_session.commit()

    response = await client.post(
        f"/api/v1/projects/{project.id}/phases/{phase.id}/comments",
        files={"file": ("shot.png", b"\x89PNG fake", "image/png")},
        headers=client_headers,
    )

    assert response.status_code == 200
    assert response.json()["body"] == "Attachment"
    assert [a["url"] for a in response.json()["attachments"]] == ["https://cdn.example.com/proof.png"]
    mock_upload.assert_awaited_once()
    comment = db_session.query(PhaseComment).filter_by(phase_id=phase.id).one()
    assert [a.url for a in comment.attachments] == ["https://cdn.example.com/proof.png"]


async def test_phase_comment_ignores_empty_file_part(client, db_session, client_user, client_headers, make_project, mock_upload):
    project = make_project(client_user)
    phase = ProjectPhase(project_id=project.id, group=ProjectStatus.DESIGN, title="Mockups")
    db_session.add(phase)
    db_session.commit()

    response = await client.post(
        f"/api/v1/projects/{project.id}/phases/{phase.id}/comments",
        data={"body": "See notes"},
        files={"file": ("empty.png", b"", "image/png")},
        headers=client_headers,
    )

    assert response.status_code == 200
    assert response.json()["body"] == "See notes"
    assert response.json()["attachments"] == []
    mock_upload.assert_not_awaited()


async def test_comment_on_phase_of_another_project(client, db_session, client_user, client_headers, make_project, mock_notifications):
    project = make_project(client_user)
    other = make_project(client_user)
    phase = ProjectPhase(project_id=other.id, group=ProjectStatus.REQUIREMENTS, title="Kickoff")
    db_session.add(phase)
    db_session.commit()

    response = await client.post(
        f"/api/v1/projects/{project.id}/phases/{phase.id}/comments", data={"body": "Hello"}, headers=client_headers
    )

    assert response.status_code == 404
    assert response.json()["detail"] == "Phase not found"
    assert db_session.query(PhaseComment).count() == 0
    mock_notifications.assert_not_awaited()


# --- Payments ---

async def test_proof_upload_puts_approved_payment_back_under_review(
    client, db_session, client_user, client_headers, make_project, mock_upload
):
    project = make_project(client_user)
    payment = MilestonePayment(project_id=project.id, label="Deposit", amount=300, status=MilestoneStatus.APPROVED)
    db_session.add(payment)
    db_session.commit()

    response = await client.post(
        f"/api/v1/payments/{payment.id}/proof",
        files={"file": ("proof.png", b"\x89PNG fake", "image/png")},
        headers=client_headers,
    )

    assert response.status_code == 200
    assert response.json()["status"] == "UNDER_REVIEW"
    assert response.json()["proof_url"] == "https://cdn.example.com/proof.png"
    mock_upload.assert_awaited_once()
    audit = db_session.query(AuditLog).filter_by(action="UPLOAD_PROOF", target_id=payment.id).one()
    assert audit.data["previous_status"] == "APPROVED"


async def test_payment_review_records_note(client, db_session, client_user, admin_user, admin_auth_headers, make_project):
    project = make_project(client_user)
    payment = MilestonePayment(project_id=project.id, label="Deposit", amount=300, status=MilestoneStatus.UNDER_REVIEW)
    db_session.add(payment)
    db_session.commit()

    response = await client.patch(
        f"/api/v1/payments/{payment.id}",
        json={"status": "APPROVED", "note": "Received"},
        headers=admin_auth_headers,
    )

    assert response.status_code == 200
    assert response.json()["status"] == "APPROVED"
    assert response.json()["reviewed_by"] == admin_user.id
    audit = db_session.query(AuditLog).filter_by(action="PAYMENT_REVIEW").one()
    assert audit.data["note"] == "Received"


async def test_payment_archive_toggle(client, db_session, client_user, admin_auth_headers, make_project):
    project = make_project(client_user)
    payment = MilestonePayment(project_id=project.id, label="Deposit", amount=300, status=MilestoneStatus.PENDING)
    db_session.add(payment)
    db_session.commit()

    archived = await client.patch(f"/api/v1/payments/{payment.id}", json={"archived": True}, headers=admin_auth_headers)
    db_session.refresh(payment)
    assert archived.status_code == 200
    assert archived.json()["archived_at"] is not None
    assert payment.archived_at is not None
    assert payment.status == MilestoneStatus.PENDING
    assert payment.reviewed_by is None

    restored = await client.patch(f"/api/v1/payments/{payment.id}", json={"archived": False}, headers=admin_auth_headers)
    db_session.refresh(payment)
    assert restored.status_code == 200
    assert restored.json()["archived_at"] is None
    assert payment.archived_at is None


async def test_payment_note_without_status_is_not_audited(client, db_session, client_user, admin_auth_headers, make_project):
    project = make_project(client_user)
    payment = MilestonePayment(project_id=project.id, label="Deposit", amount=300, status=MilestoneStatus.UNDER_REVIEW)
    db_session.add(payment)
    db_session.commit()

    response = await client.patch(
        f"/api/v1/payments/{payment.id}", json={"archived": True, "note": "Duplicate upload"}, headers=admin_auth_headers
    )

    assert response.status_code == 200
    assert response.json()["status"] == "UNDER_REVIEW"
    assert db_session.query(AuditLog).filter_by(action="PAYMENT_REVIEW").count() == 0


async def test_payment_review_without_changes(client, admin_auth_headers):
    response = await client.patch("/api/v1/payments/1", json={"note": "only a note"}, headers=admin_auth_headers)

    assert response.status_code == 400
    assert response.json()["detail"] == "Missing update"


async def test_clients_only_see_their_own_payments(client, db_session, client_user, other_client, make_project):
    mine = make_project(client_user)
    theirs = make_project(other_client)
    db_session.add(MilestonePayment(project_id=mine.id, label="Mine", amount=100))
    db_session.add(MilestonePayment(project_id=theirs.id, label="Theirs", amount=100))
    db_session.commit()

    response = await client.get("/api/v1/payments", headers=headers_for(client_user))

    assert response.status_code == 200
    assert [p["label"] for p in response.json()] == ["Mine"]


async def test_requests_without_token_are_unauthorized(client):
    response = await client.get("/api/v1/projects")

    assert response.status_code == 401
    assert response.json() == {"detail": "Unauthorized"}


def test_staff_change_request_without_description(db_session, client_user, admin_user, make_project):
    project = make_project(client_user)

    created = change_request_service.create_change_request(
        db_session, session_for(admin_user), project.id,
        ChangeRequestCreate(title="Extra page", description="   ", amount=25),
    )

    assert created.amount == 25
    assert created.description is None
