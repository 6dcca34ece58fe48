# tests/v1/test_quotes.py
from datetime import timedelta
from urllib.parse import parse_qs, urlparse

import pytest
from jose import jwt

from app.core.config import settings
from app.core.exceptions import StateConflictError
from app.core.security import hash_token
from app.models.audit import AuditLog, MagicLoginToken
from app.models.enums import CustomRequestStatus, MilestoneStatus, QuoteStatus, Role
from app.models.order import CustomProjectRequest, Order
from app.models.payment import MilestonePayment
from app.models.project import Project, ProjectPhase
from app.models.quote import Quote
from app.models.referral import ReferralTracking
from app.models.user import User
from app.services import magic_login as magic_login_service
from app.services import quote as quote_service
from app.utils.date_utils import utcnow
from tests.helpers import headers_for, session_for


PLAN = {
    "project_title": "Shop launch",
    "phases": [
        {"key": "brief", "group": "REQUIREMENTS", "title": "Brief"},
        {"key": "build", "group": "DEV", "title": "Build", "due_date": "2030-01-15T00:00:00Z"},
    ],
    "paymentSchedule": [
        {"label": "Deposit", "amount": 600},
        {"amount": 1400, "before_phase_key": "build"},
    ],
}


def _token_from(link: str) -> str:
    return parse_qs(urlparse(link).query)["token"][0]


@pytest.fixture
def custom_request(db_session) -> CustomProjectRequest:
    request = CustomProjectRequest(full_name="Jane Doe", email="Jane@Example.com", project_type="shop")
    db_session.add(request)
    db_session.commit()
    db_session.refresh(request)
    return request


@pytest.fixture
async def sent_quote(client, admin_auth_headers, custom_request, service):
    created = await client.post(
        f"/api/v1/custom-requests/{custom_request.id}/quotes",
        json={"amount": 2000, "scope": "Online shop", "plan": PLAN},
        headers=admin_auth_headers,
    )
    assert created.status_code == 200
    sent = await client.post(f"/api/v1/quotes/{created.json()['id']}/send", headers=admin_auth_headers)
    assert sent.status_code == 200
    return sent.json()


async def test_custom_request_is_public_and_notifies(client, mock_notifications):
    response = await client.post(
        "/api/v1/custom-requests",
        json={"full_name": "Sam Roe", "email": "sam@example.com", "details": "A landing page"},
    )

    assert response.status_code == 200
    assert response.json()["status"] == "NEW"
    mock_notifications.assert_awaited_once()


async def test_send_quote_issues_magic_link(db_session, sent_quote, custom_request):
    quote = db_session.get(Quote, sent_quote["quote"]["id"])

    assert sent_quote["quote"]["status"] == "SENT"
    assert sent_quote["magic_link"].startswith("http://localhost:3000/magic/quote?token=")
    assert quote.magic_token == hash_token(_token_from(sent_quote["magic_link"]))
    assert db_session.query(AuditLog).filter_by(action="QUOTE_SENT", target_id=quote.id).count() == 1
    db_session.refresh(custom_request)
    assert custom_request.status == CustomRequestStatus.QUOTED


def test_send_quote_rolls_back_when_audit_fails(db_session, admin_user, custom_request, mocker):
    quote = Quote(custom_request_id=custom_request.id, amount=100, status=QuoteStatus.DRAFT)
    db_session.add(quote)
    db_session.commit()
    mocker.patch("app.services.quote.crud_audit.create_audit_log", side_effect=RuntimeError("db down"))

    with pytest.raises(RuntimeError):
        quote_service.send_quote(db_session, session_for(admin_user), quote.id)

    db_session.expire_all()
    stored = db_session.get(Quote, quote.id)
    assert stored.status == QuoteStatus.DRAFT
    assert stored.magic_token is None
    assert db_session.query(AuditLog).count() == 0


async def test_view_quote_by_token(client, sent_quote):
    token = _token_from(sent_quote["magic_link"])

    response = await client.post("/api/v1/quotes/magic/view", json={"token": token})
    invalid = await client.post("/api/v1/quotes/magic/view", json={"token": "nope"})

    assert response.status_code == 200
    assert response.json()["plan"]["project_title"] == "Shop launch"
    assert invalid.status_code == 400
    assert invalid.json()["detail"] == "Invalid or expired token"


async def test_accept_quote_by_token_creates_order_and_project(client, db_session, sent_quote, mock_notifications):
    token = _token_from(sent_quote["magic_link"])

    response = await client.post("/api/v1/quotes/accept", json={"token": token})

    assert response.status_code == 200
    result = response.json()
    assert result["magic_link"].startswith("http://localhost:3000/magic/order?token=")

    user = db_session.query(User).filter_by(email="jane@example.com").one()
    assert user.role == Role.CLIENT
    assert user.password_hash is None

    order = db_session.get(Order, result["order_id"])
    assert order.user_id == user.id
    assert float(order.total_amount) == 2000

    project = db_session.get(Project, result["project_id"])
    assert project.title == "Shop launch"
    phases = db_session.query(ProjectPhase).filter_by(project_id=project.id).order_by(ProjectPhase.sort_order).all()
    assert [p.title for p in phases] == ["Brief", "Build"]

    payments = db_session.query(MilestonePayment).filter_by(project_id=project.id).order_by(MilestonePayment.id).all()
    assert [p.label for p in payments] == ["Deposit", "Payment 2"]
    assert all(p.status == MilestoneStatus.PENDING for p in payments)
    assert payments[1].gate_phase_id == phases[1].id
    assert payments[1].due_date is not None

    quote = db_session.get(Quote, result["quote_id"])
    assert quote.status == QuoteStatus.ACCEPTED
    assert quote.magic_token.startswith("used:")
    assert quote.custom_request.status == CustomRequestStatus.CONVERTED_TO_ORDER

    actions = {a.action for a in db_session.query(AuditLog).all()}
    assert {"QUOTE_ACCEPTED", "USER_ACTIVATED", "PROJECT_PLAN", "MAGIC_LOGIN"} <= actions
    mock_notifications.assert_awaited_once()
    assert mock_notifications.call_args.kwargs["subject"] == "Quote accepted"

    again = await client.post("/api/v1/quotes/accept", json={"token": token})
    assert again.status_code == 404


async def test_accept_quote_with_referral_code(client, db_session, make_user, sent_quote):
    partner = make_user(Role.PARTNER, referral_code="ref-partner")
    token = _token_from(sent_quote["magic_link"])

    response = await client.post("/api/v1/quotes/accept", json={"token": token, "referral_code": "ref-partner"})

    assert response.status_code == 200
    trackings = db_session.query(ReferralTracking).filter_by(referrer_id=partner.id).all()
    assert len(trackings) == 2
    earned = [t for t in trackings if t.order_id == response.json()["order_id"]]
    assert float(earned[0].commission_amount) == 200


async def test_accept_requires_session_or_token(client, sent_quote):
    response = await client.post("/api/v1/quotes/accept", json={"quote_id": sent_quote["quote"]["id"]})

    assert response.status_code == 401


async def test_other_client_cannot_accept_by_id(client, db_session, other_client, sent_quote):
    response = await client.post(
        "/api/v1/quotes/accept", json={"quote_id": sent_quote["quote"]["id"]}, headers=headers_for(other_client)
    )

    assert response.status_code == 403


async def test_expired_quote_cannot_be_accepted(client, db_session, sent_quote):
    quote = db_session.get(Quote, sent_quote["quote"]["id"])
    quote.expires_at = utcnow() - timedelta(minutes=1)
    db_session.commit()

    response = await client.post("/api/v1/quotes/accept", json={"token": _token_from(sent_quote["magic_link"])})

    assert response.status_code == 400
    assert response.json()["detail"] == "Quote expired"


async def test_reject_quote_by_token(client, db_session, sent_quote):
    token = _token_from(sent_quote["magic_link"])

    response = await client.post("/api/v1/quotes/reject", json={"token": token, "reason": "Too expensive"})

    assert response.status_code == 200
    assert response.json()["status"] == "REJECTED"
    audit = db_session.query(AuditLog).filter_by(action="QUOTE_REJECTED").one()
    assert audit.data["reason"] == "Too expensive"
    assert audit.data["previous_status"] == "SENT"


async def test_magic_login_token_lifecycle(client, db_session, sent_quote):
    accepted = await client.post("/api/v1/quotes/accept", json={"token": _token_from(sent_quote["magic_link"])})
    login_token = _token_from(accepted.json()["magic_link"])

    valid = await client.post("/api/v1/magic/login/validate", json={"token": login_token})
    assert valid.status_code == 200
    assert valid.json()["email"] == "jane@example.com"
    assert valid.json()["target_type"] == "PROJECT"
    assert valid.json()["target_id"] == accepted.json()["project_id"]
    assert valid.json()["has_password"] is False

    record = db_session.query(MagicLoginToken).one()
    record.used_at = utcnow()
    db_session.commit()
    used = await client.post("/api/v1/magic/login/validate", json={"token": login_token})
    assert used.json()["detail"] == "Token already used"


@pytest.mark.parametrize("token, message", [("", "Token is required"), ("unknown", "Invalid or expired token")])
async def test_magic_login_validation_errors(client, token, message):
    response = await client.post("/api/v1/magic/login/validate", json={"token": token})

    assert response.status_code == 400
    assert response.json()["detail"] == message


def test_expired_magic_login_token(db_session, client_user):
    token = magic_login_service.create_magic_login_token(
        db_session, client_user.id, client_user.email, "PROJECT", None
    )
    record = db_session.query(MagicLoginToken).one()
    record.expires_at = utcnow() - timedelta(seconds=1)
    db_session.commit()

    with pytest.raises(StateConflictError, match="Token expired"):
        magic_login_service.validate_magic_login_token(db_session, token)


async def test_magic_login_token_signs_in_once(client, db_session, sent_quote):
    accepted = await client.post("/api/v1/quotes/accept", json={"token": _token_from(sent_quote["magic_link"])})
    login_token = _token_from(accepted.json()["magic_link"])

    first = await client.post("/api/v1/auth/magic-login", json={"token": login_token})
    second = await client.post("/api/v1/auth/magic-login", json={"token": login_token})

    assert first.status_code == 200
    user = db_session.query(User).filter_by(email="jane@example.com").one()
    payload = jwt.decode(first.json()["access_token"], settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    assert payload["sub"] == str(user.id)
    record = db_session.query(MagicLoginToken).one()
    db_session.refresh(record)
    assert record.used_at is not None
    assert second.status_code == 400
    assert second.json()["detail"] == "Token already used"


def test_redeemed_magic_login_token_is_rejected(db_session, client_user):
    token = magic_login_service.create_magic_login_token(
        db_session, client_user.id, client_user.email, "PROJECT", None
    )
    db_session.commit()

    assert magic_login_service.redeem_magic_login_token(db_session, token).id == client_user.id
    db_session.commit()
    with pytest.raises(StateConflictError, match="Token already used"):
        magic_login_service.redeem_magic_login_token(db_session, token)


async def test_quote_token_signs_in_client(client, db_session, sent_quote, custom_request):
    token = _token_from(sent_quote["magic_link"])

    response = await client.post("/api/v1/auth/magic-login", json={"token": token, "email": "JANE@example.com"})
    again = await client.post("/api/v1/auth/magic-login", json={"token": token})

    assert response.status_code == 200
    user = db_session.query(User).filter_by(email="jane@example.com").one()
    assert user.role == Role.CLIENT
    assert user.password_hash is None
    db_session.refresh(custom_request)
    assert custom_request.user_id == user.id
    quote = db_session.get(Quote, sent_quote["quote"]["id"])
    db_session.refresh(quote)
    assert quote.magic_token == f"used:{hash_token(token)}"
    assert quote.status == QuoteStatus.SENT
    assert again.status_code == 400
    assert again.json()["detail"] == "Token already used"


async def test_quote_token_with_other_email_is_rejected(client, db_session, sent_quote):
    response = await client.post(
        "/api/v1/auth/magic-login",
        json={"token": _token_from(sent_quote["magic_link"]), "email": "someone@example.com"},
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid or expired token"
    assert db_session.query(User).filter_by(email="jane@example.com").count() == 0
