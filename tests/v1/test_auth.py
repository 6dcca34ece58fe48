# tests/v1/test_auth.py
from jose import jwt

from app.core.config import settings
from app.core.security import hash_password
from app.models.enums import Role
from app.models.referral import ReferralTracking
from app.models.user import User


async def test_register_returns_token_with_role(client, db_session):
    response = await client.post(
        "/api/v1/auth/register", json={"email": "New@Example.com", "password": "secret1", "name": "New"}
    )

    assert response.status_code == 200
    payload = jwt.decode(response.json()["access_token"], settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    user = db_session.query(User).filter_by(email="new@example.com").one()
    assert payload["sub"] == str(user.id)
    assert payload["role"] == "CLIENT"
    assert user.referral_code


async def test_register_with_referral_code_tracks_signup(client, db_session, make_user):
    partner = make_user(Role.PARTNER, referral_code="friend")

    response = await client.post(
        "/api/v1/auth/register",
        json={"email": "invited@example.com", "password": "secret1", "referral_code": "friend"},
    )

    assert response.status_code == 200
    invited = db_session.query(User).filter_by(email="invited@example.com").one()
    assert invited.referred_by_id == partner.id
    rows = db_session.query(ReferralTracking).filter_by(referrer_id=partner.id).all()
    assert len(rows) == 1
    assert rows[0].order_id is None


async def test_register_rejects_short_password(client):
    response = await client.post("/api/v1/auth/register", json={"email": "a@example.com", "password": "123"})

    assert response.status_code == 400
    assert response.json() == {"detail": "Password must be at least 6 characters", "field": "password"}


async def test_register_rejects_taken_email(client, make_user):
    make_user(email="taken@example.com", password_hash=hash_password("secret1"))

    response = await client.post("/api/v1/auth/register", json={"email": "taken@example.com", "password": "secret1"})

    assert response.status_code == 400
    assert response.json()["detail"] == "Email already registered"


async def test_register_activates_passwordless_account(client, db_session, make_user):
    existing = make_user(email="quote@example.com")

    response = await client.post("/api/v1/auth/register", json={"email": "quote@example.com", "password": "secret1"})

    assert response.status_code == 200
    db_session.refresh(existing)
    assert existing.password_hash is not None
    assert db_session.query(User).filter_by(email="quote@example.com").count() == 1


async def test_login(client, make_user):
    make_user(email="login@example.com", password_hash=hash_password("secret1"))

    ok = await client.post("/api/v1/auth/login", json={"email": "LOGIN@example.com", "password": "secret1"})
    wrong = await client.post("/api/v1/auth/login", json={"email": "login@example.com", "password": "nope"})

    assert ok.status_code == 200
    assert ok.json()["token_type"] == "bearer"
    assert wrong.status_code == 401
    assert wrong.json()["detail"] == "Invalid email or password"


async def test_me_with_invalid_token(client):
    response = await client.get("/api/v1/users/me", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401


async def test_me(client, client_user, client_headers):
    response = await client.get("/api/v1/users/me", headers=client_headers)

    assert response.status_code == 200
    assert response.json()["email"] == client_user.email
    assert response.json()["role"] == "CLIENT"
