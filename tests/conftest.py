# tests/conftest.py
import os

# Settings are read at import time
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ.pop("TELEGRAM_BOT_TOKEN", None)

import pytest
from unittest.mock import AsyncMock
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from app.clients.media import UploadResult, media_client
from app.db.base import Base
from app.dependencies import get_db
from app.main import app
from app.models.enums import OrderStatus, ProjectStatus, Role
from app.models.order import Order, Service
from app.models.project import Project
from app.models.user import User
from tests.helpers import headers_for

# In-memory SQLite: fast and isolated. StaticPool keeps one connection for all threads.
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session() -> Session:
    """A clean database for every test."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
async def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# --- Collaborators ---

@pytest.fixture(autouse=True)
def mock_notifications(mocker):
    return mocker.patch(
        "app.bot.services.notification.send_admin_notification", new_callable=AsyncMock, return_value=True
    )


@pytest.fixture
def mock_upload(mocker):
    return mocker.patch.object(
        media_client,
        "upload",
        new=AsyncMock(return_value=UploadResult(url="https://cdn.example.com/proof.png", public_id="agency/proof")),
    )


# --- Users & sessions ---

@pytest.fixture
def make_user(db_session):
    counter = {"n": 0}

    def _make_user(role: Role = Role.CLIENT, email: str | None = None, **fields) -> User:
        counter["n"] += 1
        user = User(
            email=email or f"user{counter['n']}@example.com",
            role=role,
            referral_code=fields.pop("referral_code", f"code{counter['n']}"),
            **fields,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def client_user(make_user) -> User:
    return make_user(Role.CLIENT, email="client@example.com")


@pytest.fixture
def other_client(make_user) -> User:
    return make_user(Role.CLIENT, email="other@example.com")


@pytest.fixture
def admin_user(make_user) -> User:
    return make_user(Role.ADMIN, email="admin@example.com")


@pytest.fixture
def partner_user(make_user) -> User:
    return make_user(Role.PARTNER, email="partner@example.com")


@pytest.fixture
def client_headers(client_user) -> dict:
    return headers_for(client_user)


@pytest.fixture
def admin_auth_headers(admin_user) -> dict:
    return headers_for(admin_user)


# --- Orders & projects ---

@pytest.fixture
def service(db_session) -> Service:
    service = Service(title="Custom project", slug="custom-project", price=1000)
    db_session.add(service)
    db_session.commit()
    db_session.refresh(service)
    return service


@pytest.fixture
def make_project(db_session, service):
    def _make_project(
        owner: User,
        status: ProjectStatus = ProjectStatus.REQUIREMENTS,
        total_amount: float = 1000,
    ) -> Project:
        order = Order(user_id=owner.id, service_id=service.id, total_amount=total_amount, status=OrderStatus.IN_PROGRESS)
        db_session.add(order)
        db_session.flush()
        project = Project(order_id=order.id, title="Website redesign", status=status)
        db_session.add(project)
        db_session.commit()
        db_session.refresh(project)
        return project

    return _make_project
