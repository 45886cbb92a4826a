'''
Pytest configuration for the FastAPI application.

This file sets up fixtures for:
1. Forcing the application into TEST_MODE before any application code is imported.
2. Providing a fresh in-memory database and session for each test.
3. Providing an async HTTP client bound to the app, sharing that session.
4. Providing instances of all service classes, pre-injected with the test session.
'''

import os

# --- Must run before the application settings are created ---
os.environ["TEST_MODE"] = "True"

import pytest
from typing import AsyncGenerator

from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from tests.constants import TEST_WEBHOOK_SECRET
from tests.database import factories

# --- Application Imports ---
from gym_studio_backend.main import app
from gym_studio_backend.common.config import settings
from gym_studio_backend.database.engine import get_db_session
from gym_studio_backend.database import models as db_models
from gym_studio_backend.services.security import JWTHandler
from gym_studio_backend.services.admin_service import AdminService
from gym_studio_backend.services.client_service import ClientService
from gym_studio_backend.services.auth_service import LoginService
from gym_studio_backend.services.class_service import ClassService
from gym_studio_backend.services.group_service import ClientGroupService
from gym_studio_backend.services.payment_service import PaymentService
from gym_studio_backend.services.webhook_service import IdentityWebhookService
from gym_studio_backend.services.reservation_service import ReservationService


@pytest.fixture(scope="session")
def anyio_backend():
    """
    Override the default 'anyio_backend' fixture.
    1. Forces the backend to 'asyncio' (aiosqlite has no trio support).
    2. Promotes the scope to 'session' (solves 'ScopeMismatch').
    """
    return "asyncio"


# --- 1. Database Fixtures ---

@pytest.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    A brand new in-memory database per test. StaticPool keeps the single
    sqlite connection alive for the whole test.
    """
    assert settings.TEST_MODE is True, \
        "TEST_MODE was not set to True! Check your .env file or environment."

    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(db_models.Base.metadata.create_all)

    session_factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    session = session_factory()
    factories.test_db_session = session
    try:
        yield session
    finally:
        factories.test_db_session = None
        await session.rollback()
        await session.close()
        await engine.dispose()


@pytest.fixture(scope="function")
async def api_client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    httpx client talking to the app in-process. Every request uses the
    test's session, so data created through factories is visible to it.
    """
    async def override_get_db_session() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db_session] = override_get_db_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def webhook_secret(monkeypatch) -> str:
    monkeypatch.setattr(settings, "IDENTITY_WEBHOOK_SECRET", TEST_WEBHOOK_SECRET)
    return TEST_WEBHOOK_SECRET


# --- 2. Service Fixtures ---

@pytest.fixture(scope="function")
def admin_service(db_session: AsyncSession) -> AdminService:
    return AdminService(db=db_session)

@pytest.fixture(scope="function")
def client_service(db_session: AsyncSession) -> ClientService:
    return ClientService(db=db_session)

@pytest.fixture(scope="function")
def login_service(client_service: ClientService) -> LoginService:
    return LoginService(client_service=client_service)

@pytest.fixture(scope="function")
def class_service(db_session: AsyncSession, client_service: ClientService) -> ClassService:
    return ClassService(db=db_session, client_service=client_service)

@pytest.fixture(scope="function")
def group_service(db_session: AsyncSession, client_service: ClientService) -> ClientGroupService:
    return ClientGroupService(db=db_session, client_service=client_service)

@pytest.fixture(scope="function")
def payment_service(db_session: AsyncSession, client_service: ClientService) -> PaymentService:
    return PaymentService(db=db_session, client_service=client_service)

@pytest.fixture(scope="function")
def webhook_service(db_session: AsyncSession, admin_service: AdminService) -> IdentityWebhookService:
    return IdentityWebhookService(db=db_session, admin_service=admin_service)

@pytest.fixture(scope="function")
def reservation_service(db_session: AsyncSession) -> ReservationService:
    return ReservationService(db=db_session)


# --- 3. Data Fixtures ---

@pytest.fixture(scope="function")
async def test_admin_orm(db_session: AsyncSession) -> db_models.Admins:
    """An active, normal (non-super) admin."""
    admin = factories.AdminFactory(name="Jordan Coach", email="coach@gymstudio.com")
    await db_session.flush()
    return admin

@pytest.fixture(scope="function")
async def test_super_admin_orm(db_session: AsyncSession) -> db_models.Admins:
    admin = factories.AdminFactory(name="Sam Owner", email="owner@gymstudio.com", super_admin=True)
    await db_session.flush()
    return admin

@pytest.fixture(scope="function")
async def test_client_orm(db_session: AsyncSession) -> db_models.Clients:
    client = factories.ClientFactory(name="Alex Member", username="alex")
    await db_session.flush()
    return client


# --- 4. Auth Fixtures ---

@pytest.fixture(scope="function")
def admin_headers(test_admin_orm: db_models.Admins) -> dict:
    """Admin tokens carry the external identity id."""
    token = JWTHandler.create_access_token(subject=test_admin_orm.external_id)
    return {"Authorization": f"Bearer {token}"}

@pytest.fixture(scope="function")
def super_admin_headers(test_super_admin_orm: db_models.Admins) -> dict:
    token = JWTHandler.create_access_token(subject=test_super_admin_orm.external_id)
    return {"Authorization": f"Bearer {token}"}

@pytest.fixture(scope="function")
def client_headers(test_client_orm: db_models.Clients) -> dict:
    """Member tokens carry the client id."""
    token = JWTHandler.create_access_token(subject=str(test_client_orm.id))
    return {"Authorization": f"Bearer {token}"}
