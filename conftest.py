import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import inspect
from datetime import date

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import portal_api.models  # noqa: F401
from portal_api.main import app
from portal_api.core import redis as redis_module
from portal_api.db.session import get_db, get_session_factory
from portal_api.models.base import Base
from portal_api.models.lead import Lead
from portal_api.models.user import User
from portal_api.core.security import create_access_token, hash_password
from portal_api.core.config import settings
from portal_api.core.enums import LeadStatus, ServiceCategory, UserRole
from portal_api.services.session_registry import ConversionSessionRegistry, get_session_registry


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FakeRedis:
    """Dict-backed stand-in for the handful of redis.asyncio calls the app makes"""

    def __init__(self):
        self.store = {}

    async def ping(self):
        return True

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = value if isinstance(value, bytes) else str(value).encode()

    async def incr(self, key):
        value = int(self.store.get(key, b"0")) + 1
        self.store[key] = str(value).encode()
        return value

    async def delete(self, key):
        self.store.pop(key, None)


@pytest.fixture
async def session_factory():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def fake_redis(monkeypatch):
    fake = FakeRedis()
    monkeypatch.setattr(redis_module, "redis", fake)
    return fake


@pytest.fixture
def registry():
    return ConversionSessionRegistry(ttl_seconds=settings.CONVERSION_SESSION_TTL)


@pytest.fixture
async def test_client(session_factory, fake_redis, registry):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_session_registry] = lambda: registry

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


async def _create_user(session_factory, email, password, role, customer_id=None):
    async with session_factory() as db:
        user = User(
            email=email,
            password_hash=hash_password(password),
            role=role,
            customer_id=customer_id,
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)
        return user


@pytest.fixture
async def admin_user(session_factory):
    return await _create_user(session_factory, "operator@agency.example.com", "operator-pass", UserRole.ADMIN)


@pytest.fixture
async def admin_user_2(session_factory):
    return await _create_user(session_factory, "second@agency.example.com", "operator-pass", UserRole.ADMIN)


@pytest.fixture
def admin_token(admin_user):
    return create_access_token(str(admin_user.id), UserRole.ADMIN)


@pytest.fixture
def admin_headers(admin_token):
    return {"Authorization": f"Bearer {admin_token}"}


@pytest.fixture
def admin_headers_2(admin_user_2):
    return {"Authorization": f"Bearer {create_access_token(str(admin_user_2.id), UserRole.ADMIN)}"}


@pytest.fixture
async def customer_headers(session_factory):
    user = await _create_user(session_factory, "portal@customer.example.com", "portal-pass", UserRole.CUSTOMER)
    return {"Authorization": f"Bearer {create_access_token(str(user.id), UserRole.CUSTOMER)}"}


@pytest.fixture
def create_lead_factory(session_factory):
    async def _create_lead(**kwargs):
        data = {
            "first_name": "Ada",
            "last_name": "Lovelace",
            "email": "a@b.com",
            "company": "Acme",
            "service_category": ServiceCategory.LANDING_PAGE,
            "description": "A landing page for the spring launch campaign",
            "status": LeadStatus.QUALIFIED,
        }
        data.update(kwargs)
        async with session_factory() as db:
            lead = Lead(**data)
            db.add(lead)
            await db.commit()
            await db.refresh(lead)
            return lead

    return _create_lead


@pytest.fixture
def valid_engagement_data():
    return {
        "title": "Landing page build – Acme",
        "description": "A landing page for the spring launch campaign",
        "start_date": date(2026, 11, 2).isoformat(),
        "target_end_date": date(2026, 12, 18).isoformat(),
        "budget": 4500,
    }


@pytest.fixture
def valid_credential_data():
    return {
        "email": "a@b.com",
        "password": "Xk9#mQ2pLz8!",
        "confirm_password": "Xk9#mQ2pLz8!",
    }


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
    config.addinivalue_line(
        "markers", "auth: marks tests related to authentication"
    )
    config.addinivalue_line(
        "markers", "conversion: marks tests related to the lead conversion pipeline"
    )
    config.addinivalue_line(
        "markers", "idempotency: marks tests related to idempotency"
    )
    config.addinivalue_line(
        "markers", "audit: marks tests related to audit logging"
    )


def pytest_collection_modifyitems(config, items):
    """
    Modify test collection to handle asyncio tests
    """
    for item in items:
        if inspect.iscoroutinefunction(getattr(item, "function", None)):
            item.add_marker(pytest.mark.asyncio)
