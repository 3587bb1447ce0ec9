"""
Centralized Test Configuration.
"""

import pytest
from httpx import AsyncClient, ASGITransport
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import Pool, StaticPool

from salary_backend.app.main import app
from salary_backend.app.db.session import get_db, Base
from salary_backend.app.core.security import get_password_hash
from salary_backend.app.models.enums import UserRole
from salary_backend.app.models.user import User
from salary_backend.app.services.cache import CacheService
import salary_backend.app.core.redis_client as redis_client_module

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "admin-password"
EMPLOYEE_EMAIL = "employee@example.com"
EMPLOYEE_PASSWORD = "employee-password"


@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


# Mock Redis for reliability in CI/CD
class MockRedis:
    def __init__(self):
        self.store = {}
        self.unavailable = False

    def _check(self):
        if self.unavailable:
            raise RedisConnectionError("Redis is unavailable")

    async def ping(self):
        self._check()
        return True

    async def get(self, key):
        self._check()
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self._check()
        self.store[key] = value
        return True

    async def setex(self, key, ttl, value):
        self._check()
        self.store[key] = value
        return True

    async def delete(self, key):
        self._check()
        return 1 if self.store.pop(key, None) is not None else 0

    async def exists(self, key):
        self._check()
        return 1 if key in self.store else 0

    async def flushdb(self):
        self.store = {}


@pytest.fixture
async def engine():
    """A fresh in-memory database per test."""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
def redis_client(monkeypatch):
    """Replace the module-level Redis client used by token revocation."""
    fake = MockRedis()
    monkeypatch.setattr(redis_client_module, "redis_client", fake)
    return fake


@pytest.fixture(autouse=True)
async def clear_cache():
    await CacheService.clear()
    yield
    await CacheService.clear()


@pytest.fixture
async def client(session_factory, redis_client):
    """Async client for testing."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides = {}


# Shared session for fixture data creation
@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


async def _create_user(db_session, email, password, role, name):
    user = User(
        email=email,
        name=name,
        hashed_password=get_password_hash(password),
        role=role,
        is_active=True,
    )
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
async def admin_user(db_session):
    return await _create_user(db_session, ADMIN_EMAIL, ADMIN_PASSWORD, UserRole.ADMIN, "Admin")


@pytest.fixture
async def employee_user(db_session):
    return await _create_user(db_session, EMPLOYEE_EMAIL, EMPLOYEE_PASSWORD, UserRole.EMPLOYEE, "Employee")


@pytest.fixture
def login_as(client):
    """Log in through the API and return Authorization headers."""
    async def _login(email, password):
        response = await client.post("/v1/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['access_token']}"}
    return _login


@pytest.fixture
async def admin_headers(login_as, admin_user):
    return await login_as(ADMIN_EMAIL, ADMIN_PASSWORD)


@pytest.fixture
async def employee_headers(login_as, employee_user):
    return await login_as(EMPLOYEE_EMAIL, EMPLOYEE_PASSWORD)
