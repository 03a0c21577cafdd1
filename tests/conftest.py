"""
Day Planner Backend — Test Configuration (conftest.py)
=======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── mock_db_session: Mock database session (no real DB needed)
    ├── scalar_result:   Builds mock query results for mock_db_session.execute
    ├── fake_redis:      AsyncMock standing in for redis.asyncio.Redis
    ├── sample_user:     ORM User instance with a real bcrypt hash
    ├── sample_session:  The cached-session dict for sample_user
    └── test_client:     HTTPX AsyncClient for API endpoint testing
"""

import os

# Override settings for testing BEFORE any dayplanner imports: the settings
# singleton and the tenacity decorators read these at import time
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["REDIS_URL"] = "redis://localhost:6379/15"
os.environ["ENVIRONMENT"] = "test"
os.environ["ACTIVATION_SECRET"] = "test-activation-secret"
os.environ["ACCESS_TOKEN_SECRET"] = "test-access-secret"
os.environ["REFRESH_TOKEN_SECRET"] = "test-refresh-secret"
os.environ["SANITY_PROJECT_ID"] = "testproj"
os.environ["SANITY_DATASET"] = "production"
os.environ["SANITY_API_TOKEN"] = "test-sanity-token"
os.environ["FRONTEND_URL"] = "http://localhost:3000/"
os.environ["REMINDER_JOB_TOKEN"] = ""
os.environ["RETRY_MIN_WAIT"] = "0"
os.environ["RETRY_MAX_WAIT"] = "1"
os.environ["LOG_LEVEL"] = "WARNING"  # Reduce noise during tests

import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from dayplanner.models.user import User
from dayplanner.schemas.user import UserPublic
from dayplanner.security import hash_password

SAMPLE_PASSWORD = "Str0ng!Pass"


# ══════════════════════════════════════════════════════════════════════════
# Function-Scoped Fixtures (created fresh for each test)
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    Usage:
        async def test_lookup(mock_db_session, scalar_result):
            mock_db_session.execute.return_value = scalar_result(user)
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def scalar_result():
    """Factory for a mock Result whose scalar_one_or_none() returns the given value."""
    def _make(value):
        result = MagicMock()
        result.scalar_one_or_none.return_value = value
        return result
    return _make


@pytest.fixture
def fake_redis():
    client = AsyncMock()
    client.get = AsyncMock(return_value=None)
    client.set = AsyncMock(return_value=True)
    client.delete = AsyncMock(return_value=1)
    client.ping = AsyncMock(return_value=True)
    return client


@pytest.fixture
def sample_password():
    return SAMPLE_PASSWORD


@pytest.fixture
def sample_user():
    now = datetime.now(timezone.utc)
    return User(
        id=uuid.uuid4(),
        name="Ada Lovelace",
        email="ada@example.com",
        password_hash=hash_password(SAMPLE_PASSWORD),
        role="user",
        is_verified=True,
        created_at=now,
        updated_at=now,
    )


@pytest.fixture
def sample_session(sample_user):
    return UserPublic.model_validate(sample_user).model_dump(mode="json")


@pytest_asyncio.fixture
async def test_client():
    """
    Provides an async HTTP test client for endpoint testing.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
    """
    from dayplanner.database import get_db_session
    from dayplanner.main import app

    async def override_db():
        yield AsyncMock()

    app.dependency_overrides[get_db_session] = override_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
