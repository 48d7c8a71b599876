"""
Pytest configuration and shared fixtures for all tests.

This file is automatically loaded by pytest and provides:
- Test environment defaults (set before any settings are loaded)
- User and booking factories
- HTTP client fixtures with authentication overrides
- Redis mock
- Database session mock
"""

import os

os.environ.setdefault("JWT_SECRET", "test-secret-key-that-is-at-least-32-characters-long")
os.environ.setdefault("SEED_CATALOG_ON_STARTUP", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import uuid
from contextlib import asynccontextmanager, nullcontext
from datetime import UTC, date, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import ASGITransport, AsyncClient

from database.models import Booking, User


# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_logging():
    """Reduce noise from third-party loggers."""
    import logging

    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# =============================================================================
# FACTORIES
# =============================================================================


@pytest.fixture
def make_user():
    """Build an in-memory User (not persisted)."""

    def _make_user(role: str = "customer", **kwargs) -> User:
        now = datetime(2025, 1, 1, tzinfo=UTC)
        values = dict(
            id=uuid.uuid4(),
            email=f"{role}-{uuid.uuid4().hex[:6]}@example.com",
            password_hash="x",
            display_name=role.title(),
            role=role,
            is_active=True,
            is_verified=True,
            created_at=now,
            updated_at=now,
        )
        values.update(kwargs)
        return User(**values)

    return _make_user


@pytest.fixture
def make_booking():
    """Build an in-memory Booking for 10-12 March 2025 at RD$1,500/day."""

    def _make_booking(status: str = "pending", **kwargs) -> Booking:
        now = datetime(2025, 3, 1, 12, 0, tzinfo=UTC)
        values = dict(
            id=uuid.uuid4(),
            motorcycle_id=uuid.uuid4(),
            user_id=uuid.uuid4(),
            owner_id=uuid.uuid4(),
            start_date=date(2025, 3, 10),
            end_date=date(2025, 3, 12),
            total_days=3,
            daily_rate=Decimal("1500.00"),
            total_price=Decimal("4500.00"),
            deposit=None,
            status=status,
            customer_name="Ana Pérez",
            customer_email="ana@example.com",
            customer_phone="+18095551234",
            pickup_location=None,
            dropoff_location=None,
            notes=None,
            cancellation_reason=None,
            confirmed_at=None,
            cancelled_at=None,
            created_at=now,
            updated_at=now,
        )
        values.update(kwargs)
        return Booking(**values)

    return _make_booking


# =============================================================================
# REDIS & RATE LIMITS
# =============================================================================


@pytest.fixture
def mock_redis():
    """Redis client whose reads miss and writes succeed."""
    client = AsyncMock()
    client.get.return_value = None
    with patch("api.routes.auth.get_redis_client", return_value=client), \
         patch("shared.redis_client.get_redis_client", return_value=client):
        yield client


@pytest.fixture(autouse=True)
def reset_rate_limits():
    from api.middleware.rate_limit import get_rate_limiter

    get_rate_limiter().clear_all()
    yield
    get_rate_limiter().clear_all()


# =============================================================================
# HTTP CLIENT
# =============================================================================


@pytest.fixture
def app():
    from api.main import app as fastapi_app

    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
async def client(app):
    """Anonymous test client (lifespan events are not run)."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def login_as(app):
    """Authenticate every request as the given user."""
    from api.routes.auth import get_current_user

    def _login_as(user: User) -> User:
        app.dependency_overrides[get_current_user] = lambda: user
        return user

    return _login_as


# =============================================================================
# DATABASE SESSION
# =============================================================================


@pytest.fixture
def fake_session():
    """
    Replace `get_async_session` in a module with an AsyncMock session.

    Savepoints (`begin_nested`) are plain context managers, so an error
    raised inside one propagates exactly as with a real SAVEPOINT.
    """
    patches = []

    def _fake_session(module: str) -> AsyncMock:
        session = AsyncMock()
        session.add = MagicMock()
        session.begin_nested = MagicMock(side_effect=lambda: nullcontext())

        @asynccontextmanager
        async def _get_async_session():
            yield session

        patcher = patch(f"{module}.get_async_session", _get_async_session)
        patcher.start()
        patches.append(patcher)
        return session

    yield _fake_session

    for patcher in patches:
        patcher.stop()
