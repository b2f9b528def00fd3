"""Shared test fixtures — async DB, client, auth helpers, fake clock.

Uses SQLite + aiosqlite in memory so every test starts from empty tables.
"""

from __future__ import annotations

import os

# Set test settings before any other import touches pydantic-settings
os.environ.setdefault("JWT_SECRET", "test-secret-for-ci-do-not-use-in-production")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

import restapi.auth.models  # noqa: F401
from restapi.auth.models import User
from restapi.auth.service import hash_password
from restapi.config import settings
from restapi.database import Base, get_db
from restapi.main import create_app

TEST_PASSWORD = "TestPass123!"

# ── Test database (SQLite in-memory) ────────────────────────────────

engine = create_async_engine(
    "sqlite+aiosqlite://",
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestSessionFactory = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False,
)


@pytest.fixture(autouse=True)
async def _setup_db():
    """Create all tables before each test, drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Fake clock ──────────────────────────────────────────────────────

class FakeClock:
    """Manually advanced monotonic clock for limiter tests."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ── FastAPI test client ─────────────────────────────────────────────

def build_app(**limiters):
    application = create_app(**limiters)
    application.dependency_overrides[get_db] = _override_get_db
    return application


@pytest.fixture
async def app():
    """Create a fresh app instance (fresh limiters) with DB dependency overridden."""
    application = build_app()
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the test app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ── Database session (for direct DB operations in tests) ────────────

@pytest.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        yield session
        await session.commit()


# ── Model factories ─────────────────────────────────────────────────

@pytest.fixture
async def test_user(db) -> User:
    """Insert a user with password TEST_PASSWORD."""
    user = User(
        username="testuser",
        email="testuser@example.com",
        password_hash=hash_password(TEST_PASSWORD),
    )
    db.add(user)
    await db.commit()
    return user


# ── Auth helpers ────────────────────────────────────────────────────

def make_token(
    user_id: int,
    email: str = "testuser@example.com",
    *,
    expired: bool = False,
    issuer: str | None = None,
    secret: str | None = None,
) -> str:
    """Generate a JWT access token for testing."""
    now = datetime.now(timezone.utc)
    exp = now - timedelta(minutes=5) if expired else now + timedelta(minutes=settings.JWT_EXPIRY_MINUTES)
    payload = {
        "sub": str(user_id),
        "user_id": user_id,
        "email": email,
        "iss": issuer or settings.JWT_ISSUER,
        "iat": now,
        "exp": exp,
    }
    return jwt.encode(payload, secret or settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


@pytest.fixture
def auth_headers(test_user) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(test_user.id, test_user.email)}"}
