"""Shared test fixtures for the backend test suite."""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from types import SimpleNamespace

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Ensure models are registered on Base.metadata before table creation
import teamfeed.models  # noqa: F401
from teamfeed.core.database import Base, get_db
from teamfeed.main import app

# ---------------------------------------------------------------------------
# Test database URL
# ---------------------------------------------------------------------------
TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite://")

PASSWORD = "password123"


def _make_engine():
    if TEST_DATABASE_URL.startswith("sqlite"):
        # One shared connection so every session sees the same in-memory database.
        return create_async_engine(
            TEST_DATABASE_URL,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_async_engine(TEST_DATABASE_URL, echo=False)


# ---------------------------------------------------------------------------
# Per-test: fresh schema
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Create all tables for one test and drop them afterwards."""
    engine = _make_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """A session for arranging state directly; commit to make it visible to requests."""
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# HTTP test client
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncClient, None]:
    """Yield an httpx AsyncClient wired to the FastAPI app with test DB.

    Each request gets its own session that commits on success and rolls
    back on error, the same way ``get_db`` behaves in production.
    """

    async def _override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# User helpers
# ---------------------------------------------------------------------------
async def register(client: AsyncClient, name: str, email: str | None = None) -> SimpleNamespace:
    """Register *name* and return ``id``, ``email`` and auth ``headers``."""
    email = email or f"{name}@example.com"
    resp = await client.post(
        "/api/v1/auth/register",
        json={"email": email, "username": name, "password": PASSWORD},
    )
    assert resp.status_code == 201, resp.text
    headers = {"Authorization": f"Bearer {resp.json()['access_token']}"}
    me = await client.get("/api/v1/auth/me", headers=headers)
    assert me.status_code == 200, me.text
    return SimpleNamespace(id=me.json()["id"], email=me.json()["email"], headers=headers)


@pytest_asyncio.fixture
async def make_user(client: AsyncClient):
    async def _make(name: str, email: str | None = None) -> SimpleNamespace:
        return await register(client, name, email)

    return _make


@pytest_asyncio.fixture
async def authenticated_client(client: AsyncClient) -> AsyncClient:
    """Register a test user and return the client with an auth header."""
    user = await register(client, "testuser", "testuser@example.com")
    client.headers.update(user.headers)
    return client


@pytest.fixture
def project_payload() -> dict:
    return {"name": "Launch Plan", "description": "Q3 launch"}
