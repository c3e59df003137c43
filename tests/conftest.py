"""Shared test fixtures."""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator

os.environ.setdefault("GAMEPLUG_JWT_SECRET", "test-secret-do-not-use-in-production")
os.environ.setdefault("GAMEPLUG_LOG_FORMAT", "console")

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from gameplug.auth.jwt import create_access_token  # noqa: E402
from gameplug.config import get_settings  # noqa: E402
from gameplug.database import get_session  # noqa: E402
from gameplug.db import models  # noqa: E402, F401
from gameplug.db.base import Base  # noqa: E402
from gameplug.dependencies import get_redis_dep  # noqa: E402
from gameplug.main import create_app  # noqa: E402

get_settings.cache_clear()

TEST_USER_ID = "user-1"
TEST_ADMIN_ID = "admin-1"


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh in-memory SQLite database per test, schema created from the models."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    try:
        yield factory
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def app(session_factory):
    """App wired to the test database, without Redis."""
    application = create_app()

    async def override_get_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    async def override_get_redis() -> AsyncGenerator[None, None]:
        yield None

    application.dependency_overrides[get_session] = override_get_session
    application.dependency_overrides[get_redis_dep] = override_get_redis
    try:
        yield application
    finally:
        application.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Anonymous client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def auth_headers(user_id: str, role: str = "user") -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id, role)}"}


@pytest_asyncio.fixture
async def user_client(app) -> AsyncGenerator[AsyncClient, None]:
    """Client authenticated as a regular user (TEST_USER_ID)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers=auth_headers(TEST_USER_ID),
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def admin_client(app) -> AsyncGenerator[AsyncClient, None]:
    """Client authenticated as an admin (TEST_ADMIN_ID)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers=auth_headers(TEST_ADMIN_ID, role="admin"),
    ) as ac:
        yield ac
