from __future__ import annotations

import os
from collections.abc import AsyncIterator, Callable

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# src.api.main reads settings at import time, before fixtures run.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from src import models  # noqa: E402,F401
from src.db.connection import Base  # noqa: E402
from src.db.heartbeat import SchedulerHeartbeat  # noqa: E402,F401
from src.security.web_auth import create_web_access_token  # noqa: E402

SQLITE_URL = "sqlite+aiosqlite:///:memory:"
ADMIN_USER_ID = "admin-1"


@pytest.fixture(autouse=True)
def _default_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URL", SQLITE_URL)
    monkeypatch.setenv("WEB_ACCESS_TOKEN_SECRET", "test-secret")
    monkeypatch.setenv("ADMIN_USER_IDS", ADMIN_USER_ID)
    monkeypatch.setenv("VIABILITY_SWEEP_ENABLED", "false")
    monkeypatch.setenv("OPS_CONSOLE_ENABLED", "false")
    from src.config import get_settings

    get_settings.cache_clear()


def requires_test_db() -> bool:
    test_database_url = os.getenv("TEST_DATABASE_URL")
    return bool(test_database_url and test_database_url.startswith("postgresql+asyncpg://"))


@pytest.fixture(scope="session")
def test_database_url() -> str:
    test_database_url = os.getenv("TEST_DATABASE_URL")
    if not requires_test_db():
        if os.getenv("CI_PARITY") == "1":
            pytest.fail("CI parity mode requires TEST_DATABASE_URL to be set to a Postgres asyncpg URL")
        pytest.skip("TEST_DATABASE_URL not set for postgres integration tests")
    assert test_database_url is not None
    return test_database_url


@pytest.fixture
async def db_session() -> AsyncIterator[AsyncSession]:
    """Fresh schema per test: Postgres when TEST_DATABASE_URL is set, in-memory SQLite otherwise."""
    if requires_test_db():
        engine = create_async_engine(os.environ["TEST_DATABASE_URL"], future=True)
    else:
        engine = create_async_engine(
            SQLITE_URL,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    maker = async_sessionmaker(engine, expire_on_commit=False)
    async with maker() as session:
        yield session
        await session.rollback()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def auth_headers() -> Callable[[str], dict[str, str]]:
    def _headers(user_id: str = "member-1") -> dict[str, str]:
        return {"Authorization": f"Bearer {create_web_access_token(user_id=user_id)}"}

    return _headers


@pytest.fixture
async def api_client(db_session: AsyncSession) -> AsyncIterator[AsyncClient]:
    """ASGI client whose requests share the test database session."""
    from src.api.main import app
    from src.db.connection import get_db

    async def _override_db() -> AsyncIterator[AsyncSession]:
        yield db_session

    app.dependency_overrides[get_db] = _override_db
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            yield client
    finally:
        app.dependency_overrides.pop(get_db, None)
