"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Iterator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from gatedchat.config import get_settings
from gatedchat.database import close_db, create_schema, get_session, init_db
from gatedchat.main import create_app
from tests.helpers import ADMIN, FrozenClock, api_register


@pytest.fixture(autouse=True)
def test_settings(tmp_path, monkeypatch) -> Iterator[None]:
    """Point the app at a throwaway SQLite file with no Redis."""
    monkeypatch.setenv("GATEDCHAT_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    monkeypatch.setenv("GATEDCHAT_REDIS_URL", "")
    monkeypatch.setenv("GATEDCHAT_BOOTSTRAP_ADMINS", f'["{ADMIN}"]')
    monkeypatch.setenv("GATEDCHAT_JWT_SECRET", "test-secret-with-enough-bytes-for-hs256")
    monkeypatch.setenv("GATEDCHAT_LOG_FORMAT", "console")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def clock(monkeypatch) -> FrozenClock:
    """Freeze service time; advance it explicitly."""
    frozen = FrozenClock()
    monkeypatch.setattr("gatedchat.clock.now_ns", frozen)
    return frozen


@pytest_asyncio.fixture
async def db_session(clock: FrozenClock) -> AsyncGenerator[AsyncSession, None]:
    """A session on a freshly created schema."""
    await init_db(get_settings().database_url)
    await create_schema()
    async for session in get_session():
        yield session
        await session.close()
        break
    await close_db()


@pytest_asyncio.fixture
async def client(clock: FrozenClock) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against the app with a fresh schema."""
    app = create_app()
    await init_db(get_settings().database_url)
    await create_schema()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await close_db()


@pytest_asyncio.fixture
async def admin_client(client: AsyncClient) -> AsyncClient:
    """Client with the bootstrap admin registered."""
    await api_register(client, ADMIN, "Admin")
    return client
