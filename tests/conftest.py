"""Shared test fixtures.

Every test gets its own SQLite database file, so nothing leaks between
tests. Redis is never initialised here: the rate limiter fails open and the
leaderboard cache is skipped.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime, timezone
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from lifescore.auth.jwt import create_access_token
from lifescore.database import close_db, create_schema, get_session, init_db
from lifescore.db.models import User
from lifescore.main import create_app


@pytest_asyncio.fixture
async def database(tmp_path: Path) -> AsyncGenerator[None, None]:
    """Fresh schema in a throwaway SQLite file."""
    await init_db(f"sqlite+aiosqlite:///{tmp_path / 'lifescore-test.db'}")
    await create_schema()
    yield
    await close_db()


@pytest_asyncio.fixture
async def db_session(database: None) -> AsyncGenerator[AsyncSession, None]:
    """A direct database session for service-level tests."""
    sessions = get_session()
    session = await anext(sessions)
    yield session
    await sessions.aclose()


@pytest_asyncio.fixture
async def client(database: None) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client bound to the app (no lifespan: the database is set up above)."""
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def make_user(db_session: AsyncSession) -> Callable[..., Awaitable[User]]:
    """Factory for users inserted straight into the session."""
    counter = {"n": 0}

    async def _make(display_name: str | None = None) -> User:
        counter["n"] += 1
        now = datetime.now(timezone.utc)
        user = User(
            display_name=display_name or f"user{counter['n']}",
            unique_code=f"test-code-{counter['n']}",
            features=[],
            created_at=now,
            updated_at=now,
        )
        db_session.add(user)
        await db_session.flush()
        return user

    return _make


def auth_headers(user_id: int) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


@pytest.fixture
def auth() -> Callable[[int], dict[str, str]]:
    """Bearer headers for a user id."""
    return auth_headers
