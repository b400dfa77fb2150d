"""Shared test fixtures.

Every test gets its own SQLite file, HS256 identity tokens signed with a test
secret, and no Redis (rate limiting passes through).
"""

from __future__ import annotations

import time
from collections.abc import AsyncGenerator, Awaitable, Callable, Iterator
from pathlib import Path
from typing import Any

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from teenskill.auth.jwt import reset_keys
from teenskill.config import get_settings
from teenskill.database import close_db, get_engine, get_session_factory, init_db
from teenskill.db.bootstrap import bootstrap_schema
from teenskill.db.models import Task, User
from teenskill.users.service import register_user, update_payment_details

TEST_JWT_SECRET = "teenskill-test-secret-with-at-least-32-bytes"
PARENTAL_CODE = "Kode-1234"


@pytest.fixture(autouse=True)
def _test_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    """Point settings at a throwaway database and a shared-secret identity gateway."""
    monkeypatch.setenv("TSK_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path}/teenskill_test.db")
    monkeypatch.setenv("TSK_REDIS_URL", "")
    monkeypatch.setenv("TSK_IDENTITY_JWT_ALGORITHM", "HS256")
    monkeypatch.setenv("TSK_IDENTITY_JWT_SECRET", TEST_JWT_SECRET)
    monkeypatch.setenv("TSK_IDENTITY_JWT_ISSUER", "")
    monkeypatch.setenv("TSK_SAFETY_API_KEY", "")
    get_settings.cache_clear()
    reset_keys()
    yield
    get_settings.cache_clear()
    reset_keys()


@pytest_asyncio.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    """A session on a freshly bootstrapped database."""
    await init_db(get_settings().database_url)
    await bootstrap_schema(get_engine())
    async with get_session_factory()() as session:
        yield session
    await close_db()


@pytest_asyncio.fixture
async def client(db: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client for the app, sharing the database behind the db fixture."""
    from teenskill.main import create_app

    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def make_token(subject: str, expires_in: int = 3600, **claims: Any) -> str:  # noqa: ANN401
    """Mint an identity session token the way the auth provider would."""
    payload = {"sub": subject, "exp": int(time.time()) + expires_in, **claims}
    return jwt.encode(payload, TEST_JWT_SECRET, algorithm="HS256")


def auth_headers(subject: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(subject)}"}


@pytest.fixture
def token_for() -> Callable[[str], dict[str, str]]:
    """Authorization headers for an identity subject."""
    return auth_headers


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def make_client(db: AsyncSession) -> Callable[..., Awaitable[User]]:
    async def _make(name: str = "Budi Client", age: int = 30) -> User:
        user = await register_user(
            db,
            external_id=f"ext-{name.lower().replace(' ', '-')}",
            name=name,
            username=name.split()[0].lower(),
            role="client",
            age=age,
        )
        await db.commit()
        return user

    return _make


@pytest_asyncio.fixture
async def make_freelancer(db: AsyncSession) -> Callable[..., Awaitable[User]]:
    async def _make(
        name: str = "Sari Freelancer",
        age: int = 15,
        with_payment: bool = True,
        task_quota: int | None = None,
    ) -> User:
        user = await register_user(
            db,
            external_id=f"ext-{name.lower().replace(' ', '-')}",
            name=name,
            username=name.split()[0].lower(),
            role="freelancer",
            age=age,
            parental_code=PARENTAL_CODE,
        )
        if with_payment:
            await update_payment_details(db, user, "DANA", "081234567890")
        if task_quota is not None:
            user.task_quota = task_quota
            await db.flush()
        await db.commit()
        return user

    return _make


@pytest_asyncio.fixture
async def make_task(db: AsyncSession) -> Callable[..., Awaitable[Task]]:
    from teenskill.tasks.service import create_task

    async def _make(
        client: User,
        title: str = "Design a poster",
        description: str = "A4 poster for the school bake sale",
        budget: int = 50000,
    ) -> Task:
        task = await create_task(db, client, title=title, description=description, budget=budget)
        await db.commit()
        return task

    return _make
