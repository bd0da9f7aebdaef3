"""Shared test fixtures for the Gigvora API test suite.

Service and router tests run against mocked ``AsyncSession`` objects, so the
suite needs neither PostgreSQL nor Redis.
"""

import uuid
from collections.abc import AsyncGenerator, Iterator
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from gigvora.auth.dependencies import get_current_user
from gigvora.core.config import settings
from gigvora.core.database import get_db
from gigvora.main import app
from gigvora.models.enums import UserType
from gigvora.schemas.auth import CurrentUser

# ── Sample identities ─────────────────────────────────────────────────────

SAMPLE_USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000002")
SAMPLE_WORKSPACE_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")
OTHER_USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000003")
ADMIN_USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000009")

SAMPLE_USER = CurrentUser(
    user_id=SAMPLE_USER_ID,
    user_type=UserType.FREELANCER,
    roles=["freelancer"],
    workspace_id=SAMPLE_WORKSPACE_ID,
)

AGENCY_USER = CurrentUser(
    user_id=SAMPLE_USER_ID,
    user_type=UserType.AGENCY,
    roles=["agency"],
    workspace_id=SAMPLE_WORKSPACE_ID,
)

ADMIN_USER = CurrentUser(
    user_id=ADMIN_USER_ID,
    user_type=UserType.ADMIN,
    roles=["admin"],
)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
def _disable_cache(monkeypatch: pytest.MonkeyPatch) -> None:
    """Route every cached read straight to its loader."""
    monkeypatch.setattr(settings, "CACHE_ENABLED", False)


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient]:
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ── Mock DB helpers ───────────────────────────────────────────────────────


def make_result(
    *,
    one: Any = None,
    items: list[Any] | None = None,
    scalar: Any = None,
) -> MagicMock:
    """Build an ``execute()`` result answering the accessors services use."""
    result = MagicMock()
    result.scalar_one_or_none.return_value = one
    result.scalars.return_value.all.return_value = items or []
    result.scalars.return_value.unique.return_value.all.return_value = items or []
    result.scalar_one.return_value = scalar
    return result


def make_mock_db(*results: MagicMock) -> MagicMock:
    """A session whose ``execute`` returns ``results`` in order."""
    db = MagicMock()  # sync base so .add works
    db.execute = AsyncMock(side_effect=list(results))
    db.commit = AsyncMock()
    db.refresh = AsyncMock()
    db.flush = AsyncMock()
    db.rollback = AsyncMock()
    return db


def added_objects(db: MagicMock, model: type | None = None) -> list[Any]:
    """Objects passed to ``db.add``, optionally filtered by model class."""
    objects = [c.args[0] for c in db.add.call_args_list]
    if model is None:
        return objects
    return [o for o in objects if isinstance(o, model)]


# ── Dependency overrides ──────────────────────────────────────────────────


def _override_auth(user: CurrentUser):
    async def _override():
        return user
    return _override


def _override_db(db: Any):
    async def _override():
        yield db
    return _override


@pytest.fixture
def override_deps() -> Iterator[Any]:
    """Install auth/DB overrides for a test and always clear them afterwards."""

    def _install(user: CurrentUser, db: Any = None) -> None:
        app.dependency_overrides[get_current_user] = _override_auth(user)
        app.dependency_overrides[get_db] = _override_db(db if db is not None else make_mock_db())

    yield _install
    app.dependency_overrides.clear()
