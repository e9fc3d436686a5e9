from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest
from sqlalchemy.dialects import postgresql

from copytrip.core.accounts import UserAccount
from copytrip.core.config import Settings
from copytrip.core.db import build_session_factory, get_db_session
from copytrip.core.repositories import QUOTA_SOURCE_TYPES, Repository, TripRepository, UserRepository
from copytrip.models.trip import Trip
from copytrip.models.user import User


def _sql(stmt) -> str:  # noqa: ANN001
    return str(stmt.compile(dialect=postgresql.dialect(), compile_kwargs={"literal_binds": True}))


@pytest.mark.asyncio
async def test_get_db_session_yields_session(monkeypatch: pytest.MonkeyPatch) -> None:
    sentinel = object()

    class _Ctx:
        async def __aenter__(self):
            return sentinel

        async def __aexit__(self, exc_type, exc, tb):  # noqa: ANN001
            return None

    from copytrip.core import db

    monkeypatch.setattr(db, "AsyncSessionLocal", lambda: _Ctx())

    agen = get_db_session()
    value = await agen.__anext__()
    assert value is sentinel

    with pytest.raises(StopAsyncIteration):
        await agen.__anext__()


def test_build_session_factory_uses_configured_database() -> None:
    config = Settings(_env_file=None, database_url="postgresql+asyncpg://trips:secret@db:5433/copytrip_test")

    factory = build_session_factory(config)

    engine = factory.kw["bind"]
    assert engine.url.host == "db"
    assert engine.url.port == 5433
    assert engine.url.database == "copytrip_test"
    assert factory.kw["expire_on_commit"] is False


def test_quota_source_types_are_the_counted_kinds() -> None:
    assert QUOTA_SOURCE_TYPES == ("template", "user_episode_trip")


def test_quota_count_select_filters_owner_and_source_type() -> None:
    user_id = uuid4()
    repo = TripRepository(session=Mock())

    sql = _sql(repo._quota_count_select(user_id))

    assert "count(trips.id)" in sql
    assert "trips.user_id" in sql
    assert str(user_id) in sql
    assert "trips.source_type IS NULL" in sql
    assert "'template'" in sql
    assert "'user_episode_trip'" in sql
    assert "grenselos_episode" not in sql


@pytest.mark.asyncio
async def test_count_quota_trips_coerces_to_int() -> None:
    session = Mock()
    session.scalar = AsyncMock(return_value=3)
    assert await TripRepository(session).count_quota_trips(uuid4()) == 3

    session.scalar = AsyncMock(return_value=None)
    assert await TripRepository(session).count_quota_trips(uuid4()) == 0


@pytest.mark.asyncio
async def test_get_account_maps_row_to_user_account() -> None:
    row = SimpleNamespace(is_admin=None, is_premium=True, free_trip_limit=7)
    session = Mock()
    session.execute = AsyncMock(return_value=SimpleNamespace(one_or_none=lambda: row))

    account = await UserRepository(session).get_account(uuid4())

    assert account == UserAccount(is_admin=False, is_premium=True, free_trip_limit=7)
    session.execute.assert_awaited_once()


@pytest.mark.asyncio
async def test_get_account_returns_none_for_unknown_user() -> None:
    session = Mock()
    session.execute = AsyncMock(return_value=SimpleNamespace(one_or_none=lambda: None))

    assert await UserRepository(session).get_account(uuid4()) is None


def test_repositories_bind_session_and_model() -> None:
    session = Mock()

    assert (UserRepository(session).session, UserRepository(session).model) == (session, User)
    assert (TripRepository(session).session, TripRepository(session).model) == (session, Trip)
    assert not hasattr(Repository, "get")


def test_trip_model_defaults_to_user_created_source() -> None:
    trip = Trip(user_id=uuid4(), title="Lofoten")
    assert trip.source_type is None
    assert Trip.__table__.c.user_id.foreign_keys


def test_models_map_ids_and_timestamps_to_postgres_types() -> None:
    columns = User.__table__.c

    assert isinstance(columns.id.type, postgresql.UUID)
    assert columns.created_at.type.timezone is True
    assert columns.updated_at.onupdate is not None
    assert isinstance(Trip.__table__.c.user_id.type, postgresql.UUID)
