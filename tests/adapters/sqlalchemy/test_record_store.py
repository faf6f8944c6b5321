from __future__ import annotations

import asyncio
import itertools
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import select

from fitsync.adapters.sqlalchemy import (
    SqlAlchemyRecordStore,
    SyncStateCodec,
    UserRecordCodec,
    record_table,
)
from fitsync.domain.errors import RecordConflictError, RecordNotFoundError
from fitsync.domain.model import (
    ImportState,
    PlatformSyncState,
    RevokeReason,
    UserRecord,
)
from fitsync.domain.resolvers import resolve_conflict_default
from fitsync.domain.versioned_update import update_with_resolution
from tests.helpers.records import GOOGLE_FIT, make_user

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine


def _users(engine: Engine) -> SqlAlchemyRecordStore[UserRecord]:
    counter = itertools.count(1)
    return SqlAlchemyRecordStore(
        engine,
        partition="Users",
        codec=UserRecordCodec(),
        version_factory=lambda: f"v{next(counter)}",
    )


def test_insert_and_get_round_trip_user(sqlite_engine: Engine) -> None:
    store = _users(sqlite_engine)
    user = make_user("u1", last_touched=datetime(2024, 1, 2, 3, 4, tzinfo=UTC))
    info = user.platforms[GOOGLE_FIT]
    info.revoked_reason = RevokeReason.USER_INITIATED
    info.revoked_at = datetime(2024, 1, 1, tzinfo=UTC)

    async def scenario() -> tuple[UserRecord, UserRecord]:
        inserted = await store.insert(user)
        return inserted, await store.get("u1")

    inserted, loaded = asyncio.run(scenario())

    assert inserted.version == "v1"
    assert loaded == inserted
    assert loaded.platforms[GOOGLE_FIT].revoked_at == datetime(2024, 1, 1, tzinfo=UTC)


def test_payload_uses_camel_case_keys(sqlite_engine: Engine) -> None:
    store = _users(sqlite_engine)
    asyncio.run(store.insert(make_user("u1")))

    with sqlite_engine.connect() as connection:
        payload = connection.execute(select(record_table.c.payload)).scalar_one()

    assert payload["platforms"][0]["platformUserId"] == "ext-u1"
    assert payload["platforms"][0]["importState"] == "ReadyToImport"
    assert payload["lastTouched"] is None


def test_duplicate_insert_conflicts(sqlite_engine: Engine) -> None:
    store = _users(sqlite_engine)
    asyncio.run(store.insert(make_user("u1")))

    with pytest.raises(RecordConflictError):
        asyncio.run(store.insert(make_user("u1")))


def test_update_with_stale_version_conflicts(sqlite_engine: Engine) -> None:
    store = _users(sqlite_engine)

    async def scenario() -> None:
        original = await store.insert(make_user("u1"))
        first = original.copy()
        first.set_import_state(GOOGLE_FIT, ImportState.QUEUED)
        await store.update(first)
        stale = original.copy()
        stale.set_import_state(GOOGLE_FIT, ImportState.UNAUTHORIZED)
        await store.update(stale)

    with pytest.raises(RecordConflictError) as excinfo:
        asyncio.run(scenario())

    assert excinfo.value.expected_version == "v1"


def test_update_of_missing_record_is_not_found(sqlite_engine: Engine) -> None:
    store = _users(sqlite_engine)

    with pytest.raises(RecordNotFoundError):
        asyncio.run(store.update(make_user("ghost"), expected_version="v9"))


def test_update_requires_a_version(sqlite_engine: Engine) -> None:
    with pytest.raises(ValueError, match="no version"):
        asyncio.run(_users(sqlite_engine).update(make_user("u1")))


def test_partitions_are_isolated(sqlite_engine: Engine) -> None:
    users = _users(sqlite_engine)
    states = SqlAlchemyRecordStore(sqlite_engine, partition=GOOGLE_FIT, codec=SyncStateCodec())

    async def scenario() -> tuple[UserRecord | None, PlatformSyncState]:
        await states.insert(PlatformSyncState(id="same", cursors={"s": 5}))
        return await users.find("same"), await states.get("same")

    missing, state = asyncio.run(scenario())

    assert missing is None
    assert state.cursors == {"s": 5}
    assert state.version is not None


def test_resolved_write_against_database(sqlite_engine: Engine) -> None:
    store = _users(sqlite_engine)

    async def scenario() -> UserRecord:
        original = await store.insert(make_user("u1", ImportState.QUEUED))
        revoked = original.copy()
        revoked.set_import_state(GOOGLE_FIT, ImportState.UNAUTHORIZED)
        await store.update(revoked)
        importing = original.copy()
        importing.set_import_state(GOOGLE_FIT, ImportState.IMPORTING)
        return await update_with_resolution(store, importing, resolve_conflict_default)

    committed = asyncio.run(scenario())

    assert committed.platforms[GOOGLE_FIT].import_state is ImportState.UNAUTHORIZED
    assert committed.version == "v3"


def test_scan_pages_in_id_order_with_continuation(sqlite_engine: Engine) -> None:
    store = _users(sqlite_engine)

    async def scenario() -> list[tuple[list[str], str | None]]:
        for user_id in ("u3", "u1", "u5", "u2", "u4"):
            await store.insert(make_user(user_id))
        return [
            ([record.id for record in page.records], page.continuation)
            async for page in store.scan(page_size=2)
        ]

    pages = asyncio.run(scenario())

    assert pages == [(["u1", "u2"], "u2"), (["u3", "u4"], "u4"), (["u5"], None)]


def test_scan_resumes_after_continuation(sqlite_engine: Engine) -> None:
    store = _users(sqlite_engine)

    async def scenario() -> list[str]:
        for user_id in ("u1", "u2", "u3"):
            await store.insert(make_user(user_id))
        return [
            record.id
            async for page in store.scan(page_size=10, continuation="u1")
            for record in page.records
        ]

    assert asyncio.run(scenario()) == ["u2", "u3"]
