from __future__ import annotations

import asyncio
import json

import pytest

from fitsync.domain.errors import UnknownPlatformError
from fitsync.domain.import_sweep import queue_platform_import, sweep_ready_imports
from fitsync.domain.model import ImportMessage, ImportState, UserRecord
from tests.helpers.fakes import InMemoryRecordStore, ListWorkQueue
from tests.helpers.records import GOOGLE_FIT, make_platform, make_user


def test_sweep_queues_ready_users_and_skips_the_rest(
    users: InMemoryRecordStore[UserRecord],
) -> None:
    users.seed(make_user("u1", ImportState.READY_TO_IMPORT))
    users.seed(make_user("u2", ImportState.QUEUED))
    users.seed(make_user("u3", ImportState.UNAUTHORIZED))
    users.seed(make_user("u4", ImportState.IMPORTING))
    queue = ListWorkQueue()

    result = asyncio.run(sweep_ready_imports(users=users, queue=queue))

    assert result.scanned == 4
    assert result.queued == 1
    assert result.failed_users == []
    assert [json.loads(message) for message in queue.messages] == [
        {"userId": "u1", "platformUserId": "ext-u1", "platformName": GOOGLE_FIT}
    ]
    assert users.peek("u1").platforms[GOOGLE_FIT].import_state is ImportState.QUEUED
    assert users.peek("u2").platforms[GOOGLE_FIT].import_state is ImportState.QUEUED
    assert users.peek("u3").platforms[GOOGLE_FIT].import_state is ImportState.UNAUTHORIZED


def test_sweep_queues_each_ready_platform_of_a_user(
    users: InMemoryRecordStore[UserRecord],
) -> None:
    fitbit = make_platform(platform_name="Fitbit", external_user_id="fb-1")
    users.seed(make_user("u1", extra=(fitbit,)))
    queue = ListWorkQueue()

    result = asyncio.run(sweep_ready_imports(users=users, queue=queue))

    assert result.queued == 2
    platforms = {ImportMessage.from_json(message).platform_name for message in queue.messages}
    assert platforms == {GOOGLE_FIT, "Fitbit"}
    stored = users.peek("u1")
    assert {info.import_state for info in stored.platforms.values()} == {ImportState.QUEUED}


def test_sweep_logs_failing_user_and_continues(
    users: InMemoryRecordStore[UserRecord],
    caplog: pytest.LogCaptureFixture,
) -> None:
    for user_id in ("u1", "u2", "u3"):
        users.seed(make_user(user_id))
    users.failing_ids.add("u2")
    queue = ListWorkQueue()

    with caplog.at_level("ERROR"):
        result = asyncio.run(sweep_ready_imports(users=users, queue=queue))

    assert result.queued == 2
    assert result.failed_users == ["u2"]
    assert {ImportMessage.from_json(m).user_id for m in queue.messages} == {"u1", "u3"}
    assert "Failed to queue imports for user u2" in caplog.text


def test_sweep_pages_through_users_and_resumes_from_continuation(
    users: InMemoryRecordStore[UserRecord],
) -> None:
    for index in range(5):
        users.seed(make_user(f"u{index}"))
    queue = ListWorkQueue()

    partial = asyncio.run(
        sweep_ready_imports(users=users, queue=queue, page_size=2, continuation="u1")
    )

    assert partial.scanned == 3
    assert {ImportMessage.from_json(m).user_id for m in queue.messages} == {"u2", "u3", "u4"}
    assert partial.continuation is None
    assert users.peek("u0").platforms[GOOGLE_FIT].import_state is ImportState.READY_TO_IMPORT


def test_no_message_when_concurrent_revocation_wins(
    users: InMemoryRecordStore[UserRecord],
) -> None:
    user = users.seed(make_user("u1"))
    queue = ListWorkQueue()

    async def revoke(_: UserRecord) -> None:
        current = users.peek("u1")
        current.set_import_state(GOOGLE_FIT, ImportState.UNAUTHORIZED)
        users.seed(current)

    users.before_update = revoke
    committed, queued = asyncio.run(
        queue_platform_import(user, GOOGLE_FIT, users=users, queue=queue)
    )

    assert queued is False
    assert queue.messages == []
    assert committed.platforms[GOOGLE_FIT].import_state is ImportState.UNAUTHORIZED


def test_queue_platform_import_ignores_platforms_not_ready(
    users: InMemoryRecordStore[UserRecord],
) -> None:
    user = users.seed(make_user("u1", ImportState.IMPORTING))
    queue = ListWorkQueue()

    _, queued = asyncio.run(queue_platform_import(user, GOOGLE_FIT, users=users, queue=queue))

    assert queued is False
    assert users.update_calls == 0


def test_queue_platform_import_rejects_unlinked_platform(
    users: InMemoryRecordStore[UserRecord],
) -> None:
    user = users.seed(make_user("u1"))

    with pytest.raises(UnknownPlatformError):
        asyncio.run(queue_platform_import(user, "Fitbit", users=users, queue=ListWorkQueue()))
