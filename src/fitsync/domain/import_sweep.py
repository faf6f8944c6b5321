"""Promote users that are ready to import into queued work items."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from fitsync.domain.model import ImportMessage, ImportState
from fitsync.domain.resolvers import resolve_conflict_default
from fitsync.domain.versioned_update import DEFAULT_RETRY_POLICY, update_with_resolution

if TYPE_CHECKING:
    from fitsync.domain.model import PlatformInfo, UserRecord
    from fitsync.domain.ports.persistence import RecordStore
    from fitsync.domain.ports.queue import WorkQueue
    from fitsync.domain.versioned_update import ConflictRetryPolicy

log = getLogger(__name__)

DEFAULT_SWEEP_PAGE_SIZE = 100


@dataclass(slots=True)
class SweepResult:
    """Outcome of one sweep.

    ``continuation`` is the scan position after the last fully processed page;
    pass it back to resume an interrupted sweep.
    """

    scanned: int = 0
    queued: int = 0
    failed_users: list[str] = field(default_factory=list[str])
    continuation: str | None = None


async def sweep_ready_imports(
    *,
    users: RecordStore[UserRecord],
    queue: WorkQueue,
    page_size: int = DEFAULT_SWEEP_PAGE_SIZE,
    continuation: str | None = None,
    retry_policy: ConflictRetryPolicy = DEFAULT_RETRY_POLICY,
) -> SweepResult:
    """Queue one import per ``READY_TO_IMPORT`` platform across all users.

    Users are read a page at a time. Each platform is moved to ``QUEUED`` and
    written with the default resolver before its message is enqueued, so a
    message only exists for a committed state change. A failure on one user is
    logged and the sweep carries on with the next.
    """

    result = SweepResult(continuation=continuation)
    async for page in users.scan(page_size=page_size, continuation=continuation):
        for user in page.records:
            result.scanned += 1
            try:
                result.queued += await _queue_user(
                    user, users=users, queue=queue, retry_policy=retry_policy
                )
            except Exception:
                log.exception("Failed to queue imports for user %s", user.id)
                result.failed_users.append(user.id)
        result.continuation = page.continuation

    log.info(
        "Import sweep finished: scanned=%s, queued=%s, failed=%s",
        result.scanned,
        result.queued,
        len(result.failed_users),
    )
    return result


async def _queue_user(
    user: UserRecord,
    *,
    users: RecordStore[UserRecord],
    queue: WorkQueue,
    retry_policy: ConflictRetryPolicy,
) -> int:
    queued = 0
    ready = [info.platform_name for info in user.platforms_in_state(ImportState.READY_TO_IMPORT)]
    for platform_name in ready:
        user, was_queued = await queue_platform_import(
            user, platform_name, users=users, queue=queue, retry_policy=retry_policy
        )
        queued += was_queued
    return queued


async def queue_platform_import(
    user: UserRecord,
    platform_name: str,
    *,
    users: RecordStore[UserRecord],
    queue: WorkQueue,
    retry_policy: ConflictRetryPolicy = DEFAULT_RETRY_POLICY,
) -> tuple[UserRecord, bool]:
    """Move one platform to ``QUEUED`` and enqueue its message once committed.

    Returns the committed user and whether a message was enqueued. Nothing is
    enqueued when the platform is not ``READY_TO_IMPORT`` or when a concurrent
    writer's merge left it in another state.
    """

    if user.get_platform(platform_name).import_state is not ImportState.READY_TO_IMPORT:
        return user, False

    user.set_import_state(platform_name, ImportState.QUEUED)
    user = await update_with_resolution(users, user, resolve_conflict_default, policy=retry_policy)
    committed = user.get_platform(platform_name)
    if committed.import_state is not ImportState.QUEUED:
        log.info(
            "Concurrent write left %s for user %s in %s; not queued",
            platform_name,
            user.id,
            committed.import_state,
        )
        return user, False

    await queue.enqueue(_message_for(user.id, committed).to_json())
    log.info("Queued %s import for user %s", platform_name, user.id)
    return user, True


def _message_for(user_id: str, info: PlatformInfo) -> ImportMessage:
    return ImportMessage(
        user_id=user_id,
        platform_user_id=info.external_user_id,
        platform_name=info.platform_name,
    )


__all__ = [
    "DEFAULT_SWEEP_PAGE_SIZE",
    "SweepResult",
    "queue_platform_import",
    "sweep_ready_imports",
]
