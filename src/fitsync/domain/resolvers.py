"""Conflict resolvers used when a versioned write loses a race.

A resolver takes the record the caller tried to write (``incoming``) and the
record currently stored (``stored``) and returns the merged record to write
at the stored version. Resolvers are pure: they never mutate their inputs and
never touch the store.
"""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING

from fitsync.domain.model import ImportState, PlatformInfo, PlatformSyncState, UserRecord

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

type ConflictResolver[TRecord] = Callable[[TRecord, TRecord], TRecord]
type PlatformMerge = Callable[[PlatformInfo, PlatformInfo], PlatformInfo]

_IN_FLIGHT = frozenset({ImportState.QUEUED, ImportState.IMPORTING})


def _latest(first: datetime | None, second: datetime | None) -> datetime | None:
    if first is None:
        return second
    if second is None:
        return first
    return max(first, second)


def _merge_users(incoming: UserRecord, stored: UserRecord, merge: PlatformMerge) -> UserRecord:
    platforms: dict[str, PlatformInfo] = {}
    for name, stored_info in stored.platforms.items():
        incoming_info = incoming.platforms.get(name)
        if incoming_info is None:
            platforms[name] = replace(stored_info)
        else:
            platforms[name] = merge(incoming_info, stored_info)
    for name, incoming_info in incoming.platforms.items():
        if name not in platforms:
            platforms[name] = replace(incoming_info)
    return UserRecord(
        id=stored.id,
        version=stored.version,
        last_touched=_latest(incoming.last_touched, stored.last_touched),
        platforms=platforms,
    )


def _merge_default(incoming: PlatformInfo, stored: PlatformInfo) -> PlatformInfo:
    if ImportState.UNAUTHORIZED in (incoming.import_state, stored.import_state):
        base = incoming if incoming.import_state is ImportState.UNAUTHORIZED else stored
        return replace(base, import_state=ImportState.UNAUTHORIZED)
    return replace(stored, import_state=ImportState.READY_TO_IMPORT)


def _merge_authorization(incoming: PlatformInfo, stored: PlatformInfo) -> PlatformInfo:
    if stored.import_state in _IN_FLIGHT:
        return replace(stored)
    return replace(incoming)


def resolve_conflict_default(incoming: UserRecord, stored: UserRecord) -> UserRecord:
    """Merge for sweep and import writers.

    A platform on both sides ends up ``UNAUTHORIZED`` if either side says so,
    otherwise ``READY_TO_IMPORT``: a lost race never leaves a platform stuck
    in ``QUEUED`` or ``IMPORTING``, and the next sweep picks it up again.
    """

    return _merge_users(incoming, stored, _merge_default)


def resolve_conflict_authorization(incoming: UserRecord, stored: UserRecord) -> UserRecord:
    """Merge for linking and revocation writers.

    An in-flight import (``QUEUED``/``IMPORTING``) on the stored side wins;
    otherwise the incoming authorization decision is adopted.
    """

    return _merge_users(incoming, stored, _merge_authorization)


def resolve_conflict_sync_cursors(
    incoming: PlatformSyncState, stored: PlatformSyncState
) -> PlatformSyncState:
    """Keep the larger cursor per stream."""

    cursors = dict(stored.cursors)
    for stream_id, value in incoming.cursors.items():
        current = cursors.get(stream_id)
        cursors[stream_id] = value if current is None else max(current, value)
    return PlatformSyncState(id=stored.id, version=stored.version, cursors=cursors)


__all__ = [
    "ConflictResolver",
    "resolve_conflict_authorization",
    "resolve_conflict_default",
    "resolve_conflict_sync_cursors",
]
