"""Optimistic-concurrency write protocol shared by every record writer."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from fitsync.domain.errors import RecordConflictError

if TYPE_CHECKING:
    from fitsync.domain.ports.persistence import RecordStore, VersionedRecord
    from fitsync.domain.resolvers import ConflictResolver

log = getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ConflictRetryPolicy:
    """How many resolve-and-retry rounds a writer may take after a conflict."""

    max_resolutions: int = 1

    def __post_init__(self) -> None:
        if self.max_resolutions < 0:
            raise ValueError("max_resolutions must be non-negative")


DEFAULT_RETRY_POLICY = ConflictRetryPolicy()


async def update_with_resolution[TRecord: VersionedRecord](
    store: RecordStore[TRecord],
    record: TRecord,
    resolver: ConflictResolver[TRecord],
    *,
    policy: ConflictRetryPolicy = DEFAULT_RETRY_POLICY,
) -> TRecord:
    """Write ``record`` at its read version, merging with ``resolver`` on conflict.

    On a version conflict the stored copy is re-read, ``resolver(record,
    stored)`` produces the merged record and that is written at the stored
    version. When the merged write conflicts too and no resolutions remain,
    ``RecordConflictError`` propagates. Returns the committed record.
    """

    candidate = record
    remaining = policy.max_resolutions
    while True:
        try:
            return await store.update(candidate)
        except RecordConflictError:
            if remaining <= 0:
                raise
            remaining -= 1
            log.debug(
                "Version conflict on %s/%s; resolving with %s",
                store.partition,
                record.id,
                getattr(resolver, "__name__", resolver),
            )
            stored = await store.get(record.id)
            candidate = resolver(candidate, stored)
            candidate.version = stored.version


__all__ = ["DEFAULT_RETRY_POLICY", "ConflictRetryPolicy", "update_with_resolution"]
