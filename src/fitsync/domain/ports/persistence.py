"""Ports for the versioned record store."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


@runtime_checkable
class VersionedRecord(Protocol):
    """Anything keyed by ``id`` that carries the version token it was read at."""

    id: str
    version: str | None


@dataclass(slots=True, frozen=True)
class RecordPage[TRecord]:
    """One page of a partition scan.

    ``continuation`` resumes the scan after this page; ``None`` marks the end.
    """

    records: tuple[TRecord, ...]
    continuation: str | None = None


@runtime_checkable
class RecordStore[TRecord: VersionedRecord](Protocol):
    """Keyed records in one partition, written with optimistic concurrency.

    Every read returns a freshly decoded record. ``update`` is an atomic
    test-and-set on the version token: it succeeds only when the stored token
    equals ``expected_version`` (default: ``record.version``) and returns the
    record stamped with the new token.
    """

    @property
    def partition(self) -> str: ...

    async def get(self, record_id: str) -> TRecord: ...

    async def find(self, record_id: str) -> TRecord | None: ...

    async def insert(self, record: TRecord) -> TRecord: ...

    async def update(self, record: TRecord, *, expected_version: str | None = None) -> TRecord: ...

    def scan(
        self,
        *,
        page_size: int = 100,
        continuation: str | None = None,
    ) -> AsyncIterator[RecordPage[TRecord]]: ...


__all__ = ["RecordPage", "RecordStore", "VersionedRecord"]
