"""Ports for handing converted events to the downstream sink."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(slots=True, frozen=True)
class ImportEvent:
    body: bytes

    @property
    def size(self) -> int:
        return len(self.body)


@runtime_checkable
class EventBatch(Protocol):
    def try_add(self, event: ImportEvent) -> bool:
        """Add ``event`` if it fits; return ``False`` without adding otherwise."""
        ...

    def __len__(self) -> int: ...


@runtime_checkable
class EventSink(Protocol):
    async def create_batch(self) -> EventBatch: ...

    async def send(self, batch: EventBatch) -> None: ...


__all__ = ["EventBatch", "EventSink", "ImportEvent"]
