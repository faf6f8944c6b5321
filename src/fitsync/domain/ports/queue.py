"""Port for the work queue that carries import messages."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class WorkQueue(Protocol):
    async def enqueue(self, message: str) -> None: ...


__all__ = ["WorkQueue"]
