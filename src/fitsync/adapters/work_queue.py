"""In-process work queue for running sweep and imports in one process."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from functools import partial
from logging import getLogger
from typing import TYPE_CHECKING

from fitsync.domain.fetch_engine.pool import run_bounded
from fitsync.domain.ports.queue import WorkQueue

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

log = getLogger(__name__)


@dataclass(slots=True)
class DrainResult:
    processed: int = 0
    failed: int = 0


class AsyncioWorkQueue:
    def __init__(self, maxsize: int = 0) -> None:
        self._queue: asyncio.Queue[str] = asyncio.Queue(maxsize)

    async def enqueue(self, message: str) -> None:
        await self._queue.put(message)

    def qsize(self) -> int:
        return self._queue.qsize()

    async def drain(
        self,
        handler: Callable[[str], Awaitable[object]],
        *,
        max_concurrency: int = 1,
    ) -> DrainResult:
        """Hand every message queued so far to ``handler``.

        A failing message is logged and counted; it does not stop the others.
        """

        result = DrainResult()
        messages: list[str] = []
        while not self._queue.empty():
            messages.append(self._queue.get_nowait())
            self._queue.task_done()

        async def handle(message: str) -> None:
            try:
                await handler(message)
            except Exception:
                log.exception("Failed to process work item %s", message)
                result.failed += 1
            else:
                result.processed += 1

        await run_bounded(
            [partial(handle, message) for message in messages],
            max_concurrency=max_concurrency,
        )
        return result


if TYPE_CHECKING:
    _queue_check: WorkQueue = AsyncioWorkQueue()
