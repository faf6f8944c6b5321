"""Fixed-size worker pool draining a queue of coroutine jobs."""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

type Job = Callable[[], Awaitable[None]]

log = getLogger(__name__)


async def run_bounded(jobs: Iterable[Job], *, max_concurrency: int = 1) -> None:
    """Run ``jobs`` with at most ``max_concurrency`` in flight.

    Workers pull from one shared queue until it is empty. The first job
    failure cancels the remaining workers and is re-raised; cancelling the
    caller cancels every worker.
    """

    if max_concurrency < 1:
        raise ValueError("max_concurrency must be at least 1")

    queue: asyncio.Queue[Job] = asyncio.Queue()
    for job in jobs:
        queue.put_nowait(job)
    if queue.empty():
        return

    async def worker(index: int) -> None:
        while True:
            try:
                job = queue.get_nowait()
            except asyncio.QueueEmpty:
                log.debug("Worker %s drained the queue", index)
                return
            try:
                await job()
            finally:
                queue.task_done()

    workers = [
        asyncio.create_task(worker(index), name=f"fetch-worker-{index}")
        for index in range(min(max_concurrency, queue.qsize()))
    ]
    try:
        await asyncio.gather(*workers)
    finally:
        for task in workers:
            if not task.done():
                task.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
