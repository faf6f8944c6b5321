from __future__ import annotations

import asyncio

import pytest

from fitsync.domain.fetch_engine import run_bounded


def test_in_flight_jobs_never_exceed_the_bound() -> None:
    in_flight = 0
    peak = 0
    finished: list[int] = []

    def job(index: int):
        async def run() -> None:
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            finished.append(index)

        return run

    asyncio.run(run_bounded([job(i) for i in range(10)], max_concurrency=3))

    assert peak == 3
    assert sorted(finished) == list(range(10))


def test_single_worker_runs_jobs_in_order() -> None:
    order: list[int] = []

    def job(index: int):
        async def run() -> None:
            await asyncio.sleep(0)
            order.append(index)

        return run

    asyncio.run(run_bounded([job(i) for i in range(5)]))

    assert order == [0, 1, 2, 3, 4]


def test_first_failure_cancels_remaining_work() -> None:
    started: list[str] = []
    cancelled: list[str] = []

    async def failing() -> None:
        started.append("failing")
        await asyncio.sleep(0.01)
        raise RuntimeError("boom")

    async def slow() -> None:
        started.append("slow")
        try:
            await asyncio.sleep(5)
        except asyncio.CancelledError:
            cancelled.append("slow")
            raise

    async def never() -> None:
        started.append("never")

    with pytest.raises(RuntimeError, match="boom"):
        asyncio.run(run_bounded([failing, slow, never], max_concurrency=2))

    assert cancelled == ["slow"]
    assert "never" not in started


def test_empty_job_list_is_a_no_op() -> None:
    asyncio.run(run_bounded([], max_concurrency=4))


def test_bound_must_be_positive() -> None:
    with pytest.raises(ValueError, match="at least 1"):
        asyncio.run(run_bounded([], max_concurrency=0))
