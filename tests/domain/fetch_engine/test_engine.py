from __future__ import annotations

import asyncio
import json
from datetime import UTC, datetime

import pytest

from fitsync.domain.fetch_engine import (
    FetchEngine,
    FetchOptions,
    propagate_stream_errors,
    swallow_stream_errors,
)
from fitsync.domain.fetch_engine.engine import OVERSIZED_EVENT_MESSAGE
from fitsync.domain.model import PlatformSyncState
from fitsync.domain.ports.auth import AccessToken
from fitsync.domain.ports.fetching import StreamDescriptor
from fitsync.domain.time_windows import to_nanos
from tests.helpers.fakes import FakeDataProvider, FakeEventSink
from tests.helpers.records import make_page, make_stream

NOW = datetime(2024, 3, 1, tzinfo=UTC)
NOW_NS = to_nanos(NOW)
TOKEN = AccessToken(value="token")


def _engine(
    provider: FakeDataProvider,
    sink: FakeEventSink | None = None,
    **options: object,
) -> FetchEngine:
    policy = options.pop("exception_policy", propagate_stream_errors)
    return FetchEngine(
        provider,
        sink or FakeEventSink(),
        options=FetchOptions(**options),  # type: ignore[arg-type]
        exception_policy=policy,  # type: ignore[arg-type]
        clock=lambda: NOW,
    )


def _run(engine: FetchEngine, provider: FakeDataProvider, state: PlatformSyncState):
    return asyncio.run(
        engine.run(user_id="u1", access_token=TOKEN, streams=provider.streams, sync_state=state)
    )


def _timed_run(engine: FetchEngine, provider: FakeDataProvider) -> float:
    async def scenario() -> float:
        loop = asyncio.get_running_loop()
        started = loop.time()
        await engine.run(
            user_id="u1",
            access_token=TOKEN,
            streams=provider.streams,
            sync_state=PlatformSyncState(id="ext"),
        )
        return loop.time() - started

    return asyncio.run(scenario())


def _paged_streams(count: int, pages_per_stream: int) -> FakeDataProvider:
    streams = [make_stream(f"s{i}") for i in range(count)]
    pages = {
        stream.stream_id: [
            make_page(stream, end_nanos=NOW_NS - page, next_page_token="t")
            for page in range(pages_per_stream - 1, 0, -1)
        ]
        + [make_page(stream, end_nanos=NOW_NS)]
        for stream in streams
    }
    return FakeDataProvider(streams, pages)


def test_pages_are_followed_until_the_token_runs_out() -> None:
    stream = make_stream("a")
    provider = FakeDataProvider(
        [stream],
        {
            "a": [
                make_page(stream, end_nanos=NOW_NS - 300, next_page_token="t1"),
                make_page(stream, end_nanos=NOW_NS - 100, next_page_token="t2"),
                make_page(stream, end_nanos=NOW_NS - 200),
            ]
        },
    )
    sink = FakeEventSink()
    state = PlatformSyncState(id="ext")

    report = _run(_engine(provider, sink), provider, state)

    assert [token for _, token, _ in provider.requests] == [None, "t1", "t2"]
    assert len({dataset for _, _, dataset in provider.requests}) == 1
    assert report.completed["a"].pages == 3
    assert report.completed["a"].events_sent == 3
    assert len(sink.sent) == 3
    assert state.get_cursor("a") == NOW_NS - 100


def test_events_carry_patient_and_device_identifiers() -> None:
    stream = make_stream("a")
    provider = FakeDataProvider([stream], {"a": [make_page(stream, end_nanos=NOW_NS)]})
    sink = FakeEventSink()

    _run(_engine(provider, sink), provider, PlatformSyncState(id="ext"))

    body = json.loads(sink.events[0].body)
    assert body["patientIdentifier"] == "u1"
    assert body["deviceIdentifier"] == "u1.com.example.fit.device-1"
    assert body["dataSourceId"] == "a"


def test_missing_dataset_ends_stream_without_cursor_change(
    caplog: pytest.LogCaptureFixture,
) -> None:
    stream = make_stream("a")
    provider = FakeDataProvider([stream], {"a": [None]})
    state = PlatformSyncState(id="ext", cursors={"a": NOW_NS - 50})

    with caplog.at_level("INFO"):
        report = _run(_engine(provider), provider, state)

    assert report.completed["a"].pages == 0
    assert state.cursors == {"a": NOW_NS - 50}
    assert "No dataset for:" in caplog.text


def test_oversized_event_is_logged_and_stream_continues(
    caplog: pytest.LogCaptureFixture,
) -> None:
    stream = make_stream("a")
    provider = FakeDataProvider(
        [stream],
        {
            "a": [
                make_page(stream, end_nanos=NOW_NS - 10, next_page_token="t1", padding=4096),
                make_page(stream, end_nanos=NOW_NS - 5),
            ]
        },
    )
    sink = FakeEventSink(max_bytes=1024)
    state = PlatformSyncState(id="ext")

    with caplog.at_level("ERROR"):
        report = _run(_engine(provider, sink), provider, state)

    result = report.completed["a"]
    assert result.events_dropped == 1
    assert result.events_sent == 1
    assert OVERSIZED_EVENT_MESSAGE in caplog.text
    assert state.get_cursor("a") == NOW_NS - 5


def test_cursor_never_moves_backwards() -> None:
    stream = make_stream("a")
    provider = FakeDataProvider([stream], {"a": [make_page(stream, end_nanos=100)]})
    state = PlatformSyncState(id="ext", cursors={"a": 500})

    _run(_engine(provider), provider, state)

    assert state.get_cursor("a") == 500


def test_failing_stream_propagates_and_keeps_its_cursor() -> None:
    good, bad = make_stream("good"), make_stream("bad")
    provider = FakeDataProvider(
        [good, bad],
        {
            "good": [make_page(good, end_nanos=NOW_NS - 1)],
            "bad": [make_page(bad, end_nanos=NOW_NS - 1, next_page_token="t"), RuntimeError("500")],
        },
    )
    state = PlatformSyncState(id="ext", cursors={"bad": 7})

    with pytest.raises(RuntimeError, match="500"):
        _run(_engine(provider), provider, state)

    assert state.cursors == {"good": NOW_NS - 1, "bad": 7}


def test_swallow_policy_keeps_other_streams_running(caplog: pytest.LogCaptureFixture) -> None:
    first, broken, last = make_stream("first"), make_stream("broken"), make_stream("last")
    provider = FakeDataProvider(
        [first, broken, last],
        {
            "first": [make_page(first, end_nanos=NOW_NS - 3)],
            "broken": [RuntimeError("bad gateway")],
            "last": [make_page(last, end_nanos=NOW_NS - 2)],
        },
    )
    state = PlatformSyncState(id="ext")

    with caplog.at_level("WARNING"):
        report = _run(
            _engine(provider, exception_policy=swallow_stream_errors), provider, state
        )

    assert report.failed == ["broken"]
    assert set(report.completed) == {"first", "last"}
    assert state.cursors == {"first": NOW_NS - 3, "last": NOW_NS - 2}
    assert "Skipping stream broken" in caplog.text


def test_exception_group_is_logged_and_suppressed(caplog: pytest.LogCaptureFixture) -> None:
    stream, other = make_stream("a"), make_stream("b")
    group = ExceptionGroup("page failures", [ValueError("x"), KeyError("y")])
    provider = FakeDataProvider(
        [stream, other],
        {"a": [group], "b": [make_page(other, end_nanos=NOW_NS - 1)]},
    )
    state = PlatformSyncState(id="ext")

    with caplog.at_level("ERROR"):
        report = _run(_engine(provider), provider, state)

    assert report.failed == ["a"]
    assert state.cursors == {"b": NOW_NS - 1}
    assert "Aggregate failure while fetching stream a" in caplog.text


def test_stream_without_device_information_fails() -> None:
    bare = StreamDescriptor(stream_id="bare")
    provider = FakeDataProvider([bare], {"bare": [make_page(bare, end_nanos=NOW_NS - 1)]})

    with pytest.raises(ValueError, match="device identifier"):
        _run(_engine(provider), provider, PlatformSyncState(id="ext"))


def test_streams_run_concurrently_up_to_the_bound() -> None:
    streams = [make_stream(f"s{i}") for i in range(6)]
    provider = FakeDataProvider(streams, delay=0.05)

    elapsed = _timed_run(_engine(provider, max_concurrency=3), provider)

    assert len(provider.requests) == 6
    # two rounds of three 50ms requests
    assert 0.09 <= elapsed < 0.3


def test_request_rate_is_enforced_across_workers() -> None:
    provider = _paged_streams(4, 2)

    elapsed = _timed_run(
        _engine(provider, max_concurrency=4, max_requests_per_minute=1200), provider
    )

    assert len(provider.request_times) == 8
    gaps = [b - a for a, b in zip(provider.request_times, provider.request_times[1:])]
    assert min(gaps) >= 0.03
    # seven 50ms intervals after the first request
    assert 0.34 <= elapsed < 0.7


def test_requests_below_a_minute_budget_finish_within_their_share() -> None:
    # 5 requests against 600 per minute: the scaled form of 5 against 60
    provider = _paged_streams(5, 1)

    elapsed = _timed_run(
        _engine(provider, max_concurrency=5, max_requests_per_minute=600), provider
    )

    assert len(provider.requests) == 5
    assert elapsed < 0.5


def test_a_full_minute_budget_takes_a_minute() -> None:
    # 300 requests against 3000 per minute: one tenth of a 300 rpm minute
    provider = _paged_streams(30, 10)

    elapsed = _timed_run(
        _engine(provider, max_concurrency=4, max_requests_per_minute=3000), provider
    )

    assert len(provider.requests) == 300
    assert 5.95 <= elapsed < 6.6


def test_streams_queued_behind_a_failure_never_start() -> None:
    bad, after = make_stream("bad"), make_stream("after")
    provider = FakeDataProvider(
        [bad, after],
        {
            "bad": [RuntimeError("500")],
            "after": [make_page(after, end_nanos=NOW_NS - 1)],
        },
    )
    state = PlatformSyncState(id="ext")

    with pytest.raises(RuntimeError, match="500"):
        _run(_engine(provider, max_concurrency=1), provider, state)

    assert [stream_id for stream_id, _, _ in provider.requests] == ["bad"]
    assert state.cursors == {}


def test_cancellation_stops_fetching_and_advances_nothing() -> None:
    stream = make_stream("a")
    provider = FakeDataProvider(
        [stream],
        {"a": [make_page(stream, end_nanos=NOW_NS - 1, next_page_token="t")] * 50},
        delay=0.02,
    )
    state = PlatformSyncState(id="ext")

    async def scenario() -> None:
        task = asyncio.create_task(
            _engine(provider).run(
                user_id="u1", access_token=TOKEN, streams=[stream], sync_state=state
            )
        )
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())

    assert 0 < len(provider.requests) < 50
    assert state.cursors == {}


def test_invalid_options_are_rejected() -> None:
    with pytest.raises(ValueError, match="max_concurrency"):
        FetchOptions(max_concurrency=0)
    with pytest.raises(ValueError, match="dataset_request_limit"):
        FetchOptions(dataset_request_limit=0)
