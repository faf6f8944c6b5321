"""Rate-limited, paginated fetch of every data stream of one user."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from functools import partial
from logging import getLogger
from typing import TYPE_CHECKING

from fitsync.domain.errors import EventBatchError
from fitsync.domain.fetch_engine.limiter import RequestLimiter
from fitsync.domain.fetch_engine.policy import StreamExceptionPolicy, propagate_stream_errors
from fitsync.domain.fetch_engine.pool import run_bounded
from fitsync.domain.time_windows import DEFAULT_HISTORICAL_IMPORT_SPAN, dataset_id_since, utcnow

if TYPE_CHECKING:
    from collections.abc import Sequence

    from fitsync.domain.model import PlatformSyncState
    from fitsync.domain.ports.auth import AccessToken
    from fitsync.domain.ports.events import EventSink
    from fitsync.domain.ports.fetching import DataPage, DataProvider, StreamDescriptor
    from fitsync.domain.time_windows import Clock

log = getLogger(__name__)

DEFAULT_DATASET_REQUEST_LIMIT = 1000
OVERSIZED_EVENT_MESSAGE = "Event is too large for the batch and cannot be sent."


@dataclass(slots=True, frozen=True)
class FetchOptions:
    max_concurrency: int = 1
    max_requests_per_minute: int | None = None
    dataset_request_limit: int = DEFAULT_DATASET_REQUEST_LIMIT
    historical_import_span: timedelta = DEFAULT_HISTORICAL_IMPORT_SPAN

    def __post_init__(self) -> None:
        if self.max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        if self.dataset_request_limit < 1:
            raise ValueError("dataset_request_limit must be at least 1")
        if self.historical_import_span < timedelta(0):
            raise ValueError("historical_import_span must be non-negative")


@dataclass(slots=True)
class StreamResult:
    stream_id: str
    dataset_id: str
    pages: int = 0
    events_sent: int = 0
    events_dropped: int = 0
    cursor: int | None = None


@dataclass(slots=True)
class FetchReport:
    """Streams whose fetch completed, and streams abandoned after an error."""

    completed: dict[str, StreamResult] = field(default_factory=dict[str, StreamResult])
    failed: list[str] = field(default_factory=list[str])

    @property
    def pages(self) -> int:
        return sum(result.pages for result in self.completed.values())


class FetchEngine:
    """Fetch all pages of all streams since their cursors and push them as events.

    Streams are spread over ``options.max_concurrency`` workers that share one
    ``RequestLimiter`` per run. Pages of a stream are fetched in order; a
    stream's cursor reaches ``sync_state`` only once all of its pages went out.
    """

    def __init__(
        self,
        provider: DataProvider,
        sink: EventSink,
        *,
        options: FetchOptions | None = None,
        exception_policy: StreamExceptionPolicy = propagate_stream_errors,
        clock: Clock = utcnow,
    ) -> None:
        self._provider = provider
        self.sink = sink
        self.options = options or FetchOptions()
        self.exception_policy = exception_policy
        self.clock = clock

    async def list_streams(self, access_token: AccessToken) -> Sequence[StreamDescriptor]:
        return await self._provider.list_streams(access_token)

    async def run(
        self,
        *,
        user_id: str,
        access_token: AccessToken,
        streams: Sequence[StreamDescriptor],
        sync_state: PlatformSyncState,
    ) -> FetchReport:
        limiter = RequestLimiter(self.options.max_requests_per_minute)
        report = FetchReport()
        jobs = [
            partial(
                self._run_stream,
                user_id=user_id,
                access_token=access_token,
                stream=stream,
                sync_state=sync_state,
                limiter=limiter,
                report=report,
            )
            for stream in streams
        ]
        log.info(
            "Fetching %s streams for user %s (workers=%s, rpm=%s)",
            len(jobs),
            user_id,
            self.options.max_concurrency,
            "unlimited" if limiter.unlimited else self.options.max_requests_per_minute,
        )
        await run_bounded(jobs, max_concurrency=self.options.max_concurrency)
        return report

    async def _run_stream(
        self,
        *,
        user_id: str,
        access_token: AccessToken,
        stream: StreamDescriptor,
        sync_state: PlatformSyncState,
        limiter: RequestLimiter,
        report: FetchReport,
    ) -> None:
        try:
            result = await self._fetch_stream(
                user_id=user_id,
                access_token=access_token,
                stream=stream,
                cursor=sync_state.get_cursor(stream.stream_id),
                limiter=limiter,
            )
        except ExceptionGroup as group:
            log.error(
                "Aggregate failure while fetching stream %s: %s",
                stream.stream_id,
                group,
                exc_info=group,
            )
            report.failed.append(stream.stream_id)
            return
        except Exception as exc:
            if not self.exception_policy(exc, stream):
                raise
            report.failed.append(stream.stream_id)
            return

        if result.cursor is not None:
            sync_state.advance_cursor(stream.stream_id, result.cursor)
        report.completed[stream.stream_id] = result

    async def _fetch_stream(
        self,
        *,
        user_id: str,
        access_token: AccessToken,
        stream: StreamDescriptor,
        cursor: int | None,
        limiter: RequestLimiter,
    ) -> StreamResult:
        dataset_id = dataset_id_since(
            cursor, lookback=self.options.historical_import_span, clock=self.clock
        )
        result = StreamResult(stream_id=stream.stream_id, dataset_id=dataset_id)
        page_token: str | None = None

        while True:
            log.info("Query dataset %s for stream %s", dataset_id, stream.stream_id)
            async with limiter:
                page = await self._provider.fetch_page(
                    access_token,
                    stream,
                    dataset_id=dataset_id,
                    limit=self.options.dataset_request_limit,
                    page_token=page_token,
                )
            if page is None:
                log.info("No dataset for: %s", dataset_id)
                break

            result.pages += 1
            await self._push_page(page, user_id=user_id, result=result)
            if page.max_end_time_nanos is not None:
                result.cursor = (
                    page.max_end_time_nanos
                    if result.cursor is None
                    else max(result.cursor, page.max_end_time_nanos)
                )

            page_token = page.next_page_token
            if not page_token:
                break

        return result

    async def _push_page(self, page: DataPage, *, user_id: str, result: StreamResult) -> None:
        event = page.to_event(user_id)
        batch = await self.sink.create_batch()
        if batch.try_add(event):
            result.events_sent += 1
        else:
            result.events_dropped += 1
            error = EventBatchError(OVERSIZED_EVENT_MESSAGE)
            log.error(
                "%s Stream: %s, dataset: %s, size: %s bytes",
                error,
                page.stream.stream_id,
                result.dataset_id,
                event.size,
            )
        log.info("Push dataset %s for stream %s", result.dataset_id, page.stream.stream_id)
        await self.sink.send(batch)


__all__ = [
    "DEFAULT_DATASET_REQUEST_LIMIT",
    "OVERSIZED_EVENT_MESSAGE",
    "FetchEngine",
    "FetchOptions",
    "FetchReport",
    "StreamResult",
]
