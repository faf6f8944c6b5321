"""Global page-request throttle shared by all fetch workers of one run."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from aiolimiter import AsyncLimiter

if TYPE_CHECKING:
    from types import TracebackType

UNLIMITED_REQUESTS_PER_MINUTE: Final[int] = 2**31 - 1


class RequestLimiter:
    """Release at most ``max_requests_per_minute`` requests, evenly spaced.

    The bucket holds a single token that refills every
    ``60 / max_requests_per_minute`` seconds, so N back-to-back acquisitions
    take ``(N - 1)`` intervals instead of bursting a minute's budget up front.
    ``None`` (or anything at or above ``UNLIMITED_REQUESTS_PER_MINUTE``)
    disables throttling.
    """

    def __init__(self, max_requests_per_minute: int | None = None) -> None:
        self.max_requests_per_minute = max_requests_per_minute
        self._limiter: AsyncLimiter | None = None
        if max_requests_per_minute is None:
            return
        if max_requests_per_minute <= 0:
            raise ValueError("max_requests_per_minute must be positive")
        if max_requests_per_minute < UNLIMITED_REQUESTS_PER_MINUTE:
            self._limiter = AsyncLimiter(1, 60.0 / max_requests_per_minute)

    @property
    def unlimited(self) -> bool:
        return self._limiter is None

    async def acquire(self) -> None:
        if self._limiter is not None:
            await self._limiter.acquire()

    async def __aenter__(self) -> RequestLimiter:
        await self.acquire()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        return None
