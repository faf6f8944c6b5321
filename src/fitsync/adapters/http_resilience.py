"""Outbound HTTP client shared by the Google Fit, OAuth and event-sink adapters."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from aiolimiter import AsyncLimiter
from httpx_retries import Retry, RetryTransport

from fitsync.config.http_resilience import RateLimit, ResilienceConfig, RetryPolicy

if TYPE_CHECKING:
    from collections.abc import Mapping
    from types import TracebackType

log = getLogger(__name__)


def build_retry(policy: RetryPolicy) -> Retry:
    return Retry(
        total=policy.max_retries,
        backoff_factor=policy.backoff_factor,
        max_backoff_wait=policy.max_backoff_seconds,
        respect_retry_after_header=policy.honour_retry_after,
        allowed_methods=sorted(policy.methods),
        status_forcelist=sorted(policy.statuses),
        retry_on_exceptions=policy.exceptions,
        backoff_jitter=policy.jitter,
    )


class ResilientClient:
    """``httpx.AsyncClient`` behind a retrying transport and an optional call-rate cap.

    Retries happen inside the transport, so callers only ever see the final
    response (or the final transport error).
    """

    def __init__(self, config: ResilienceConfig) -> None:
        self.config = config
        self._limiter = (
            AsyncLimiter(config.ratelimit.max_calls, config.ratelimit.per_seconds)
            if config.ratelimit
            else None
        )
        self._client = httpx.AsyncClient(
            base_url=config.base_url or "",
            timeout=config.timeout_seconds,
            headers=dict(config.default_headers or {}),
            transport=RetryTransport(retry=build_retry(config.retry)),
            event_hooks={"response": [self._log_response]},
        )

    async def __aenter__(self) -> ResilientClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get(
        self,
        url: str,
        *,
        params: Mapping[str, str | int] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        request = self._client.build_request("GET", url, params=params, headers=headers)
        return await self._send(request)

    async def post(
        self,
        url: str,
        *,
        data: Mapping[str, str] | None = None,
        content: bytes | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        request = self._client.build_request(
            "POST", url, data=data, content=content, headers=headers
        )
        return await self._send(request)

    async def _send(self, request: httpx.Request) -> httpx.Response:
        if self._limiter is None:
            return await self._client.send(request)
        async with self._limiter:
            return await self._client.send(request)

    async def _log_response(self, response: httpx.Response) -> None:
        log.debug(
            "[%s] %s %s -> %s",
            self.config.name,
            response.request.method,
            response.request.url.path,
            response.status_code,
        )


__all__ = [
    "RateLimit",
    "ResilienceConfig",
    "ResilientClient",
    "RetryPolicy",
    "build_retry",
]
