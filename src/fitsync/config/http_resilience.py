"""Retry, timeout and call-rate settings for outbound HTTP clients."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

import httpx

from .env import int_env
from .errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Mapping

DEFAULT_TIMEOUT_SECONDS: Final[int] = 30
DEFAULT_MAX_RETRIES: Final[int] = 3

# 408/429 and gateway errors are worth another attempt; other 4xx are not
RETRYABLE_STATUSES: Final[frozenset[int]] = frozenset({408, 429, 500, 502, 503, 504})


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """Transport-level retries, applied before a response reaches the adapter."""

    max_retries: int = DEFAULT_MAX_RETRIES
    backoff_factor: float = 0.5
    max_backoff_seconds: float = 30.0
    honour_retry_after: bool = True
    methods: frozenset[str] = frozenset({"GET", "POST"})
    statuses: frozenset[int] = RETRYABLE_STATUSES
    exceptions: tuple[type[httpx.HTTPError], ...] = (
        httpx.TimeoutException,
        httpx.NetworkError,
        httpx.RemoteProtocolError,
    )
    jitter: float = 1.0

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ConfigurationError("FITSYNC_HTTP_MAX_RETRIES must be non-negative")


@dataclass(slots=True, frozen=True)
class RateLimit:
    max_calls: int
    per_seconds: float


@dataclass(slots=True, frozen=True)
class ResilienceConfig:
    """Settings for one named outbound client (provider API, OAuth, event sink)."""

    name: str
    base_url: str | None = None
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    ratelimit: RateLimit | None = None
    default_headers: Mapping[str, str] | None = None

    def __post_init__(self) -> None:
        if self.timeout_seconds <= 0:
            raise ConfigurationError("FITSYNC_HTTP_TIMEOUT_SECONDS must be positive")

    @classmethod
    def from_environment(cls, name: str, *, base_url: str | None = None) -> ResilienceConfig:
        """Shared ``FITSYNC_HTTP_*`` settings applied to the client called ``name``."""

        return cls(
            name=name,
            base_url=base_url,
            timeout_seconds=int_env("FITSYNC_HTTP_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS),
            retry=RetryPolicy(
                max_retries=int_env("FITSYNC_HTTP_MAX_RETRIES", DEFAULT_MAX_RETRIES)
            ),
        )


__all__ = [
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_TIMEOUT_SECONDS",
    "RETRYABLE_STATUSES",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
]
