"""Bounded-concurrency, globally throttled stream fetching."""

from __future__ import annotations

from .engine import (
    DEFAULT_DATASET_REQUEST_LIMIT,
    FetchEngine,
    FetchOptions,
    FetchReport,
    StreamResult,
)
from .limiter import UNLIMITED_REQUESTS_PER_MINUTE, RequestLimiter
from .policy import StreamExceptionPolicy, propagate_stream_errors, swallow_stream_errors
from .pool import run_bounded

__all__ = [
    "DEFAULT_DATASET_REQUEST_LIMIT",
    "UNLIMITED_REQUESTS_PER_MINUTE",
    "FetchEngine",
    "FetchOptions",
    "FetchReport",
    "RequestLimiter",
    "StreamExceptionPolicy",
    "StreamResult",
    "propagate_stream_errors",
    "run_bounded",
    "swallow_stream_errors",
]
