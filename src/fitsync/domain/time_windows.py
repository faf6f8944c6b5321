"""Dataset time ranges expressed in nanoseconds since the Unix epoch."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Final, Protocol

NANOS_PER_SECOND: Final[int] = 1_000_000_000
DEFAULT_HISTORICAL_IMPORT_SPAN: Final[timedelta] = timedelta(days=30)

_EPOCH: Final[datetime] = datetime(1970, 1, 1, tzinfo=UTC)


class Clock(Protocol):
    def __call__(self) -> datetime: ...


def utcnow() -> datetime:
    return datetime.now(UTC)


def _ensure_aware(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        raise ValueError("Time window values must include timezone information")
    return value.astimezone(UTC)


def to_nanos(value: datetime) -> int:
    if value.tzinfo is None:
        raise ValueError("Time window values must include timezone information")
    delta = value - _EPOCH
    return (delta.days * 86_400 + delta.seconds) * NANOS_PER_SECOND + delta.microseconds * 1_000


@dataclass(frozen=True)
class TimeWindow:
    """Describe the temporal bounds of one stream fetch."""

    start: datetime | None = None
    end: datetime | None = None
    lookback: timedelta = DEFAULT_HISTORICAL_IMPORT_SPAN

    def resolve(self, *, clock: Clock = utcnow) -> tuple[datetime, datetime]:
        """Resolve into concrete UTC bounds; a missing start falls back to the lookback."""

        if self.lookback < timedelta(0):
            raise ValueError("Lookback duration must be non-negative")
        resolved_end = _ensure_aware(self.end) or clock().astimezone(UTC)
        resolved_start = _ensure_aware(self.start) or resolved_end - self.lookback
        if resolved_start > resolved_end:
            raise ValueError("Time window start must be before end")
        return resolved_start, resolved_end

    def dataset_id(self, *, clock: Clock = utcnow) -> str:
        """Return the provider's ``"{start_ns}-{end_ns}"`` range identifier."""

        start, end = self.resolve(clock=clock)
        return format_dataset_id(to_nanos(start), to_nanos(end))


def format_dataset_id(start_nanos: int, end_nanos: int) -> str:
    return f"{start_nanos}-{end_nanos}"


def dataset_id_since(
    cursor_nanos: int | None,
    *,
    lookback: timedelta = DEFAULT_HISTORICAL_IMPORT_SPAN,
    clock: Clock = utcnow,
) -> str:
    """Range from the stream cursor (or ``now - lookback``) up to now."""

    start, end = TimeWindow(lookback=lookback).resolve(clock=clock)
    end_nanos = to_nanos(end)
    start_nanos = to_nanos(start) if cursor_nanos is None else min(cursor_nanos, end_nanos)
    return format_dataset_id(start_nanos, end_nanos)


__all__ = [
    "DEFAULT_HISTORICAL_IMPORT_SPAN",
    "NANOS_PER_SECOND",
    "Clock",
    "TimeWindow",
    "dataset_id_since",
    "format_dataset_id",
    "to_nanos",
    "utcnow",
]
