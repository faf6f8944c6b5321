"""Per platform-user sync cursors."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(slots=True)
class PlatformSyncState:
    """Last-synced end time per data stream, in nanoseconds since the Unix epoch.

    Stored in the partition named after the platform and keyed by the
    platform's user id. Cursors only ever move forward.
    """

    id: str
    version: str | None = None
    cursors: dict[str, int] = field(default_factory=dict[str, int])

    def get_cursor(self, stream_id: str) -> int | None:
        return self.cursors.get(stream_id)

    def advance_cursor(self, stream_id: str, end_time_nanos: int) -> bool:
        """Move the stream cursor forward; return whether it changed."""

        if end_time_nanos < 0:
            raise ValueError("Cursor values must be non-negative")
        current = self.cursors.get(stream_id)
        if current is not None and current >= end_time_nanos:
            return False
        self.cursors[stream_id] = end_time_nanos
        return True

    def copy(self) -> PlatformSyncState:
        return PlatformSyncState(id=self.id, version=self.version, cursors=dict(self.cursors))
