"""Deliver converted events to an HTTP ingestion endpoint in size-capped batches."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

import httpx

from fitsync.adapters.http_resilience import ResilienceConfig, ResilientClient
from fitsync.config.event_sink import DEFAULT_MAX_BATCH_BYTES, EventSinkConfig
from fitsync.domain.ports.events import EventBatch, EventSink

if TYPE_CHECKING:
    from collections.abc import Callable

    from fitsync.domain.ports.events import ImportEvent

log = getLogger(__name__)


class EventDeliveryError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class JsonEventBatch:
    """Events serialised as one JSON array whose encoded size stays under a cap."""

    def __init__(self, max_bytes: int = DEFAULT_MAX_BATCH_BYTES) -> None:
        self.max_bytes = max_bytes
        self._bodies: list[bytes] = []
        self._size = 2  # enclosing brackets

    def __len__(self) -> int:
        return len(self._bodies)

    @property
    def size_bytes(self) -> int:
        return self._size

    def try_add(self, event: ImportEvent) -> bool:
        added = event.size + (1 if self._bodies else 0)
        if self._size + added > self.max_bytes:
            return False
        self._bodies.append(event.body)
        self._size += added
        return True

    def to_bytes(self) -> bytes:
        return b"[" + b",".join(self._bodies) + b"]"


def _default_resilience_config() -> ResilienceConfig:
    return ResilienceConfig.from_environment("event-sink")


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


@dataclass(slots=True)
class HttpEventSink:
    config: EventSinkConfig = field(default_factory=EventSinkConfig.from_environment)
    resilience: ResilienceConfig = field(default_factory=_default_resilience_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )

    async def create_batch(self) -> JsonEventBatch:
        return JsonEventBatch(self.config.max_batch_bytes)

    async def send(self, batch: EventBatch) -> None:
        if not isinstance(batch, JsonEventBatch):
            raise TypeError(f"Expected a batch created by this sink, got {type(batch).__name__}")
        if not len(batch):
            log.debug("Skipping empty event batch")
            return
        async with self.client_factory(self.resilience) as client:
            response = await client.post(
                self.config.url,
                content=batch.to_bytes(),
                headers={"Content-Type": "application/json"},
            )
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise EventDeliveryError(
                f"Event sink rejected batch with HTTP {response.status_code}",
                status_code=response.status_code,
            ) from exc
        log.debug("Delivered %s events (%s bytes)", len(batch), batch.size_bytes)


if TYPE_CHECKING:
    _sink_check: EventSink = HttpEventSink()
