"""Downstream event sink configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from .env import int_env, require_env_vars
from .errors import ConfigurationError

DEFAULT_MAX_BATCH_BYTES: Final[int] = 1024 * 1024


@dataclass(frozen=True, slots=True)
class EventSinkConfig:
    url: str
    max_batch_bytes: int = DEFAULT_MAX_BATCH_BYTES

    def __post_init__(self) -> None:
        if self.max_batch_bytes < 1:
            raise ConfigurationError("FITSYNC_EVENT_BATCH_MAX_BYTES must be positive")

    @classmethod
    def from_environment(cls) -> EventSinkConfig:
        values = require_env_vars(("FITSYNC_EVENT_SINK_URL",))
        return cls(
            url=values["FITSYNC_EVENT_SINK_URL"],
            max_batch_bytes=int_env("FITSYNC_EVENT_BATCH_MAX_BYTES", DEFAULT_MAX_BATCH_BYTES),
        )
