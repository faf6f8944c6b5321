"""Decide what happens to an exception raised while fetching one stream."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

    from fitsync.domain.ports.fetching import StreamDescriptor

type StreamExceptionPolicy = Callable[[Exception, StreamDescriptor], bool]
"""Return ``True`` when the exception is handled and the run should go on."""

log = getLogger(__name__)


def propagate_stream_errors(exc: Exception, stream: StreamDescriptor) -> bool:
    _ = exc, stream
    return False


def swallow_stream_errors(exc: Exception, stream: StreamDescriptor) -> bool:
    log.warning("Skipping stream %s after error: %s", stream.stream_id, exc, exc_info=exc)
    return True


__all__ = ["StreamExceptionPolicy", "propagate_stream_errors", "swallow_stream_errors"]
