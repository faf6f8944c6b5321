"""Domain port definitions for adapters."""

from __future__ import annotations

from .auth import AccessToken, RefreshTokenStore, TokenProvider
from .events import EventBatch, EventSink, ImportEvent
from .fetching import DataPage, DataProvider, StreamDescriptor
from .persistence import RecordPage, RecordStore, VersionedRecord
from .queue import WorkQueue

__all__ = [
    "AccessToken",
    "DataPage",
    "DataProvider",
    "EventBatch",
    "EventSink",
    "ImportEvent",
    "RecordPage",
    "RecordStore",
    "RefreshTokenStore",
    "StreamDescriptor",
    "TokenProvider",
    "VersionedRecord",
    "WorkQueue",
]
