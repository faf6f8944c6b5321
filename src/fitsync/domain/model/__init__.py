"""Public domain model surface."""

from __future__ import annotations

from fitsync.domain.model.enums import ImportState, Platform, RevokeReason
from fitsync.domain.model.messages import ImportMessage
from fitsync.domain.model.sync_state import PlatformSyncState
from fitsync.domain.model.user import (
    ALLOWED_TRANSITIONS,
    USERS_PARTITION,
    PlatformInfo,
    UserRecord,
)

__all__ = [
    "ALLOWED_TRANSITIONS",
    "USERS_PARTITION",
    "ImportMessage",
    "ImportState",
    "Platform",
    "PlatformInfo",
    "PlatformSyncState",
    "RevokeReason",
    "UserRecord",
]
