"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class ImportState(StrEnum):
    """Where a (user, platform) pair sits in the import lifecycle."""

    READY_TO_IMPORT = "ReadyToImport"
    QUEUED = "Queued"
    IMPORTING = "Importing"
    UNAUTHORIZED = "Unauthorized"


class RevokeReason(StrEnum):
    UNKNOWN = "Unknown"
    USER_INITIATED = "UserInitiated"


class Platform(StrEnum):
    GOOGLE_FIT = "GoogleFit"
