"""Domain-level error types."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fitsync.domain.model.enums import ImportState


class RecordStoreError(RuntimeError):
    """Base class for versioned record store failures."""

    def __init__(self, message: str, *, partition: str, record_id: str) -> None:
        super().__init__(message)
        self.partition = partition
        self.record_id = record_id


class RecordNotFoundError(RecordStoreError):
    """Raised when a record does not exist."""

    def __init__(self, *, partition: str, record_id: str) -> None:
        super().__init__(
            f"Record {partition}/{record_id} not found", partition=partition, record_id=record_id
        )


class RecordConflictError(RecordStoreError):
    """Raised when an insert collides or an update carries a stale version."""

    def __init__(
        self,
        *,
        partition: str,
        record_id: str,
        expected_version: str | None = None,
    ) -> None:
        if expected_version is None:
            message = f"Record {partition}/{record_id} already exists"
        else:
            message = f"Record {partition}/{record_id} no longer at version {expected_version}"
        super().__init__(message, partition=partition, record_id=record_id)
        self.expected_version = expected_version


class InvalidStateTransitionError(ValueError):
    def __init__(self, platform_name: str, current: ImportState, target: ImportState) -> None:
        super().__init__(f"{platform_name}: cannot move from {current} to {target}")
        self.platform_name = platform_name
        self.current = current
        self.target = target


class UnknownPlatformError(LookupError):
    """Raised when a user has no linkage for, or no handler exists for, a platform."""

    def __init__(self, platform_name: str, *, user_id: str | None = None) -> None:
        if user_id is None:
            message = f"No import handler registered for platform {platform_name!r}"
        else:
            message = f"User {user_id} is not linked to platform {platform_name!r}"
        super().__init__(message)
        self.platform_name = platform_name
        self.user_id = user_id


class TokenRefreshError(RuntimeError):
    """Raised when an access token cannot be obtained for a platform user."""

    def __init__(self, message: str, *, external_user_id: str) -> None:
        super().__init__(message)
        self.external_user_id = external_user_id


class EventBatchError(RuntimeError):
    """Raised when an event does not fit into an empty batch."""


__all__ = [
    "EventBatchError",
    "InvalidStateTransitionError",
    "RecordConflictError",
    "RecordNotFoundError",
    "RecordStoreError",
    "TokenRefreshError",
    "UnknownPlatformError",
]
