"""User aggregate and its per-platform import state."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Final

from fitsync.domain.errors import InvalidStateTransitionError, UnknownPlatformError
from fitsync.domain.model.enums import ImportState, RevokeReason

if TYPE_CHECKING:
    from collections.abc import Iterator
    from datetime import datetime

USERS_PARTITION: Final[str] = "Users"

ALLOWED_TRANSITIONS: Final[frozenset[tuple[ImportState, ImportState]]] = frozenset(
    {
        (ImportState.READY_TO_IMPORT, ImportState.QUEUED),
        (ImportState.QUEUED, ImportState.IMPORTING),
        (ImportState.IMPORTING, ImportState.UNAUTHORIZED),
        (ImportState.IMPORTING, ImportState.READY_TO_IMPORT),
        # access revoked by the user
        (ImportState.READY_TO_IMPORT, ImportState.UNAUTHORIZED),
        (ImportState.QUEUED, ImportState.UNAUTHORIZED),
        # platform linked again after a revocation
        (ImportState.UNAUTHORIZED, ImportState.READY_TO_IMPORT),
    }
)


@dataclass(slots=True)
class PlatformInfo:
    """Per-platform linkage of a user, including the current import state."""

    platform_name: str
    external_user_id: str
    import_state: ImportState = ImportState.READY_TO_IMPORT
    revoked_reason: RevokeReason = RevokeReason.UNKNOWN
    revoked_at: datetime | None = None

    def __post_init__(self) -> None:
        if not self.platform_name.strip():
            raise ValueError("platform_name must not be empty")
        if not self.external_user_id.strip():
            raise ValueError("external_user_id must not be empty")

    def with_state(self, state: ImportState) -> PlatformInfo:
        """Return a copy in ``state``, rejecting transitions the lifecycle forbids."""

        if state is not self.import_state and (self.import_state, state) not in ALLOWED_TRANSITIONS:
            raise InvalidStateTransitionError(self.platform_name, self.import_state, state)
        return replace(self, import_state=state)


@dataclass(slots=True)
class UserRecord:
    """A user with at most one ``PlatformInfo`` per platform name.

    ``version`` is the opaque token of the stored copy this instance was read
    from; it is ``None`` until the record has been inserted.
    """

    id: str
    version: str | None = None
    last_touched: datetime | None = None
    platforms: dict[str, PlatformInfo] = field(default_factory=dict[str, PlatformInfo])

    def __post_init__(self) -> None:
        if not self.id.strip():
            raise ValueError("user id must not be empty")
        for name, info in self.platforms.items():
            if name != info.platform_name:
                raise ValueError(f"Platform key {name!r} does not match {info.platform_name!r}")

    def add_platform(self, info: PlatformInfo) -> None:
        if info.platform_name in self.platforms:
            raise ValueError(f"User {self.id} already linked to {info.platform_name}")
        self.platforms[info.platform_name] = info

    def get_platform(self, platform_name: str) -> PlatformInfo:
        try:
            return self.platforms[platform_name]
        except KeyError:
            raise UnknownPlatformError(platform_name, user_id=self.id) from None

    def find_platform(self, platform_name: str) -> PlatformInfo | None:
        return self.platforms.get(platform_name)

    def set_import_state(self, platform_name: str, state: ImportState) -> None:
        self.platforms[platform_name] = self.get_platform(platform_name).with_state(state)

    def platforms_in_state(self, state: ImportState) -> Iterator[PlatformInfo]:
        return (info for info in self.platforms.values() if info.import_state is state)

    def copy(self) -> UserRecord:
        return UserRecord(
            id=self.id,
            version=self.version,
            last_touched=self.last_touched,
            platforms={name: replace(info) for name, info in self.platforms.items()},
        )
