"""Translate domain records to and from stored JSON payloads."""

from __future__ import annotations

from datetime import datetime  # noqa: TC003
from typing import TYPE_CHECKING, Any, Protocol

from pydantic import BaseModel, ConfigDict, Field

from fitsync.domain.model import (
    ImportState,
    PlatformInfo,
    PlatformSyncState,
    RevokeReason,
    UserRecord,
)

if TYPE_CHECKING:
    from fitsync.domain.ports.persistence import VersionedRecord


class RecordCodec[TRecord: VersionedRecord](Protocol):
    def encode(self, record: TRecord) -> dict[str, Any]: ...

    def decode(self, record_id: str, version: str, payload: dict[str, Any]) -> TRecord: ...


class _PayloadModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class PlatformPayload(_PayloadModel):
    platform_name: str = Field(alias="platformName")
    external_user_id: str = Field(alias="platformUserId")
    import_state: ImportState = Field(alias="importState")
    revoked_reason: RevokeReason = Field(default=RevokeReason.UNKNOWN, alias="revokedAccessReason")
    revoked_at: datetime | None = Field(default=None, alias="revokedTimeStamp")


class UserPayload(_PayloadModel):
    last_touched: datetime | None = Field(default=None, alias="lastTouched")
    platforms: list[PlatformPayload] = Field(default_factory=list[PlatformPayload])


class SyncStatePayload(_PayloadModel):
    cursors: dict[str, int] = Field(default_factory=dict[str, int], alias="lastSyncTimes")


class UserRecordCodec:
    def encode(self, record: UserRecord) -> dict[str, Any]:
        payload = UserPayload(
            last_touched=record.last_touched,
            platforms=[
                PlatformPayload(
                    platform_name=info.platform_name,
                    external_user_id=info.external_user_id,
                    import_state=info.import_state,
                    revoked_reason=info.revoked_reason,
                    revoked_at=info.revoked_at,
                )
                for info in sorted(record.platforms.values(), key=lambda item: item.platform_name)
            ],
        )
        return payload.model_dump(mode="json", by_alias=True)

    def decode(self, record_id: str, version: str, payload: dict[str, Any]) -> UserRecord:
        model = UserPayload.model_validate(payload)
        return UserRecord(
            id=record_id,
            version=version,
            last_touched=model.last_touched,
            platforms={
                item.platform_name: PlatformInfo(
                    platform_name=item.platform_name,
                    external_user_id=item.external_user_id,
                    import_state=item.import_state,
                    revoked_reason=item.revoked_reason,
                    revoked_at=item.revoked_at,
                )
                for item in model.platforms
            },
        )


class SyncStateCodec:
    def encode(self, record: PlatformSyncState) -> dict[str, Any]:
        return SyncStatePayload(cursors=record.cursors).model_dump(mode="json", by_alias=True)

    def decode(self, record_id: str, version: str, payload: dict[str, Any]) -> PlatformSyncState:
        model = SyncStatePayload.model_validate(payload)
        return PlatformSyncState(id=record_id, version=version, cursors=dict(model.cursors))


__all__ = [
    "PlatformPayload",
    "RecordCodec",
    "SyncStateCodec",
    "SyncStatePayload",
    "UserPayload",
    "UserRecordCodec",
]
