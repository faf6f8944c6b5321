"""Work items exchanged between the import sweep and the orchestrator."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ImportMessage(BaseModel):
    """One (user, platform) import request, serialised as camelCase JSON."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    user_id: str = Field(alias="userId", min_length=1)
    platform_user_id: str = Field(alias="platformUserId", min_length=1)
    platform_name: str = Field(alias="platformName", min_length=1)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, raw: str | bytes) -> ImportMessage:
        return cls.model_validate_json(raw)
