"""Pydantic models describing the Google Fit REST and OAuth payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class GoogleFitBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class DevicePayload(GoogleFitBaseModel):
    uid: str | None = None
    manufacturer: str | None = None
    model: str | None = None


class ApplicationPayload(GoogleFitBaseModel):
    package_name: str | None = Field(default=None, alias="packageName")
    name: str | None = None


class DataSourcePayload(GoogleFitBaseModel):
    data_stream_id: str = Field(alias="dataStreamId")
    device: DevicePayload | None = None
    application: ApplicationPayload | None = None


class DataSourcesListResponse(GoogleFitBaseModel):
    data_source: list[DataSourcePayload] = Field(
        default_factory=list[DataSourcePayload], alias="dataSource"
    )


class DataPointPayload(GoogleFitBaseModel):
    start_time_nanos: int = Field(alias="startTimeNanos")
    end_time_nanos: int = Field(alias="endTimeNanos")
    data_type_name: str | None = Field(default=None, alias="dataTypeName")


class DatasetResponse(GoogleFitBaseModel):
    data_source_id: str | None = Field(default=None, alias="dataSourceId")
    min_start_time_ns: int | None = Field(default=None, alias="minStartTimeNs")
    max_end_time_ns: int | None = Field(default=None, alias="maxEndTimeNs")
    point: list[DataPointPayload] = Field(default_factory=list[DataPointPayload])
    next_page_token: str | None = Field(default=None, alias="nextPageToken")


class TokenResponse(GoogleFitBaseModel):
    access_token: str
    expires_in: int | None = None
    refresh_token: str | None = None
    token_type: str | None = None
    scope: str | None = None


class TokenErrorResponse(GoogleFitBaseModel):
    error: str
    error_description: str | None = None
