"""Translate Google Fit payloads into domain fetch types."""

from __future__ import annotations

from collections.abc import Mapping
from typing import cast

from fitsync.domain.ports.fetching import DataPage, StreamDescriptor

from .schema import DataSourcePayload, DatasetResponse

_PAGING_KEYS = frozenset({"nextPageToken"})


def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def parse_stream(payload: DataSourcePayload | Mapping[str, object]) -> StreamDescriptor:
    model = (
        payload
        if isinstance(payload, DataSourcePayload)
        else DataSourcePayload.model_validate(payload)
    )
    return StreamDescriptor(
        stream_id=model.data_stream_id,
        device_uid=_blank_to_none(model.device.uid if model.device else None),
        application_package=_blank_to_none(
            model.application.package_name if model.application else None
        ),
    )


def parse_dataset_page(raw: Mapping[str, object], stream: StreamDescriptor) -> DataPage | None:
    """Build a page from a dataset response, or ``None`` when it holds no points."""

    model = DatasetResponse.model_validate(raw)
    if not model.point:
        return None
    dataset = {key: value for key, value in raw.items() if key not in _PAGING_KEYS}
    return DataPage(
        stream=stream,
        dataset=cast(dict[str, object], dataset),
        max_end_time_nanos=max(point.end_time_nanos for point in model.point),
        next_page_token=_blank_to_none(model.next_page_token),
    )
