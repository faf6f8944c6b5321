"""Ports for fetching paginated data from an external provider."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from fitsync.domain.ports.events import ImportEvent

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from fitsync.domain.ports.auth import AccessToken

PATIENT_IDENTIFIER = "patientIdentifier"
DEVICE_IDENTIFIER = "deviceIdentifier"


@dataclass(slots=True, frozen=True)
class StreamDescriptor:
    """A data stream exposed by the provider, with the device that produced it."""

    stream_id: str
    device_uid: str | None = None
    application_package: str | None = None

    def device_identifier(self, user_id: str) -> str:
        parts = [user_id]
        if self.application_package and self.application_package.strip():
            parts.append(self.application_package)
        if self.device_uid and self.device_uid.strip():
            parts.append(self.device_uid)
        if len(parts) == 1:
            raise ValueError(
                f"Stream {self.stream_id} needs an application package and/or device uid "
                "to build a device identifier"
            )
        return ".".join(parts)


@dataclass(slots=True, frozen=True)
class DataPage:
    """One page of a stream's dataset.

    ``max_end_time_nanos`` is the largest point end-time on the page;
    ``next_page_token`` is ``None`` on the last page.
    """

    stream: StreamDescriptor
    dataset: Mapping[str, object] = field(repr=False)
    max_end_time_nanos: int | None = None
    next_page_token: str | None = None

    def to_event(self, user_id: str) -> ImportEvent:
        payload = dict(self.dataset)
        payload[PATIENT_IDENTIFIER] = user_id
        payload[DEVICE_IDENTIFIER] = self.stream.device_identifier(user_id)
        return ImportEvent(body=json.dumps(payload).encode("utf-8"))


@runtime_checkable
class DataProvider(Protocol):
    """Async port over the provider's stream listing and dataset paging."""

    async def list_streams(self, access_token: AccessToken) -> Sequence[StreamDescriptor]: ...

    async def fetch_page(
        self,
        access_token: AccessToken,
        stream: StreamDescriptor,
        *,
        dataset_id: str,
        limit: int,
        page_token: str | None = None,
    ) -> DataPage | None:
        """Return the requested page, or ``None`` when the range holds no data."""
        ...


__all__ = [
    "DEVICE_IDENTIFIER",
    "PATIENT_IDENTIFIER",
    "DataPage",
    "DataProvider",
    "StreamDescriptor",
]
