"""HTTP client for the Google Fit REST API."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, cast
from urllib.parse import quote

import httpx

from fitsync.adapters.http_resilience import ResilienceConfig, ResilientClient
from fitsync.domain.ports.fetching import DataProvider

from .schema import DataSourcesListResponse
from .translator import parse_dataset_page, parse_stream

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from types import TracebackType

    from fitsync.domain.ports.auth import AccessToken
    from fitsync.domain.ports.fetching import DataPage, StreamDescriptor

log = getLogger(__name__)

GOOGLE_FIT_BASE_URL = "https://www.googleapis.com/fitness/v1/users/me/"


def _default_resilience_config() -> ResilienceConfig:
    return ResilienceConfig.from_environment("google-fit", base_url=GOOGLE_FIT_BASE_URL)


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


class GoogleFitAPIError(RuntimeError):
    """Raised when a Google Fit endpoint answers with an error status."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def raise_for_status(response: httpx.Response, *, context: str) -> None:
    try:
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        log.error("%s failed with HTTP %s", context, response.status_code)
        raise GoogleFitAPIError(
            f"{context} failed with HTTP {response.status_code}",
            status_code=response.status_code,
        ) from exc


@dataclass(slots=True)
class GoogleFitClient:
    """Lists a user's data sources and pages through their datasets.

    One underlying HTTP client is opened lazily and shared by all calls until
    ``aclose``.
    """

    resilience: ResilienceConfig = field(default_factory=_default_resilience_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )
    _client: ResilientClient | None = field(default=None, init=False, repr=False)

    async def __aenter__(self) -> GoogleFitClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            client, self._client = self._client, None
            await client.aclose()

    async def list_streams(self, access_token: AccessToken) -> Sequence[StreamDescriptor]:
        response = await self._http.get("dataSources", headers=_auth_headers(access_token))
        raise_for_status(response, context="Listing data sources")
        listing = DataSourcesListResponse.model_validate(response.json())
        streams = [parse_stream(source) for source in listing.data_source]
        log.info("Found %s data sources", len(streams))
        return streams

    async def fetch_page(
        self,
        access_token: AccessToken,
        stream: StreamDescriptor,
        *,
        dataset_id: str,
        limit: int,
        page_token: str | None = None,
    ) -> DataPage | None:
        params: dict[str, str | int] = {"limit": limit}
        if page_token is not None:
            params["pageToken"] = page_token
        path = f"dataSources/{quote(stream.stream_id, safe=':')}/datasets/{dataset_id}"
        response = await self._http.get(
            path, params=params, headers=_auth_headers(access_token)
        )
        if response.status_code == httpx.codes.NOT_FOUND:
            return None
        raise_for_status(response, context=f"Fetching dataset {dataset_id}")
        payload = response.json()
        if not isinstance(payload, dict):
            raise GoogleFitAPIError("Unexpected Google Fit dataset payload")
        return parse_dataset_page(cast(dict[str, object], payload), stream)

    @property
    def _http(self) -> ResilientClient:
        if self._client is None:
            self._client = self.client_factory(self.resilience)
        return self._client


def _auth_headers(access_token: AccessToken) -> dict[str, str]:
    return {"Authorization": f"Bearer {access_token.value}"}


if TYPE_CHECKING:
    _provider_check: DataProvider = GoogleFitClient()
