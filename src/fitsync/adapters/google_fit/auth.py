"""OAuth token refresh and revocation against Google's token endpoints."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from fitsync.adapters.http_resilience import ResilienceConfig, ResilientClient
from fitsync.config.google_fit import GoogleFitConfig
from fitsync.domain.errors import TokenRefreshError
from fitsync.domain.ports.auth import AccessToken, TokenProvider
from fitsync.domain.time_windows import utcnow

from .client import raise_for_status
from .schema import TokenErrorResponse, TokenResponse

if TYPE_CHECKING:
    from collections.abc import Callable

    from fitsync.domain.ports.auth import RefreshTokenStore
    from fitsync.domain.time_windows import Clock

log = getLogger(__name__)

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_REVOKE_URL = "https://oauth2.googleapis.com/revoke"


def _default_resilience_config() -> ResilienceConfig:
    return ResilienceConfig.from_environment("google-oauth")


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


@dataclass(slots=True)
class GoogleFitTokenProvider:
    """Exchange stored refresh tokens for access tokens.

    Google may rotate the refresh token on exchange; a returned replacement is
    written back to ``refresh_tokens``. Every failure to produce an access
    token surfaces as ``TokenRefreshError``.
    """

    refresh_tokens: RefreshTokenStore
    config: GoogleFitConfig = field(default_factory=GoogleFitConfig.from_environment)
    resilience: ResilienceConfig = field(default_factory=_default_resilience_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )
    clock: Clock = utcnow

    async def refresh_token(self, external_user_id: str) -> AccessToken:
        refresh_token = await self.refresh_tokens.get(external_user_id)
        if refresh_token is None:
            raise TokenRefreshError(
                "No refresh token stored", external_user_id=external_user_id
            )

        form = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
        }
        try:
            async with self.client_factory(self.resilience) as client:
                response = await client.post(GOOGLE_TOKEN_URL, data=form)
        except httpx.HTTPError as exc:
            raise TokenRefreshError(
                f"Token endpoint unreachable: {exc}", external_user_id=external_user_id
            ) from exc

        if response.is_error:
            raise TokenRefreshError(
                _describe_error(response), external_user_id=external_user_id
            )

        try:
            token = TokenResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise TokenRefreshError(
                "Malformed token response", external_user_id=external_user_id
            ) from exc

        if token.refresh_token and token.refresh_token != refresh_token:
            log.info("Storing rotated refresh token for %s", external_user_id)
            await self.refresh_tokens.upsert(external_user_id, token.refresh_token)

        expires_at = (
            self.clock() + timedelta(seconds=token.expires_in)
            if token.expires_in is not None
            else None
        )
        return AccessToken(value=token.access_token, expires_at=expires_at)

    async def revoke_token(self, access_token: AccessToken) -> None:
        async with self.client_factory(self.resilience) as client:
            response = await client.post(GOOGLE_REVOKE_URL, data={"token": access_token.value})
        raise_for_status(response, context="Revoking token")


def _describe_error(response: httpx.Response) -> str:
    try:
        error = TokenErrorResponse.model_validate(response.json())
    except (ValueError, ValidationError):
        return f"Token endpoint returned HTTP {response.status_code}"
    detail = f": {error.error_description}" if error.error_description else ""
    return f"Token endpoint returned {error.error}{detail}"


if TYPE_CHECKING:
    _token_provider_check: TokenProvider = GoogleFitTokenProvider(
        refresh_tokens=None,  # type: ignore[arg-type]
    )
