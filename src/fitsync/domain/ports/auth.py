"""Ports for obtaining and revoking platform access tokens."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(slots=True, frozen=True)
class AccessToken:
    value: str = field(repr=False)
    expires_at: datetime | None = None


@runtime_checkable
class TokenProvider(Protocol):
    async def refresh_token(self, external_user_id: str) -> AccessToken:
        """Exchange the stored refresh token; raise ``TokenRefreshError`` on any failure."""
        ...

    async def revoke_token(self, access_token: AccessToken) -> None: ...


@runtime_checkable
class RefreshTokenStore(Protocol):
    async def get(self, external_user_id: str) -> str | None: ...

    async def upsert(self, external_user_id: str, refresh_token: str) -> None: ...


__all__ = ["AccessToken", "RefreshTokenStore", "TokenProvider"]
