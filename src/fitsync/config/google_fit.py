"""Google Fit OAuth client configuration."""

from __future__ import annotations

from dataclasses import dataclass, field

from .env import require_env_vars


@dataclass(frozen=True)
class GoogleFitConfig:
    """OAuth client credentials used to refresh and revoke user tokens."""

    client_id: str
    client_secret: str = field(repr=False)

    @classmethod
    def from_environment(cls) -> GoogleFitConfig:
        values = require_env_vars(("GOOGLE_FIT_CLIENT_ID", "GOOGLE_FIT_CLIENT_SECRET"))
        return cls(
            client_id=values["GOOGLE_FIT_CLIENT_ID"],
            client_secret=values["GOOGLE_FIT_CLIENT_SECRET"],
        )
