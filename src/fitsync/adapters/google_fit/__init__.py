"""Public interface for the Google Fit adapter."""

from __future__ import annotations

from .auth import GOOGLE_REVOKE_URL, GOOGLE_TOKEN_URL, GoogleFitTokenProvider
from .client import GOOGLE_FIT_BASE_URL, GoogleFitAPIError, GoogleFitClient
from .schema import DataSourcesListResponse, DatasetResponse, TokenResponse
from .translator import parse_dataset_page, parse_stream

__all__ = [
    "GOOGLE_FIT_BASE_URL",
    "GOOGLE_REVOKE_URL",
    "GOOGLE_TOKEN_URL",
    "DataSourcesListResponse",
    "DatasetResponse",
    "GoogleFitAPIError",
    "GoogleFitClient",
    "GoogleFitTokenProvider",
    "TokenResponse",
    "parse_dataset_page",
    "parse_stream",
]
