"""Import tuning knobs."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from fitsync.domain.fetch_engine import DEFAULT_DATASET_REQUEST_LIMIT, FetchOptions
from fitsync.domain.import_sweep import DEFAULT_SWEEP_PAGE_SIZE
from fitsync.domain.versioned_update import ConflictRetryPolicy

from .env import bool_env, int_env, optional_int_env
from .errors import ConfigurationError

DEFAULT_HISTORICAL_IMPORT_DAYS = 30


@dataclass(frozen=True, slots=True)
class ImportConfig:
    max_concurrency: int = 1
    max_requests_per_minute: int | None = None
    dataset_request_limit: int = DEFAULT_DATASET_REQUEST_LIMIT
    historical_import_days: int = DEFAULT_HISTORICAL_IMPORT_DAYS
    max_conflict_resolutions: int = 1
    sweep_page_size: int = DEFAULT_SWEEP_PAGE_SIZE
    swallow_stream_errors: bool = False

    def __post_init__(self) -> None:
        if self.sweep_page_size < 1:
            raise ConfigurationError("FITSYNC_SWEEP_PAGE_SIZE must be at least 1")
        if self.max_requests_per_minute is not None and self.max_requests_per_minute <= 0:
            raise ConfigurationError("FITSYNC_MAX_REQUESTS_PER_MINUTE must be positive")
        self.fetch_options()
        self.retry_policy()

    @classmethod
    def from_environment(cls) -> ImportConfig:
        return cls(
            max_concurrency=int_env("FITSYNC_MAX_CONCURRENCY", 1),
            max_requests_per_minute=optional_int_env("FITSYNC_MAX_REQUESTS_PER_MINUTE"),
            dataset_request_limit=int_env(
                "FITSYNC_DATASET_REQUEST_LIMIT", DEFAULT_DATASET_REQUEST_LIMIT
            ),
            historical_import_days=int_env(
                "FITSYNC_HISTORICAL_IMPORT_DAYS", DEFAULT_HISTORICAL_IMPORT_DAYS
            ),
            max_conflict_resolutions=int_env("FITSYNC_MAX_CONFLICT_RESOLUTIONS", 1),
            sweep_page_size=int_env("FITSYNC_SWEEP_PAGE_SIZE", DEFAULT_SWEEP_PAGE_SIZE),
            swallow_stream_errors=bool_env("FITSYNC_SWALLOW_STREAM_ERRORS"),
        )

    def fetch_options(self) -> FetchOptions:
        try:
            return FetchOptions(
                max_concurrency=self.max_concurrency,
                max_requests_per_minute=self.max_requests_per_minute,
                dataset_request_limit=self.dataset_request_limit,
                historical_import_span=timedelta(days=self.historical_import_days),
            )
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc

    def retry_policy(self) -> ConflictRetryPolicy:
        try:
            return ConflictRetryPolicy(max_resolutions=self.max_conflict_resolutions)
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc
