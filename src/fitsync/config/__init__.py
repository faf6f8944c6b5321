"""Application configuration helpers."""

from __future__ import annotations

from .env import bool_env, int_env, optional_int_env, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .event_sink import EventSinkConfig
from .google_fit import GoogleFitConfig
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .importer import ImportConfig
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "EventSinkConfig",
    "GoogleFitConfig",
    "ImportConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "bool_env",
    "get_database_config",
    "get_storage_config",
    "int_env",
    "optional_int_env",
    "require_env_vars",
]
