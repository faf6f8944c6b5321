"""SQLAlchemy adapter package for fitsync."""

from __future__ import annotations

from .codecs import SyncStateCodec, UserRecordCodec
from .engine import (
    StartupError,
    configured_engine,
    create_database_engine,
    is_started,
    refresh_token_store,
    require_engine,
    shutdown,
    startup,
    sync_state_store,
    user_store,
)
from .mappings import metadata, record_table, refresh_token_table
from .store import SqlAlchemyRecordStore, new_version_token
from .tokens import SqlAlchemyRefreshTokenStore

__all__ = [
    "SqlAlchemyRecordStore",
    "SqlAlchemyRefreshTokenStore",
    "StartupError",
    "SyncStateCodec",
    "UserRecordCodec",
    "configured_engine",
    "create_database_engine",
    "is_started",
    "metadata",
    "new_version_token",
    "record_table",
    "refresh_token_store",
    "refresh_token_table",
    "require_engine",
    "shutdown",
    "startup",
    "sync_state_store",
    "user_store",
]
