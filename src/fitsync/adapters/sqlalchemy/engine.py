"""Process-wide SQLAlchemy engine lifecycle and store factories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.pool import StaticPool

from fitsync.adapters.sqlalchemy.codecs import SyncStateCodec, UserRecordCodec
from fitsync.adapters.sqlalchemy.migrations import upgrade_head
from fitsync.adapters.sqlalchemy.store import SqlAlchemyRecordStore
from fitsync.adapters.sqlalchemy.tokens import SqlAlchemyRefreshTokenStore
from fitsync.config.storage import get_database_config
from fitsync.domain.model import USERS_PARTITION, PlatformSyncState, UserRecord

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine


class StartupError(RuntimeError):
    """Raised when the SQLAlchemy adapter is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    engine: Engine | None = None


_STATE = _AdapterState()


def create_database_engine(database_uri: str) -> Engine:
    """Create an engine; in-memory SQLite shares one connection across threads."""

    url = make_url(database_uri)
    if url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:"):
        return create_engine(
            url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    return create_engine(url)


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> Engine:
    """Initialise the engine and migrate the schema to the latest revision."""

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    resolved_engine = engine or create_database_engine(
        database_uri or get_database_config().uri
    )
    upgrade_head(engine=resolved_engine)
    _STATE.engine = resolved_engine
    return resolved_engine


def configured_engine() -> Engine | None:
    """Return the engine currently managed by the adapter (if any)."""

    return _STATE.engine


def is_started() -> bool:
    return _STATE.engine is not None


def require_engine() -> Engine:
    if _STATE.engine is None:
        raise StartupError(
            "SQLAlchemy adapter not initialised. Call fitsync.adapters.sqlalchemy."
            "startup() before requesting a store."
        )
    return _STATE.engine


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None


def user_store(engine: Engine | None = None) -> SqlAlchemyRecordStore[UserRecord]:
    return SqlAlchemyRecordStore(
        engine or require_engine(),
        partition=USERS_PARTITION,
        codec=UserRecordCodec(),
    )


def sync_state_store(
    platform_name: str,
    engine: Engine | None = None,
) -> SqlAlchemyRecordStore[PlatformSyncState]:
    return SqlAlchemyRecordStore(
        engine or require_engine(),
        partition=platform_name,
        codec=SyncStateCodec(),
    )


def refresh_token_store(
    platform_name: str,
    engine: Engine | None = None,
) -> SqlAlchemyRefreshTokenStore:
    return SqlAlchemyRefreshTokenStore(engine or require_engine(), platform=platform_name)
