"""Alembic environment for the fitsync record and refresh-token tables."""

from __future__ import annotations

from typing import TYPE_CHECKING

from alembic import context
from sqlalchemy import create_engine, pool

from fitsync.adapters.sqlalchemy.mappings import metadata
from fitsync.config import get_database_config

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection

# batch mode keeps ALTERs working on SQLite
_CONFIGURE_OPTIONS = {
    "target_metadata": metadata,
    "render_as_batch": True,
    "compare_type": True,
}


def _migrate(connection: Connection) -> None:
    context.configure(connection=connection, **_CONFIGURE_OPTIONS)
    with context.begin_transaction():
        context.run_migrations()


def run_offline() -> None:
    url = context.config.get_main_option("sqlalchemy.url") or get_database_config().uri
    context.configure(url=url, literal_binds=True, **_CONFIGURE_OPTIONS)
    with context.begin_transaction():
        context.run_migrations()


def run_online() -> None:
    shared = context.config.attributes.get("connection")
    if shared is not None:
        # upgrade_head(engine=...) hands over a connection inside its transaction
        _migrate(shared)
        return

    url = context.config.get_main_option("sqlalchemy.url") or get_database_config().uri
    engine = create_engine(url, poolclass=pool.NullPool)
    try:
        with engine.connect() as connection:
            _migrate(connection)
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_offline()
else:
    run_online()
