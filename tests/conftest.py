from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002

from fitsync.adapters.sqlalchemy import shutdown
from fitsync.adapters.sqlalchemy.migrations import upgrade_head
from fitsync.domain.model import PlatformSyncState, UserRecord
from tests.helpers.fakes import InMemoryRecordStore

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


@pytest.fixture
def sqlite_engine(tmp_path: Path) -> Iterator[Engine]:
    engine = create_engine(f"sqlite+pysqlite:///{tmp_path / 'fitsync.db'}")
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def reset_adapter_state() -> Iterator[None]:
    shutdown()
    yield
    shutdown()


@pytest.fixture
def users() -> InMemoryRecordStore[UserRecord]:
    return InMemoryRecordStore[UserRecord]("Users")


@pytest.fixture
def sync_states() -> InMemoryRecordStore[PlatformSyncState]:
    return InMemoryRecordStore[PlatformSyncState]("GoogleFit")
