"""Versioned record store over one SQLAlchemy table."""

from __future__ import annotations

import asyncio
import uuid
from logging import getLogger
from typing import TYPE_CHECKING

from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError

from fitsync.adapters.sqlalchemy.mappings import record_table
from fitsync.domain.errors import RecordConflictError, RecordNotFoundError
from fitsync.domain.ports.persistence import RecordPage, VersionedRecord
from fitsync.domain.time_windows import utcnow

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from sqlalchemy.engine import Connection, Engine

    from fitsync.adapters.sqlalchemy.codecs import RecordCodec
    from fitsync.domain.time_windows import Clock

log = getLogger(__name__)


def new_version_token() -> str:
    return uuid.uuid4().hex


class SqlAlchemyRecordStore[TRecord: VersionedRecord]:
    """Records of one partition in the ``record`` table.

    Blocking database work runs in a worker thread so that callers only
    suspend. ``update`` is ``UPDATE ... WHERE version = :expected``: a zero
    row-count means the caller's version is stale (or the row is gone).
    """

    def __init__(
        self,
        engine: Engine,
        *,
        partition: str,
        codec: RecordCodec[TRecord],
        version_factory: Callable[[], str] = new_version_token,
        clock: Clock = utcnow,
    ) -> None:
        if not partition.strip():
            raise ValueError("partition must not be empty")
        self.engine = engine
        self._partition = partition
        self.codec = codec
        self.version_factory = version_factory
        self.clock = clock

    @property
    def partition(self) -> str:
        return self._partition

    async def get(self, record_id: str) -> TRecord:
        record = await self.find(record_id)
        if record is None:
            raise RecordNotFoundError(partition=self._partition, record_id=record_id)
        return record

    async def find(self, record_id: str) -> TRecord | None:
        return await asyncio.to_thread(self._find, record_id)

    async def insert(self, record: TRecord) -> TRecord:
        return await asyncio.to_thread(self._insert, record)

    async def update(self, record: TRecord, *, expected_version: str | None = None) -> TRecord:
        expected = expected_version if expected_version is not None else record.version
        if expected is None:
            raise ValueError(f"Record {self._partition}/{record.id} has no version to update from")
        return await asyncio.to_thread(self._update, record, expected)

    async def scan(
        self,
        *,
        page_size: int = 100,
        continuation: str | None = None,
    ) -> AsyncIterator[RecordPage[TRecord]]:
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        after = continuation
        while True:
            records, has_more = await asyncio.to_thread(self._page, after, page_size)
            if not records:
                return
            after = records[-1].id if has_more else None
            yield RecordPage(records=tuple(records), continuation=after)
            if after is None:
                return

    def _find(self, record_id: str) -> TRecord | None:
        stmt = select(record_table.c.version, record_table.c.payload).where(
            record_table.c.partition == self._partition,
            record_table.c.id == record_id,
        )
        with self.engine.connect() as connection:
            row = connection.execute(stmt).one_or_none()
        if row is None:
            return None
        return self.codec.decode(record_id, row.version, row.payload)

    def _insert(self, record: TRecord) -> TRecord:
        version = self.version_factory()
        payload = self.codec.encode(record)
        try:
            with self.engine.begin() as connection:
                connection.execute(
                    insert(record_table).values(
                        partition=self._partition,
                        id=record.id,
                        version=version,
                        payload=payload,
                        updated_at=self.clock(),
                    )
                )
        except IntegrityError:
            log.debug("Insert conflict on %s/%s", self._partition, record.id)
            raise RecordConflictError(partition=self._partition, record_id=record.id) from None
        return self.codec.decode(record.id, version, payload)

    def _update(self, record: TRecord, expected_version: str) -> TRecord:
        version = self.version_factory()
        payload = self.codec.encode(record)
        stmt = (
            update(record_table)
            .where(
                record_table.c.partition == self._partition,
                record_table.c.id == record.id,
                record_table.c.version == expected_version,
            )
            .values(version=version, payload=payload, updated_at=self.clock())
        )
        with self.engine.begin() as connection:
            if connection.execute(stmt).rowcount == 1:
                return self.codec.decode(record.id, version, payload)
            exists = self._exists(connection, record.id)

        if not exists:
            raise RecordNotFoundError(partition=self._partition, record_id=record.id)
        log.debug(
            "Version conflict on %s/%s (expected %s)", self._partition, record.id, expected_version
        )
        raise RecordConflictError(
            partition=self._partition,
            record_id=record.id,
            expected_version=expected_version,
        )

    def _exists(self, connection: Connection, record_id: str) -> bool:
        stmt = select(record_table.c.id).where(
            record_table.c.partition == self._partition,
            record_table.c.id == record_id,
        )
        return connection.execute(stmt).first() is not None

    def _page(self, after: str | None, page_size: int) -> tuple[list[TRecord], bool]:
        stmt = (
            select(record_table.c.id, record_table.c.version, record_table.c.payload)
            .where(record_table.c.partition == self._partition)
            .order_by(record_table.c.id)
            .limit(page_size + 1)
        )
        if after is not None:
            stmt = stmt.where(record_table.c.id > after)
        with self.engine.connect() as connection:
            rows = connection.execute(stmt).all()
        records = [self.codec.decode(row.id, row.version, row.payload) for row in rows[:page_size]]
        return records, len(rows) > page_size
