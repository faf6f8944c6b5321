"""Refresh-token storage backed by the ``refresh_token`` table."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from sqlalchemy import insert, select, update

from fitsync.adapters.sqlalchemy.mappings import refresh_token_table
from fitsync.domain.ports.auth import RefreshTokenStore
from fitsync.domain.time_windows import utcnow

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from fitsync.domain.time_windows import Clock


class SqlAlchemyRefreshTokenStore:
    def __init__(self, engine: Engine, *, platform: str, clock: Clock = utcnow) -> None:
        self.engine = engine
        self.platform = platform
        self.clock = clock

    async def get(self, external_user_id: str) -> str | None:
        return await asyncio.to_thread(self._get, external_user_id)

    async def upsert(self, external_user_id: str, refresh_token: str) -> None:
        await asyncio.to_thread(self._upsert, external_user_id, refresh_token)

    def _get(self, external_user_id: str) -> str | None:
        stmt = select(refresh_token_table.c.token).where(
            refresh_token_table.c.platform == self.platform,
            refresh_token_table.c.external_user_id == external_user_id,
        )
        with self.engine.connect() as connection:
            return connection.execute(stmt).scalar_one_or_none()

    def _upsert(self, external_user_id: str, refresh_token: str) -> None:
        now = self.clock()
        with self.engine.begin() as connection:
            result = connection.execute(
                update(refresh_token_table)
                .where(
                    refresh_token_table.c.platform == self.platform,
                    refresh_token_table.c.external_user_id == external_user_id,
                )
                .values(token=refresh_token, updated_at=now)
            )
            if result.rowcount == 0:
                connection.execute(
                    insert(refresh_token_table).values(
                        platform=self.platform,
                        external_user_id=external_user_id,
                        token=refresh_token,
                        updated_at=now,
                    )
                )


if TYPE_CHECKING:
    _token_store_check: RefreshTokenStore = SqlAlchemyRefreshTokenStore(
        engine=None,  # type: ignore[arg-type]
        platform="GoogleFit",
    )
