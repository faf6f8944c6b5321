"""SQLAlchemy table metadata for versioned records and refresh tokens."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any, cast

from sqlalchemy import Column, DateTime, Dialect, MetaData, String, Table, Text, TypeDecorator


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class JSONPayload(TypeDecorator[dict[str, Any]]):
    """JSON object stored as text; decoded only at the store boundary."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: dict[str, Any] | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps(value, sort_keys=True, separators=(",", ":"))

    def process_result_value(self, value: str | None, dialect: Dialect) -> dict[str, Any]:
        _ = dialect
        if value is None:
            return {}
        loaded = json.loads(value)
        if not isinstance(loaded, dict):
            raise ValueError("Stored record payload is not a JSON object")
        return cast(dict[str, Any], loaded)


metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_label)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)

record_table = Table(
    "record",
    metadata,
    Column("partition", String(64), primary_key=True),
    Column("id", String(255), primary_key=True),
    Column("version", String(32), nullable=False),
    Column("payload", JSONPayload, nullable=False),
    Column("updated_at", UTCDateTime, nullable=False),
)

refresh_token_table = Table(
    "refresh_token",
    metadata,
    Column("platform", String(64), primary_key=True),
    Column("external_user_id", String(255), primary_key=True),
    Column("token", Text, nullable=False),
    Column("updated_at", UTCDateTime, nullable=False),
)

