"""Create record and refresh_token tables.

Revision ID: 0001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

from fitsync.adapters.sqlalchemy.mappings import JSONPayload, UTCDateTime

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "record",
        sa.Column("partition", sa.String(length=64), nullable=False),
        sa.Column("id", sa.String(length=255), nullable=False),
        sa.Column("version", sa.String(length=32), nullable=False),
        sa.Column("payload", JSONPayload(), nullable=False),
        sa.Column("updated_at", UTCDateTime(), nullable=False),
        sa.PrimaryKeyConstraint("partition", "id", name=op.f("pk_record")),
    )
    op.create_table(
        "refresh_token",
        sa.Column("platform", sa.String(length=64), nullable=False),
        sa.Column("external_user_id", sa.String(length=255), nullable=False),
        sa.Column("token", sa.Text(), nullable=False),
        sa.Column("updated_at", UTCDateTime(), nullable=False),
        sa.PrimaryKeyConstraint("platform", "external_user_id", name=op.f("pk_refresh_token")),
    )


def downgrade() -> None:
    op.drop_table("refresh_token")
    op.drop_table("record")
