"""Create partition_state and triage_cursor tables.

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "partition_state",
        sa.Column("partition_key", sa.String(length=64), nullable=False),
        sa.Column("kept", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("rejected", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("partition_key", name=op.f("pk_partition_state")),
    )
    op.create_table(
        "triage_cursor",
        sa.Column("partition_key", sa.String(length=64), nullable=False),
        sa.Column("next_offset", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("partition_key", name=op.f("pk_triage_cursor")),
    )


def downgrade() -> None:
    op.drop_table("triage_cursor")
    op.drop_table("partition_state")
