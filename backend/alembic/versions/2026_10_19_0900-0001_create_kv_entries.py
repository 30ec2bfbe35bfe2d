"""create kv_entries table

Revision ID: 0001
Revises:
Create Date: 2026-10-19

Durable key-value store for failed-login rate limiting.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "kv_entries",
        sa.Column("key", sa.String(512), nullable=False),
        sa.Column("value", sa.Text(), nullable=False),
        sa.Column("expires_at_ms", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("key"),
    )
    # Purges scan by expiry
    op.create_index(
        "ix_kv_entries_expires_at_ms",
        "kv_entries",
        ["expires_at_ms"],
    )


def downgrade() -> None:
    op.drop_index("ix_kv_entries_expires_at_ms", table_name="kv_entries")
    op.drop_table("kv_entries")
