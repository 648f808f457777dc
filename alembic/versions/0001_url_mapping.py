"""url mapping table

Revision ID: 0001_url_mapping
Revises:
Create Date: 2026-10-19 00:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "0001_url_mapping"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "url_mapping",
        sa.Column("identifier", sa.String(length=1024), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("is_permanent", sa.Boolean(), nullable=False),
        sa.Column("expires_at", sa.BigInteger(), nullable=True),
        sa.Column("created_at", sa.BigInteger(), nullable=False),
        sa.Column("updated_at", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("identifier"),
    )
    op.create_index("ix_url_mapping_expires_at", "url_mapping", ["expires_at"])


def downgrade() -> None:
    op.drop_index("ix_url_mapping_expires_at", table_name="url_mapping")
    op.drop_table("url_mapping")
