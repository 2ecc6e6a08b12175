# ruff: noqa: I001
"""Transaction store table.

Revision ID: 0001_fi_core
Revises: None
Create Date: 2026-10-18
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001_fi_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "fi_transactions",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("tx_id", sa.String(), nullable=False),
        sa.Column("source", sa.String(), nullable=False),
        sa.Column("external_id", sa.String(), nullable=True, unique=True),
        sa.Column("fingerprint_sha256", sa.CHAR(64), nullable=False, unique=True),
        sa.Column("amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column(
            "category",
            sa.String(),
            nullable=False,
            server_default=sa.text("'Uncategorized'"),
        ),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("merchant_name", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.CheckConstraint("amount >= 0", name="ck_fi_tx_amount_non_negative"),
        sa.CheckConstraint("type in ('expense','income')", name="ck_fi_tx_type"),
    )
    op.create_index("ix_fi_tx_date", "fi_transactions", ["date"])


def downgrade() -> None:
    op.drop_index("ix_fi_tx_date", table_name="fi_transactions")
    op.drop_table("fi_transactions")
