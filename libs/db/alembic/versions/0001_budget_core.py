# ruff: noqa: I001
"""Budget categories, rules and month-partitioned expenses.

Revision ID: 0001_budget_core
Revises: None
Create Date: 2026-10-19
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001_budget_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # budget_categories
    op.create_table(
        "budget_categories",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("type", sa.String(), nullable=False, server_default=sa.text("'expense'")),
        sa.Column("monthly_limit", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.CheckConstraint("type in ('expense','income')", name="ck_budget_categories_type"),
    )

    # rules (position carries the user's evaluation order)
    op.create_table(
        "rules",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("pattern", sa.Text(), nullable=False),
        sa.Column("source", sa.String(), nullable=False),
        sa.Column("target_category_id", sa.String(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.CheckConstraint("source in ('description','category')", name="ck_rules_source"),
    )

    # expenses
    op.create_table(
        "expenses",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("transaction_date", sa.String(), nullable=False),
        sa.Column("posted_date", sa.String(), nullable=False),
        sa.Column("card_no", sa.String(), nullable=False, server_default=sa.text("''")),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("category", sa.String(), nullable=False, server_default=sa.text("''")),
        sa.Column("debit", sa.String(), nullable=False, server_default=sa.text("'0'")),
        sa.Column("credit", sa.String(), nullable=False, server_default=sa.text("'0'")),
        sa.Column("budget_category_id", sa.String(), nullable=True),
        sa.Column("ignored", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("month_key", sa.String(7), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
    )
    op.create_index("idx_expenses_month", "expenses", ["month_key"], unique=False)


def downgrade() -> None:
    op.drop_index("idx_expenses_month", table_name="expenses")
    op.drop_table("expenses")
    op.drop_table("rules")
    op.drop_table("budget_categories")
