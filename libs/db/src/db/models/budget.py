from __future__ import annotations

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Float,
    Index,
    Integer,
    String,
    Text,
    false,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


# ---------------------------
# Reference: budget_categories
# ---------------------------


class BudgetCategoryRow(Base):
    __tablename__ = "budget_categories"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    type: Mapped[str] = mapped_column(String, nullable=False, server_default=text("'expense'"))
    monthly_limit: Mapped[float] = mapped_column(
        Float, nullable=False, server_default=text("0")
    )

    __table_args__ = (
        CheckConstraint("type in ('expense','income')", name="ck_budget_categories_type"),
    )


# ---------------------------
# Reference: rules
# ---------------------------


class RuleRow(Base):
    __tablename__ = "rules"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    pattern: Mapped[str] = mapped_column(Text, nullable=False)
    source: Mapped[str] = mapped_column(String, nullable=False)
    # Rules are evaluated first-match-wins; position carries the user's order.
    target_category_id: Mapped[str] = mapped_column(String, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint("source in ('description','category')", name="ck_rules_source"),
    )


# ---------------------------
# Core: expenses
# ---------------------------


class ExpenseRow(Base):
    __tablename__ = "expenses"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    transaction_date: Mapped[str] = mapped_column(String, nullable=False)
    posted_date: Mapped[str] = mapped_column(String, nullable=False)
    card_no: Mapped[str] = mapped_column(String, nullable=False, server_default=text("''"))
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String, nullable=False, server_default=text("''"))
    # Amounts stay decimal strings, exactly as normalized from CSV.
    debit: Mapped[str] = mapped_column(String, nullable=False, server_default=text("'0'"))
    credit: Mapped[str] = mapped_column(String, nullable=False, server_default=text("'0'"))
    # Not a foreign key: categories may be deleted while rows still point at them.
    budget_category_id: Mapped[str | None] = mapped_column(String, nullable=True)
    ignored: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=false())
    month_key: Mapped[str] = mapped_column(String(7), nullable=False)
    # Index within the month partition as last persisted.
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (Index("idx_expenses_month", "month_key"),)


__all__ = [
    "Base",
    "BudgetCategoryRow",
    "ExpenseRow",
    "RuleRow",
]
