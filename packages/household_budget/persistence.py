"""SQLAlchemy-backed :class:`~household_budget.store.ExpenseStore`.

Rows live in the shared database owned by ``libs/db`` (ORM models in
``db.models.budget``; sessions from ``db.client``).

Scope:
- Month partitions in ``expenses``: every ``replace_records_for_month`` call
  deletes and re-inserts one ``month_key`` inside a single transaction, so
  readers see either the old or the new partition, never a mix.
- Categories in ``budget_categories`` and ordered rules in ``rules``, both
  replaced as whole lists.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence

from db.client import init_db, session_scope
from db.models.budget import BudgetCategoryRow, ExpenseRow, RuleRow
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from .logging_setup import get_logger
from .models import STORED, BudgetCategory, Rule, TransactionRecord, month_key

_logger = get_logger("household_budget.persistence")


def _new_id() -> str:
    return uuid.uuid4().hex


def _to_record(row: ExpenseRow) -> TransactionRecord:
    return TransactionRecord(
        id=row.id,
        transaction_date=row.transaction_date,
        posted_date=row.posted_date,
        card_no=row.card_no,
        description=row.description,
        category=row.category,
        debit=row.debit,
        credit=row.credit,
        budget_category_id=row.budget_category_id,
        ignored=bool(row.ignored),
    )


def _to_row(record: TransactionRecord, *, month: str, position: int) -> ExpenseRow:
    return ExpenseRow(
        id=record.id or _new_id(),
        transaction_date=record.transaction_date,
        posted_date=record.posted_date,
        card_no=record.card_no,
        description=record.description,
        category=record.category,
        debit=record.debit,
        credit=record.credit,
        budget_category_id=record.budget_category_id or None,
        ignored=record.ignored,
        month_key=month,
        position=position,
    )


class SqlExpenseStore:
    """Expense store over a SQLAlchemy database URL.

    Parameters
    ----------
    database_url:
        SQLAlchemy URL; falls back to ``DATABASE_URL`` when ``None``.
    create_schema:
        Create missing tables on construction (default ``True``).
    """

    def __init__(self, database_url: str | None = None, *, create_schema: bool = True) -> None:
        self.database_url = database_url
        if create_schema:
            init_db(database_url=database_url)

    def _scope(self):
        return session_scope(database_url=self.database_url)

    # -- month partitions ---------------------------------------------------

    def get_records_for_month(self, month_key: str) -> list[TransactionRecord]:
        stmt = (
            select(ExpenseRow)
            .where(ExpenseRow.month_key == month_key)
            .order_by(ExpenseRow.position)
        )
        with self._scope() as session:
            return [_to_record(r) for r in session.scalars(stmt)]

    def replace_records_for_month(
        self, month_key: str, records: Sequence[TransactionRecord]
    ) -> None:
        with self._scope() as session:
            self._write_partition(session, month_key, records)
        _logger.debug("replaced partition %s with %d row(s)", month_key, len(records))

    def list_all_month_keys(self) -> list[str]:
        stmt = select(ExpenseRow.month_key).distinct().order_by(ExpenseRow.month_key)
        with self._scope() as session:
            return list(session.scalars(stmt))

    def get_all_records(self) -> list[TransactionRecord]:
        stmt = select(ExpenseRow).order_by(ExpenseRow.month_key.desc(), ExpenseRow.position)
        with self._scope() as session:
            return [_to_record(r) for r in session.scalars(stmt)]

    def replace_all_records(self, records: Sequence[TransactionRecord]) -> None:
        """Replace the whole table, re-partitioning ``records`` by their own dates."""

        by_month: dict[str, list[TransactionRecord]] = {}
        for r in records:
            by_month.setdefault(month_key(r), []).append(r)
        with self._scope() as session:
            session.execute(delete(ExpenseRow))
            for m, rows in by_month.items():
                self._write_partition(session, m, rows)

    @staticmethod
    def _write_partition(
        session: Session, month: str, records: Sequence[TransactionRecord]
    ) -> None:
        session.execute(delete(ExpenseRow).where(ExpenseRow.month_key == month))
        # Flush the delete before inserts so reused ids don't collide.
        session.flush()
        session.add_all(_to_row(r, month=month, position=i) for i, r in enumerate(records))

    # -- configuration ------------------------------------------------------

    def is_valid_category_id(self, category_id: str) -> bool:
        with self._scope() as session:
            return session.get(BudgetCategoryRow, category_id) is not None

    def get_categories(self) -> list[BudgetCategory]:
        stmt = select(BudgetCategoryRow).order_by(BudgetCategoryRow.name)
        with self._scope() as session:
            return [
                BudgetCategory.model_validate(
                    {
                        "id": row.id,
                        "name": row.name,
                        "monthly_limit": row.monthly_limit,
                        "type": row.type,
                    },
                    context=STORED,
                )
                for row in session.scalars(stmt)
            ]

    def replace_categories(self, categories: Sequence[BudgetCategory]) -> None:
        with self._scope() as session:
            session.execute(delete(BudgetCategoryRow))
            session.add_all(
                BudgetCategoryRow(
                    id=c.id, name=c.name, monthly_limit=c.monthly_limit, type=c.type
                )
                for c in categories
            )

    def get_rules(self) -> list[Rule]:
        stmt = select(RuleRow).order_by(RuleRow.position)
        with self._scope() as session:
            return [
                Rule.model_validate(
                    {
                        "id": row.id,
                        "pattern": row.pattern,
                        "source": row.source,
                        "target_category_id": row.target_category_id,
                    },
                    context=STORED,
                )
                for row in session.scalars(stmt)
            ]

    def replace_rules(self, rules: Sequence[Rule]) -> None:
        with self._scope() as session:
            session.execute(delete(RuleRow))
            session.flush()
            session.add_all(
                RuleRow(
                    id=r.id,
                    pattern=r.pattern,
                    source=r.source,
                    target_category_id=r.target_category_id,
                    position=i,
                )
                for i, r in enumerate(rules)
            )


__all__ = ["SqlExpenseStore"]
