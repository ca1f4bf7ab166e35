"""Storage collaborator interface.

The ingestion core never talks to a database or the filesystem directly; it
goes through :class:`ExpenseStore`. The unit of write is a whole month
partition: ``replace_records_for_month`` swaps the complete record list of one
``YYYY-MM`` key in a single atomic step. Nothing spans two partitions.

Implementations shipped with the package:

- :class:`household_budget.persistence.SqlExpenseStore` (SQLAlchemy)
- :class:`household_budget.file_store.CsvDirectoryStore` (one CSV per month)
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from .models import BudgetCategory, Rule, TransactionRecord


@runtime_checkable
class ExpenseStore(Protocol):
    # -- month partitions ---------------------------------------------------

    def get_records_for_month(self, month_key: str) -> list[TransactionRecord]: ...

    def replace_records_for_month(
        self, month_key: str, records: Sequence[TransactionRecord]
    ) -> None: ...

    def list_all_month_keys(self) -> list[str]: ...

    def get_all_records(self) -> list[TransactionRecord]: ...

    def replace_all_records(self, records: Sequence[TransactionRecord]) -> None: ...

    # -- configuration ------------------------------------------------------

    def is_valid_category_id(self, category_id: str) -> bool: ...

    def get_categories(self) -> list[BudgetCategory]: ...

    def replace_categories(self, categories: Sequence[BudgetCategory]) -> None: ...

    def get_rules(self) -> list[Rule]: ...

    def replace_rules(self, rules: Sequence[Rule]) -> None: ...


__all__ = ["ExpenseStore"]
