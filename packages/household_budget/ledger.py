"""Ingestion orchestrator: one month's working set of transactions.

:class:`ExpenseLedger` holds the records of one ``YYYY-MM`` partition in
memory. Every mutation builds the next full list and persists it through
``replace_records_for_month``; there are no row-level writes. The in-memory
list is only swapped after the store accepted the new partition.

Rules are passed in on every call; the ledger keeps no rule state of its own.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import replace
from typing import Any

from .logging_setup import get_logger
from .merge import import_and_merge
from .models import (
    ImportResult,
    Rule,
    TransactionRecord,
    month_key,
    sort_newest_first,
)
from .normalizers import clean_amount, records_to_csv
from .rules import categorize_record, reapply_rules
from .store import ExpenseStore

# Fields a user may change on an existing row.
EDITABLE_FIELDS = frozenset({"budget_category_id", "ignored"})

_logger = get_logger("household_budget.ledger")


def build_expense(
    *,
    transaction_date: str,
    description: str,
    debit: str = "0",
    credit: str = "0",
    posted_date: str | None = None,
    card_no: str = "",
    category: str = "",
    budget_category_id: str | None = None,
    ignored: bool = False,
) -> TransactionRecord:
    """Build a canonical record from user-entered fields.

    Strings are trimmed, amounts lose ``,`` and ``$`` (empty -> ``"0"``) and
    ``posted_date`` defaults to ``transaction_date``.
    """

    return TransactionRecord(
        transaction_date=transaction_date.strip(),
        posted_date=(posted_date if posted_date is not None else transaction_date).strip(),
        card_no=card_no.strip(),
        description=description.strip(),
        category=category.strip(),
        debit=clean_amount(str(debit)),
        credit=clean_amount(str(credit)),
        budget_category_id=budget_category_id or None,
        ignored=ignored,
    )


def _check_updates(updates: dict[str, Any]) -> None:
    unknown = set(updates) - EDITABLE_FIELDS
    if unknown:
        raise ValueError(
            f"Cannot edit field(s) {sorted(unknown)}; editable: {sorted(EDITABLE_FIELDS)}"
        )


class ExpenseLedger:
    """Working set for one month partition of ``store``.

    The partition is loaded on construction; every mutation starts from the
    stored rows, never from an empty list.
    """

    def __init__(self, store: ExpenseStore, month_key: str) -> None:
        self.store = store
        self.month_key = month_key
        self.expenses: list[TransactionRecord] = []
        self.load()

    def load(self) -> list[TransactionRecord]:
        self.expenses = self.store.get_records_for_month(self.month_key)
        return self.expenses

    def save(self, records: Sequence[TransactionRecord]) -> None:
        """Persist ``records`` as this month's full partition."""

        rows = list(records)
        self.store.replace_records_for_month(self.month_key, rows)
        self.expenses = rows

    # -- import ---------------------------------------------------------------

    def import_and_merge(self, csv_text: str, rules: Sequence[Rule] = ()) -> ImportResult:
        """Import a bank CSV into the store and reload this month."""

        result = import_and_merge(self.store, csv_text, rules)
        self.load()
        return result

    def add_single_expense(
        self, rules: Sequence[Rule] = (), **fields: Any
    ) -> TransactionRecord:
        """Add one user-entered expense (see :func:`build_expense` for ``fields``).

        Rules run only when no ``budget_category_id`` was supplied. A record
        dated outside this ledger's month is written to its own partition and
        the working set is left alone.
        """

        record = build_expense(**fields)
        if not record.budget_category_id and rules:
            record = categorize_record(record, rules)

        target = month_key(record)
        # Undated rows stay in the ledger month, as the month key cannot place them.
        if target == self.month_key or len(target) != 7:
            self.save(sort_newest_first([*self.expenses, record]))
        else:
            others = self.store.get_records_for_month(target)
            self.store.replace_records_for_month(target, sort_newest_first([*others, record]))
            _logger.info("added expense to partition %s (ledger is %s)", target, self.month_key)
        return record

    # -- row mutations --------------------------------------------------------

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self.expenses):
            raise IndexError(f"row {index} out of range for {len(self.expenses)} row(s)")

    def update_row(self, index: int, **updates: Any) -> None:
        _check_updates(updates)
        self._check_index(index)
        rows = list(self.expenses)
        rows[index] = replace(rows[index], **updates)
        self.save(rows)

    def bulk_update_rows(self, indices: Iterable[int], **updates: Any) -> None:
        _check_updates(updates)
        wanted = set(indices)
        self.save(
            [replace(r, **updates) if i in wanted else r for i, r in enumerate(self.expenses)]
        )

    def delete_row(self, index: int) -> None:
        self._check_index(index)
        rows = list(self.expenses)
        del rows[index]
        self.save(rows)

    def bulk_delete_rows(self, indices: Iterable[int]) -> None:
        wanted = set(indices)
        self.save([r for i, r in enumerate(self.expenses) if i not in wanted])

    def set_all_expenses(self, records: Sequence[TransactionRecord]) -> None:
        self.save(records)

    def reapply_rules(self, rules: Sequence[Rule]) -> int:
        """Re-run ``rules`` on rows without a valid category; returns rows changed."""

        updated = reapply_rules(self.expenses, rules, self.store.is_valid_category_id)
        changed = sum(1 for old, new in zip(self.expenses, updated, strict=True) if old != new)
        self.set_all_expenses(updated)
        return changed


def export_month_csv(store: ExpenseStore, month_key: str) -> str:
    """Canonical CSV for one stored month (header only when empty)."""

    return records_to_csv(store.get_records_for_month(month_key))


__all__ = [
    "EDITABLE_FIELDS",
    "ExpenseLedger",
    "build_expense",
    "export_month_csv",
]
