"""Store wrappers for tests: count calls and inject partition write failures."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
from typing import Any

from household_budget.models import TransactionRecord
from household_budget.store import ExpenseStore


class StoreWriteError(RuntimeError):
    pass


class FailingStore:
    """Delegate to ``inner`` but raise on the ``fail_on``-th partition write (1-based).

    Successful partition writes are recorded in ``written`` in call order.
    """

    def __init__(self, inner: ExpenseStore, *, fail_on: int) -> None:
        self.inner = inner
        self.fail_on = fail_on
        self.calls = 0
        self.written: list[str] = []

    def replace_records_for_month(
        self, month_key: str, records: Sequence[TransactionRecord]
    ) -> None:
        self.calls += 1
        if self.calls == self.fail_on:
            raise StoreWriteError(f"simulated write failure for {month_key}")
        self.inner.replace_records_for_month(month_key, records)
        self.written.append(month_key)

    def __getattr__(self, name: str) -> Any:
        return getattr(self.inner, name)


def strip_ids(records: Sequence[TransactionRecord]) -> list[TransactionRecord]:
    """Drop store-assigned ids so records compare equal across store types."""

    return [replace(r, id=None) for r in records]


def make_record(
    transaction_date: str,
    description: str,
    debit: str = "0",
    credit: str = "0",
    **extra: Any,
) -> TransactionRecord:
    fields: dict[str, Any] = {
        "posted_date": transaction_date,
        "card_no": "",
        "category": "",
    }
    fields.update(extra)
    return TransactionRecord(
        transaction_date=transaction_date,
        description=description,
        debit=debit,
        credit=credit,
        **fields,
    )
