"""Month-partitioned, deduplicating import of bank CSV exports.

Pipeline for one :func:`import_and_merge` call:

1. Parse the CSV into candidate records (:mod:`.normalizers`).
2. Run the rule engine over candidates without a ``budget_category_id``.
3. Group candidates by ``YYYY-MM``; candidates whose month key is not seven
   characters long are dropped without error.
4. Per month: load the stored partition, append each candidate whose natural
   key is neither stored nor already appended in this pass, sort newest first
   and replace the partition.
5. Count every stored record for ``total``.

Partitions are written one after another. A storage failure propagates
immediately: months already written stay committed, later ones are not
attempted. Re-running the same import is safe because duplicates are skipped.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from .logging_setup import get_logger
from .models import (
    ImportResult,
    NaturalKey,
    Rule,
    TransactionRecord,
    month_key,
    natural_key,
    sort_newest_first,
)
from .normalizers import parse_to_records
from .rules import categorize_record
from .store import ExpenseStore

_logger = get_logger("household_budget.merge")


def categorize_uncategorized(
    records: Iterable[TransactionRecord], rules: Sequence[Rule]
) -> list[TransactionRecord]:
    """Apply ``rules`` to records lacking a category; others pass through.

    With an empty rule list the records are returned unchanged.
    """

    if not rules:
        return list(records)
    return [r if r.budget_category_id else categorize_record(r, rules) for r in records]


def partition_by_month(
    records: Iterable[TransactionRecord],
) -> dict[str, list[TransactionRecord]]:
    """Group records by ``YYYY-MM``, preserving input order within each month."""

    by_month: dict[str, list[TransactionRecord]] = {}
    dropped = 0
    for r in records:
        m = month_key(r)
        if len(m) != 7:
            dropped += 1
            continue
        by_month.setdefault(m, []).append(r)
    if dropped:
        _logger.warning("dropped %d row(s) without a usable transaction date", dropped)
    return by_month


def merge_partition(
    existing: Sequence[TransactionRecord], incoming: Iterable[TransactionRecord]
) -> tuple[list[TransactionRecord], int]:
    """Merge ``incoming`` into ``existing`` by natural key.

    Returns the merged partition sorted newest first and the number of
    records appended. Duplicates inside ``incoming`` collapse to their first
    occurrence.
    """

    seen: set[NaturalKey] = {natural_key(r) for r in existing}
    merged = list(existing)
    added = 0
    for r in incoming:
        key = natural_key(r)
        if key in seen:
            continue
        seen.add(key)
        merged.append(r)
        added += 1
    return sort_newest_first(merged), added


def merge_records(
    store: ExpenseStore, records: Iterable[TransactionRecord]
) -> ImportResult:
    """Merge already-normalized records into ``store`` (steps 3-5 above)."""

    added = 0
    for m, incoming in partition_by_month(records).items():
        merged, added_here = merge_partition(store.get_records_for_month(m), incoming)
        store.replace_records_for_month(m, merged)
        _logger.debug("partition %s: %d new, %d total", m, added_here, len(merged))
        added += added_here

    total = len(store.get_all_records())
    return ImportResult(added=added, total=total)


def import_and_merge(
    store: ExpenseStore, csv_text: str, rules: Sequence[Rule] = ()
) -> ImportResult:
    """Import a bank CSV export into ``store``; see the module docstring."""

    candidates = categorize_uncategorized(parse_to_records(csv_text), rules)
    result = merge_records(store, candidates)
    _logger.info(
        "import: %d candidate(s), %d added, %d stored in total",
        len(candidates),
        result.added,
        result.total,
    )
    return result


__all__ = [
    "categorize_uncategorized",
    "import_and_merge",
    "merge_partition",
    "merge_records",
    "partition_by_month",
]
