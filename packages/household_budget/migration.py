"""Bulk migration from exported files into a store.

Accepts any mix of ``config.json`` (categories), ``rules.json`` and ``*.csv``
transaction exports, and replaces the corresponding data in the target store
wholesale. This is how data moves from the per-month CSV directory layout
into the SQL store (or back).
"""

from __future__ import annotations

import os
from collections.abc import Iterable
from pathlib import Path
from typing import Literal, NamedTuple

from .logging_setup import get_logger
from .models import STORED, BudgetConfig, RulesConfig, TransactionRecord
from .normalizers import parse_to_records
from .store import ExpenseStore

_logger = get_logger("household_budget.migration")


class MigrationResult(NamedTuple):
    imported: bool
    reason: Literal["ok", "empty"]


def migrate_from_files(
    store: ExpenseStore, paths: Iterable[str | os.PathLike[str]]
) -> MigrationResult:
    """Load exported files and replace categories, rules and records in ``store``.

    Files are recognized by name: ``config.json``, ``rules.json`` and any
    ``*.csv``. Other files are skipped. JSON files that fail validation raise
    :class:`pydantic.ValidationError`; nothing is written in that case.
    """

    config: BudgetConfig | None = None
    rules: RulesConfig | None = None
    records: list[TransactionRecord] = []

    for raw_path in paths:
        path = Path(raw_path)
        name = path.name.lower()
        if name == "config.json":
            config = BudgetConfig.model_validate_json(
                path.read_text(encoding="utf-8"), context=STORED
            )
        elif name == "rules.json":
            rules = RulesConfig.model_validate_json(
                path.read_text(encoding="utf-8"), context=STORED
            )
        elif name.endswith(".csv"):
            records.extend(parse_to_records(path.read_text(encoding="utf-8")))
        else:
            _logger.warning("skipping unrecognized file %s", path)

    if config is not None:
        store.replace_categories(config.categories)
    if rules is not None:
        store.replace_rules(rules.rules)
    if records:
        store.replace_all_records(records)

    changed = config is not None or rules is not None or bool(records)
    _logger.info(
        "migration: categories=%s rules=%s records=%d",
        "yes" if config is not None else "no",
        "yes" if rules is not None else "no",
        len(records),
    )
    return MigrationResult(imported=changed, reason="ok" if changed else "empty")


__all__ = ["MigrationResult", "migrate_from_files"]
