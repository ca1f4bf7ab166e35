"""Directory-of-CSV-files :class:`~household_budget.store.ExpenseStore`.

Layout (relative to the data directory):

- ``expenses/YYYY-MM.csv``: one canonical CSV per month partition
- ``config.json``: ``{"categories": [...]}``
- ``rules.json``: ``{"rules": [...]}`` in evaluation order
- ``expenses.csv``: legacy single-file export, split by
  :meth:`CsvDirectoryStore.migrate_legacy_file`

A month key is whatever seven characters the transaction date starts with.
Dates the normalizer passes through unchanged (``2024/03/09``) give keys such
as ``2024/03``; file names are percent-encoded (``2024%2F03.csv``) so every
key maps to one file inside ``expenses/``. ``YYYY-MM`` names are unchanged.

Atomicity: every write targets ``<name>.tmp`` first and is then moved into
place with ``os.replace``, so a partition file is always either the old or
the new version.

``config.json`` and ``rules.json`` load entry by entry: an entry that fails
validation is skipped with a warning. A file that is not a JSON object
holding the expected list raises :class:`ConfigFileError` instead of reading
as empty.
"""

from __future__ import annotations

import contextlib
import json
import os
from collections.abc import Sequence
from pathlib import Path
from typing import TypeVar
from urllib.parse import quote, unquote

from pydantic import BaseModel, ValidationError

from .logging_setup import get_logger
from .models import (
    STORED,
    BudgetCategory,
    BudgetConfig,
    Rule,
    RulesConfig,
    TransactionRecord,
    month_key,
    sort_newest_first,
)
from .normalizers import parse_to_records, records_to_csv

_logger = get_logger("household_budget.file_store")

M = TypeVar("M", bound=BaseModel)


class ConfigFileError(ValueError):
    """``config.json`` or ``rules.json`` exists but cannot be read."""


def _atomic_write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    try:
        tmp.write_text(text, encoding="utf-8")
        os.replace(tmp, path)
    except Exception:
        with contextlib.suppress(FileNotFoundError):
            tmp.unlink()
        raise


def _read_text(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None


class CsvDirectoryStore:
    """Expense store keeping one CSV file per month under ``data_dir``."""

    def __init__(self, data_dir: str | os.PathLike[str]) -> None:
        self.data_dir = Path(data_dir)
        self.expenses_dir = self.data_dir / "expenses"
        self.config_path = self.data_dir / "config.json"
        self.rules_path = self.data_dir / "rules.json"
        self.legacy_path = self.data_dir / "expenses.csv"

    def _month_path(self, month_key: str) -> Path:
        if len(month_key) != 7:
            raise ValueError(f"Invalid month key: {month_key!r} (expected 7 characters)")
        return self.expenses_dir / f"{quote(month_key, safe='')}.csv"

    # -- month partitions ---------------------------------------------------

    def get_records_for_month(self, month_key: str) -> list[TransactionRecord]:
        raw = _read_text(self._month_path(month_key))
        if not raw or not raw.strip():
            return []
        return parse_to_records(raw)

    def replace_records_for_month(
        self, month_key: str, records: Sequence[TransactionRecord]
    ) -> None:
        _atomic_write(self._month_path(month_key), records_to_csv(records))
        _logger.debug("wrote %s with %d row(s)", self._month_path(month_key), len(records))

    def list_all_month_keys(self) -> list[str]:
        if not self.expenses_dir.is_dir():
            return []
        keys = (
            unquote(p.stem)
            for p in self.expenses_dir.iterdir()
            if p.is_file() and p.suffix == ".csv"
        )
        return sorted(k for k in keys if len(k) == 7)

    def get_all_records(self) -> list[TransactionRecord]:
        out: list[TransactionRecord] = []
        for m in self.list_all_month_keys():
            out.extend(self.get_records_for_month(m))
        return out

    def replace_all_records(self, records: Sequence[TransactionRecord]) -> None:
        """Rewrite every partition from ``records``; malformed month keys are dropped."""

        by_month = _partition(records)
        for stale in set(self.list_all_month_keys()) - by_month.keys():
            self._month_path(stale).unlink()
        for m, rows in by_month.items():
            self.replace_records_for_month(m, rows)

    def migrate_legacy_file(self) -> int:
        """Split a legacy ``expenses.csv`` into month files, then remove it.

        Returns the number of partitions written (``0`` when there is nothing
        to migrate).
        """

        raw = _read_text(self.legacy_path)
        if raw is None:
            return 0
        by_month = _partition(parse_to_records(raw)) if raw.strip() else {}
        for m, rows in by_month.items():
            self.replace_records_for_month(m, sort_newest_first(rows))
        self.legacy_path.unlink()
        _logger.info("migrated legacy expenses.csv into %d month file(s)", len(by_month))
        return len(by_month)

    # -- configuration ------------------------------------------------------

    def _load_entries(self, path: Path, key: str, model: type[M]) -> list[M]:
        raw = _read_text(path)
        if not raw or not raw.strip():
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ConfigFileError(f"{path} is not valid JSON: {exc}") from exc
        entries = data.get(key, []) if isinstance(data, dict) else None
        if not isinstance(entries, list):
            raise ConfigFileError(f"{path} must be an object with a {key!r} list")

        out: list[M] = []
        for i, entry in enumerate(entries):
            try:
                out.append(model.model_validate(entry, context=STORED))
            except ValidationError as exc:
                _logger.warning("skipping %s entry %d: %s", path.name, i, exc)
        return out

    def is_valid_category_id(self, category_id: str) -> bool:
        return any(c.id == category_id for c in self.get_categories())

    def get_categories(self) -> list[BudgetCategory]:
        return self._load_entries(self.config_path, "categories", BudgetCategory)

    def replace_categories(self, categories: Sequence[BudgetCategory]) -> None:
        config = BudgetConfig(categories=list(categories))
        _atomic_write(self.config_path, config.model_dump_json(by_alias=True, indent=2))

    def get_rules(self) -> list[Rule]:
        return self._load_entries(self.rules_path, "rules", Rule)

    def replace_rules(self, rules: Sequence[Rule]) -> None:
        config = RulesConfig(rules=list(rules))
        _atomic_write(self.rules_path, config.model_dump_json(by_alias=True, indent=2))


def _partition(records: Sequence[TransactionRecord]) -> dict[str, list[TransactionRecord]]:
    by_month: dict[str, list[TransactionRecord]] = {}
    for r in records:
        m = month_key(r)
        if len(m) != 7:
            continue
        by_month.setdefault(m, []).append(r)
    return by_month


__all__ = ["ConfigFileError", "CsvDirectoryStore"]
