"""Data models for ``household_budget``.

Two families live here:

- :class:`TransactionRecord`, the canonical imported/entered transaction. It is
  a frozen ``dataclass`` whose fields are all strings (plus ``ignored``) so that
  CSV and database round-trips are exact. Amounts are decimal strings with no
  currency symbols or thousands separators, ``"0"`` when not applicable.
- Pydantic models for user configuration (:class:`Rule`,
  :class:`BudgetCategory` and their list wrappers) which are validated at the
  boundary where they are created or loaded from JSON.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal, NamedTuple, TypeAlias

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

# Sentinel ``target_category_id`` marking matching transactions as ignored.
IGNORE_TARGET = "ignore"

# Validation context for configuration read back from storage or exported files.
# Creation-time checks (regex compiles, non-negative limit) are skipped under it.
STORED = {"stored": True}

# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TransactionRecord:
    """One imported or manually-entered financial event.

    A record is either a debit (``debit > 0`` and ``credit == "0"``) or a
    credit. ``budget_category_id`` is ``None`` for uncategorized rows; ignored
    rows are kept in storage but excluded from totals. ``id`` is assigned by
    the persistent store and is ``None`` for records parsed fresh from CSV.
    """

    transaction_date: str
    posted_date: str
    card_no: str
    description: str
    category: str
    debit: str
    credit: str
    budget_category_id: str | None = None
    ignored: bool = False
    id: str | None = None


NaturalKey: TypeAlias = tuple[str, str, str, str]
"""``(transaction_date, description, debit, credit)``; identical keys are duplicates."""


def natural_key(record: TransactionRecord) -> NaturalKey:
    # Lossy by design: two genuine same-day, same-amount, same-description
    # transactions collapse into one.
    return (record.transaction_date, record.description, record.debit, record.credit)


def month_key(record: TransactionRecord) -> str:
    """Return the ``YYYY-MM`` partition key (may be malformed for bad dates)."""

    return (record.transaction_date or "")[:7]


def sort_newest_first(records: Sequence[TransactionRecord]) -> list[TransactionRecord]:
    """Sort by ``transaction_date`` descending (ISO strings compare chronologically).

    The sort is stable, so rows sharing a date keep their relative order.
    """

    return sorted(records, key=lambda r: r.transaction_date or "", reverse=True)


# ---------------------------------------------------------------------------
# Rule engine results
# ---------------------------------------------------------------------------


class RuleDecision(NamedTuple):
    """Outcome of evaluating the rule list against one transaction."""

    budget_category_id: str | None
    ignored: bool


class ImportResult(NamedTuple):
    """Counts reported by an import.

    - ``added == 0 and total == 0``: nothing parseable, empty store.
    - ``added == 0 and total > 0``: every row was already present.
    - ``added > 0``: new rows landed.
    """

    added: int
    total: int


# ---------------------------------------------------------------------------
# User configuration
# ---------------------------------------------------------------------------


def is_regex_pattern(pattern: str) -> bool:
    return len(pattern) >= 2 and pattern.startswith("/") and pattern.endswith("/")


def _from_storage(info: ValidationInfo) -> bool:
    return bool(info.context and info.context.get("stored"))


class Rule(BaseModel):
    """Ordered categorization directive.

    ``pattern`` is either ``/regex/`` (case-sensitive search) or plain text
    (case-insensitive substring). ``source`` picks the transaction field it is
    tested against. ``target_category_id`` is a budget category id or
    :data:`IGNORE_TARGET`.
    """

    # camelCase aliases keep rules.json compatible with the desktop app files.
    model_config = ConfigDict(
        extra="ignore", frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    id: str
    pattern: str
    source: Literal["description", "category"] = "description"
    target_category_id: str

    @field_validator("pattern")
    @classmethod
    def _pattern_compiles(cls, v: str, info: ValidationInfo) -> str:
        if not v:
            raise ValueError("pattern must be non-empty")
        if is_regex_pattern(v) and not _from_storage(info):
            try:
                re.compile(v[1:-1])
            except re.error as exc:
                raise ValueError(f"invalid regular expression {v!r}: {exc}") from exc
        return v

    @field_validator("target_category_id")
    @classmethod
    def _target_non_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("target_category_id must be non-empty")
        return v


class RulesConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    rules: list[Rule] = Field(default_factory=list)


class BudgetCategory(BaseModel):
    """A user-defined spending or income bucket with an optional monthly limit."""

    model_config = ConfigDict(
        extra="ignore",
        frozen=True,
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str
    name: str = Field(min_length=1)
    monthly_limit: float = 0.0
    type: Literal["expense", "income"] = "expense"

    @field_validator("monthly_limit")
    @classmethod
    def _limit_non_negative(cls, v: float, info: ValidationInfo) -> float:
        if v < 0 and not _from_storage(info):
            raise ValueError("monthly_limit must be >= 0")
        return v


class BudgetConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    categories: list[BudgetCategory] = Field(default_factory=list)


__all__ = [
    "IGNORE_TARGET",
    "STORED",
    "BudgetCategory",
    "BudgetConfig",
    "ImportResult",
    "NaturalKey",
    "Rule",
    "RuleDecision",
    "RulesConfig",
    "TransactionRecord",
    "is_regex_pattern",
    "month_key",
    "natural_key",
    "sort_newest_first",
]
