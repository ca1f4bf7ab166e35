"""Ordered, first-match-wins rule engine and rule administration.

Evaluation
----------
``apply_rules`` walks the rule list in the order the user configured it and
stops at the first match:

- ``/regex/`` patterns are compiled case-sensitively and searched anywhere in
  the source text (anchors only apply when written, e.g. ``/^AMZN/``);
- a stored ``/regex/`` that does not compile never matches;
- any other pattern is a case-insensitive substring test.

A match on the ``"ignore"`` target yields ``(None, True)``; any other target
yields ``(target, False)``. No match yields ``(None, False)``.

Administration
--------------
``add_rule``/``update_rule``/``remove_rule`` load the full rule list from a
store, transform it and write it back in one ``replace_rules`` call.
"""

from __future__ import annotations

import re
import uuid
from collections.abc import Callable, Iterable, Sequence
from dataclasses import replace
from functools import lru_cache
from typing import Any

from .logging_setup import get_logger
from .models import IGNORE_TARGET, Rule, RuleDecision, TransactionRecord, is_regex_pattern
from .store import ExpenseStore

UNCATEGORIZED = RuleDecision(budget_category_id=None, ignored=False)

_logger = get_logger("household_budget.rules")


@lru_cache(maxsize=512)
def _compile(body: str) -> re.Pattern[str] | None:
    try:
        return re.compile(body)
    except re.error as exc:
        _logger.warning("rule pattern /%s/ does not compile and never matches: %s", body, exc)
        return None


def rule_matches(rule: Rule, description: str, bank_category: str) -> bool:
    source = description if rule.source == "description" else bank_category
    if is_regex_pattern(rule.pattern):
        compiled = _compile(rule.pattern[1:-1])
        return compiled is not None and compiled.search(source) is not None
    return rule.pattern.lower() in source.lower()


def apply_rules(rules: Iterable[Rule], description: str, bank_category: str) -> RuleDecision:
    """Return the decision of the first rule matching the transaction text."""

    for rule in rules:
        if not rule_matches(rule, description, bank_category):
            continue
        if rule.target_category_id == IGNORE_TARGET:
            return RuleDecision(budget_category_id=None, ignored=True)
        return RuleDecision(budget_category_id=rule.target_category_id, ignored=False)
    return UNCATEGORIZED


def categorize_record(record: TransactionRecord, rules: Iterable[Rule]) -> TransactionRecord:
    """Return ``record`` with the rule decision merged in."""

    decision = apply_rules(rules, record.description, record.category)
    return replace(
        record, budget_category_id=decision.budget_category_id, ignored=decision.ignored
    )


def reapply_rules(
    records: Iterable[TransactionRecord],
    rules: Sequence[Rule],
    is_valid_category_id: Callable[[str], bool],
) -> list[TransactionRecord]:
    """Re-run the rules over records that lack a valid category.

    A record keeps its current state when ``budget_category_id`` names a
    category that still exists; explicit user categorization is never
    overwritten. Every other record (``None``, empty, or dangling id) takes
    the fresh rule decision, including the "no match" reset.
    """

    out: list[TransactionRecord] = []
    changed = 0
    for record in records:
        cid = record.budget_category_id
        if cid and is_valid_category_id(cid):
            out.append(record)
            continue
        updated = categorize_record(record, rules)
        changed += updated != record
        out.append(updated)
    _logger.debug("reapply_rules: %d of %d record(s) changed", changed, len(out))
    return out


# ---------------------------------------------------------------------------
# Rule administration (full-list replace)
# ---------------------------------------------------------------------------


def add_rule(
    store: ExpenseStore,
    *,
    pattern: str,
    target_category_id: str,
    source: str = "description",
) -> Rule:
    """Append a new rule (lowest precedence) and persist the list."""

    rule = Rule(
        id=str(uuid.uuid4()),
        pattern=pattern,
        source=source,
        target_category_id=target_category_id,
    )
    store.replace_rules([*store.get_rules(), rule])
    return rule


def update_rule(store: ExpenseStore, rule_id: str, **updates: Any) -> Rule | None:
    """Apply ``updates`` to the rule with ``rule_id`` in place; ``None`` if absent.

    The rule keeps its position in the list. The merged rule is re-validated.
    """

    rules = store.get_rules()
    for i, rule in enumerate(rules):
        if rule.id == rule_id:
            merged = Rule.model_validate({**rule.model_dump(), **updates, "id": rule_id})
            rules[i] = merged
            store.replace_rules(rules)
            return merged
    return None


def remove_rule(store: ExpenseStore, rule_id: str) -> bool:
    rules = store.get_rules()
    kept = [r for r in rules if r.id != rule_id]
    if len(kept) == len(rules):
        return False
    store.replace_rules(kept)
    return True


__all__ = [
    "UNCATEGORIZED",
    "add_rule",
    "apply_rules",
    "categorize_record",
    "reapply_rules",
    "remove_rule",
    "rule_matches",
    "update_rule",
]
