"""Budget category administration.

Categories are stored as one list per store; every operation here loads the
full list, transforms it and writes it back with ``replace_categories``.
Validation (non-empty name, non-negative limit, ``expense``/``income`` type)
happens in :class:`~household_budget.models.BudgetCategory`.
"""

from __future__ import annotations

import uuid
from typing import Any

from .models import BudgetCategory
from .store import ExpenseStore


def add_category(
    store: ExpenseStore,
    name: str,
    monthly_limit: float = 0.0,
    type: str = "expense",
) -> BudgetCategory:
    category = BudgetCategory(
        id=str(uuid.uuid4()), name=name, monthly_limit=monthly_limit, type=type
    )
    store.replace_categories([*store.get_categories(), category])
    return category


def update_category(
    store: ExpenseStore, category_id: str, **updates: Any
) -> BudgetCategory | None:
    """Merge ``updates`` (``name``, ``monthly_limit``, ``type``) into one category.

    Returns the updated category, or ``None`` when ``category_id`` is unknown.
    """

    categories = store.get_categories()
    for i, category in enumerate(categories):
        if category.id == category_id:
            merged = BudgetCategory.model_validate(
                {**category.model_dump(), **updates, "id": category_id}
            )
            categories[i] = merged
            store.replace_categories(categories)
            return merged
    return None


def remove_category(store: ExpenseStore, category_id: str) -> bool:
    """Delete a category; ``False`` when it did not exist.

    Transactions pointing at it are not rewritten. They count as uncategorized
    the next time rules are re-applied.
    """

    categories = store.get_categories()
    kept = [c for c in categories if c.id != category_id]
    if len(kept) == len(categories):
        return False
    store.replace_categories(kept)
    return True


__all__ = ["add_category", "remove_category", "update_category"]
