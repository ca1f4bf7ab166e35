"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the budgeting models used by ``household_budget``.
"""

from .budget import Base, BudgetCategoryRow, ExpenseRow, RuleRow

__all__ = [
    "Base",
    "BudgetCategoryRow",
    "ExpenseRow",
    "RuleRow",
]
