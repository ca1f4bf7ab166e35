"""Public interface for the ``household_budget`` package.

Symbol re-exports only: the CSV normalizer, the rule engine, the
month-partitioned merge, the per-month ledger and the two expense stores.
"""

from .ledger import EDITABLE_FIELDS, ExpenseLedger, build_expense, export_month_csv
from .merge import import_and_merge, merge_records
from .migration import MigrationResult, migrate_from_files
from .models import (
    IGNORE_TARGET,
    BudgetCategory,
    ImportResult,
    Rule,
    RuleDecision,
    TransactionRecord,
    month_key,
    natural_key,
)
from .normalizers import CSV_HEADERS, parse_to_records, records_to_csv
from .rules import apply_rules, reapply_rules
from .settings import open_store
from .store import ExpenseStore

__all__ = [
    # Normalizer
    "CSV_HEADERS",
    "parse_to_records",
    "records_to_csv",
    # Rules
    "apply_rules",
    "reapply_rules",
    # Merge / ledger
    "import_and_merge",
    "merge_records",
    "ExpenseLedger",
    "EDITABLE_FIELDS",
    "build_expense",
    "export_month_csv",
    # Stores / migration
    "ExpenseStore",
    "open_store",
    "MigrationResult",
    "migrate_from_files",
    # Models / types
    "IGNORE_TARGET",
    "BudgetCategory",
    "ImportResult",
    "Rule",
    "RuleDecision",
    "TransactionRecord",
    "month_key",
    "natural_key",
]
