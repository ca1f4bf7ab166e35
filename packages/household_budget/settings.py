"""Environment-driven configuration and store selection.

Variables
---------
- ``DATABASE_URL``: when set (or passed explicitly), data lives in a
  SQLAlchemy database via :class:`~household_budget.persistence.SqlExpenseStore`.
- ``HOUSEHOLD_BUDGET_DATA_DIR``: directory for the per-month CSV layout used
  otherwise (default ``~/.household-budget``).
- ``HOUSEHOLD_BUDGET_LOG_LEVEL``: read by :mod:`.logging_setup`.
"""

from __future__ import annotations

import os
from pathlib import Path

from .store import ExpenseStore

DATA_DIR_ENV = "HOUSEHOLD_BUDGET_DATA_DIR"
DEFAULT_DATA_DIR = Path.home() / ".household-budget"


def resolve_data_dir(override: str | os.PathLike[str] | None = None) -> Path:
    if override:
        return Path(override).expanduser()
    env_val = os.getenv(DATA_DIR_ENV)
    if env_val and env_val.strip():
        return Path(env_val.strip()).expanduser()
    return DEFAULT_DATA_DIR


def open_store(
    *,
    database_url: str | None = None,
    data_dir: str | os.PathLike[str] | None = None,
) -> ExpenseStore:
    """Return the configured store; a database URL wins over a data directory.

    Store modules are imported lazily to keep CLI startup fast.
    """

    url = database_url or os.getenv("DATABASE_URL")
    if url:
        from .persistence import SqlExpenseStore

        return SqlExpenseStore(url)

    from .file_store import CsvDirectoryStore

    return CsvDirectoryStore(resolve_data_dir(data_dir))


__all__ = ["DATA_DIR_ENV", "DEFAULT_DATA_DIR", "open_store", "resolve_data_dir"]
