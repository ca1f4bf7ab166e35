"""Pytest configuration shared by the ``household_budget`` tests.

Every store-level test runs against both ``ExpenseStore`` implementations:
the per-month CSV directory under ``tmp_path`` and a file-backed SQLite
database (also under ``tmp_path``). A file DB is used because in-memory
SQLite databases are per-connection and the store opens a fresh session for
every call.

Two autouse fixtures keep tests hermetic: the store-selecting environment
variables are cleared, and the package log handler installed by CLI runs is
removed again afterwards.
"""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from db.client import dispose_engines
from household_budget import logging_setup
from household_budget.file_store import CsvDirectoryStore
from household_budget.persistence import SqlExpenseStore
from tests.helpers.db import bootstrap_sqlite_db


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for var in ("DATABASE_URL", "HOUSEHOLD_BUDGET_DATA_DIR", "HOUSEHOLD_BUDGET_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    # The CLI loads ``.env`` from the working directory; keep it empty.
    monkeypatch.chdir(tmp_path)


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    logger = logging.getLogger(logging_setup.PACKAGE_LOGGER)
    for h in list(logger.handlers):
        logger.removeHandler(h)
    logger.propagate = True
    logging_setup._handler = None


@pytest.fixture
def sql_store(tmp_path: Path):
    store = SqlExpenseStore(bootstrap_sqlite_db(tmp_path), create_schema=False)
    yield store
    dispose_engines()


@pytest.fixture
def csv_store(tmp_path: Path) -> CsvDirectoryStore:
    return CsvDirectoryStore(tmp_path / "data")


@pytest.fixture(params=["csv", "sql"])
def store(request: pytest.FixtureRequest):
    """Parametrized over both store implementations."""

    return request.getfixturevalue(f"{request.param}_store")
