"""Store-specific behaviour: file layout, SQL persistence and legacy migration."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from household_budget.file_store import ConfigFileError, CsvDirectoryStore
from household_budget.migration import MigrationResult, migrate_from_files
from household_budget.models import BudgetCategory, Rule
from household_budget.normalizers import CSV_HEADERS, records_to_csv
from household_budget.persistence import SqlExpenseStore
from household_budget.rules import add_rule
from household_budget.settings import open_store, resolve_data_dir
from household_budget.store import ExpenseStore
from tests.helpers.db import sqlite_url
from tests.helpers.store import make_record, strip_ids


def test_both_stores_satisfy_the_protocol(store):
    assert isinstance(store, ExpenseStore)


def test_replace_all_records_repartitions(store):
    store.replace_records_for_month("2020-01", [make_record("2020-01-01", "stale", "1")])
    records = [
        make_record("2024-02-10", "b", "2"),
        make_record("2024-01-05", "a", "1"),
        make_record("2024-02-11", "c", "3"),
    ]

    store.replace_all_records(records)

    assert store.list_all_month_keys() == ["2024-01", "2024-02"]
    assert [r.description for r in store.get_records_for_month("2024-02")] == ["b", "c"]
    assert sorted(r.description for r in store.get_all_records()) == ["a", "b", "c"]


def test_partition_order_is_preserved(store):
    rows = [make_record("2024-01-05", d, "1") for d in ("z", "a", "m")]

    store.replace_records_for_month("2024-01", rows)

    assert strip_ids(store.get_records_for_month("2024-01")) == rows


# ---- CSV directory -----------------------------------------------------------


def test_csv_store_layout(csv_store: CsvDirectoryStore):
    csv_store.replace_records_for_month("2024-03", [make_record("2024-03-05", "Coffee", "4")])
    csv_store.replace_categories([BudgetCategory(id="c1", name="Food", monthly_limit=100)])
    csv_store.replace_rules([Rule(id="r1", pattern="coffee", target_category_id="c1")])

    month_file = csv_store.data_dir / "expenses" / "2024-03.csv"
    assert month_file.read_text(encoding="utf-8").splitlines()[0] == ",".join(CSV_HEADERS)
    assert not list(csv_store.expenses_dir.glob("*.tmp"))

    config = json.loads(csv_store.config_path.read_text(encoding="utf-8"))
    assert config == {
        "categories": [{"id": "c1", "name": "Food", "monthlyLimit": 100.0, "type": "expense"}]
    }
    rules = json.loads(csv_store.rules_path.read_text(encoding="utf-8"))
    assert rules["rules"][0]["targetCategoryId"] == "c1"


def test_csv_store_only_counts_month_files(csv_store: CsvDirectoryStore):
    csv_store.expenses_dir.mkdir(parents=True)
    (csv_store.expenses_dir / "notes.csv").write_text("x", encoding="utf-8")
    (csv_store.expenses_dir / "2024-01.csv.tmp").write_text("x", encoding="utf-8")
    csv_store.replace_records_for_month("2024-01", [])

    assert csv_store.list_all_month_keys() == ["2024-01"]


def test_csv_store_rejects_bad_month_keys(csv_store: CsvDirectoryStore):
    with pytest.raises(ValueError):
        csv_store.get_records_for_month("../2024-01")
    with pytest.raises(ValueError):
        csv_store.replace_records_for_month("2024", [])


def test_csv_store_encodes_unusual_month_keys(csv_store: CsvDirectoryStore):
    row = make_record("2024/03/09", "Slash", "8")

    csv_store.replace_records_for_month("2024/03", [row])
    csv_store.replace_records_for_month("../..//", [])

    names = sorted(p.name for p in csv_store.expenses_dir.iterdir())
    assert names == ["..%2F..%2F%2F.csv", "2024%2F03.csv"]
    assert csv_store.list_all_month_keys() == ["../..//", "2024/03"]
    assert csv_store.get_records_for_month("2024/03") == [row]


def test_csv_store_reads_desktop_config(csv_store: CsvDirectoryStore):
    csv_store.data_dir.mkdir(parents=True)
    csv_store.config_path.write_text(
        json.dumps(
            {
                "categories": [
                    {"id": "c1", "name": "Rent", "monthlyLimit": 1500, "color": "#f00"},
                    {"id": "c2", "name": "Refunds", "monthlyLimit": -20},
                    {"name": "no id"},
                ]
            }
        ),
        encoding="utf-8",
    )

    rent, refunds = csv_store.get_categories()
    assert (rent.name, rent.monthly_limit, rent.type) == ("Rent", 1500.0, "expense")
    assert refunds.monthly_limit == -20.0
    assert csv_store.is_valid_category_id("c1")
    assert csv_store.is_valid_category_id("c2")


def test_csv_store_keeps_rules_written_by_other_clients(csv_store: CsvDirectoryStore):
    csv_store.data_dir.mkdir(parents=True)
    csv_store.rules_path.write_text(
        json.dumps(
            {
                "rules": [
                    {"id": "r1", "pattern": "rent", "targetCategoryId": "c1", "createdAt": 1},
                    {"id": "r2", "pattern": "/(?<shop>AMZN)/", "targetCategoryId": "c2"},
                    {"id": "r3", "pattern": "", "targetCategoryId": "c3"},
                ]
            }
        ),
        encoding="utf-8",
    )

    assert [r.id for r in csv_store.get_rules()] == ["r1", "r2"]

    add_rule(csv_store, pattern="coffee", target_category_id="c4")

    assert [r.pattern for r in csv_store.get_rules()] == ["rent", "/(?<shop>AMZN)/", "coffee"]


@pytest.mark.parametrize("text", ["{not json", "[]", '{"rules": {"id": "r1"}}'])
def test_csv_store_refuses_unreadable_rules_file(csv_store: CsvDirectoryStore, text: str):
    csv_store.data_dir.mkdir(parents=True)
    csv_store.rules_path.write_text(text, encoding="utf-8")

    with pytest.raises(ConfigFileError):
        csv_store.get_rules()
    with pytest.raises(ConfigFileError):
        add_rule(csv_store, pattern="coffee", target_category_id="c1")
    assert csv_store.rules_path.read_text(encoding="utf-8") == text


def test_legacy_file_is_split_by_month(csv_store: CsvDirectoryStore):
    csv_store.data_dir.mkdir(parents=True)
    legacy = [
        make_record("2024-01-02", "early", "1"),
        make_record("2024-02-15", "mid", "2"),
        make_record("2024-01-20", "late", "3"),
        make_record("bad", "dropped", "4"),
    ]
    csv_store.legacy_path.write_text(records_to_csv(legacy), encoding="utf-8")

    assert csv_store.migrate_legacy_file() == 2
    assert not csv_store.legacy_path.exists()
    assert [r.description for r in csv_store.get_records_for_month("2024-01")] == [
        "late",
        "early",
    ]
    assert csv_store.migrate_legacy_file() == 0


# ---- SQL ---------------------------------------------------------------------


def test_sql_store_assigns_ids_and_persists_across_instances(sql_store, tmp_path: Path):
    sql_store.replace_records_for_month("2024-03", [make_record("2024-03-05", "Coffee", "4")])

    (row,) = SqlExpenseStore(sqlite_url(tmp_path)).get_records_for_month("2024-03")

    assert row.id
    assert strip_ids([row]) == [make_record("2024-03-05", "Coffee", "4")]


def test_sql_store_keeps_ids_on_rewrite(sql_store):
    sql_store.replace_records_for_month("2024-03", [make_record("2024-03-05", "Coffee", "4")])
    (first,) = sql_store.get_records_for_month("2024-03")

    sql_store.replace_records_for_month("2024-03", [first])

    assert sql_store.get_records_for_month("2024-03") == [first]


# ---- Settings and migration --------------------------------------------------


def test_open_store_prefers_database_url(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    assert isinstance(open_store(data_dir=tmp_path / "d"), CsvDirectoryStore)

    monkeypatch.setenv("DATABASE_URL", sqlite_url(tmp_path))
    assert isinstance(open_store(data_dir=tmp_path / "d"), SqlExpenseStore)


def test_resolve_data_dir_uses_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("HOUSEHOLD_BUDGET_DATA_DIR", str(tmp_path / "env"))

    assert resolve_data_dir() == tmp_path / "env"
    assert resolve_data_dir(tmp_path / "flag") == tmp_path / "flag"


def test_migrate_from_files_into_sql(csv_store: CsvDirectoryStore, sql_store, tmp_path: Path):
    csv_store.replace_categories([BudgetCategory(id="c1", name="Food")])
    csv_store.replace_rules([Rule(id="r1", pattern="/^UBER/", target_category_id="ignore")])
    csv_store.replace_records_for_month("2024-01", [make_record("2024-01-05", "a", "1")])
    csv_store.replace_records_for_month("2024-02", [make_record("2024-02-05", "b", "2")])
    notes = tmp_path / "notes.txt"
    notes.write_text("skip me", encoding="utf-8")
    paths = [
        csv_store.config_path,
        csv_store.rules_path,
        *sorted(csv_store.expenses_dir.glob("*.csv")),
        notes,
    ]

    result = migrate_from_files(sql_store, paths)

    assert result == MigrationResult(imported=True, reason="ok")
    assert sql_store.get_categories() == csv_store.get_categories()
    assert sql_store.get_rules() == csv_store.get_rules()
    assert sql_store.list_all_month_keys() == ["2024-01", "2024-02"]
    assert strip_ids(sql_store.get_all_records()) == [
        make_record("2024-02-05", "b", "2"),
        make_record("2024-01-05", "a", "1"),
    ]


def test_migrate_desktop_config_into_sql(sql_store, tmp_path: Path):
    config = tmp_path / "config.json"
    config.write_text(
        json.dumps({"categories": [{"id": "c1", "name": "Refunds", "monthlyLimit": -5}]}),
        encoding="utf-8",
    )
    rules = tmp_path / "rules.json"
    rules.write_text(
        json.dumps(
            {"rules": [{"id": "r1", "pattern": "/(?<m>x)/", "targetCategoryId": "c1", "x": 1}]}
        ),
        encoding="utf-8",
    )

    assert migrate_from_files(sql_store, [config, rules]).imported is True

    (category,) = sql_store.get_categories()
    assert category.monthly_limit == -5.0
    assert [r.pattern for r in sql_store.get_rules()] == ["/(?<m>x)/"]


def test_migrate_from_nothing_is_empty(sql_store, tmp_path: Path):
    assert migrate_from_files(sql_store, []) == MigrationResult(imported=False, reason="empty")
