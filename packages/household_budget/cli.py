# ruff: noqa: I001
"""CLI for the ``household_budget`` package.

A Typer console interface over the ingestion core. Environment variables
(``DATABASE_URL``, ``HOUSEHOLD_BUDGET_DATA_DIR``, ``HOUSEHOLD_BUDGET_LOG_LEVEL``)
are loaded from a local ``.env`` using ``python-dotenv`` before any command
runs. Business logic lives in :mod:`.merge`, :mod:`.ledger`, :mod:`.rules`
and :mod:`.categories`; this module only parses options, reports results and
turns failures into ``Error: ...`` messages with exit code 1.
"""

from __future__ import annotations

import sys
from datetime import date
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table
from typer.models import OptionInfo

from .file_store import ConfigFileError
from .logging_setup import configure_logging
from .models import ImportResult
from .settings import open_store
from .store import ExpenseStore

console = Console()


# ---- Small module-level helpers used by CLI commands -------------------------


def describe_import(result: ImportResult) -> str:
    """User-facing summary of an import's ``(added, total)`` counts."""

    added, total = result
    if added == 0 and total == 0:
        return "No transactions found in file."
    if added == 0:
        return f"No new transactions (all {total} already imported)."
    return f"Imported {added} new transaction{'' if added == 1 else 's'}. Total: {total}."


def _fail(message: str) -> typer.Exit:
    print(f"Error: {message}", file=sys.stderr)
    return typer.Exit(1)


def _store(ctx: typer.Context) -> ExpenseStore:
    opts = ctx.obj or {}
    try:
        return open_store(database_url=opts.get("database_url"), data_dir=opts.get("data_dir"))
    except Exception as e:
        raise _fail(f"could not open store: {e}") from e


def _current_month() -> str:
    return date.today().isoformat()[:7]


# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults).
CSV_PATH_OPTION: OptionInfo = typer.Option(
    ...,
    "--csv-path",
    help="Path to a bank CSV export",
    dir_okay=False,
    file_okay=True,
    exists=False,  # the handler reports a readable error
)
MONTH_OPTION: OptionInfo = typer.Option(
    "--month", help="Month partition as YYYY-MM (defaults to the current month)."
)


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help="Import bank CSV exports, categorize them with rules and manage the budget ledger.",
)


@app.callback()
def _root(
    ctx: typer.Context,
    *,
    database_url: str | None = typer.Option(
        None, help="SQLAlchemy URL (falls back to DATABASE_URL; overrides --data-dir)."
    ),
    data_dir: Path | None = typer.Option(
        None,
        help="Directory of per-month CSV files (falls back to HOUSEHOLD_BUDGET_DATA_DIR).",
    ),
    log_level: str | None = typer.Option(None, help="Log level (e.g. DEBUG, INFO)."),
) -> None:
    """Load ``.env`` (without overriding the environment) and configure logging."""

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(log_level)
    ctx.obj = {"database_url": database_url, "data_dir": data_dir}


@app.command("import-csv")
def import_csv_cmd(
    ctx: typer.Context,
    csv_path: Annotated[Path, CSV_PATH_OPTION],
) -> None:
    """Merge a bank CSV export into the store, applying the saved rules."""

    from .merge import import_and_merge

    try:
        text = csv_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise _fail(f"File not found: {csv_path}") from None
    except (PermissionError, UnicodeDecodeError) as e:
        raise _fail(f"could not read '{csv_path}': {e}") from e

    if not text.strip():
        typer.echo("File is empty.")
        return

    store = _store(ctx)
    try:
        result = import_and_merge(store, text, store.get_rules())
    except Exception as e:
        raise _fail(f"import failed: {e}") from e
    typer.echo(describe_import(result))


@app.command("export-csv")
def export_csv_cmd(
    ctx: typer.Context,
    month: Annotated[str | None, MONTH_OPTION] = None,
    output: Path | None = typer.Option(None, help="Write to this file instead of stdout."),
) -> None:
    """Print (or write) one month in the canonical CSV format."""

    from .ledger import export_month_csv

    store = _store(ctx)
    try:
        text = export_month_csv(store, month or _current_month())
    except Exception as e:
        raise _fail(f"export failed: {e}") from e
    if output is None:
        typer.echo(text, nl=False)
    else:
        output.write_text(text, encoding="utf-8")


@app.command("list-expenses")
def list_expenses_cmd(
    ctx: typer.Context,
    month: Annotated[str | None, MONTH_OPTION] = None,
) -> None:
    """Show one month's transactions."""

    store = _store(ctx)
    m = month or _current_month()
    try:
        records = store.get_records_for_month(m)
    except Exception as e:
        raise _fail(f"could not load {m}: {e}") from e

    table = Table(title=f"Transactions {m}")
    for col in ("#", "Date", "Description", "Debit", "Credit", "Budget Category", "Ignored"):
        table.add_column(col)
    for i, r in enumerate(records):
        table.add_row(
            str(i),
            r.transaction_date,
            r.description,
            r.debit,
            r.credit,
            r.budget_category_id or "",
            "yes" if r.ignored else "",
        )
    console.print(table)


@app.command("add-expense")
def add_expense_cmd(
    ctx: typer.Context,
    description: str = typer.Option(..., help="Payee or memo."),
    amount: str = typer.Option(..., help="Amount, e.g. 12.50 or $1,200."),
    transaction_date: str | None = typer.Option(
        None, "--date", help="Transaction date YYYY-MM-DD (defaults to today)."
    ),
    income: bool = typer.Option(False, help="Record as a credit instead of a debit."),
    category_id: str | None = typer.Option(
        None, help="Budget category id; rules run when omitted."
    ),
    ignored: bool = typer.Option(False, help="Exclude from totals."),
) -> None:
    """Add one manually entered transaction."""

    from .ledger import ExpenseLedger

    tx_date = transaction_date or date.today().isoformat()
    store = _store(ctx)
    try:
        ledger = ExpenseLedger(store, tx_date[:7])
        record = ledger.add_single_expense(
            store.get_rules(),
            transaction_date=tx_date,
            description=description,
            debit="0" if income else amount,
            credit=amount if income else "0",
            budget_category_id=category_id,
            ignored=ignored,
        )
    except Exception as e:
        raise _fail(f"could not add expense: {e}") from e
    label = "ignored" if record.ignored else (record.budget_category_id or "uncategorized")
    typer.echo(f"Added {record.transaction_date} {record.description} ({label}).")


@app.command("reapply-rules")
def reapply_rules_cmd(
    ctx: typer.Context,
    month: Annotated[str | None, MONTH_OPTION] = None,
) -> None:
    """Re-run rules on a month's transactions that lack a valid category."""

    from .ledger import ExpenseLedger

    store = _store(ctx)
    try:
        ledger = ExpenseLedger(store, month or _current_month())
        changed = ledger.reapply_rules(store.get_rules())
    except Exception as e:
        raise _fail(f"re-applying rules failed: {e}") from e
    typer.echo(f"Updated {changed} of {len(ledger.expenses)} transaction(s).")


# ---- Rules ---------------------------------------------------------------------


@app.command("list-rules")
def list_rules_cmd(ctx: typer.Context) -> None:
    """Show rules in evaluation order (first match wins)."""

    table = Table(title="Rules")
    for col in ("#", "Id", "Source", "Pattern", "Target"):
        table.add_column(col)
    try:
        rules = _store(ctx).get_rules()
    except ConfigFileError as e:
        raise _fail(str(e)) from e
    for i, r in enumerate(rules):
        table.add_row(str(i), r.id, r.source, r.pattern, r.target_category_id)
    console.print(table)


@app.command("add-rule")
def add_rule_cmd(
    ctx: typer.Context,
    pattern: str = typer.Option(..., help="Substring, or /regex/ for a regular expression."),
    target: str = typer.Option(..., help="Budget category id, or 'ignore'."),
    source: str = typer.Option("description", help="Field to match: description or category."),
) -> None:
    """Append a rule at the lowest precedence."""

    from pydantic import ValidationError

    from .rules import add_rule

    try:
        rule = add_rule(_store(ctx), pattern=pattern, target_category_id=target, source=source)
    except ConfigFileError as e:
        raise _fail(str(e)) from e
    except ValidationError as e:
        raise _fail(f"invalid rule: {e}") from e
    typer.echo(f"Added rule {rule.id}.")


@app.command("remove-rule")
def remove_rule_cmd(ctx: typer.Context, rule_id: str) -> None:
    """Delete a rule by id."""

    from .rules import remove_rule

    try:
        removed = remove_rule(_store(ctx), rule_id)
    except ConfigFileError as e:
        raise _fail(str(e)) from e
    if not removed:
        raise _fail(f"no rule with id {rule_id}")
    typer.echo(f"Removed rule {rule_id}.")


# ---- Categories ------------------------------------------------------------------


@app.command("list-categories")
def list_categories_cmd(ctx: typer.Context) -> None:
    """Show budget categories."""

    table = Table(title="Budget categories")
    for col in ("Id", "Name", "Type", "Monthly limit"):
        table.add_column(col)
    try:
        categories = _store(ctx).get_categories()
    except ConfigFileError as e:
        raise _fail(str(e)) from e
    for c in categories:
        table.add_row(c.id, c.name, c.type, f"{c.monthly_limit:.2f}")
    console.print(table)


@app.command("add-category")
def add_category_cmd(
    ctx: typer.Context,
    name: str = typer.Option(..., help="Display name."),
    limit: float = typer.Option(0.0, help="Monthly limit."),
    kind: str = typer.Option("expense", "--type", help="expense or income."),
) -> None:
    """Create a budget category."""

    from pydantic import ValidationError

    from .categories import add_category

    try:
        category = add_category(_store(ctx), name, monthly_limit=limit, type=kind)
    except ConfigFileError as e:
        raise _fail(str(e)) from e
    except ValidationError as e:
        raise _fail(f"invalid category: {e}") from e
    typer.echo(f"Added category {category.name} ({category.id}).")


@app.command("remove-category")
def remove_category_cmd(ctx: typer.Context, category_id: str) -> None:
    """Delete a budget category by id."""

    from .categories import remove_category

    try:
        removed = remove_category(_store(ctx), category_id)
    except ConfigFileError as e:
        raise _fail(str(e)) from e
    if not removed:
        raise _fail(f"no category with id {category_id}")
    typer.echo(f"Removed category {category_id}.")


# ---- Migration -------------------------------------------------------------------


@app.command("migrate")
def migrate_cmd(
    ctx: typer.Context,
    files: list[Path] | None = typer.Argument(
        None, help="config.json, rules.json and/or *.csv files."
    ),
    legacy: bool = typer.Option(
        False, help="Split a legacy expenses.csv in the data directory into month files."
    ),
) -> None:
    """Replace store contents from exported files."""

    from .file_store import CsvDirectoryStore
    from .migration import migrate_from_files

    store = _store(ctx)
    try:
        if legacy:
            if not isinstance(store, CsvDirectoryStore):
                raise _fail("--legacy only applies to the CSV data directory")
            written = store.migrate_legacy_file()
            typer.echo(f"Split legacy file into {written} month file(s).")
        if files:
            result = migrate_from_files(store, files)
            typer.echo("Migration complete." if result.imported else "Nothing to migrate.")
    except typer.Exit:
        raise
    except Exception as e:
        raise _fail(f"migration failed: {e}") from e


if __name__ == "__main__":  # pragma: no cover
    # Running as a module: `python -m household_budget.cli`
    app()
