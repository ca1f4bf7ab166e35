"""Bank CSV -> :class:`TransactionRecord` normalizer and the canonical CSV writer.

Parsing follows RFC 4180 via the stdlib :mod:`csv` module. Header names are
matched tolerantly: each logical field has a prioritized list of accepted
header names, tried exactly first and then once more case-insensitively on
trimmed header text.

Two amount shapes are understood:

- separate ``Debit`` / ``Credit`` columns;
- ``Transaction Type`` (``debit``/``credit``) plus ``Transaction Amount``.

Parsing never raises for malformed rows. Every row resolves independently to
best-effort values; anything missing becomes ``""``, ``"0"``, ``None`` or
``False``.

The writer emits the fixed nine-column header below, and
``parse_to_records(records_to_csv(rows)) == rows`` for canonical rows
(``id`` is not part of the CSV).
"""

from __future__ import annotations

import csv
import re
from collections.abc import Iterable, Mapping, Sequence
from io import StringIO

from .logging_setup import get_logger
from .models import TransactionRecord

CSV_HEADERS: tuple[str, ...] = (
    "Transaction Date",
    "Posted Date",
    "Card No.",
    "Description",
    "Category",
    "Debit",
    "Credit",
    "Budget Category",
    "Ignored",
)

# Accepted header names per logical field, highest priority first.
_TRANSACTION_DATE = ("Transaction Date", "transactionDate")
_POSTED_DATE = ("Posted Date", "postedDate")
_CARD_NO = ("Card No.", "cardNo")
_DESCRIPTION = ("Description", "description")
_DESCRIPTION_ALT = ("Transaction Description", "transactionDescription")
_CATEGORY = ("Category", "category")
_DEBIT = ("Debit", "debit")
_CREDIT = ("Credit", "credit")
_TX_TYPE = ("Transaction Type", "transactionType")
_TX_AMOUNT = ("Transaction Amount", "transactionAmount")
_BUDGET_CATEGORY = ("Budget Category", "budgetCategory")
_IGNORED = ("Ignored", "ignored")

_TRUTHY = frozenset({"yes", "true", "1"})

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$", re.ASCII)
_US_DATE_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2,4})$", re.ASCII)

_logger = get_logger("household_budget.normalizers")

# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------


def clean_amount(raw: str | None) -> str:
    """Drop thousands separators and ``$``; empty becomes ``"0"``."""

    cleaned = re.sub(r"[,$]", "", raw or "").strip()
    return cleaned or "0"


def normalize_transaction_date(raw: str) -> str:
    """Return ``YYYY-MM-DD`` for ISO or ``MM/DD/YY[YY]`` input.

    Two-digit years 00..50 map to 20YY, 51..99 to 19YY. Anything else is
    returned trimmed but otherwise unchanged.
    """

    s = raw.strip()
    if not s or _ISO_DATE_RE.match(s):
        return s
    m = _US_DATE_RE.match(s)
    if m is None:
        return s
    month, day, year = m.group(1).zfill(2), m.group(2).zfill(2), m.group(3)
    if len(year) == 2:
        year = f"20{year}" if int(year) <= 50 else f"19{year}"
    return f"{year}-{month}-{day}"


class _HeaderResolver:
    """Resolve logical fields against the header row of one CSV document."""

    def __init__(self, headers: Sequence[str]) -> None:
        self._folded = [(h, h.strip().lower()) for h in headers]

    def get(self, row: Mapping[str, str], names: Sequence[str]) -> str:
        for name in names:
            value = row.get(name)
            if value:
                return value.strip()
        wanted = [n.lower() for n in names]
        for want in wanted:
            for header, folded in self._folded:
                if folded == want:
                    return (row.get(header) or "").strip()
        return ""


def _read_rows(csv_text: str) -> tuple[list[str], list[dict[str, str]]]:
    text = csv_text.lstrip("\ufeff").strip()
    if not text:
        return [], []
    with StringIO(text) as f:
        reader = csv.DictReader(f)
        headers = [h for h in (reader.fieldnames or []) if h is not None]
        rows: list[dict[str, str]] = []
        for row in reader:
            # Extra cells land under the ``None`` key; short rows yield ``None`` values.
            cells = {k: (v or "") for k, v in row.items() if k is not None}
            if all(not v.strip() for v in cells.values()):
                continue
            rows.append(cells)
    return headers, rows


def _row_to_record(row: Mapping[str, str], headers: _HeaderResolver) -> TransactionRecord:
    transaction_date = normalize_transaction_date(headers.get(row, _TRANSACTION_DATE))
    posted_date = headers.get(row, _POSTED_DATE) or transaction_date
    description = headers.get(row, _DESCRIPTION) or headers.get(row, _DESCRIPTION_ALT)

    debit = headers.get(row, _DEBIT)
    credit = headers.get(row, _CREDIT)
    tx_type = headers.get(row, _TX_TYPE).lower()
    tx_amount = clean_amount(headers.get(row, _TX_AMOUNT))
    if tx_amount != "0" and debit in ("", "0") and credit in ("", "0"):
        if tx_type == "debit":
            debit = tx_amount
        elif tx_type == "credit":
            credit = tx_amount

    return TransactionRecord(
        transaction_date=transaction_date,
        posted_date=posted_date,
        card_no=headers.get(row, _CARD_NO),
        description=description,
        category=headers.get(row, _CATEGORY),
        debit=clean_amount(debit),
        credit=clean_amount(credit),
        budget_category_id=headers.get(row, _BUDGET_CATEGORY) or None,
        ignored=headers.get(row, _IGNORED).lower() in _TRUTHY,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_to_records(csv_text: str) -> list[TransactionRecord]:
    """Parse bank CSV text (optionally BOM-prefixed) into canonical records."""

    try:
        header_row, rows = _read_rows(csv_text)
    except csv.Error as exc:
        # Structural breakage (e.g. NUL bytes) leaves nothing usable.
        _logger.warning("CSV could not be parsed: %s", exc)
        return []
    headers = _HeaderResolver(header_row)
    records = [_row_to_record(row, headers) for row in rows]
    _logger.debug("parsed %d record(s) from %d header column(s)", len(records), len(header_row))
    return records


def record_to_csv_row(record: TransactionRecord) -> list[str]:
    return [
        record.transaction_date,
        record.posted_date,
        record.card_no,
        record.description,
        record.category,
        record.debit,
        record.credit,
        record.budget_category_id or "",
        "yes" if record.ignored else "no",
    ]


def records_to_csv(records: Iterable[TransactionRecord]) -> str:
    """Serialize records under :data:`CSV_HEADERS`.

    Cells containing a comma, a double quote or a line break are quoted, with
    embedded quotes doubled.
    """

    buf = StringIO()
    writer = csv.writer(buf, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    writer.writerow(CSV_HEADERS)
    writer.writerows(record_to_csv_row(r) for r in records)
    return buf.getvalue()


__all__ = [
    "CSV_HEADERS",
    "clean_amount",
    "normalize_transaction_date",
    "parse_to_records",
    "record_to_csv_row",
    "records_to_csv",
]
