# ruff: noqa: E501
import textwrap

import pytest

from household_budget import CSV_HEADERS, parse_to_records, records_to_csv
from household_budget.models import TransactionRecord
from household_budget.normalizers import clean_amount, normalize_transaction_date


def _dedent(s: str) -> str:
    return textwrap.dedent(s).lstrip("\n")


# ---- Header variants ---------------------------------------------------------


def test_canonical_headers_parse_all_fields():
    csv_text = _dedent(
        """
        Transaction Date,Posted Date,Card No.,Description,Category,Debit,Credit,Budget Category,Ignored
        2024-03-05,2024-03-06,1234,Coffee Shop,Dining,4.50,,cat-dining,no
        2024-03-04,2024-03-05,1234,Payroll,Income,,"1,200.00",,yes
        """
    )

    rows = parse_to_records(csv_text)

    assert rows == [
        TransactionRecord(
            transaction_date="2024-03-05",
            posted_date="2024-03-06",
            card_no="1234",
            description="Coffee Shop",
            category="Dining",
            debit="4.50",
            credit="0",
            budget_category_id="cat-dining",
            ignored=False,
        ),
        TransactionRecord(
            transaction_date="2024-03-04",
            posted_date="2024-03-05",
            card_no="1234",
            description="Payroll",
            category="Income",
            debit="0",
            credit="1200.00",
            budget_category_id=None,
            ignored=True,
        ),
    ]


def test_camel_case_headers_are_accepted():
    csv_text = "transactionDate,description,debit,budgetCategory\n2024-01-02,Gas,30,car\n"

    (row,) = parse_to_records(csv_text)

    assert row.transaction_date == "2024-01-02"
    assert row.description == "Gas"
    assert row.debit == "30"
    assert row.budget_category_id == "car"


def test_header_fallback_is_case_insensitive_and_trimmed():
    csv_text = " TRANSACTION DATE ,DESCRIPTION,  debit  \n2024-01-02,Gas,30\n"

    (row,) = parse_to_records(csv_text)

    assert (row.transaction_date, row.description, row.debit) == ("2024-01-02", "Gas", "30")


def test_transaction_description_is_used_when_description_missing():
    csv_text = "Transaction Date,Transaction Description,Debit\n2024-01-02,Grocer,12\n"

    (row,) = parse_to_records(csv_text)

    assert row.description == "Grocer"


def test_missing_columns_default_to_safe_values():
    (row,) = parse_to_records("Description\nMystery\n")

    assert row == TransactionRecord(
        transaction_date="",
        posted_date="",
        card_no="",
        description="Mystery",
        category="",
        debit="0",
        credit="0",
        budget_category_id=None,
        ignored=False,
    )


# ---- Dates -------------------------------------------------------------------


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("2024-03-05", "2024-03-05"),
        ("3/5/24", "2024-03-05"),
        ("03/05/2024", "2024-03-05"),
        ("12/31/50", "2050-12-31"),
        ("01/01/51", "1951-01-01"),
        ("1/2/00", "2000-01-02"),
        ("March 5, 2024", "March 5, 2024"),
        ("  2024-03-05 ", "2024-03-05"),
    ],
)
def test_normalize_transaction_date(raw, expected):
    assert normalize_transaction_date(raw) == expected


def test_posted_date_defaults_to_transaction_date():
    (row,) = parse_to_records("Transaction Date,Description,Debit\n03/05/2024,Lunch,9\n")

    assert row.posted_date == "2024-03-05"


# ---- Amounts -----------------------------------------------------------------


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("$1,234.56", "1234.56"), ("", "0"), (None, "0"), (" 7 ", "7"), ("$", "0")],
)
def test_clean_amount(raw, expected):
    assert clean_amount(raw) == expected


def test_typed_amounts_are_routed_by_transaction_type():
    csv_text = _dedent(
        """
        Transaction Date,Description,Transaction Type,Transaction Amount
        2024-02-01,Rent,Debit,"$1,500.00"
        2024-02-02,Refund,CREDIT,25.10
        2024-02-03,Unknown,transfer,10
        """
    )

    rent, refund, unknown = parse_to_records(csv_text)

    assert (rent.debit, rent.credit) == ("1500.00", "0")
    assert (refund.debit, refund.credit) == ("0", "25.10")
    assert (unknown.debit, unknown.credit) == ("0", "0")


def test_direct_debit_wins_over_typed_amount():
    csv_text = (
        "Transaction Date,Description,Debit,Transaction Type,Transaction Amount\n"
        "2024-02-01,Rent,12,credit,99\n"
    )

    (row,) = parse_to_records(csv_text)

    assert (row.debit, row.credit) == ("12", "0")


# ---- Robustness --------------------------------------------------------------


def test_bom_and_blank_lines_are_ignored():
    csv_text = "\ufeffTransaction Date,Description,Debit\n\n2024-01-02,Gas,30\n,,\n\n"

    rows = parse_to_records(csv_text)

    assert [r.description for r in rows] == ["Gas"]
    assert rows[0].transaction_date == "2024-01-02"


@pytest.mark.parametrize("value,expected", [("yes", True), (" TRUE ", True), ("1", True),
                                            ("no", False), ("", False), ("y", False)])
def test_ignored_column_truthiness(value, expected):
    (row,) = parse_to_records(f"Description,Ignored\nX,{value}\n")

    assert row.ignored is expected


def test_ragged_rows_never_raise():
    csv_text = "Transaction Date,Description,Debit\n2024-01-02,Only two\n2024-01-03,Three,4,extra\n"

    short, long_ = parse_to_records(csv_text)

    assert short.debit == "0"
    assert (long_.description, long_.debit) == ("Three", "4")


@pytest.mark.parametrize("text", ["", "   \n  ", "\ufeff"])
def test_empty_input_yields_no_records(text):
    assert parse_to_records(text) == []


# ---- Writer ------------------------------------------------------------------


def test_writer_emits_fixed_header_and_escapes_cells():
    record = TransactionRecord(
        transaction_date="2024-03-05",
        posted_date="2024-03-05",
        card_no="",
        description='Joe\'s "Best", Deli',
        category="Dining",
        debit="4.50",
        credit="0",
        budget_category_id=None,
        ignored=True,
    )

    lines = records_to_csv([record]).splitlines()

    assert lines[0] == ",".join(CSV_HEADERS)
    assert lines[0] == (
        "Transaction Date,Posted Date,Card No.,Description,Category,Debit,Credit,"
        "Budget Category,Ignored"
    )
    assert lines[1] == '2024-03-05,2024-03-05,,"Joe\'s ""Best"", Deli",Dining,4.50,0,,yes'


def test_round_trip_reproduces_records():
    records = [
        TransactionRecord(
            transaction_date="2024-03-05",
            posted_date="2024-03-06",
            card_no="9876",
            description='Quote "inside", and comma',
            category="Shopping, Online",
            debit="19.99",
            credit="0",
            budget_category_id="shopping",
            ignored=False,
        ),
        TransactionRecord(
            transaction_date="2024-03-01",
            posted_date="2024-03-01",
            card_no="",
            description="Multi\nline memo",
            category="",
            debit="0",
            credit="250",
            budget_category_id=None,
            ignored=True,
        ),
    ]

    assert parse_to_records(records_to_csv(records)) == records


def test_round_trip_of_nothing_is_header_only():
    text = records_to_csv([])

    assert text == ",".join(CSV_HEADERS) + "\n"
    assert parse_to_records(text) == []
