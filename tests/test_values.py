# ruff: noqa: E402, I001
import datetime as dt
import sys
from decimal import Decimal
from pathlib import Path

import pytest


# Make sure the workspace `packages/` dir is on sys.path so `statement_analysis` is importable
_ROOT = Path(__file__).resolve().parents[1]
_PKG_DIR = _ROOT / "packages"
sys.path[:0] = [p for p in [str(_PKG_DIR), str(_ROOT)] if p not in sys.path]

from statement_analysis.errors import InvalidAmountError, InvalidDateError
from statement_analysis.values import (
    is_european_amount,
    looks_like_amount,
    looks_like_date,
    parse_amount,
    parse_date,
)


# ---- Amounts -----------------------------------------------------------------


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("1234.56", Decimal("1234.56")),
        ("1.234,56", Decimal("1234.56")),
        ("-1.234,56", Decimal("-1234.56")),
        ("$1,234.56", Decimal("1234.56")),
        ("1,234", Decimal("1234")),
        ("50,00", Decimal("50.00")),
        ("EUR 12,50", Decimal("12.50")),
        ("+200.00", Decimal("200.00")),
        ("(50.00)", Decimal("-50.00")),
        ("$ (1,000.00)", Decimal("-1000.00")),
        ("−5.00", Decimal("-5.00")),
        (".75", Decimal("0.75")),
    ],
)
def test_parse_amount(raw: str, expected: Decimal) -> None:
    assert parse_amount(raw) == expected


def test_locale_variants_parse_to_same_value() -> None:
    assert parse_amount("1.234,56") == parse_amount("1234.56") == parse_amount("1,234.56")


@pytest.mark.parametrize("raw", ["", "   ", "abc", "12.34.56", "1-2", "$", None])
def test_parse_amount_rejects_garbage(raw: str | None) -> None:
    with pytest.raises(InvalidAmountError):
        parse_amount(raw)


def test_amount_errors_are_value_errors() -> None:
    with pytest.raises(ValueError, match="invalid amount"):
        parse_amount("n/a")


def test_amount_predicates() -> None:
    assert looks_like_amount("-50.00")
    assert not looks_like_amount("Coffee")
    assert is_european_amount("1.234,56")
    assert is_european_amount("-50,00")
    assert not is_european_amount("1,234.56")
    assert not is_european_amount("1,234")


# ---- Dates -------------------------------------------------------------------


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("2024-01-15", dt.date(2024, 1, 15)),
        ("2024-01-15T10:30:00", dt.date(2024, 1, 15)),
        ("20240115", dt.date(2024, 1, 15)),
        ("01/15/2024", dt.date(2024, 1, 15)),
        ("15/01/2024", dt.date(2024, 1, 15)),
        # ambiguous numeric dates read month-first
        ("03/04/2024", dt.date(2024, 3, 4)),
        ("1/5/24", dt.date(2024, 1, 5)),
        ("1/5/75", dt.date(1975, 1, 5)),
        ("Jan 5, 2024", dt.date(2024, 1, 5)),
        ("5 January 2024", dt.date(2024, 1, 5)),
        ("44927", dt.date(2023, 1, 1)),
        ("44929", dt.date(2023, 1, 3)),
    ],
)
def test_parse_date(raw: str, expected: dt.date) -> None:
    assert parse_date(raw) == expected


@pytest.mark.parametrize("raw", ["", "not a date", "13/13/2024", "2024-02-30", None])
def test_parse_date_rejects_garbage(raw: str | None) -> None:
    with pytest.raises(InvalidDateError):
        parse_date(raw)


@pytest.mark.parametrize(
    "raw", ["2024-01-15", "01/15/2024", "15/01/2024", "Jan 5, 2024", "44927", "1/5/24"]
)
def test_parse_date_is_idempotent_on_iso_output(raw: str) -> None:
    first = parse_date(raw)
    assert parse_date(first.isoformat()) == first


def test_looks_like_date() -> None:
    assert looks_like_date("2024-01-01")
    assert looks_like_date("1/5/24")
    assert looks_like_date("Jan 5, 2024")
    assert looks_like_date("44927")
    assert not looks_like_date("-50.00")
    assert not looks_like_date("Marketplace")
    assert not looks_like_date("")


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("2024/01/15", dt.date(2024, 1, 15)),
        ("2024.01.15", dt.date(2024, 1, 15)),
        ("2024-1-5", dt.date(2024, 1, 5)),
        ("2024/1/5 08:15", dt.date(2024, 1, 5)),
        ("01/15/2024 10:30", dt.date(2024, 1, 15)),
        ("15.01.2024 23:59:59", dt.date(2024, 1, 15)),
    ],
)
def test_parse_year_first_and_timestamped_dates(raw: str, expected: dt.date) -> None:
    assert parse_date(raw) == expected


@pytest.mark.parametrize(
    "raw",
    [
        "2024/01/15",
        "2024.01.15",
        "2024-1-5",
        "2024-01-15 10:30",
        "01/15/2024 10:30",
        "1.5.24",
        "20240115",
        "44927",
        "Fri, 5 January 2024",
    ],
)
def test_date_like_cells_always_parse(raw: str) -> None:
    assert looks_like_date(raw)
    assert isinstance(parse_date(raw), dt.date)


def test_mixed_separators_are_not_date_like() -> None:
    assert not looks_like_date("2024-01/15")
