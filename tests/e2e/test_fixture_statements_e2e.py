# ruff: noqa: E402, I001
import datetime as dt
import sys
from decimal import Decimal
from pathlib import Path

import pytest


# Make sure the workspace `packages/` dir is on sys.path so `statement_analysis` is importable
_ROOT = Path(__file__).resolve().parents[2]
_PKG_DIR = _ROOT / "packages"
sys.path[:0] = [p for p in [str(_PKG_DIR), str(_ROOT)] if p not in sys.path]

from statement_analysis.api import analyze_file
from statement_analysis.models import AccountPolicy, TransactionType


FIXTURES = _ROOT / "tests" / "fixtures"


def _run(name: str, account_type: AccountPolicy = AccountPolicy.UNKNOWN):
    return analyze_file(FIXTURES / name, account_type=account_type)


def test_quoted_commas_keep_descriptions_intact() -> None:
    result, contract = _run("quoted_commas.csv")

    assert [tx.description for tx in result.transactions] == [
        "Purchase at Store, Inc",
        "Payment to ABC Company",
        "Deposit from XYZ Corp",
    ]
    assert result.transactions[2].amount == Decimal("200.00")
    assert result.active_policy == AccountPolicy.CASH
    assert result.counts[TransactionType.DEBITS] == 2
    assert result.counts[TransactionType.CREDITS] == 1
    assert contract.flags.tier == "strict"


def test_checking_account_with_check_numbers() -> None:
    result, _ = _run("checking_account.csv")

    assert result.active_policy == AccountPolicy.CASH
    assert result.counts.as_dict() == {
        "debits": 1,
        "credits": 1,
        "checks": 2,
        "total": 4,
        "active_policy": "cash",
    }
    checks = [tx.check_number for tx in result.transactions if tx.type == TransactionType.CHECKS]
    assert checks == ["1001", "1002"]


def test_savings_account_flags_fee_booked_as_credit() -> None:
    result, contract = _run("savings_account.csv")

    assert result.active_policy == AccountPolicy.CASH
    assert result.counts[TransactionType.CHECKS] == 1
    assert result.counts.total == 4
    assert any(w.code == "semantic" for w in contract.warnings)


def test_pending_rows_are_excluded() -> None:
    result, contract = _run("pending_posted.csv")

    assert len(result.transactions) == 2
    assert contract.flags.pending_removed == 2
    assert all("Pending" not in tx.description for tx in result.transactions)


def test_decimal_comma_locale() -> None:
    result, contract = _run("decimal_comma.csv")

    assert [tx.amount for tx in result.transactions] == [
        Decimal("-1234.56"),
        Decimal("2500.00"),
        Decimal("-50.00"),
    ]
    assert contract.file.delimiter == ";"
    assert contract.flags.locale == "eu"


def test_excel_serial_dates() -> None:
    result, _ = _run("excel_serial_dates.csv")

    assert [tx.date for tx in result.transactions] == [
        dt.date(2023, 1, 1),
        dt.date(2023, 1, 2),
        dt.date(2023, 1, 3),
    ]
    assert [tx.raw_date for tx in result.transactions] == ["44927", "44928", "44929"]


def test_wrapped_descriptions_stay_single_rows() -> None:
    result, _ = _run("wrapped_descriptions.csv")

    assert len(result.transactions) == 2
    assert result.transactions[0].description.startswith("Multi-line description")


def test_duplicate_rows_collapse() -> None:
    result, contract = _run("duplicate_rows.csv")

    assert result.rows_parsed == 3
    assert contract.transaction_count == 2
    assert contract.flags.duplicates_removed == 1


@pytest.mark.parametrize(
    "name",
    [
        "quoted_commas.csv",
        "checking_account.csv",
        "savings_account.csv",
        "pending_posted.csv",
        "decimal_comma.csv",
        "excel_serial_dates.csv",
        "wrapped_descriptions.csv",
        "duplicate_rows.csv",
    ],
)
def test_every_fixture_parses_without_fallbacks(name: str) -> None:
    result, contract = _run(name)

    assert contract.flags.used_fallbacks == []
    assert contract.error_category is None
    assert result.counts.total == len(result.transactions)
    assert 0.0 < contract.flags.table_confidence <= 1.0
