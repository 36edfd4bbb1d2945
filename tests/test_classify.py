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

from statement_analysis.classify import (
    ParsedRow,
    classify,
    classify_row,
    deduplicate,
    filter_pending,
    parse_row,
    policy_confidence,
    select_policy,
)
from statement_analysis.errors import InvalidAmountError
from statement_analysis.models import AccountPolicy, ColumnMapping, TransactionType


# ---- Helpers -----------------------------------------------------------------


def _row(
    description: str,
    amount: str,
    type_text: str = "",
    *,
    status: str | None = None,
    check_number: str | None = None,
    day: int = 1,
) -> ParsedRow:
    return ParsedRow(
        date=dt.date(2024, 1, day),
        amount=Decimal(amount),
        description=description,
        type_text=type_text,
        raw_date=f"2024-01-{day:02d}",
        raw_amount=amount,
        status=status,
        check_number=check_number,
    )


MAPPING = ColumnMapping(
    header_row_index=0, date_index=0, description_index=1, amount_index=2, type_index=3
)


# ---- Row parsing -------------------------------------------------------------


def test_parse_row_reads_mapped_cells() -> None:
    parsed = parse_row(["2024-01-01", "Store", "-50.00", "Debit"], MAPPING)
    assert parsed.date == dt.date(2024, 1, 1)
    assert parsed.amount == Decimal("-50.00")
    assert parsed.description == "Store"
    assert parsed.type_text == "Debit"
    assert parsed.raw_amount == "-50.00"


def test_parse_row_defaults_missing_description() -> None:
    parsed = parse_row(["2024-01-01", "", "5"], MAPPING)
    assert parsed.description == "Transaction"
    assert parsed.type_text == ""


def test_parse_row_raises_on_bad_amount() -> None:
    with pytest.raises(InvalidAmountError):
        parse_row(["2024-01-01", "Store", "n/a", "Debit"], MAPPING)


def test_classify_row_returns_none_for_bad_rows() -> None:
    assert classify_row(["not a date", "Store", "-5", ""], MAPPING) is None
    tx = classify_row(["2024-01-01", "Store", "-5", "Debit"], MAPPING, AccountPolicy.CASH)
    assert tx is not None
    assert tx.type == TransactionType.DEBITS


# ---- Cash policy -------------------------------------------------------------


@pytest.mark.parametrize(
    ("row", "expected"),
    [
        (_row("Store", "-50.00", "Debit"), TransactionType.DEBITS),
        (_row("Salary", "2500.00", "Credit"), TransactionType.CREDITS),
        (_row("Deposit", "500.00", "Deposit"), TransactionType.CREDITS),
        (_row("Check #2001", "-100.00", "Check"), TransactionType.CHECKS),
        # type column wins over the sign
        (_row("Refund", "-10.00", "Purchase"), TransactionType.DEBITS),
        # check evidence in the description
        (_row("Check #1001", "-50.00"), TransactionType.CHECKS),
        (_row("CHECK 1234", "-50.00"), TransactionType.CHECKS),
        # check evidence from a check-number column
        (_row("Rent", "-900.00", check_number="1003"), TransactionType.CHECKS),
        # unknown type text falls through to the sign
        (_row("Monthly Fee", "-5.00", "Fee"), TransactionType.CREDITS),
        (_row("Interest Payment", "2.50", "Interest"), TransactionType.DEBITS),
        (_row("ATM Withdrawal", "-20.00"), TransactionType.CREDITS),
        (_row("Deposit", "0"), TransactionType.DEBITS),
    ],
)
def test_cash_policy(row: ParsedRow, expected: TransactionType) -> None:
    assert classify(row, AccountPolicy.CASH).type == expected


def test_unknown_policy_classifies_like_cash() -> None:
    row = _row("Check #1001", "-50.00")
    assert classify(row, AccountPolicy.UNKNOWN).type == TransactionType.CHECKS


# ---- Credit policy -----------------------------------------------------------


@pytest.mark.parametrize(
    ("row", "expected"),
    [
        (_row("AUTOPAY PAYMENT - THANK YOU", "500.00"), TransactionType.PAYMENTS),
        (_row("Online Bill Pay", "200.00"), TransactionType.PAYMENTS),
        (_row("AUTOPAYMENT", "-300.00"), TransactionType.PAYMENTS),
        (_row("Online", "-300.00", "Payments"), TransactionType.PAYMENTS),
        (_row("Amazon", "25.00", "Return"), TransactionType.REFUNDS),
        (_row("Merchant refund", "-12.00"), TransactionType.REFUNDS),
        (_row("Statement credit", "15.00"), TransactionType.REFUNDS),
        (_row("Coffee Shop", "-4.50", "Sale"), TransactionType.CHARGES),
        (_row("Annual fee", "95.00"), TransactionType.CHARGES),
        (_row("Something", "10.00"), TransactionType.CHARGES),
    ],
)
def test_credit_policy(row: ParsedRow, expected: TransactionType) -> None:
    assert classify(row, AccountPolicy.CREDIT).type == expected


def test_classified_transaction_keeps_raw_values() -> None:
    tx = classify(_row("Store", "-50.00", "Debit", status="Posted"), AccountPolicy.CASH)
    assert tx.raw_date == "2024-01-01"
    assert tx.raw_amount == "-50.00"
    assert tx.status == "Posted"


# ---- Policy selection --------------------------------------------------------


CASH_ROWS = [
    _row("Store", "-50.00", "Debit"),
    _row("Salary", "2500.00", "Credit"),
    _row("Check #1001", "-75.00", day=2),
]

CARD_ROWS = [
    _row("Coffee Shop", "-4.50", "Sale"),
    _row("Grocery purchase", "-60.00", "Sale"),
    _row("Payment Thank You", "300.00", "Payment"),
    _row("Shoes", "40.00", "Return"),
]


def test_policy_confidence_fractions() -> None:
    assert policy_confidence(CASH_ROWS, AccountPolicy.CASH) == pytest.approx(1.0)
    assert policy_confidence(CASH_ROWS, AccountPolicy.CREDIT) == pytest.approx(0.0)
    assert policy_confidence(CARD_ROWS, AccountPolicy.CREDIT) == pytest.approx(1.0)
    assert policy_confidence([], AccountPolicy.CASH) == 0.0


def test_plural_and_compound_payment_words_count_as_credit_signals() -> None:
    rows = [_row("AUTOPAYMENT", "-300.00"), _row("Online", "-120.00", "Payments")]
    assert policy_confidence(rows, AccountPolicy.CREDIT) == pytest.approx(1.0)


def test_select_policy_infers_cash() -> None:
    decision = select_policy(CASH_ROWS)
    assert decision.policy == AccountPolicy.CASH
    assert decision.inferred
    assert decision.confidence == pytest.approx(1.0)


def test_select_policy_infers_credit() -> None:
    decision = select_policy(CARD_ROWS)
    assert decision.policy == AccountPolicy.CREDIT
    assert decision.credit_confidence is not None
    assert decision.cash_confidence is not None
    assert decision.credit_confidence > decision.cash_confidence


def test_select_policy_tie_keeps_cash() -> None:
    rows = [_row("Deposit", "500.00", "Deposit"), _row("Annual fee", "-95.00")]
    decision = select_policy(rows)
    assert decision.cash_confidence == pytest.approx(decision.credit_confidence)
    assert decision.policy == AccountPolicy.CASH


@pytest.mark.parametrize("hint", [AccountPolicy.CASH, AccountPolicy.CREDIT])
def test_explicit_hint_wins_with_full_confidence(hint: AccountPolicy) -> None:
    decision = select_policy(CARD_ROWS if hint == AccountPolicy.CASH else CASH_ROWS, hint)
    assert decision.policy == hint
    assert decision.confidence == 1.0
    assert not decision.inferred


# ---- Pending filter and dedup ------------------------------------------------


def test_filter_pending_drops_pending_when_posted_present() -> None:
    rows = [
        _row("Posted Transaction", "-50.00", status="Posted"),
        _row("Pending Transaction", "-25.00", status="Pending", day=2),
        _row("Posted Deposit", "100.00", status="Posted", day=3),
    ]
    kept, removed = filter_pending(rows)
    assert removed == 1
    assert [r.description for r in kept] == ["Posted Transaction", "Posted Deposit"]


def test_filter_pending_keeps_all_without_posted_marker() -> None:
    rows = [_row("A", "-1.00", status="Pending"), _row("B", "-2.00")]
    kept, removed = filter_pending(rows)
    assert removed == 0
    assert len(kept) == 2


def test_deduplicate_keeps_first_and_is_idempotent() -> None:
    rows = [
        _row("Duplicate Transaction", "-50.00", "Debit"),
        _row(" duplicate transaction ", "-50.0", "Debit"),
        _row("Unique Transaction", "100.00", "Credit", day=2),
    ]
    txs = [classify(r, AccountPolicy.CASH) for r in rows]
    once = deduplicate(txs)
    assert len(once) == 2
    assert once[0] is txs[0]
    assert deduplicate(once) == once


def test_deduplicate_distinguishes_dates_and_amounts() -> None:
    txs = [
        classify(_row("Coffee", "-4.50", day=1), AccountPolicy.CASH),
        classify(_row("Coffee", "-4.50", day=2), AccountPolicy.CASH),
        classify(_row("Coffee", "-4.75", day=1), AccountPolicy.CASH),
    ]
    assert len(deduplicate(txs)) == 3
