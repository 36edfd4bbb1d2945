"""Transaction classifier: cash vs credit-card policies, dedup, pending filter.

Two policies compete for every file whose account type is not given:

- **cash** (checking/savings): an explicit type column first, then
  check-number evidence, then the sign of the amount (negative → credits,
  otherwise debits).
- **credit** (credit cards): keyword families in the description and type
  text (payments, refunds, charges); the sign only breaks ties.

When the caller does not name the account type, both policies score the same
parsed rows by the fraction that carry an unambiguous policy-specific signal,
and the higher score wins (ties go to cash, which is evaluated first).
"""

from __future__ import annotations

import datetime as dt
import hashlib
import json
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal

from .errors import InvalidAmountError, InvalidDateError
from .logging_setup import get_logger
from .models import AccountPolicy, ColumnMapping, Transaction, TransactionType
from .values import parse_amount, parse_date

_logger = get_logger("statement_analysis.classify")

_DEFAULT_DESCRIPTION = "Transaction"

# ---- Vocabularies ------------------------------------------------------------

_CHECK_EVIDENCE_RE = re.compile(r"\bcheck\s*#?\s*\d+\b", re.IGNORECASE)

_CASH_CREDIT_WORDS = ("credit", "deposit", "payment")
_CASH_CHECK_WORDS = ("check",)
_CASH_DEBIT_WORDS = ("debit", "purchase", "withdrawal")
_CASH_SIGNAL_RE = re.compile(
    r"\b(?:deposit|withdrawal|atm|transfer|cheque|direct dep\w*|payroll|salary|debit card|pos)\b",
    re.IGNORECASE,
)

_PAYMENT_RE = re.compile(r"\b(?:payment|autopay|auto pay|thank you|bill pay)", re.IGNORECASE)
_REFUND_RE = re.compile(r"\b(?:refund|return|reversal)", re.IGNORECASE)
_CREDIT_WORD_RE = re.compile(r"\bcredit\b", re.IGNORECASE)
_CHARGE_RE = re.compile(r"\b(?:purchase|charge|fee|interest|sale)", re.IGNORECASE)


# ---- Row parsing -------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ParsedRow:
    """A data row whose date and amount parsed; not yet classified."""

    date: dt.date
    amount: Decimal
    description: str
    type_text: str
    raw_date: str
    raw_amount: str
    status: str | None = None
    check_number: str | None = None

    @property
    def text(self) -> str:
        return f"{self.description} {self.type_text}".strip()


def _cell(row: Sequence[str], idx: int | None) -> str:
    if idx is None or idx >= len(row):
        return ""
    return row[idx].strip()


def parse_row(row: Sequence[str], mapping: ColumnMapping) -> ParsedRow:
    """Parse the mapped cells of one data row.

    Raises
    ------
    InvalidDateError, InvalidAmountError
        When the date or amount cell cannot be parsed.
    """

    raw_date = _cell(row, mapping.date_index)
    raw_amount = _cell(row, mapping.amount_index)
    date = parse_date(raw_date)
    amount = parse_amount(raw_amount)
    return ParsedRow(
        date=date,
        amount=amount,
        description=_cell(row, mapping.description_index) or _DEFAULT_DESCRIPTION,
        type_text=_cell(row, mapping.type_index),
        raw_date=raw_date,
        raw_amount=raw_amount,
        status=_cell(row, mapping.status_index) or None,
        check_number=_cell(row, mapping.check_number_index) or None,
    )


# ---- Policies ----------------------------------------------------------------


def _cash_type_from_column(type_text: str) -> TransactionType | None:
    t = type_text.lower()
    if not t:
        return None
    if any(w in t for w in _CASH_CREDIT_WORDS):
        return TransactionType.CREDITS
    if any(w in t for w in _CASH_CHECK_WORDS):
        return TransactionType.CHECKS
    if any(w in t for w in _CASH_DEBIT_WORDS):
        return TransactionType.DEBITS
    return None


def _has_check_evidence(row: ParsedRow) -> bool:
    return bool(_CHECK_EVIDENCE_RE.search(row.description)) or bool(row.check_number)


def classify_cash(row: ParsedRow) -> TransactionType:
    explicit = _cash_type_from_column(row.type_text)
    if explicit is not None:
        return explicit
    if _has_check_evidence(row):
        return TransactionType.CHECKS
    return TransactionType.CREDITS if row.amount < 0 else TransactionType.DEBITS


def classify_credit(row: ParsedRow) -> TransactionType:
    text = row.text
    if _PAYMENT_RE.search(text):
        return TransactionType.PAYMENTS
    if _REFUND_RE.search(text) or (row.amount > 0 and _CREDIT_WORD_RE.search(text)):
        return TransactionType.REFUNDS
    return TransactionType.CHARGES


def classify(row: ParsedRow, policy: AccountPolicy) -> Transaction:
    """Build the immutable :class:`Transaction` for ``row`` under ``policy``.

    ``AccountPolicy.UNKNOWN`` classifies with the cash vocabulary.
    """

    match policy:
        case AccountPolicy.CREDIT:
            tx_type = classify_credit(row)
        case _:
            tx_type = classify_cash(row)
    return Transaction(
        date=row.date,
        description=row.description,
        amount=row.amount,
        type=tx_type,
        raw_date=row.raw_date,
        raw_amount=row.raw_amount,
        status=row.status,
        check_number=row.check_number,
    )


def classify_row(
    row: Sequence[str], mapping: ColumnMapping, policy: AccountPolicy = AccountPolicy.CASH
) -> Transaction | None:
    """Parse and classify one tokenized row; ``None`` when the row is unusable."""

    try:
        parsed = parse_row(row, mapping)
    except (InvalidDateError, InvalidAmountError) as exc:
        _logger.debug("dropping row %r: %s", list(row), exc)
        return None
    return classify(parsed, policy)


def classify_all(rows: Iterable[ParsedRow], policy: AccountPolicy) -> list[Transaction]:
    return [classify(r, policy) for r in rows]


# ---- Policy selection --------------------------------------------------------


def _cash_signal(row: ParsedRow) -> bool:
    if _cash_type_from_column(row.type_text) is not None:
        return True
    if _has_check_evidence(row):
        return True
    return row.amount != 0 and bool(_CASH_SIGNAL_RE.search(row.text))


def _credit_signal(row: ParsedRow) -> bool:
    text = row.text
    return bool(_PAYMENT_RE.search(text) or _REFUND_RE.search(text) or _CHARGE_RE.search(text))


def policy_confidence(rows: Sequence[ParsedRow], policy: AccountPolicy) -> float:
    """Fraction of ``rows`` exhibiting a signal specific to ``policy``."""

    if not rows:
        return 0.0
    match policy:
        case AccountPolicy.CASH:
            signal = _cash_signal
        case AccountPolicy.CREDIT:
            signal = _credit_signal
        case _:
            return 0.0
    return sum(1 for r in rows if signal(r)) / len(rows)


@dataclass(frozen=True, slots=True)
class PolicyDecision:
    policy: AccountPolicy
    confidence: float
    cash_confidence: float | None = None
    credit_confidence: float | None = None

    @property
    def inferred(self) -> bool:
        return self.cash_confidence is not None


def select_policy(
    rows: Sequence[ParsedRow], hint: AccountPolicy = AccountPolicy.UNKNOWN
) -> PolicyDecision:
    """Pick the classification policy for ``rows``.

    An explicit ``cash``/``credit`` hint wins outright with confidence 1.0.
    Otherwise both policies are scored and the higher one is selected; a tie
    keeps cash.
    """

    if hint in (AccountPolicy.CASH, AccountPolicy.CREDIT):
        return PolicyDecision(policy=hint, confidence=1.0)

    cash = policy_confidence(rows, AccountPolicy.CASH)
    credit = policy_confidence(rows, AccountPolicy.CREDIT)
    if credit > cash:
        winner, conf = AccountPolicy.CREDIT, credit
    else:
        winner, conf = AccountPolicy.CASH, cash
    _logger.info(
        "policy selected: %s (cash=%.2f, credit=%.2f, rows=%d)", winner, cash, credit, len(rows)
    )
    return PolicyDecision(
        policy=winner, confidence=conf, cash_confidence=cash, credit_confidence=credit
    )


# ---- Pending/posted and duplicates -------------------------------------------


def _marker(status: str | None) -> str:
    return (status or "").strip().lower()


def filter_pending(rows: Sequence[ParsedRow]) -> tuple[list[ParsedRow], int]:
    """Drop pending rows when the export also carries posted rows.

    Returns the kept rows and the number removed. Without any posted marker
    every row is kept, pending or not.
    """

    if not any("posted" in _marker(r.status) for r in rows):
        return list(rows), 0
    kept = [r for r in rows if "pending" not in _marker(r.status)]
    return kept, len(rows) - len(kept)


def transaction_key(tx: Transaction) -> str:
    """Stable SHA-256 identity over date, description, amount and type."""

    payload = [
        tx.date.isoformat(),
        tx.description.strip().lower(),
        format(tx.amount.normalize(), "f"),
        tx.type.value.lower(),
    ]
    data = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def deduplicate(transactions: Iterable[Transaction]) -> list[Transaction]:
    """Keep the first occurrence of each :func:`transaction_key`."""

    seen: set[str] = set()
    out: list[Transaction] = []
    for tx in transactions:
        key = transaction_key(tx)
        if key in seen:
            continue
        seen.add(key)
        out.append(tx)
    return out


__all__ = [
    "ParsedRow",
    "parse_row",
    "classify_cash",
    "classify_credit",
    "classify",
    "classify_row",
    "classify_all",
    "policy_confidence",
    "PolicyDecision",
    "select_policy",
    "filter_pending",
    "transaction_key",
    "deduplicate",
]
