"""Post-classification quality checks.

These never modify the transaction list; they only report findings that the
output contract turns into warnings.

- **outlier**: ``|abs(amount) - median| > 3 * MAD`` over absolute amounts
  (median absolute deviation; a zero MAD reports nothing).
- **implausible_total**: the absolute value of the net (signed) sum of
  amounts exceeds 1,000,000; large offsetting inflows and outflows do not
  trigger it.
- **semantic**: a transaction classified as a credit whose description
  mentions a fee.
"""

from __future__ import annotations

import re
import statistics
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from .models import Transaction, TransactionType

_MAD_MULTIPLIER = Decimal(3)
_IMPLAUSIBLE_TOTAL = Decimal(1_000_000)
_FEE_RE = re.compile(r"\bfees?\b", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class QualityFinding:
    code: str
    message: str
    transaction: Transaction | None = None


def find_outliers(transactions: Sequence[Transaction]) -> list[Transaction]:
    """Return transactions whose absolute amount is a MAD outlier."""

    if len(transactions) < 3:
        return []
    magnitudes = [abs(tx.amount) for tx in transactions]
    median = statistics.median(magnitudes)
    mad = statistics.median([abs(m - median) for m in magnitudes])
    if mad == 0:
        return []
    limit = _MAD_MULTIPLIER * mad
    return [tx for tx, m in zip(transactions, magnitudes, strict=True) if abs(m - median) > limit]


def check_quality(transactions: Sequence[Transaction]) -> list[QualityFinding]:
    findings: list[QualityFinding] = []

    for tx in find_outliers(transactions):
        findings.append(
            QualityFinding(
                code="outlier",
                message=f"amount {tx.amount} on {tx.date.isoformat()} is far from the typical amount",
                transaction=tx,
            )
        )

    total = sum((tx.amount for tx in transactions), Decimal(0))
    if abs(total) > _IMPLAUSIBLE_TOTAL:
        findings.append(
            QualityFinding(
                code="implausible_total",
                message=f"aggregate amount {total} exceeds {_IMPLAUSIBLE_TOTAL}",
            )
        )

    for tx in transactions:
        if tx.type == TransactionType.CREDITS and _FEE_RE.search(tx.description):
            findings.append(
                QualityFinding(
                    code="semantic",
                    message=f"{tx.description!r} is classified as a credit but mentions a fee",
                    transaction=tx,
                )
            )

    return findings


__all__ = ["QualityFinding", "find_outliers", "check_quality"]
