"""Output aggregator: per-type summaries, monthly grouping and the output contract."""

from __future__ import annotations

import datetime as dt
from collections.abc import Mapping, Sequence
from decimal import ROUND_HALF_UP, Decimal

from .models import (
    AccountPolicy,
    AnalysisResult,
    ContractWarning,
    Counts,
    FileInfo,
    FileMetadata,
    FlagsSnapshot,
    MonthSummary,
    OutputContract,
    SampleTransaction,
    Transaction,
    TransactionType,
    TypeSummary,
    vocabulary_for,
)
from .quality import check_quality
from .recovery import count_by_type

# ---- Tunables (private) ------------------------------------------------------

_SAMPLE_SIZE: int = 5
_LOW_POLICY_CONFIDENCE: float = 0.6
_LOW_TABLE_CONFIDENCE: float = 0.5
_MONTH_LABEL_FORMAT = "%B %Y"
_CENT = Decimal("0.01")


def _type_summary(amounts: Sequence[Decimal]) -> TypeSummary:
    total = sum(amounts, Decimal(0))
    if not amounts:
        return TypeSummary(count=0, total=total, average=Decimal(0))
    average = (total / len(amounts)).quantize(_CENT, rounding=ROUND_HALF_UP)
    return TypeSummary(count=len(amounts), total=total, average=average)


def summarize(
    transactions: Sequence[Transaction], policy: AccountPolicy
) -> tuple[dict[TransactionType, TypeSummary], TypeSummary]:
    """Count, total and average per type of ``policy``, plus an overall summary.

    Every type of the policy vocabulary is present, zero-filled when unused.
    """

    vocabulary = vocabulary_for(policy)
    by_type = {
        t: _type_summary([tx.amount for tx in transactions if tx.type == t]) for t in vocabulary
    }
    overall = _type_summary([tx.amount for tx in transactions])
    return by_type, overall


def month_label(date: dt.date) -> str:
    return date.strftime(_MONTH_LABEL_FORMAT)


def _label_sort_key(label: str) -> dt.datetime:
    return dt.datetime.strptime(label, _MONTH_LABEL_FORMAT)


def group_by_month(
    transactions: Sequence[Transaction], policy: AccountPolicy
) -> dict[str, MonthSummary]:
    """Group ``transactions`` into ``"January 2024"``-style buckets.

    Buckets are returned in chronological order, recovered by parsing each
    label back into a year and month.
    """

    buckets: dict[str, list[Transaction]] = {}
    for tx in transactions:
        buckets.setdefault(month_label(tx.date), []).append(tx)

    out: dict[str, MonthSummary] = {}
    for label in sorted(buckets, key=_label_sort_key):
        parsed = _label_sort_key(label)
        by_type, total = summarize(buckets[label], policy)
        out[label] = MonthSummary(
            label=label, year=parsed.year, month=parsed.month, by_type=by_type, total=total
        )
    return out


def calculate_overall_totals(
    transactions: Sequence[Transaction], policy: AccountPolicy
) -> Counts:
    return count_by_type(transactions, policy)


# ---- Output contract ---------------------------------------------------------


def _sample(transactions: Sequence[Transaction]) -> list[SampleTransaction]:
    return [
        SampleTransaction(
            date=tx.date.isoformat(),
            description=tx.description,
            amount=str(tx.amount),
            type=tx.type.value,
            raw_date=tx.raw_date,
            raw_amount=tx.raw_amount,
        )
        for tx in transactions[:_SAMPLE_SIZE]
    ]


def _warnings(result: AnalysisResult) -> list[ContractWarning]:
    flags = result.flags
    warnings: list[ContractWarning] = []
    if result.error is not None and result.is_empty:
        warnings.append(
            ContractWarning(
                code=result.error.category,
                message=str(result.error),
                severity="error",
            )
        )
    if flags.row_drift_blocked:
        warnings.append(
            ContractWarning(
                code="row_drift",
                message="row structure changed during parsing; affected tiers were skipped",
            )
        )
    if flags.used_fallbacks:
        warnings.append(
            ContractWarning(
                code="fallbacks_used",
                message="fallback tiers used: " + ", ".join(flags.used_fallbacks),
            )
        )
    if not result.is_empty and flags.policy_confidence < _LOW_POLICY_CONFIDENCE:
        warnings.append(
            ContractWarning(
                code="low_policy_confidence",
                message=(
                    f"policy {result.active_policy.value!r} selected with confidence "
                    f"{flags.policy_confidence:.2f}"
                ),
            )
        )
    if not result.is_empty and flags.table_confidence < _LOW_TABLE_CONFIDENCE:
        warnings.append(
            ContractWarning(
                code="low_table_confidence",
                message=f"table confidence {flags.table_confidence:.2f}",
            )
        )
    for finding in check_quality(result.transactions):
        warnings.append(ContractWarning(code=finding.code, message=finding.message))
    return warnings


def _counts_payload(policy_counts: Mapping[AccountPolicy, Counts]) -> dict[str, dict[str, int | str]]:
    return {policy.value: counts.as_dict() for policy, counts in policy_counts.items()}


def generate_output_contract(
    result: AnalysisResult, *, file_info: FileInfo | None = None
) -> OutputContract:
    """Build the diagnostic :class:`OutputContract` for ``result``."""

    info = file_info or FileInfo()
    flags = result.flags
    return OutputContract(
        file=FileMetadata(
            name=info.name,
            size_bytes=info.size_bytes,
            line_count=info.line_count,
            delimiter=flags.delimiter,
        ),
        account_type=result.account_type.value,
        active_policy=result.active_policy.value,
        transaction_count=len(result.transactions),
        rows_parsed=result.rows_parsed,
        column_mapping=result.mapping.as_dict() if result.mapping is not None else None,
        flags=FlagsSnapshot(
            used_fallbacks=list(flags.used_fallbacks),
            locale=flags.locale,
            table_confidence=float(flags.table_confidence),
            row_drift_blocked=flags.row_drift_blocked,
            policy_confidence=float(flags.policy_confidence),
            tier=flags.tier,
            rows_dropped=flags.rows_dropped,
            duplicates_removed=flags.duplicates_removed,
            pending_removed=flags.pending_removed,
        ),
        counts=_counts_payload(result.policy_counts),
        sample=_sample(result.transactions),
        warnings=_warnings(result),
        error_category=result.error.category if result.error is not None else None,
    )


__all__ = [
    "summarize",
    "month_label",
    "group_by_month",
    "calculate_overall_totals",
    "generate_output_contract",
]
