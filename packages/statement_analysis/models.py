"""Data models for ``statement_analysis``.

Pipeline-internal records (transactions, column mappings, parsing flags,
counts) are plain ``dataclass`` types. The diagnostic output contract at the
bottom of this module is a set of strict ``pydantic`` models so it can be
validated and dumped to JSON for logging or display by an external UI.

All entities are transient: they are created and owned by a single analysis
run and never shared across runs.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from enum import StrEnum
from typing import NamedTuple

from pydantic import BaseModel, ConfigDict, field_validator

from .errors import StatementAnalysisError

# ---------------------------------------------------------------------------
# Vocabularies
# ---------------------------------------------------------------------------


class AccountPolicy(StrEnum):
    """Classification policy, also used as the caller's account-type hint."""

    CASH = "cash"
    CREDIT = "credit"
    UNKNOWN = "unknown"


class TransactionType(StrEnum):
    # cash policy
    DEBITS = "debits"
    CREDITS = "credits"
    CHECKS = "checks"
    # credit-card policy
    CHARGES = "charges"
    PAYMENTS = "payments"
    REFUNDS = "refunds"


POLICY_VOCABULARY: Mapping[AccountPolicy, tuple[TransactionType, ...]] = {
    AccountPolicy.CASH: (TransactionType.DEBITS, TransactionType.CREDITS, TransactionType.CHECKS),
    AccountPolicy.CREDIT: (
        TransactionType.PAYMENTS,
        TransactionType.CHARGES,
        TransactionType.REFUNDS,
    ),
}


def vocabulary_for(policy: AccountPolicy) -> tuple[TransactionType, ...]:
    """Return the type vocabulary of ``policy`` (``unknown`` reports as cash)."""

    return POLICY_VOCABULARY.get(policy, POLICY_VOCABULARY[AccountPolicy.CASH])


# ---------------------------------------------------------------------------
# Core records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Transaction:
    """A single classified statement line.

    ``raw_date`` and ``raw_amount`` keep the original cell text so callers can
    show exactly what was read. ``status`` carries a raw pending/posted marker
    when the export has one; ``check_number`` comes from a dedicated
    check-number column.
    """

    date: dt.date
    description: str
    amount: Decimal
    type: TransactionType
    raw_date: str
    raw_amount: str
    status: str | None = None
    check_number: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal) or not self.amount.is_finite():
            raise ValueError(f"Transaction.amount must be a finite Decimal, got {self.amount!r}")
        if not isinstance(self.date, dt.date):
            raise ValueError(f"Transaction.date must be a date, got {self.date!r}")


@dataclass(frozen=True, slots=True)
class ColumnMapping:
    """Resolved correspondence between column positions and semantic roles.

    ``header_row_index`` is ``-1`` when no header row exists and the roles
    were detected from value patterns; data then starts at line 0.
    """

    header_row_index: int
    date_index: int
    amount_index: int
    description_index: int | None = None
    type_index: int | None = None
    check_number_index: int | None = None
    status_index: int | None = None
    confidence: float = 1.0

    NO_HEADER = -1

    @property
    def has_header(self) -> bool:
        return self.header_row_index != self.NO_HEADER

    @property
    def data_start(self) -> int:
        """Line index of the first candidate data row."""

        return self.header_row_index + 1

    @property
    def min_columns(self) -> int:
        """Minimum cell count a row needs to carry both date and amount."""

        return max(self.date_index, self.amount_index) + 1

    def as_dict(self) -> dict[str, int | float | None]:
        return {
            "header_row_index": self.header_row_index,
            "date_index": self.date_index,
            "description_index": self.description_index,
            "amount_index": self.amount_index,
            "type_index": self.type_index,
            "check_number_index": self.check_number_index,
            "status_index": self.status_index,
            "confidence": round(self.confidence, 4),
        }


@dataclass(slots=True)
class ParsingFlags:
    """Per-run parsing context threaded through every pipeline stage.

    One instance is created at the start of each analysis and returned with
    the result; stages mutate it explicitly instead of sharing global state.
    """

    used_fallbacks: list[str] = field(default_factory=list)
    locale: str = "en-US"
    table_confidence: float = 0.0
    row_drift_blocked: bool = False
    policy_confidence: float = 0.0
    tier: str | None = None
    delimiter: str | None = None
    rows_dropped: int = 0
    duplicates_removed: int = 0
    pending_removed: int = 0

    def record_fallback(self, tier_name: str) -> None:
        self.used_fallbacks.append(tier_name)


class RowFingerprint(NamedTuple):
    """Compact row identity used only for integrity comparison."""

    index: int
    column_count: int
    content_hash: int


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Counts:
    """Per-policy transaction counts.

    ``as_dict`` flattens to ``{debits, credits, checks, total, active_policy}``
    for the cash policy or ``{payments, charges, refunds, total,
    active_policy}`` for the credit policy.
    """

    active_policy: AccountPolicy
    by_type: Mapping[TransactionType, int]
    total: int

    def __getitem__(self, key: TransactionType | str) -> int:
        return self.by_type.get(TransactionType(key), 0)

    def as_dict(self) -> dict[str, int | str]:
        out: dict[str, int | str] = {
            t.value: self.by_type.get(t, 0) for t in vocabulary_for(self.active_policy)
        }
        out["total"] = self.total
        out["active_policy"] = self.active_policy.value
        return out


@dataclass(frozen=True, slots=True)
class TypeSummary:
    count: int
    total: Decimal
    average: Decimal


@dataclass(frozen=True, slots=True)
class MonthSummary:
    """Per-type counts/totals/averages for one calendar month."""

    label: str
    year: int
    month: int
    by_type: Mapping[TransactionType, TypeSummary]
    total: TypeSummary


@dataclass(frozen=True, slots=True)
class FileInfo:
    """Metadata about the analyzed input, reported in the output contract."""

    name: str | None = None
    size_bytes: int | None = None
    line_count: int = 0


@dataclass(frozen=True, slots=True)
class AnalysisResult:
    """Everything one analysis run produced.

    ``transactions`` is the deduplicated, classified list; ``rows_parsed`` is
    the number of rows that parsed successfully before deduplication.
    ``error`` holds the last failure seen by the orchestrator (``None`` when
    the first tier succeeded) so callers can inspect its ``category``.
    """

    transactions: tuple[Transaction, ...]
    rows_parsed: int
    counts: Counts
    policy_counts: Mapping[AccountPolicy, Counts]
    flags: ParsingFlags
    account_type: AccountPolicy
    active_policy: AccountPolicy
    mapping: ColumnMapping | None = None
    error: StatementAnalysisError | None = None

    @property
    def is_empty(self) -> bool:
        return not self.transactions


# ---------------------------------------------------------------------------
# Output contract (diagnostics DTOs)
# ---------------------------------------------------------------------------


class FileMetadata(BaseModel):
    model_config = ConfigDict(strict=True, extra="forbid")

    name: str | None = None
    size_bytes: int | None = None
    line_count: int
    delimiter: str | None = None


class FlagsSnapshot(BaseModel):
    """Frozen copy of :class:`ParsingFlags` at the end of a run."""

    model_config = ConfigDict(strict=True, extra="forbid")

    used_fallbacks: list[str]
    locale: str
    table_confidence: float
    row_drift_blocked: bool
    policy_confidence: float
    tier: str | None = None
    rows_dropped: int = 0
    duplicates_removed: int = 0
    pending_removed: int = 0

    @field_validator("table_confidence", "policy_confidence")
    @classmethod
    def _in_unit_interval(cls, v: float) -> float:
        if 0.0 <= v <= 1.0:
            return v
        raise ValueError("confidence must be within [0,1]")


class SampleTransaction(BaseModel):
    model_config = ConfigDict(strict=True, extra="forbid")

    date: str
    description: str
    amount: str
    type: str
    raw_date: str
    raw_amount: str


class ContractWarning(BaseModel):
    model_config = ConfigDict(strict=True, extra="forbid")

    code: str
    message: str
    severity: str = "warning"


class OutputContract(BaseModel):
    """Diagnostic record describing what was inferred and how confidently."""

    model_config = ConfigDict(strict=True, extra="forbid")

    file: FileMetadata
    account_type: str
    active_policy: str
    transaction_count: int
    rows_parsed: int
    column_mapping: dict[str, int | float | None] | None = None
    flags: FlagsSnapshot
    counts: dict[str, dict[str, int | str]]
    sample: list[SampleTransaction]
    warnings: list[ContractWarning]
    error_category: str | None = None


__all__ = [
    "AccountPolicy",
    "TransactionType",
    "POLICY_VOCABULARY",
    "vocabulary_for",
    "Transaction",
    "ColumnMapping",
    "ParsingFlags",
    "RowFingerprint",
    "Counts",
    "TypeSummary",
    "MonthSummary",
    "FileInfo",
    "AnalysisResult",
    "FileMetadata",
    "FlagsSnapshot",
    "SampleTransaction",
    "ContractWarning",
    "OutputContract",
]
