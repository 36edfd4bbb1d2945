"""Recovery orchestrator: run the pipeline under escalating tiers.

Each tier is a complete attempt at the pipeline with its own column-mapping
settings. A tier fails on :class:`NoHeaderFoundError`, :class:`RowDriftError`
or :class:`ParseFailureError`; the failure is recorded in
``ParsingFlags.used_fallbacks`` and the next tier runs. When every tier fails,
or the input has no meaningful data at all, an empty :class:`AnalysisResult`
is returned instead of raising.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass

from .classify import (
    ParsedRow,
    classify_all,
    deduplicate,
    filter_pending,
    parse_row,
    select_policy,
)
from .columns import (
    MINIMAL,
    PATTERN,
    RELAXED,
    STRICT,
    MatchSettings,
    ensure_meaningful,
    map_columns,
)
from .errors import (
    InsufficientDataError,
    InvalidAmountError,
    InvalidDateError,
    NoHeaderFoundError,
    ParseFailureError,
    RowDriftError,
    StatementAnalysisError,
)
from .integrity import guarded_stage
from .logging_setup import get_logger
from .models import (
    AccountPolicy,
    AnalysisResult,
    ColumnMapping,
    Counts,
    ParsingFlags,
    Transaction,
    vocabulary_for,
)
from .tokenizer import detect_delimiter, is_blank_row, tokenize_line
from .values import is_european_amount

_logger = get_logger("statement_analysis.recovery")

# ---- Tunables (private) ------------------------------------------------------

# Table-confidence weights; they sum to 1.0.
_W_HEADER: float = 0.3
_W_VALID_ROWS: float = 0.25
_W_DESCRIPTION: float = 0.2
_W_TYPE: float = 0.15
_W_CONSISTENCY: float = 0.1

_DEGRADED_TABLE_CONFIDENCE: float = 0.3

_LOCALE_DEFAULT = "en-US"
_LOCALE_EUROPEAN = "eu"


# ---- Tiers -------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Tier:
    """One escalation level: mapping settings plus result overrides."""

    name: str
    settings: MatchSettings
    force_unknown_account: bool = False
    fixed_table_confidence: float | None = None


TIERS: tuple[Tier, ...] = (
    Tier("strict", STRICT),
    Tier("relaxed", RELAXED),
    Tier("pattern", PATTERN),
    Tier(
        "minimal",
        MINIMAL,
        force_unknown_account=True,
        fixed_table_confidence=_DEGRADED_TABLE_CONFIDENCE,
    ),
)


@dataclass(frozen=True, slots=True)
class _TierOutcome:
    mapping: ColumnMapping
    transactions: list[Transaction]
    rows_parsed: int
    rows_dropped: int
    pending_removed: int
    duplicates_removed: int
    policy: AccountPolicy
    policy_confidence: float
    policy_counts: dict[AccountPolicy, Counts]
    table_confidence: float
    locale: str


# ---- Pipeline stages ---------------------------------------------------------


def _normalize_cells(rows: Sequence[Sequence[str]]) -> list[list[str]]:
    return [[" ".join(c.split()) for c in cells] for cells in rows]


def _data_rows(lines: Sequence[str], mapping: ColumnMapping) -> tuple[list[list[str]], int]:
    """Tokenize candidate data rows; also return how many were too short to use."""

    rows: list[list[str]] = []
    short = 0
    for line in lines[mapping.data_start :]:
        cells = tokenize_line(line)
        if is_blank_row(cells):
            continue
        if len(cells) < mapping.min_columns:
            short += 1
            continue
        rows.append(cells)
    return rows, short


def _parse_rows(
    rows: Sequence[Sequence[str]], mapping: ColumnMapping
) -> tuple[list[ParsedRow], int]:
    parsed: list[ParsedRow] = []
    dropped = 0
    for cells in rows:
        try:
            parsed.append(parse_row(cells, mapping))
        except (InvalidDateError, InvalidAmountError) as exc:
            dropped += 1
            _logger.debug("dropping row %r: %s", list(cells), exc)
    return parsed, dropped


def _detect_locale(parsed: Sequence[ParsedRow]) -> str:
    if not parsed:
        return _LOCALE_DEFAULT
    european = sum(1 for r in parsed if is_european_amount(r.raw_amount))
    return _LOCALE_EUROPEAN if european * 2 > len(parsed) else _LOCALE_DEFAULT


def dominant_delimiter(lines: Sequence[str]) -> str | None:
    """Most common per-line delimiter across non-blank lines."""

    counts = Counter(detect_delimiter(line) for line in lines if line.strip())
    if not counts:
        return None
    return counts.most_common(1)[0][0]


def count_by_type(transactions: Sequence[Transaction], policy: AccountPolicy) -> Counts:
    by_type = Counter(tx.type for tx in transactions)
    return Counts(
        active_policy=policy,
        by_type={t: by_type.get(t, 0) for t in vocabulary_for(policy)},
        total=len(transactions),
    )


def table_confidence(
    mapping: ColumnMapping,
    parsed: Sequence[ParsedRow],
    rows: Sequence[Sequence[str]],
    rows_dropped: int,
) -> float:
    """Weighted table-level confidence in ``[0, 1]``.

    The header term is the mapping's own confidence: ``1.0`` for a validated
    header row, the pattern score otherwise.
    """

    attempted = len(parsed) + rows_dropped
    valid_ratio = len(parsed) / attempted if attempted else 0.0

    def _filled(idx: int | None) -> float:
        if idx is None or not rows:
            return 0.0
        return sum(1 for r in rows if idx < len(r) and r[idx].strip()) / len(rows)

    if rows:
        widths = Counter(len(r) for r in rows)
        consistency = widths.most_common(1)[0][1] / len(rows)
    else:
        consistency = 0.0

    score = (
        _W_HEADER * mapping.confidence
        + _W_VALID_ROWS * valid_ratio
        + _W_DESCRIPTION * _filled(mapping.description_index)
        + _W_TYPE * _filled(mapping.type_index)
        + _W_CONSISTENCY * consistency
    )
    return max(0.0, min(1.0, score))


def _run_tier(lines: Sequence[str], tier: Tier, hint: AccountPolicy) -> _TierOutcome:
    mapping = map_columns(lines, tier.settings)
    raw_rows, short_rows = _data_rows(lines, mapping)
    rows = guarded_stage("normalize_cells", raw_rows, _normalize_cells)
    parsed, dropped = _parse_rows(rows, mapping)
    dropped += short_rows
    if not parsed:
        raise ParseFailureError(
            f"no valid transaction rows under tier {tier.name!r} ({dropped} rows dropped)"
        )

    kept, pending_removed = filter_pending(parsed)
    effective_hint = AccountPolicy.UNKNOWN if tier.force_unknown_account else hint
    decision = select_policy(kept, effective_hint)

    policy_counts: dict[AccountPolicy, Counts] = {}
    transactions: list[Transaction] = []
    for policy in (AccountPolicy.CASH, AccountPolicy.CREDIT):
        unique = deduplicate(classify_all(kept, policy))
        policy_counts[policy] = count_by_type(unique, policy)
        if policy == decision.policy:
            transactions = unique

    if tier.fixed_table_confidence is not None:
        confidence = tier.fixed_table_confidence
    else:
        confidence = table_confidence(mapping, parsed, rows, dropped)

    return _TierOutcome(
        mapping=mapping,
        transactions=transactions,
        rows_parsed=len(parsed),
        rows_dropped=dropped,
        pending_removed=pending_removed,
        duplicates_removed=len(kept) - len(transactions),
        policy=decision.policy,
        policy_confidence=decision.confidence,
        policy_counts=policy_counts,
        table_confidence=confidence,
        locale=_detect_locale(parsed),
    )


# ---- Orchestrator ------------------------------------------------------------


def empty_result(
    flags: ParsingFlags,
    account_type: AccountPolicy = AccountPolicy.UNKNOWN,
    error: StatementAnalysisError | None = None,
) -> AnalysisResult:
    """Result with no transactions and ``active_policy`` ``unknown``."""

    counts = count_by_type([], AccountPolicy.UNKNOWN)
    return AnalysisResult(
        transactions=(),
        rows_parsed=0,
        counts=counts,
        policy_counts={
            AccountPolicy.CASH: count_by_type([], AccountPolicy.CASH),
            AccountPolicy.CREDIT: count_by_type([], AccountPolicy.CREDIT),
        },
        flags=flags,
        account_type=account_type,
        active_policy=AccountPolicy.UNKNOWN,
        mapping=None,
        error=error,
    )


def analyze_lines(
    lines: Sequence[str],
    *,
    account_type: AccountPolicy = AccountPolicy.UNKNOWN,
    source_name: str | None = None,
    tiers: Sequence[Tier] = TIERS,
) -> AnalysisResult:
    """Analyze statement ``lines`` and always return a result.

    Parameters
    ----------
    lines:
        Physical lines of delimited text, header included when present.
    account_type:
        Caller hint. ``cash``/``credit`` fixes the classification policy;
        ``unknown`` lets both policies compete.
    source_name:
        Optional file name, used only in log messages.
    tiers:
        Escalation chain; defaults to strict, relaxed, pattern, minimal.
    """

    account_type = AccountPolicy(account_type)
    label = source_name or "<text>"
    flags = ParsingFlags(delimiter=dominant_delimiter(lines))

    try:
        # Any tier would reject this input; stop before the first one.
        ensure_meaningful(lines)
    except InsufficientDataError as exc:
        _logger.warning("%s: %s", label, exc)
        return empty_result(flags, account_type, exc)

    last_error: StatementAnalysisError | None = None
    for tier in tiers:
        try:
            outcome = _run_tier(lines, tier, account_type)
        except RowDriftError as exc:
            flags.row_drift_blocked = True
            flags.record_fallback(tier.name)
            last_error = exc
            _logger.warning("%s: tier %r blocked by row drift: %s", label, tier.name, exc)
            continue
        except (NoHeaderFoundError, ParseFailureError) as exc:
            flags.record_fallback(tier.name)
            last_error = exc
            _logger.warning("%s: tier %r failed: %s", label, tier.name, exc)
            continue

        flags.tier = tier.name
        flags.locale = outcome.locale
        flags.table_confidence = outcome.table_confidence
        flags.policy_confidence = outcome.policy_confidence
        flags.rows_dropped = outcome.rows_dropped
        flags.pending_removed = outcome.pending_removed
        flags.duplicates_removed = outcome.duplicates_removed
        result_account = AccountPolicy.UNKNOWN if tier.force_unknown_account else account_type
        _logger.info(
            "%s: tier %r parsed %d rows into %d transactions (policy=%s, table=%.2f)",
            label,
            tier.name,
            outcome.rows_parsed,
            len(outcome.transactions),
            outcome.policy,
            outcome.table_confidence,
        )
        return AnalysisResult(
            transactions=tuple(outcome.transactions),
            rows_parsed=outcome.rows_parsed,
            counts=outcome.policy_counts[outcome.policy],
            policy_counts=outcome.policy_counts,
            flags=flags,
            account_type=result_account,
            active_policy=outcome.policy,
            mapping=outcome.mapping,
            error=last_error,
        )

    _logger.warning("%s: all tiers failed; returning an empty result", label)
    return empty_result(flags, account_type, last_error)


__all__ = [
    "Tier",
    "TIERS",
    "dominant_delimiter",
    "count_by_type",
    "table_confidence",
    "empty_result",
    "analyze_lines",
]
