"""Typed failures raised by the inference pipeline.

Each error carries a stable ``category`` string so callers (a UI, the CLI)
can distinguish "mostly empty file" from "columns not found" without
matching on message text. ``retryable`` tells the recovery orchestrator
whether escalating to a more lenient tier can help.

Per-row value errors (:class:`InvalidDateError`, :class:`InvalidAmountError`)
also subclass :class:`ValueError` so plain ``except ValueError`` call sites
keep working.
"""

from __future__ import annotations


class StatementAnalysisError(Exception):
    """Base class for all pipeline failures."""

    category: str = "parse_failure"
    retryable: bool = True


class InsufficientDataError(StatementAnalysisError):
    """The input has no line with at least one non-empty cell."""

    category = "insufficient_data"
    retryable = False


class NoHeaderFoundError(StatementAnalysisError):
    """Neither header search nor pattern detection resolved date and amount."""

    category = "no_header_found"


class RowDriftError(StatementAnalysisError):
    """Row or column counts changed between two pipeline stages."""

    category = "row_drift"

    def __init__(self, stage: str, before_count: int, after_count: int, detail: str = "") -> None:
        self.stage = stage
        self.before_count = before_count
        self.after_count = after_count
        msg = f"row drift during {stage!r}: {before_count} rows before, {after_count} after"
        if detail:
            msg = f"{msg} ({detail})"
        super().__init__(msg)


class ParseFailureError(StatementAnalysisError):
    """A tier mapped columns but could not produce a usable transaction set."""

    category = "parse_failure"


class InvalidDateError(StatementAnalysisError, ValueError):
    """A single cell could not be parsed as a calendar date."""

    category = "invalid_date"

    def __init__(self, raw: str | None) -> None:
        self.raw = raw
        super().__init__(f"invalid date: {raw!r}")


class InvalidAmountError(StatementAnalysisError, ValueError):
    """A single cell could not be parsed as a signed decimal amount."""

    category = "invalid_amount"

    def __init__(self, raw: str | None) -> None:
        self.raw = raw
        super().__init__(f"invalid amount: {raw!r}")


__all__ = [
    "StatementAnalysisError",
    "InsufficientDataError",
    "NoHeaderFoundError",
    "RowDriftError",
    "ParseFailureError",
    "InvalidDateError",
    "InvalidAmountError",
]
