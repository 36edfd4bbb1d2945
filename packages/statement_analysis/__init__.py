"""Public interface for the ``statement_analysis`` package.

This module exposes the package's API functions and public models/types as the
stable import surface. There is no runtime logic here, only symbol re-exports.
"""

from .aggregate import (
    calculate_overall_totals,
    generate_output_contract,
    group_by_month,
    summarize,
)
from .api import analyze_file, analyze_text
from .columns import MatchSettings, map_columns
from .errors import (
    InsufficientDataError,
    InvalidAmountError,
    InvalidDateError,
    NoHeaderFoundError,
    ParseFailureError,
    RowDriftError,
    StatementAnalysisError,
)
from .models import (
    AccountPolicy,
    AnalysisResult,
    ColumnMapping,
    Counts,
    OutputContract,
    ParsingFlags,
    Transaction,
    TransactionType,
)
from .recovery import analyze_lines
from .values import parse_amount, parse_date

__all__ = [
    # API
    "analyze_text",
    "analyze_file",
    "analyze_lines",
    "map_columns",
    "parse_amount",
    "parse_date",
    "summarize",
    "group_by_month",
    "calculate_overall_totals",
    "generate_output_contract",
    # Models / types
    "AccountPolicy",
    "TransactionType",
    "Transaction",
    "ColumnMapping",
    "ParsingFlags",
    "Counts",
    "AnalysisResult",
    "OutputContract",
    "MatchSettings",
    # Errors
    "StatementAnalysisError",
    "InsufficientDataError",
    "NoHeaderFoundError",
    "RowDriftError",
    "ParseFailureError",
    "InvalidDateError",
    "InvalidAmountError",
]
