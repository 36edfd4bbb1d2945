"""Public API for the ``statement_analysis`` package.

Thin entry points over the recovery orchestrator. Callers that already hold
lines can use :func:`statement_analysis.recovery.analyze_lines` directly.
"""

from __future__ import annotations

from os import PathLike

from .aggregate import generate_output_contract
from .ingest import describe_file, load_statement_lines
from .models import AccountPolicy, AnalysisResult, FileInfo, OutputContract
from .recovery import analyze_lines
from .tokenizer import split_lines


def analyze_text(
    text: str,
    *,
    account_type: AccountPolicy | str = AccountPolicy.UNKNOWN,
    source_name: str | None = None,
) -> AnalysisResult:
    """Analyze raw delimited statement text.

    Never raises for malformed content; inspect ``result.error`` and
    ``result.flags`` for what went wrong.
    """

    return analyze_lines(
        split_lines(text), account_type=AccountPolicy(account_type), source_name=source_name
    )


def analyze_file(
    path: str | PathLike[str],
    *,
    account_type: AccountPolicy | str = AccountPolicy.UNKNOWN,
) -> tuple[AnalysisResult, OutputContract]:
    """Load, analyze and describe one statement file.

    Raises
    ------
    FileNotFoundError, PermissionError, ValueError
        When the file cannot be read (see
        :func:`statement_analysis.ingest.load_statement_lines`).
    """

    lines = load_statement_lines(path)
    info: FileInfo = describe_file(path, lines)
    result = analyze_lines(lines, account_type=AccountPolicy(account_type), source_name=info.name)
    return result, generate_output_contract(result, file_info=info)


__all__ = ["analyze_text", "analyze_file"]
