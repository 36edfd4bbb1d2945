# ruff: noqa: I001
"""CLI for the ``statement_analysis`` package.

Environment variables are loaded from a local ``.env`` using ``python-dotenv``
before any command runs (existing variables win). ``STATEMENT_ANALYSIS_LOG_LEVEL``
sets the log level and ``STATEMENT_ANALYSIS_ACCOUNT_TYPE`` the default account
type. Business logic lives in ``statement_analysis.api`` and the pipeline
modules; this module only formats results.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from decimal import Decimal
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from typer.models import OptionInfo

from .logging_setup import configure_logging
from .models import AccountPolicy, TransactionType, TypeSummary

_ACCOUNT_TYPE_ENV_VAR = "STATEMENT_ANALYSIS_ACCOUNT_TYPE"


# ---- Formatting helpers ------------------------------------------------------


def _resolve_account_type(value: str | None) -> AccountPolicy:
    """Explicit option, then ``STATEMENT_ANALYSIS_ACCOUNT_TYPE``, then ``unknown``."""

    raw = value if value is not None else os.getenv(_ACCOUNT_TYPE_ENV_VAR)
    if raw is None or not raw.strip():
        return AccountPolicy.UNKNOWN
    try:
        return AccountPolicy(raw.strip().lower())
    except ValueError as exc:
        choices = ", ".join(p.value for p in AccountPolicy)
        raise typer.BadParameter(
            f"invalid account type {raw!r} (expected one of: {choices})",
            param_hint="--account-type",
        ) from exc


def _fmt_amount(value: Decimal) -> str:
    return f"{value:,.2f}"


def _summary_lines(
    by_type: Mapping[TransactionType, TypeSummary], total: TypeSummary
) -> list[str]:
    lines = [f"{'Type':<10}{'Count':>7}{'Total':>16}{'Average':>14}"]
    for tx_type, s in by_type.items():
        lines.append(
            f"{tx_type.value.capitalize():<10}{s.count:>7}"
            f"{_fmt_amount(s.total):>16}{_fmt_amount(s.average):>14}"
        )
    lines.append(
        f"{'Total':<10}{total.count:>7}{_fmt_amount(total.total):>16}{_fmt_amount(total.average):>14}"
    )
    return lines


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Infer the layout of a bank or credit-card statement export and summarize "
        "its transactions. Loads a local .env before running."
    ),
)


# Module-level option object to satisfy ruff B008 (no calls in parameter
# defaults). Typer will inspect this when used as a default value below.
CSV_PATH_OPTION: OptionInfo = typer.Option(
    ...,  # required
    "--csv-path",
    help="Path to a statement export (.csv, .txt or .xlsx)",
    dir_okay=False,
    file_okay=True,
    exists=False,  # the handler reports missing files itself
    readable=True,
)


@app.command("analyze")
def analyze_cmd(
    csv_path: Annotated[Path, CSV_PATH_OPTION],
    *,
    account_type: str | None = typer.Option(
        None,
        "--account-type",
        help=f"cash, credit or unknown (falls back to {_ACCOUNT_TYPE_ENV_VAR}).",
    ),
    as_json: bool = typer.Option(
        False, "--json", help="Print the diagnostic output contract as JSON."
    ),
    monthly: bool = typer.Option(False, "--monthly", help="Also print per-month summaries."),
) -> None:
    """Analyze one statement file and print a per-type summary."""

    # Deferred imports to keep CLI startup fast
    from .aggregate import group_by_month, summarize
    from .api import analyze_file

    policy_hint = _resolve_account_type(account_type)

    try:
        result, contract = analyze_file(csv_path, account_type=policy_hint)
    except FileNotFoundError:
        typer.echo(f"Error: File not found: {csv_path}", err=True)
        raise typer.Exit(1) from None
    except PermissionError:
        typer.echo(f"Error: Permission denied: {csv_path}", err=True)
        raise typer.Exit(1) from None
    except (OSError, ValueError) as e:
        typer.echo(f"Error: Failed to read '{csv_path}': {e}", err=True)
        raise typer.Exit(1) from None

    if as_json:
        typer.echo(contract.model_dump_json(indent=2))
        return

    flags = result.flags
    typer.echo(f"File: {csv_path.name}")
    typer.echo(
        f"Policy: {result.active_policy.value} (confidence {flags.policy_confidence:.2f}), "
        f"tier: {flags.tier or 'none'}, table confidence: {flags.table_confidence:.2f}"
    )
    if flags.used_fallbacks:
        typer.echo("Fallbacks: " + ", ".join(flags.used_fallbacks))
    typer.echo(
        f"Rows parsed: {result.rows_parsed}, transactions: {len(result.transactions)}, "
        f"dropped: {flags.rows_dropped}, duplicates: {flags.duplicates_removed}"
    )
    typer.echo("")

    by_type, total = summarize(result.transactions, result.active_policy)
    for line in _summary_lines(by_type, total):
        typer.echo(line)

    if monthly:
        for label, month in group_by_month(result.transactions, result.active_policy).items():
            typer.echo("")
            typer.echo(label)
            for line in _summary_lines(month.by_type, month.total):
                typer.echo(line)

    for warning in contract.warnings:
        typer.echo(f"Warning [{warning.code}]: {warning.message}", err=True)


@app.callback(invoke_without_command=True)
def _root(ctx: typer.Context) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)

    # Central logging setup so child loggers inherit configuration
    configure_logging()

    if ctx.invoked_subcommand is None:
        typer.echo("No subcommand provided. Use --help to see available commands.")
        raise typer.Exit(1)


if __name__ == "__main__":  # pragma: no cover
    # Running as a module: `python -m statement_analysis.cli`
    app()
