"""Line tokenizer: per-line delimiter detection and quote-aware splitting.

The delimiter is re-detected for every line. A file may therefore (rarely)
use different delimiters on different rows; that leniency is intentional.
Quote handling follows the simple toggle model used by spreadsheet
"save as CSV" output: each ``"`` flips the quoted state and is dropped, so an
unterminated quote swallows the rest of the line literally rather than
raising.
"""

from __future__ import annotations

from collections.abc import Sequence

# Candidate delimiters in tie-break order.
DELIMITERS: tuple[str, ...] = (",", ";", "\t", "|")


def detect_delimiter(line: str) -> str:
    """Return the candidate delimiter with the highest raw count in ``line``.

    Quote state is ignored while counting. Ties (including "none present")
    resolve to the first-listed candidate.
    """

    best = DELIMITERS[0]
    best_count = -1
    for candidate in DELIMITERS:
        n = line.count(candidate)
        if n > best_count:
            best, best_count = candidate, n
    return best


def tokenize_line(line: str, delimiter: str | None = None) -> list[str]:
    """Split ``line`` into trimmed fields, honoring double-quoted regions.

    Parameters
    ----------
    line:
        A single physical line of delimited text (no trailing newline).
    delimiter:
        Optional explicit delimiter; detected from the line when ``None``.
    """

    delim = delimiter or detect_delimiter(line)
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    for ch in line:
        if ch == '"':
            in_quotes = not in_quotes
        elif ch == delim and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
    fields.append("".join(current).strip())
    return fields


def split_lines(text: str) -> list[str]:
    """Split raw text into physical lines (``\\n``, ``\\r\\n`` and ``\\r``)."""

    if text.startswith("\ufeff"):
        text = text[1:]
    return text.splitlines()


def is_blank_row(cells: Sequence[str]) -> bool:
    return all(not c.strip() for c in cells)


def non_empty_count(cells: Sequence[str]) -> int:
    return sum(1 for c in cells if c.strip())


__all__ = [
    "DELIMITERS",
    "detect_delimiter",
    "tokenize_line",
    "split_lines",
    "is_blank_row",
    "non_empty_count",
]
