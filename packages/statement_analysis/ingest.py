"""File acquisition: turn a statement file into delimited text lines.

CSV/TXT files are read as UTF-8 (a leading BOM is tolerated) with a latin-1
fallback for legacy bank exports. Excel workbooks are read with ``openpyxl``:
the first sheet's values are serialized row by row into comma-delimited lines,
quoting any cell that itself contains a comma, and rows without content are
dropped. The rest of the pipeline only ever sees lines.
"""

from __future__ import annotations

import datetime as dt
import zipfile
from collections.abc import Iterable, Sequence
from os import PathLike
from pathlib import Path
from typing import Any

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from .logging_setup import get_logger
from .models import FileInfo
from .tokenizer import split_lines

_logger = get_logger("statement_analysis.ingest")

TEXT_SUFFIXES = frozenset({".csv", ".txt", ".tsv"})
EXCEL_SUFFIXES = frozenset({".xlsx", ".xlsm"})


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, dt.datetime):
        if value.time() == dt.time(0, 0):
            return value.date().isoformat()
        return value.isoformat(sep=" ")
    if isinstance(value, dt.date):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def rows_to_lines(rows: Iterable[Sequence[Any]]) -> list[str]:
    """Serialize spreadsheet rows to comma-delimited lines."""

    lines: list[str] = []
    for row in rows:
        cells = []
        for value in row:
            text = _cell_text(value)
            cells.append(f'"{text}"' if "," in text else text)
        line = ",".join(cells)
        if line.replace(",", "").strip():
            lines.append(line)
    return lines


def _read_text(path: Path) -> str:
    data = path.read_bytes()
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        _logger.info("%s is not valid UTF-8; decoding as latin-1", path.name)
        return data.decode("latin-1")


def _read_excel(path: Path) -> list[str]:
    try:
        workbook = load_workbook(path, read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError) as exc:
        raise ValueError(f"not a readable Excel workbook: {path}") from exc
    try:
        if not workbook.sheetnames:
            return []
        sheet = workbook[workbook.sheetnames[0]]
        _logger.debug("reading sheet %r of %s", sheet.title, path.name)
        return rows_to_lines(sheet.iter_rows(values_only=True))
    finally:
        workbook.close()


def load_statement_lines(path: str | PathLike[str]) -> list[str]:
    """Read ``path`` and return its statement lines.

    Raises
    ------
    FileNotFoundError, PermissionError
        When the file cannot be opened.
    ValueError
        When the suffix is unsupported or a workbook is corrupt.
    """

    p = Path(path)
    suffix = p.suffix.lower()
    if suffix in EXCEL_SUFFIXES:
        return _read_excel(p)
    if suffix in TEXT_SUFFIXES or not suffix:
        return split_lines(_read_text(p))
    raise ValueError(f"unsupported statement file type {suffix!r}: {p}")


def describe_file(path: str | PathLike[str], lines: Sequence[str]) -> FileInfo:
    p = Path(path)
    try:
        size = p.stat().st_size
    except OSError:
        size = None
    return FileInfo(name=p.name, size_bytes=size, line_count=len(lines))


__all__ = [
    "TEXT_SUFFIXES",
    "EXCEL_SUFFIXES",
    "rows_to_lines",
    "load_statement_lines",
    "describe_file",
]
