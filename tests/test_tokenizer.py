# ruff: noqa: E402, I001
import sys
from pathlib import Path

import pytest


# Make sure the workspace `packages/` dir is on sys.path so `statement_analysis` is importable
_ROOT = Path(__file__).resolve().parents[1]
_PKG_DIR = _ROOT / "packages"
sys.path[:0] = [p for p in [str(_PKG_DIR), str(_ROOT)] if p not in sys.path]

from statement_analysis.tokenizer import (
    detect_delimiter,
    is_blank_row,
    non_empty_count,
    split_lines,
    tokenize_line,
)


@pytest.mark.parametrize(
    ("line", "expected"),
    [
        ("Date,Description,Amount", ","),
        ("Date;Description;Amount", ";"),
        ("Date\tDescription\tAmount", "\t"),
        ("Date|Description|Amount", "|"),
        # decimal comma loses to the semicolons
        ("2024-01-01;Purchase;-1.234,56;Debit", ";"),
        # no candidate present: first listed wins
        ("just text", ","),
        # tie between comma and semicolon: comma is listed first
        ("a,b;c", ","),
    ],
)
def test_detect_delimiter(line: str, expected: str) -> None:
    assert detect_delimiter(line) == expected


def test_tokenize_keeps_commas_inside_quotes() -> None:
    cells = tokenize_line('2024-01-01,"Purchase at Store, Inc",-50.00,Debit')
    assert cells == ["2024-01-01", "Purchase at Store, Inc", "-50.00", "Debit"]


def test_tokenize_trims_fields_and_keeps_empty_trailing_cell() -> None:
    assert tokenize_line(" 2024-01-02 , Deposit ,0, 200.00,") == [
        "2024-01-02",
        "Deposit",
        "0",
        "200.00",
        "",
    ]


def test_unterminated_quote_swallows_rest_of_line() -> None:
    assert tokenize_line('a,"b,c') == ["a", "b,c"]


def test_doubled_quotes_toggle_twice_and_vanish() -> None:
    assert tokenize_line('2024-01-01,"Joe""s Diner, Inc",-5.00') == [
        "2024-01-01",
        "Joes Diner, Inc",
        "-5.00",
    ]


def test_explicit_delimiter_overrides_detection() -> None:
    assert tokenize_line("a;b,c", delimiter=";") == ["a", "b,c"]


def test_split_lines_strips_bom_and_handles_crlf() -> None:
    assert split_lines("\ufeffDate,Amount\r\n2024-01-01,5\r\n") == ["Date,Amount", "2024-01-01,5"]


def test_blank_row_helpers() -> None:
    assert is_blank_row(["", "  ", ""])
    assert not is_blank_row(["", "x"])
    assert non_empty_count(["a", " ", "b"]) == 2
