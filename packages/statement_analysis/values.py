"""Cell value parsers: locale-aware amounts and multi-format dates.

Amounts
-------
European formats are recognized *before* any separator stripping so that
``"1.234,56"`` reads as ``1234.56`` rather than being mangled by naive comma
removal. Currency symbols, ISO currency codes and whitespace are removed
first; surrounding parentheses mark a negative amount. The cleaned text must
match ``^[+-]?\\d*\\.?\\d+$``.

Dates
-----
Candidates are tried in order and the first success wins:

1. generic parse (ISO date/datetime, then ``dateutil`` for text carrying a
   month name),
2. Excel serial numbers in ``[1, 100000]`` via openpyxl's 1900 date system
   (which already accounts for the 1900 leap-year bug),
3. ``MM/DD/YYYY`` (2-digit years: ``< 50`` → 2000s, else 1900s),
4. ``DD/MM/YYYY`` with the same expansion,
5. year-first ``YYYY-MM-DD`` (also ``/`` or ``.`` separated, unpadded parts).

The numeric forms may carry a trailing time of day, which is ignored. Every
shape :func:`looks_like_date` accepts is one of these, so a validated date
column never fails wholesale at parse time.
"""

from __future__ import annotations

import datetime as dt
import re
from decimal import Decimal, InvalidOperation

from dateutil import parser as date_parser
from openpyxl.utils.datetime import from_excel

from .errors import InvalidAmountError, InvalidDateError

# ---------------------------------------------------------------------------
# Amounts
# ---------------------------------------------------------------------------

_CURRENCY_RE = re.compile(
    r"[$€£¥₹₩₽]|(?<![A-Za-z])(?:USD|EUR|GBP|CAD|AUD|CHF|JPY|INR|SEK|NOK|DKK|PLN)(?![A-Za-z])",
    re.IGNORECASE,
)
_WHITESPACE_RE = re.compile(r"\s+")
_PARENS_RE = re.compile(r"^([+-]?)\((.*)\)$")
_EU_THOUSANDS_RE = re.compile(r"^[+-]?\d{1,3}(?:\.\d{3})+,\d+$")
_EU_DECIMAL_RE = re.compile(r"^[+-]?\d+,\d{1,2}$")
_CANONICAL_RE = re.compile(r"^[+-]?\d*\.?\d+$")


def _strip_symbols(raw: str) -> str:
    s = raw.replace("−", "-")  # unicode minus
    s = _CURRENCY_RE.sub("", s)
    return _WHITESPACE_RE.sub("", s)


def is_european_amount(raw: str | None) -> bool:
    """Return ``True`` when ``raw`` uses a decimal comma (``1.234,56``/``50,00``)."""

    if not raw:
        return False
    s = _strip_symbols(raw)
    m = _PARENS_RE.match(s)
    if m:
        s = m.group(1) + m.group(2)
    return bool(_EU_THOUSANDS_RE.match(s) or _EU_DECIMAL_RE.match(s))


def parse_amount(raw: str | None) -> Decimal:
    """Parse a statement amount cell into a signed :class:`Decimal`.

    Raises
    ------
    InvalidAmountError
        When the cell is empty or not a recognizable number.
    """

    if raw is None:
        raise InvalidAmountError(raw)
    s = _strip_symbols(raw.strip())
    if not s:
        raise InvalidAmountError(raw)

    negative = False
    m = _PARENS_RE.match(s)
    if m:
        negative = True
        s = m.group(1) + m.group(2)

    if _EU_THOUSANDS_RE.match(s):
        s = s.replace(".", "").replace(",", ".")
    elif _EU_DECIMAL_RE.match(s):
        s = s.replace(",", ".")
    else:
        s = s.replace(",", "")

    if not _CANONICAL_RE.match(s):
        raise InvalidAmountError(raw)
    try:
        value = Decimal(s)
    except InvalidOperation as exc:
        raise InvalidAmountError(raw) from exc
    return -abs(value) if negative else value


def looks_like_amount(raw: str | None) -> bool:
    try:
        parse_amount(raw)
    except InvalidAmountError:
        return False
    return True


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------

_EXCEL_SERIAL_MIN = 1
_EXCEL_SERIAL_MAX = 100_000
# Fills components missing from textual dates ("January 2024" -> 2024-01-01).
_DATEUTIL_DEFAULT = dt.datetime(2000, 1, 1)

_NUMERIC_RE = re.compile(r"^\d+(?:\.\d+)?$")
_TIME_SUFFIX = r"(?:[T ]\d{1,2}:\d{2}(?::\d{2})?.*)?"
_NUMERIC_DATE_RE = re.compile(
    r"^(\d{1,2})[/.-](\d{1,2})[/.-](\d{4}|\d{2})(?:\s+\d{1,2}:\d{2}.*)?$"
)
_YEAR_FIRST_RE = re.compile(r"^(\d{4})([-/.])(\d{1,2})\2(\d{1,2})" + _TIME_SUFFIX + "$")
_MONTH = (
    r"(?:jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?|aug(?:ust)?"
    r"|sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?)\.?"
)
# "Jan 5, 2024", "5 Jan 2024", "05-Jan-24", "Fri, 5 January 2024"
_TEXT_DATE_RE = re.compile(
    r"^(?:[a-z]{3,9}\.?,?\s+)?(?:\d{1,2}(?:st|nd|rd|th)?[\s-])?" + _MONTH
    + r"(?:[\s-]+\d{1,2}(?:st|nd|rd|th)?,?)?[\s,-]+\d{2,4}(?:\s+\d{1,2}:\d{2}.*)?$",
    re.IGNORECASE,
)

# Pattern families used to validate date-like cells without parsing them.
_DATE_PATTERNS: tuple[re.Pattern[str], ...] = (
    _YEAR_FIRST_RE,
    _NUMERIC_DATE_RE,
    re.compile(r"^\d{5}(?:\.\d+)?$"),  # Excel serial day numbers
    re.compile(r"^\d{8}$"),  # compact YYYYMMDD
)


def _expand_year(token: str) -> int:
    year = int(token)
    if len(token) == 2:
        year += 2000 if year < 50 else 1900
    return year


def _parse_generic(s: str) -> dt.date | None:
    try:
        return dt.date.fromisoformat(s)
    except ValueError:
        pass
    try:
        return dt.datetime.fromisoformat(s).date()
    except ValueError:
        pass
    if _TEXT_DATE_RE.match(s):
        try:
            return date_parser.parse(s, default=_DATEUTIL_DEFAULT).date()
        except (ValueError, OverflowError):
            return None
    return None


def _parse_excel_serial(s: str) -> dt.date | None:
    if not _NUMERIC_RE.match(s):
        return None
    serial = float(s)
    if not _EXCEL_SERIAL_MIN <= serial <= _EXCEL_SERIAL_MAX:
        return None
    converted = from_excel(serial)
    if isinstance(converted, dt.datetime):
        return converted.date()
    if isinstance(converted, dt.date):
        return converted
    return None


def _parse_numeric(s: str, *, day_first: bool) -> dt.date | None:
    m = _NUMERIC_DATE_RE.match(s)
    if not m:
        return None
    a, b, year_token = m.groups()
    month, day = (int(b), int(a)) if day_first else (int(a), int(b))
    try:
        return dt.date(_expand_year(year_token), month, day)
    except ValueError:
        return None


def _parse_year_first(s: str) -> dt.date | None:
    m = _YEAR_FIRST_RE.match(s)
    if not m:
        return None
    try:
        return dt.date(int(m.group(1)), int(m.group(3)), int(m.group(4)))
    except ValueError:
        return None


def parse_date(raw: str | None) -> dt.date:
    """Parse a statement date cell into a calendar date.

    Raises
    ------
    InvalidDateError
        When no supported format matches.
    """

    if raw is None:
        raise InvalidDateError(raw)
    s = raw.strip()
    if not s:
        raise InvalidDateError(raw)

    candidates = (
        _parse_generic,
        _parse_excel_serial,
        lambda v: _parse_numeric(v, day_first=False),
        lambda v: _parse_numeric(v, day_first=True),
        _parse_year_first,
    )
    for attempt in candidates:
        parsed = attempt(s)
        if parsed is not None:
            return parsed
    raise InvalidDateError(raw)


def looks_like_date(raw: str | None) -> bool:
    """Cheap pattern check used when validating header rows and columns."""

    if not raw:
        return False
    s = raw.strip()
    if not s:
        return False
    if any(p.match(s) for p in _DATE_PATTERNS):
        return True
    return bool(_TEXT_DATE_RE.match(s))


__all__ = [
    "parse_amount",
    "parse_date",
    "looks_like_amount",
    "looks_like_date",
    "is_european_amount",
]
