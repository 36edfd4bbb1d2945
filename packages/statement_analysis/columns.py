"""Column mapper: find which columns hold date, description, amount and type.

Three strategies are tried in escalating order by :func:`map_columns`:

1. **Header search** over the first 40 non-blank lines. Each role is looked up
   with an exact synonym match, then a word-boundary substring match, then a
   Levenshtein match within ``settings.max_distance``. Cells that look like
   gibberish are never header candidates.
2. **Header validation**. A candidate header is accepted only when at least
   half (rounded up) of the next five data rows carry a date-like date cell and
   an amount-like amount cell. This rejects data-only files that happen to
   contain a synonym word.
3. **Pattern fallback**. Without a usable header, up to 20 sample rows are
   classified column by column from the shape of their values.

How lenient each strategy is comes from an explicit :class:`MatchSettings`
value. The recovery orchestrator picks one per tier.
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from enum import StrEnum

from rapidfuzz.distance import Levenshtein

from .errors import InsufficientDataError, NoHeaderFoundError
from .logging_setup import get_logger
from .models import ColumnMapping
from .tokenizer import is_blank_row, non_empty_count, tokenize_line
from .values import looks_like_amount, looks_like_date

_logger = get_logger("statement_analysis.columns")

# ---- Tunables (private) ------------------------------------------------------

_HEADER_SCAN_LIMIT: int = 40
_VALIDATION_SAMPLE: int = 5
_PATTERN_SAMPLE: int = 20
_MIN_HEADER_CELLS: int = 2
_MIN_MEANINGFUL_LINES: int = 1
# Fuzzy matching is skipped for very short strings, where one or two edits
# turn almost any word into a synonym.
_MIN_FUZZY_LEN: int = 4


# ---- Strategy settings -------------------------------------------------------


@dataclass(frozen=True, slots=True)
class MatchSettings:
    """Leniency knobs for one column-mapping attempt.

    Attributes
    ----------
    name:
        Tier/variant name reported in diagnostics.
    max_distance:
        Largest Levenshtein distance accepted for a fuzzy header match.
    broad_substring:
        Also accept plain (non word-boundary) substring matches in either
        direction between a header cell and a synonym.
    header_search:
        Run the header search + validation strategies.
    pattern_fallback:
        Run value-pattern detection when no header validates.
    min_pattern_confidence:
        Minimum matching fraction for the pattern-detected date and amount
        columns. Values below 0.5 also let a role pick a column whose majority
        vote went to another role.
    """

    name: str
    max_distance: int = 1
    broad_substring: bool = False
    header_search: bool = True
    pattern_fallback: bool = True
    min_pattern_confidence: float = 0.5


DEFAULT = MatchSettings("default")
STRICT = MatchSettings("strict", max_distance=1, pattern_fallback=False)
RELAXED = MatchSettings("relaxed", max_distance=4, broad_substring=True, pattern_fallback=False)
PATTERN = MatchSettings("pattern", header_search=False, min_pattern_confidence=0.5)
MINIMAL = MatchSettings("minimal", header_search=False, min_pattern_confidence=0.2)


# ---- Roles and synonyms ------------------------------------------------------


class Role(StrEnum):
    DATE = "date"
    AMOUNT = "amount"
    DESCRIPTION = "description"
    TYPE = "type"
    CHECK_NUMBER = "check_number"
    STATUS = "status"


# Resolution order; a cell claimed by an earlier role is not reused.
ROLE_ORDER: tuple[Role, ...] = (
    Role.DATE,
    Role.AMOUNT,
    Role.DESCRIPTION,
    Role.TYPE,
    Role.CHECK_NUMBER,
    Role.STATUS,
)

SYNONYMS: Mapping[Role, tuple[str, ...]] = {
    Role.DATE: (
        "date",
        "transaction date",
        "trans date",
        "txn date",
        "posting date",
        "posted date",
        "post date",
        "booking date",
        "value date",
        "effective date",
        "datum",
        "buchungstag",
        "buchungsdatum",
        "valutadatum",
        "fecha",
        "fecha operación",
        "data",
        "data operazione",
        "date opération",
        "date de valeur",
    ),
    Role.AMOUNT: (
        "amount",
        "amt",
        "transaction amount",
        "amount ($)",
        "debit",
        "credit",
        "debit amount",
        "credit amount",
        "withdrawal amount",
        "deposit amount",
        "value",
        "betrag",
        "umsatz",
        "importe",
        "monto",
        "montant",
        "valor",
        "importo",
        "bedrag",
        "kwota",
        "belopp",
    ),
    Role.DESCRIPTION: (
        "description",
        "transaction description",
        "memo",
        "payee",
        "payee name",
        "merchant",
        "merchant name",
        "vendor",
        "details",
        "narrative",
        "particulars",
        "name",
        "beschreibung",
        "verwendungszweck",
        "buchungstext",
        "descripción",
        "concepto",
        "libellé",
        "descrizione",
        "omschrijving",
    ),
    Role.TYPE: (
        "type",
        "transaction type",
        "trans type",
        "category",
        "classification",
        "kind",
        "debit/credit",
        "dr/cr",
        "typ",
        "tipo",
        "art",
        "catégorie",
    ),
    Role.CHECK_NUMBER: (
        "check#",
        "check #",
        "check",
        "check no",
        "check no.",
        "check number",
        "chk#",
        "cheque",
        "cheque no",
        "cheque number",
    ),
    Role.STATUS: (
        "status",
        "state",
        "transaction status",
        "pending/posted",
        "estado",
        "statut",
    ),
}


def _normalize_header(cell: str) -> str:
    s = cell.strip().strip("'\"").lower().replace("_", " ")
    return " ".join(s.split())


# ---- Gibberish filter --------------------------------------------------------

_SPECIAL_RUN_RE = re.compile(r"[^\w\s]{4,}")
_REPEAT_RUN_RE = re.compile(r"(.)\1{3,}")
_NUMERIC_ONLY_RE = re.compile(r"^[\d\s.,+\-/]+$")


def is_gibberish(cell: str) -> bool:
    """Return ``True`` for cells that cannot plausibly be column headers."""

    s = cell.strip()
    if len(s) < 2:
        return True
    if not any(ch.isalpha() for ch in s):
        return True
    if _NUMERIC_ONLY_RE.match(s):
        return True
    if _SPECIAL_RUN_RE.search(s):
        return True
    return bool(_REPEAT_RUN_RE.search(s))


# ---- Header matching ---------------------------------------------------------


def _word_match(cell: str, synonym: str) -> bool:
    pattern = rf"(?<![a-z0-9]){re.escape(synonym)}(?![a-z0-9])"
    return re.search(pattern, cell) is not None


def _exact(cell: str, synonyms: Sequence[str], settings: MatchSettings) -> int | None:
    try:
        return synonyms.index(cell)
    except ValueError:
        return None


def _substring(cell: str, synonyms: Sequence[str], settings: MatchSettings) -> int | None:
    for rank, syn in enumerate(synonyms):
        if _word_match(cell, syn):
            return rank
        if settings.broad_substring and len(cell) >= 3 and (syn in cell or cell in syn):
            return rank
    return None


def _fuzzy_distance(cell: str, synonyms: Sequence[str], settings: MatchSettings) -> int | None:
    if len(cell) < _MIN_FUZZY_LEN:
        return None
    best: int | None = None
    for syn in synonyms:
        if len(syn) < _MIN_FUZZY_LEN:
            continue
        d = Levenshtein.distance(cell, syn, score_cutoff=settings.max_distance)
        if d <= settings.max_distance and (best is None or d < best):
            best = d
    return best


def _best_cell(
    candidates: Sequence[int],
    claimed: set[int],
    score: Callable[[int], int | None],
) -> int | None:
    """Unclaimed candidate with the lowest score; ties keep the leftmost."""

    best_i: int | None = None
    best_score: int | None = None
    for i in candidates:
        if i in claimed:
            continue
        s = score(i)
        if s is not None and (best_score is None or s < best_score):
            best_i, best_score = i, s
    return best_i


def match_header_cells(cells: Sequence[str], settings: MatchSettings = DEFAULT) -> dict[Role, int]:
    """Assign roles to header cells.

    Exact matches for every role are resolved before any substring match, and
    substring matches before fuzzy ones, so a weak match for one role never
    steals a cell that another role names exactly. Within the exact and
    substring passes the cell matching the earliest-listed synonym wins
    (``Type`` beats ``Category`` for the type role); the fuzzy pass keeps the
    smallest edit distance.
    """

    normalized = [_normalize_header(c) for c in cells]
    candidates = [
        i for i, (raw, norm) in enumerate(zip(cells, normalized, strict=True))
        if norm and not is_gibberish(raw)
    ]
    found: dict[Role, int] = {}
    claimed: set[int] = set()

    for matcher in (_exact, _substring, _fuzzy_distance):
        for role in ROLE_ORDER:
            if role in found:
                continue
            synonyms = SYNONYMS[role]
            best = _best_cell(
                candidates,
                claimed,
                lambda i, m=matcher, syns=synonyms: m(normalized[i], syns, settings),
            )
            if best is not None:
                found[role] = best
                claimed.add(best)

    return found


def _mapping_from_roles(
    header_row_index: int, roles: Mapping[Role, int], confidence: float = 1.0
) -> ColumnMapping:
    return ColumnMapping(
        header_row_index=header_row_index,
        date_index=roles[Role.DATE],
        amount_index=roles[Role.AMOUNT],
        description_index=roles.get(Role.DESCRIPTION),
        type_index=roles.get(Role.TYPE),
        check_number_index=roles.get(Role.CHECK_NUMBER),
        status_index=roles.get(Role.STATUS),
        confidence=confidence,
    )


def validate_header(lines: Sequence[str], mapping: ColumnMapping) -> bool:
    """Check that rows following a candidate header look like transactions."""

    sampled = 0
    valid = 0
    for line in lines[mapping.data_start :]:
        if sampled >= _VALIDATION_SAMPLE:
            break
        cells = tokenize_line(line)
        if is_blank_row(cells):
            continue
        sampled += 1
        if len(cells) < mapping.min_columns:
            continue
        if looks_like_date(cells[mapping.date_index]) and looks_like_amount(
            cells[mapping.amount_index]
        ):
            valid += 1
    required = math.ceil(sampled / 2)
    return sampled > 0 and valid >= required


def find_header_mapping(
    lines: Sequence[str], settings: MatchSettings = DEFAULT
) -> ColumnMapping | None:
    """Return the first validated header mapping, or ``None``."""

    scanned = 0
    for idx, line in enumerate(lines):
        if not line.strip():
            continue
        scanned += 1
        if scanned > _HEADER_SCAN_LIMIT:
            break
        cells = tokenize_line(line)
        if non_empty_count(cells) < _MIN_HEADER_CELLS:
            continue
        roles = match_header_cells(cells, settings)
        if Role.DATE not in roles or Role.AMOUNT not in roles:
            continue
        candidate = _mapping_from_roles(idx, roles)
        if validate_header(lines, candidate):
            _logger.debug("header accepted at line %d: %s", idx, candidate.as_dict())
            return candidate
        _logger.debug("header candidate at line %d rejected by row validation", idx)
    return None


# ---- Pattern-based detection -------------------------------------------------

_TYPE_WORD_RE = re.compile(
    r"^(?:debit|credit|check|cheque|deposit|withdrawal|purchase|payment|refund|return"
    r"|charge|fee|interest|transfer|sale|adjustment|dr|cr|atm|pos|ach)s?$",
    re.IGNORECASE,
)
_STATUS_WORD_RE = re.compile(
    r"^(?:pending|posted|cleared|complete|completed|authorized|booked)$", re.IGNORECASE
)


def _looks_like_type(cell: str) -> bool:
    return bool(_TYPE_WORD_RE.match(cell.strip()))


def _looks_like_status(cell: str) -> bool:
    return bool(_STATUS_WORD_RE.match(cell.strip()))


def _looks_like_description(cell: str) -> bool:
    s = cell.strip()
    letters = sum(1 for ch in s if ch.isalpha())
    return letters >= 3 and not looks_like_date(s) and not _looks_like_type(s)


# Vote order doubles as the tie-break: an Excel serial column matches both the
# date and amount families and must vote date.
_FAMILIES: tuple[tuple[Role, Callable[[str], bool]], ...] = (
    (Role.DATE, looks_like_date),
    (Role.AMOUNT, looks_like_amount),
    (Role.STATUS, _looks_like_status),
    (Role.TYPE, _looks_like_type),
    (Role.DESCRIPTION, _looks_like_description),
)


@dataclass(frozen=True, slots=True)
class ColumnProfile:
    index: int
    fractions: Mapping[Role, float]
    role: Role | None
    confidence: float


def profile_columns(rows: Sequence[Sequence[str]]) -> list[ColumnProfile]:
    """Score every column against each value family by majority vote."""

    if not rows:
        return []
    width = max(len(r) for r in rows)
    n = len(rows)
    profiles: list[ColumnProfile] = []
    for col in range(width):
        cells = [r[col] if col < len(r) else "" for r in rows]
        fractions: dict[Role, float] = {}
        for role, check in _FAMILIES:
            hits = sum(1 for c in cells if c.strip() and check(c))
            fractions[role] = hits / n
        winner: Role | None = None
        best = 0.0
        for role, _check in _FAMILIES:
            if fractions[role] > best:
                winner, best = role, fractions[role]
        profiles.append(ColumnProfile(index=col, fractions=fractions, role=winner, confidence=best))
    return profiles


def _sample_rows(lines: Sequence[str], limit: int) -> list[list[str]]:
    rows: list[list[str]] = []
    for line in lines:
        if len(rows) >= limit:
            break
        cells = tokenize_line(line)
        if not is_blank_row(cells):
            rows.append(cells)
    return rows


def detect_columns_by_pattern(
    lines: Sequence[str], settings: MatchSettings = PATTERN
) -> ColumnMapping:
    """Infer column roles from value shapes when no header row is usable.

    Raises
    ------
    NoHeaderFoundError
        When date and amount columns cannot both be resolved with at least
        ``settings.min_pattern_confidence``.
    """

    profiles = profile_columns(_sample_rows(lines, _PATTERN_SAMPLE))
    allow_cross_vote = settings.min_pattern_confidence < 0.5
    roles: dict[Role, int] = {}
    scores: dict[Role, float] = {}
    claimed: set[int] = set()

    for role in (Role.DATE, Role.AMOUNT, Role.STATUS, Role.TYPE, Role.DESCRIPTION):
        best: ColumnProfile | None = None
        for p in profiles:
            if p.index in claimed or p.fractions[role] <= 0.0:
                continue
            if p.role != role and not allow_cross_vote:
                continue
            if best is None or p.fractions[role] > best.fractions[role]:
                best = p
        if best is None:
            continue
        roles[role] = best.index
        scores[role] = best.fractions[role]
        claimed.add(best.index)

    floor = settings.min_pattern_confidence
    if scores.get(Role.DATE, 0.0) < floor or scores.get(Role.AMOUNT, 0.0) < floor:
        raise NoHeaderFoundError(
            "could not detect date and amount columns from value patterns "
            f"(date={scores.get(Role.DATE, 0.0):.2f}, amount={scores.get(Role.AMOUNT, 0.0):.2f}, "
            f"required={floor:.2f})"
        )
    confidence = (scores[Role.DATE] + scores[Role.AMOUNT]) / 2
    mapping = _mapping_from_roles(ColumnMapping.NO_HEADER, roles, confidence=confidence)
    _logger.debug("pattern-detected columns: %s", mapping.as_dict())
    return mapping


# ---- Entry point -------------------------------------------------------------


def count_meaningful_lines(lines: Sequence[str]) -> int:
    return sum(1 for line in lines if line.strip() and not is_blank_row(tokenize_line(line)))


def ensure_meaningful(lines: Sequence[str]) -> None:
    """Raise :class:`InsufficientDataError` when no line carries any data."""

    if count_meaningful_lines(lines) < _MIN_MEANINGFUL_LINES:
        raise InsufficientDataError("file contains no non-empty cells")


def map_columns(lines: Sequence[str], settings: MatchSettings = DEFAULT) -> ColumnMapping:
    """Resolve a :class:`ColumnMapping` for ``lines``.

    The returned mapping always has ``date_index`` and ``amount_index`` set.

    Raises
    ------
    InsufficientDataError
        When no line has a non-empty cell (checked before any header search).
    NoHeaderFoundError
        When every enabled strategy fails.
    """

    ensure_meaningful(lines)
    if settings.header_search:
        mapping = find_header_mapping(lines, settings)
        if mapping is not None:
            return mapping
        if not settings.pattern_fallback:
            raise NoHeaderFoundError(
                f"no header row with date and amount columns found ({settings.name})"
            )
    return detect_columns_by_pattern(lines, settings)


__all__ = [
    "MatchSettings",
    "DEFAULT",
    "STRICT",
    "RELAXED",
    "PATTERN",
    "MINIMAL",
    "Role",
    "SYNONYMS",
    "is_gibberish",
    "match_header_cells",
    "validate_header",
    "find_header_mapping",
    "profile_columns",
    "detect_columns_by_pattern",
    "count_meaningful_lines",
    "ensure_meaningful",
    "map_columns",
]
