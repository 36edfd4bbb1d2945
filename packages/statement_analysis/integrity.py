"""Row integrity guard.

Fingerprints capture each row's cell count and a content hash so two
snapshots of the same table, taken at different pipeline stages, can be
compared without holding on to the rows themselves. Any stage that rewrites
row structure (cell normalization today, unmerging wrapped lines in the
future) should run through :func:`guarded_stage` so silently dropped or
merged rows surface as :class:`~statement_analysis.errors.RowDriftError`.
"""

from __future__ import annotations

import hashlib
from collections.abc import Callable, Sequence

from .errors import RowDriftError
from .logging_setup import get_logger
from .models import RowFingerprint

# ASCII unit separator; never appears in statement text.
_SENTINEL = "\x1f"

_logger = get_logger("statement_analysis.integrity")

type Rows = Sequence[Sequence[str]]


def _row_hash(cells: Sequence[str]) -> int:
    normalized = _SENTINEL.join(" ".join(c.split()) for c in cells)
    payload = f"{len(cells)}{_SENTINEL}{normalized}"
    digest = hashlib.sha256(payload.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big")


def fingerprint(rows: Rows) -> list[RowFingerprint]:
    """Return a deterministic fingerprint per row, in row order."""

    return [
        RowFingerprint(index=i, column_count=len(cells), content_hash=_row_hash(cells))
        for i, cells in enumerate(rows)
    ]


def assert_stable(
    before: Sequence[RowFingerprint], after: Sequence[RowFingerprint], stage: str
) -> None:
    """Raise :class:`RowDriftError` if row count or any column count changed.

    Content hashes are not compared: stages are allowed to rewrite cell text,
    just not the table's shape.
    """

    if len(before) != len(after):
        raise RowDriftError(stage, len(before), len(after))
    for b, a in zip(before, after, strict=True):
        if b.column_count != a.column_count:
            raise RowDriftError(
                stage,
                len(before),
                len(after),
                detail=f"row {b.index} had {b.column_count} columns, now {a.column_count}",
            )


def guarded_stage(
    stage: str,
    rows: Rows,
    transform: Callable[[Rows], list[list[str]]],
) -> list[list[str]]:
    """Apply ``transform`` to ``rows`` and verify the table shape survived."""

    before = fingerprint(rows)
    out = transform(rows)
    after = fingerprint(out)
    assert_stable(before, after, stage)
    _logger.debug("stage %r kept %d rows stable", stage, len(after))
    return out


__all__ = ["fingerprint", "assert_stable", "guarded_stage"]
