from __future__ import annotations

import logging
import math
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from realisasi.models.ledger import RawRow
from realisasi.services.normalization import is_empty

"""Column shifting, hierarchical code reconstruction and column pruning.

The ledger export flattens a 7-level chart of accounts: a row's own code may
sit in any of the leading columns and detail rows carry no code at all. The
functions here move code/description into columns 0/1 and rebuild a dotted
code per row from a trace of the codes seen so far.
"""

__all__ = [
    "MAX_TRACE_SIZE",
    "PRUNED_COLUMNS",
    "TraceBuffer",
    "shift_row",
    "shift_columns",
    "forward_fill_codes",
    "build_hierarchical_codes",
    "prune_columns",
]

logger = logging.getLogger(__name__)

MAX_TRACE_SIZE = 7

ACCOUNT_SLOT = 6
THREE_DIGIT_SLOT = 4
DIGIT_LETTER_SLOT = 5

THREE_DIGIT_RE = re.compile(r"[0-9]{3}")
SIX_DIGIT_RE = re.compile(r"[0-9]{6}")
DIGIT_LETTER_RE = re.compile(r"[0-9][a-zA-Z]")

# 0-based: columns 3-13 and 19-20 of the restructured sheet
PRUNED_COLUMNS: frozenset[int] = frozenset(range(2, 13)) | frozenset({18, 19})


def _is_finite_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    return isinstance(value, (int, float)) and math.isfinite(value)


def shift_row(raw: Sequence[Any]) -> RawRow:
    """Move code/description into columns 0 and 1 of a copied row."""
    row = list(raw)
    while len(row) < 2:
        row.append(None)

    if is_empty(row[0]):
        for i in range(1, len(row)):
            if not is_empty(row[i]):
                row[0] = row[i]
                row[i] = None
                break

    if is_empty(row[1]):
        for i in range(2, len(row)):
            val = row[i]
            if not is_empty(val) and not _is_finite_number(val):
                row[1] = val
                row[i] = None
                break

    # No description found: the row's own value becomes its description
    if is_empty(row[1]):
        row[1] = row[0]
        row[0] = None

    return row


def shift_columns(rows: Iterable[Sequence[Any]]) -> list[RawRow]:
    return [shift_row(r) for r in rows]


def forward_fill_codes(rows: Iterable[Sequence[Any]]) -> list[RawRow]:
    """Fill empty column-0 cells with the nearest preceding non-empty value."""
    filled: list[RawRow] = []
    last_code: Any = None
    for raw in rows:
        row = list(raw)
        if row and not is_empty(row[0]):
            last_code = row[0]
        elif row:
            row[0] = last_code
        filled.append(row)
    return filled


def _code_text(value: Any) -> str:
    text = str(value)
    # Spreadsheet decoders turn integral codes into floats (521211.0)
    if text.endswith(".0"):
        text = text[:-2]
    return text


@dataclass
class TraceBuffer:
    """Known-good path segments, slots 0-6, for one pipeline run.

    Segments are appended until the buffer is full; after that a segment is
    placed by shape: six digits into the account slot, three digits into
    slot 4, digit+letter into slot 5. Segments of any other shape cannot be
    placed and are recorded in ``unplaced``.
    """
    segments: list[str] = field(default_factory=list)
    unplaced: list[str] = field(default_factory=list)

    def absorb(self, code: str) -> None:
        items = code.split(".") if "." in code else [code]
        for item in items:
            if item in self.segments:
                continue
            if len(self.segments) < MAX_TRACE_SIZE:
                self.segments.append(item)
            elif SIX_DIGIT_RE.fullmatch(item):
                self.segments[ACCOUNT_SLOT] = item
            elif THREE_DIGIT_RE.fullmatch(item):
                self.segments[THREE_DIGIT_SLOT] = item
            elif DIGIT_LETTER_RE.fullmatch(item):
                self.segments[DIGIT_LETTER_SLOT] = item
            else:
                logger.debug(f"code segment '{item}' has no slot; trace unchanged")
                self.unplaced.append(item)

    def path(self) -> str:
        return ".".join(self.segments)


def build_hierarchical_codes(
    rows: Iterable[Sequence[Any]], trace: TraceBuffer | None = None
) -> list[RawRow]:
    """Replace column 0 of each (copied) row with its reconstructed code.

    A row with its own code keeps that code (``.0`` artifact stripped) and
    feeds it to the trace; a row without one inherits the current trace path.
    The trace is local to the call unless the caller supplies one to inspect.
    """
    trace = trace if trace is not None else TraceBuffer()
    rebuilt: list[RawRow] = []
    for raw in rows:
        row = list(raw)
        if not row:
            row = [None]
        value = row[0]
        if not is_empty(value):
            code = _code_text(value)
            trace.absorb(code)
            row[0] = code
        else:
            row[0] = trace.path()
        rebuilt.append(row)
    return rebuilt


def prune_columns(
    rows: Iterable[Sequence[Any]], columns: frozenset[int] = PRUNED_COLUMNS
) -> list[RawRow]:
    """Drop fixed column positions from every row."""
    return [[v for j, v in enumerate(row) if j not in columns] for row in rows]
