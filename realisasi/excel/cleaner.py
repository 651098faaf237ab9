from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from realisasi.models.config_models import DEFAULT_FOOTER_MARKER, DEFAULT_HEADER_MARKER
from realisasi.models.ledger import RawRow
from realisasi.services.normalization import is_empty

"""Raw table cleaning.

Steps:
1. Drop every row containing the footer note (string-coerced substring match)
2. Slice from the first row containing the header marker (warn if absent)
3. Drop columns that are empty in every remaining row
"""

__all__ = [
    "cell_text",
    "drop_footer_rows",
    "find_header_index",
    "drop_empty_columns",
    "clean_raw_table",
]

logger = logging.getLogger(__name__)


def cell_text(value: Any) -> str:
    """String coercion used for marker matching; None coerces to an empty string."""
    if value is None:
        return ""
    return str(value)


def drop_footer_rows(rows: Sequence[RawRow], footer_marker: str) -> list[RawRow]:
    return [list(row) for row in rows if not any(footer_marker in cell_text(c) for c in row)]


def find_header_index(rows: Sequence[RawRow], header_marker: str) -> int:
    """Index of the first row containing header_marker, or -1."""
    for i, row in enumerate(rows):
        if any(header_marker in cell_text(c) for c in row):
            return i
    return -1


def drop_empty_columns(rows: Sequence[RawRow]) -> list[RawRow]:
    if not rows:
        return []
    col_count = max((len(r) for r in rows), default=0)
    empty_cols = {
        j for j in range(col_count)
        if all(is_empty(row[j]) if j < len(row) else True for row in rows)
    }
    if not empty_cols:
        return [list(row) for row in rows]
    return [[v for j, v in enumerate(row) if j not in empty_cols] for row in rows]


def clean_raw_table(
    rows: Sequence[RawRow],
    header_marker: str = DEFAULT_HEADER_MARKER,
    footer_marker: str = DEFAULT_FOOTER_MARKER,
) -> list[RawRow]:
    """Remove footer noise, rows above the header, and all-empty columns.

    Output rows may be ragged. An empty result is not raised here; the
    pipeline decides whether that is fatal.
    """
    df = drop_footer_rows(rows, footer_marker)

    header_index = find_header_index(df, header_marker)
    if header_index == -1:
        logger.warning(f"header marker '{header_marker}' not found; keeping all rows")
    else:
        df = df[header_index:]

    return drop_empty_columns(df)
