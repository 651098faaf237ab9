from __future__ import annotations

import math
import re
from collections.abc import Iterable
from typing import Any

from realisasi.models.ledger import CODE, DESCRIPTION, LedgerRow

"""Code/description normalization and segment helpers.

Normalization runs when rows are first produced by the pipeline and again
when stored results are read back, so every function here must be safe to
re-apply to its own output.
"""

__all__ = [
    "is_empty",
    "split_code",
    "last_segment",
    "segment_at_level",
    "is_six_digit_segment",
    "normalize_code_description",
    "normalize_rows",
    "derive_account_name_map",
    "coerce_amount",
]

SIX_DIGIT_RE = re.compile(r"[0-9]{6}")
DESCRIPTION_PREFIX_RE = re.compile(r"([0-9]{6})\.\s*(.+)")
NUMERIC_ONLY_RE = re.compile(r"[0-9]+")
HAS_LETTER_RE = re.compile(r"[A-Za-z]")
# Longest numeric prefix, as a lenient float parser would accept it
LEADING_FLOAT_RE = re.compile(r"^[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


def is_empty(value: Any) -> bool:
    """None, NaN and the empty string count as empty cells."""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and value == ""


def split_code(code: Any) -> list[str]:
    if not isinstance(code, str) or not code:
        return []
    return [s.strip() for s in code.split(".") if s.strip()]


def last_segment(code: Any) -> str:
    segments = split_code(code)
    return segments[-1] if segments else ""


def segment_at_level(code: Any, level_index: int) -> str:
    segments = split_code(code)
    return segments[level_index] if 0 <= level_index < len(segments) else ""


def is_six_digit_segment(segment: Any) -> bool:
    return isinstance(segment, str) and bool(SIX_DIGIT_RE.fullmatch(segment))


def normalize_code_description(code: Any, description: Any) -> tuple[Any, Any]:
    """Repair a (code, description) pair scrambled by the cleaning heuristics.

    Two malformations are fixed:

    * the account code ended up as a ``NNNNNN. text`` prefix of the
      description: the prefix is appended to the code (unless it already is
      the last segment) and the description keeps only the text;
    * the description is digits only while the code's last segment carries
      letters: the two are swapped.

    Non-string values are passed through. Never raises.
    """
    if not isinstance(description, str):
        return code, description

    desc = description.strip()
    code_str = code.strip() if isinstance(code, str) else ""

    match = DESCRIPTION_PREFIX_RE.fullmatch(desc)
    if match:
        segments = split_code(code_str)
        while match:
            six_digit, rest = match.group(1), match.group(2).strip()
            if not segments or segments[-1] != six_digit:
                segments.append(six_digit)
            desc = rest
            match = DESCRIPTION_PREFIX_RE.fullmatch(desc)
        return ".".join(segments), desc

    segments = split_code(code_str)
    if segments and NUMERIC_ONLY_RE.fullmatch(desc) and HAS_LETTER_RE.search(segments[-1]):
        segments[-1], desc = desc, segments[-1]
        return ".".join(segments), desc

    if isinstance(code, str):
        return code_str, desc
    return code, desc


def normalize_rows(rows: Iterable[LedgerRow]) -> list[LedgerRow]:
    """Return copies of rows with column 0/1 normalized."""
    normalized: list[LedgerRow] = []
    for row in rows:
        new_row = list(row) if row is not None else []
        if len(new_row) > DESCRIPTION:
            new_row[CODE], new_row[DESCRIPTION] = normalize_code_description(
                new_row[CODE], new_row[DESCRIPTION]
            )
        normalized.append(new_row)
    return normalized


def derive_account_name_map(rows: Iterable[LedgerRow]) -> dict[str, str]:
    """Map six-digit account code (last code segment) to description.

    First occurrence wins so that reprocessing the same ledger always yields
    the same labels.
    """
    names: dict[str, str] = {}
    for row in rows:
        if len(row) <= DESCRIPTION:
            continue
        code, description = row[CODE], row[DESCRIPTION]
        if not isinstance(code, str) or not isinstance(description, str):
            continue
        description = description.strip()
        if not description:
            continue
        account = last_segment(code)
        if is_six_digit_segment(account) and account not in names:
            names[account] = description
    return names


def coerce_amount(value: Any) -> float:
    """Lenient Indonesian-locale number coercion.

    Numbers pass through; strings drop ``.`` thousands separators and use
    ``,`` as decimal point. Anything unparseable is 0.
    """
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else 0.0
    if isinstance(value, str) and value.strip():
        formatted = value.strip().replace(".", "").replace(",", ".")
        match = LEADING_FLOAT_RE.match(formatted)
        if match:
            parsed = float(match.group(0))
            return parsed if math.isfinite(parsed) else 0.0
    return 0.0
