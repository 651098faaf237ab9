from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Sequence
from typing import Any

from realisasi.excel.cleaner import clean_raw_table
from realisasi.excel.restructure import (
    TraceBuffer,
    build_hierarchical_codes,
    forward_fill_codes,
    prune_columns,
    shift_columns,
)
from realisasi.models.config_models import CODE_FILL_FFILL, PipelineOptions
from realisasi.models.ledger import CODE, TOTAL_COLUMNS, LedgerResult, LedgerRow, PipelineStep, RawRow
from realisasi.services.normalization import (
    coerce_amount,
    derive_account_name_map,
    is_six_digit_segment,
    normalize_rows,
    split_code,
)

"""Ledger pipeline: raw spreadsheet rows to filtered ledger, totals and names.

Stage order is fixed; each stage relies on what the previous one
established:

    clean → shift columns → (forward-fill) → build codes → prune columns
          → normalize → filter & totals → account names

Totals always cover the complete filtered ledger; only the preview slice is
bounded.
"""

__all__ = [
    "LedgerProcessingError",
    "MIN_LEDGER_SEGMENTS",
    "is_ledger_row",
    "filter_ledger_rows",
    "calculate_totals",
    "filter_and_calculate_totals",
    "process_ledger",
]

logger = logging.getLogger(__name__)

MIN_LEDGER_SEGMENTS = 8


class LedgerProcessingError(Exception):
    """Raised when the pipeline has no data left to process."""


def is_ledger_row(row: Sequence[Any]) -> bool:
    """Leaf account rows: >= 8 non-empty code segments ending in a six-digit account."""
    if not row or not isinstance(row[CODE], str):
        return False
    segments = split_code(row[CODE].strip())
    if len(segments) < MIN_LEDGER_SEGMENTS:
        return False
    return is_six_digit_segment(segments[-1])


def filter_ledger_rows(rows: Iterable[Sequence[Any]]) -> list[LedgerRow]:
    return [list(r) for r in rows if is_ledger_row(r)]


def calculate_totals(rows: Sequence[Sequence[Any]]) -> list[float]:
    """Sum the five monetary columns; bad cells contribute 0."""
    totals: list[float] = []
    for col in TOTAL_COLUMNS:
        totals.append(sum(coerce_amount(r[col]) if len(r) > col else 0.0 for r in rows))
    return totals


def filter_and_calculate_totals(
    rows: Iterable[Sequence[Any]],
) -> tuple[list[LedgerRow], list[float]]:
    final_data = filter_ledger_rows(rows)
    return final_data, calculate_totals(final_data)


class _StepTracker:
    def __init__(self) -> None:
        self.steps: list[PipelineStep] = []

    def run(self, name: str, fn: Callable[[], Any]) -> Any:
        start = time.perf_counter()
        data = fn()
        elapsed = time.perf_counter() - start
        counted = data[0] if isinstance(data, tuple) else data
        output_rows = len(counted) if isinstance(counted, (list, dict)) else 0
        self.steps.append(PipelineStep(name=name, elapsed_seconds=elapsed, output_rows=output_rows))
        logger.debug(f"step '{name}' took {elapsed * 1000:.2f}ms rows={output_rows}")
        return data


def process_ledger(raw_rows: Sequence[RawRow], options: PipelineOptions | None = None) -> LedgerResult:
    """Run the full pipeline over raw rows of one export.

    Raises:
        LedgerProcessingError: cleaning left no rows at all
    """
    options = options or PipelineOptions()
    tracker = _StepTracker()
    trace = TraceBuffer()

    cleaned: list[RawRow] = tracker.run(
        "clean",
        lambda: clean_raw_table(raw_rows, options.header_marker, options.footer_marker),
    )
    if not cleaned:
        raise LedgerProcessingError("cleaning produced no data")

    shifted = tracker.run("shift columns", lambda: shift_columns(cleaned))
    if options.code_fill_mode == CODE_FILL_FFILL:
        shifted = tracker.run("forward fill", lambda: forward_fill_codes(shifted))
    structured = tracker.run("build codes", lambda: build_hierarchical_codes(shifted, trace))
    if trace.unplaced:
        logger.warning(
            f"{len(trace.unplaced)} code segment(s) could not be placed in the account hierarchy"
        )
    pruned = tracker.run("prune columns", lambda: prune_columns(structured))
    normalized = tracker.run("normalize", lambda: normalize_rows(pruned))
    final_data, totals = tracker.run("filter and totals", lambda: filter_and_calculate_totals(normalized))
    account_names = tracker.run("account names", lambda: derive_account_name_map(normalized))

    logger.info(
        f"ledger processed: input_rows={len(raw_rows)} ledger_rows={len(final_data)} "
        f"accounts={len(account_names)}"
    )
    return LedgerResult(
        final_data=final_data,
        totals=totals,
        preview=final_data[: options.preview_limit],
        account_name_map=account_names,
        steps=tracker.steps,
        input_rows=len(raw_rows),
    )
