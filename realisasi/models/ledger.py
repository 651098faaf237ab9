from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

"""Ledger row shapes and the canonical processing result.

A Raw Row is whatever the spreadsheet decoder produced for one line (strings,
numbers or None, ragged). After the pipeline every surviving row is a Ledger
Row with positional semantics:

    [0] hierarchical code   [1] description     [2] pagu revisi
    [3] lock pagu           [4] realisasi lalu  [5] realisasi ini
    [6] realisasi s.d. periode
"""

__all__ = [
    "RawRow",
    "LedgerRow",
    "CODE",
    "DESCRIPTION",
    "PAGU_REVISI",
    "LOCK_PAGU",
    "REALISASI_LALU",
    "REALISASI_INI",
    "REALISASI_SD",
    "TOTAL_COLUMNS",
    "PipelineStep",
    "LedgerResult",
]

RawRow = list[Any]
LedgerRow = list[Any]

CODE = 0
DESCRIPTION = 1
PAGU_REVISI = 2
LOCK_PAGU = 3
REALISASI_LALU = 4
REALISASI_INI = 5
REALISASI_SD = 6

# Columns summed into Totals, in output order
TOTAL_COLUMNS: tuple[int, ...] = (PAGU_REVISI, LOCK_PAGU, REALISASI_LALU, REALISASI_INI, REALISASI_SD)


@dataclass(frozen=True)
class PipelineStep:
    """Timing record for one pipeline stage."""
    name: str
    elapsed_seconds: float
    output_rows: int


@dataclass(frozen=True)
class LedgerResult:
    """Canonical output of one pipeline run.

    final_data feeds both on-screen rendering and spreadsheet re-export;
    preview is the bounded slice used for tree building. totals always
    reflects all of final_data.
    """
    final_data: list[LedgerRow]
    totals: list[float]
    preview: list[LedgerRow]
    account_name_map: dict[str, str]
    steps: list[PipelineStep] = field(default_factory=list)
    input_rows: int = 0

    @property
    def total_pagu(self) -> float:
        return self.totals[0] if self.totals else 0.0

    @property
    def total_realisasi(self) -> float:
        return self.totals[4] if len(self.totals) > 4 else 0.0
