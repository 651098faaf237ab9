from __future__ import annotations

import statistics
from dataclasses import dataclass
from datetime import datetime

from .ledger import PipelineStep

"""Run-level result models.

Aggregates per-file outcomes of a batch run and the pipeline step timing
statistics that feed the SUMMARY line.
"""


@dataclass(frozen=True)
class FileStat:
    """Per-file processing statistics."""
    file_name: str
    status: str  # success/failed
    ledger_rows: int
    elapsed_seconds: float
    total_steps: int = 0
    avg_step_seconds: float = 0.0
    slowest_step: str | None = None


@dataclass(frozen=True)
class ProcessingResult:
    """Aggregated results and summary output for one batch run."""
    success_files: int
    failed_files: int
    total_ledger_rows: int
    budget_view: str
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    throughput_rows_per_sec: float
    file_stats: list[FileStat] | None = None


class StepStatsAccumulator:
    """Collects pipeline step timings and derives summary statistics."""

    def __init__(self) -> None:
        self.steps: list[PipelineStep] = []

    def add_steps(self, steps: list[PipelineStep]) -> None:
        self.steps.extend(steps)

    def get_stats(self) -> tuple[int, float, str | None]:
        """Calculate step statistics.

        Returns:
            tuple: (total_steps, avg_step_seconds, slowest_step_name)
        """
        if not self.steps:
            return (0, 0.0, None)
        avg = statistics.mean(s.elapsed_seconds for s in self.steps)
        slowest = max(self.steps, key=lambda s: s.elapsed_seconds)
        return (len(self.steps), avg, slowest.name)
