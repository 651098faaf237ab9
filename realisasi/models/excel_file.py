from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path

from .ledger import LedgerResult
from .metrics import OverlayMetrics

"""ReportFile domain model and FileStatus enum.

A ReportFile is the processing context for one ledger export, tracking its
status from discovery through completion.
"""


class FileStatus(Enum):
    """Status enum for the ReportFile lifecycle.

    State transitions: pending → processing → (success | failed)
    """
    PENDING = "pending"
    PROCESSING = "processing"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class ReportFile:
    """Processing context for a single ledger export."""
    path: Path
    name: str
    start_time: datetime | None = None
    end_time: datetime | None = None
    status: FileStatus = FileStatus.PENDING
    result: LedgerResult | None = None
    metrics: OverlayMetrics | None = None
    export_path: Path | None = None
    stored_id: str | None = None
    error: str | None = None

    @property
    def ledger_rows(self) -> int:
        return len(self.result.final_data) if self.result is not None else 0
