from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from .ledger import LedgerResult

"""Stored results and the monthly history views built from them."""

__all__ = [
    "StoredResult",
    "MonthlyReport",
    "MonthlyTrendPoint",
    "AccountRow",
    "AccountTrendPoint",
    "AccountTrend",
]


@dataclass(frozen=True)
class StoredResult:
    """A processing result as kept by the result store."""
    id: str
    file_name: str
    result: LedgerResult
    report_type: str | None = None
    report_date: date | None = None


@dataclass(frozen=True)
class MonthlyReport:
    """Latest stored result of one calendar month."""
    id: str
    file_name: str
    report_date: date
    report_type: str
    year: int
    month: int  # 1-12
    result: LedgerResult

    @property
    def totals(self) -> list[float]:
        return self.result.totals


@dataclass(frozen=True)
class MonthlyTrendPoint:
    month: str
    year: int
    total_pagu: float
    total_realisasi: float
    persentase: float
    report_type: str


@dataclass(frozen=True)
class AccountRow:
    """An account-level (8-segment) ledger line."""
    kode: str  # last segment
    kode_lengkap: str
    uraian: str
    pagu: float
    realisasi: float
    realisasi_bulan_ini: float
    persentase: float
    sisa: float


@dataclass(frozen=True)
class AccountTrendPoint:
    month: str
    year: int
    pagu: float
    realisasi: float
    persentase: float


@dataclass(frozen=True)
class AccountTrend:
    uraian: str
    points: tuple[AccountTrendPoint, ...]
