from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

"""Activity overlay models.

Activities are tracked outside the official ledger (planned, committed or
pending-payment spend). They are read-only input for metric recomputation.
"""

__all__ = [
    "ActivityStatus",
    "BudgetView",
    "Allocation",
    "Activity",
]


class ActivityStatus(Enum):
    """Known activity states. Status strings are compared case-insensitively."""
    RENCANA = "rencana"
    KOMITMEN = "komitmen"
    OUTSTANDING = "outstanding"
    TERBAYAR = "terbayar"

    @classmethod
    def parse(cls, raw: str | None) -> ActivityStatus | None:
        value = (raw or "").strip().lower()
        for member in cls:
            if member.value == value:
                return member
        return None


class BudgetView(Enum):
    """Which activity states are folded into realisasi.

    - LAPORAN: ledger only
    - OUTSTANDING: ledger + Outstanding
    - KOMITMEN: ledger + Outstanding + Komitmen
    """
    LAPORAN = "realisasi-laporan"
    OUTSTANDING = "realisasi-outstanding"
    KOMITMEN = "realisasi-komitmen"

    @property
    def included_statuses(self) -> frozenset[ActivityStatus]:
        if self is BudgetView.OUTSTANDING:
            return frozenset({ActivityStatus.OUTSTANDING})
        if self is BudgetView.KOMITMEN:
            return frozenset({ActivityStatus.OUTSTANDING, ActivityStatus.KOMITMEN})
        return frozenset()


@dataclass(frozen=True)
class Allocation:
    kode: str
    uraian: str
    jumlah: float

    @staticmethod
    def from_dict(data: dict[str, Any]) -> Allocation:
        raw_amount = data.get("jumlah")
        try:
            amount = float(raw_amount) if raw_amount is not None else 0.0
        except (TypeError, ValueError):
            amount = 0.0
        return Allocation(
            kode=str(data.get("kode") or ""),
            uraian=str(data.get("uraian") or ""),
            jumlah=amount,
        )


@dataclass(frozen=True)
class Activity:
    id: str
    nama: str
    status: str
    allocations: tuple[Allocation, ...] = field(default_factory=tuple)

    @property
    def parsed_status(self) -> ActivityStatus | None:
        return ActivityStatus.parse(self.status)

    @property
    def total_allocated(self) -> float:
        return sum(a.jumlah for a in self.allocations)

    @staticmethod
    def from_dict(data: dict[str, Any]) -> Activity:
        allocations = data.get("allocations") or []
        return Activity(
            id=str(data.get("id") or ""),
            nama=str(data.get("nama") or ""),
            status=str(data.get("status") or "draft"),
            allocations=tuple(Allocation.from_dict(a) for a in allocations if isinstance(a, dict)),
        )
