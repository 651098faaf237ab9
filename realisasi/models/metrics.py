from __future__ import annotations

from dataclasses import dataclass

from .activity import BudgetView
from .ledger import LedgerRow

"""Overlay metric result models.

These are freshly constructed for every recomputation; nothing here aliases
the source ledger rows that were modified by an overlay.
"""

__all__ = [
    "AccountSummary",
    "AdditionalTotals",
    "OverlayMetrics",
]


@dataclass(frozen=True)
class AccountSummary:
    """Per-account (6-digit code) aggregate for dashboard panels."""
    code: str
    uraian: str
    pagu_revisi: float
    realisasi: float  # ledger, plus overlay amounts the view includes
    outstanding: float  # always tracked, independent of view
    komitmen: float  # always tracked, independent of view
    persentase: float
    sisa: float


@dataclass(frozen=True)
class AdditionalTotals:
    outstanding: float
    komitmen: float


@dataclass(frozen=True)
class OverlayMetrics:
    view: BudgetView
    active_data: list[LedgerRow]
    active_totals: list[float]
    account_summaries: list[AccountSummary]
    additional_totals: AdditionalTotals
    progress_percentage: float
