"""Domain models for the budget realization ledger tool.

This package contains the data shapes shared across the pipeline, the
hierarchy tree, the overlay metrics engine and batch runs.
"""

from .activity import Activity, ActivityStatus, Allocation, BudgetView
from .config_models import AppConfig, DatabaseConfig, PeriodLabels, PipelineOptions
from .history import MonthlyReport, StoredResult
from .ledger import LedgerResult, LedgerRow, PipelineStep, RawRow
from .metrics import AccountSummary, AdditionalTotals, OverlayMetrics
from .tree import AggregateRow, DisplayRow, GroupRow, LeafRow, TreeNode

__all__ = [
    # Configuration models
    "AppConfig",
    "DatabaseConfig",
    "PeriodLabels",
    "PipelineOptions",
    # Ledger models
    "LedgerResult",
    "LedgerRow",
    "PipelineStep",
    "RawRow",
    # Overlay models
    "Activity",
    "ActivityStatus",
    "Allocation",
    "BudgetView",
    "AccountSummary",
    "AdditionalTotals",
    "OverlayMetrics",
    # History models
    "StoredResult",
    "MonthlyReport",
    # Tree models
    "TreeNode",
    "LeafRow",
    "GroupRow",
    "AggregateRow",
    "DisplayRow",
]
