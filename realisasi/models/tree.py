from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from .ledger import CODE, DESCRIPTION, PAGU_REVISI, REALISASI_SD, LedgerRow

"""Account hierarchy tree nodes and flattened display rows.

TreeNode instances are rebuilt for every render pass. Display rows are a
tagged union (LeafRow | GroupRow | AggregateRow) discriminated by ``kind``;
``as_record()`` produces the flat mapping with ``__``-prefixed metadata keys
that table renderers and exporters consume.
"""

__all__ = [
    "TreeNode",
    "LeafRow",
    "GroupRow",
    "AggregateRow",
    "DisplayRow",
    "realization_percentage",
    "as_number",
]


def realization_percentage(pagu: float, realisasi: float) -> float:
    return (realisasi / pagu) * 100 if pagu > 0 else 0.0


def as_number(value: Any) -> float:
    # numeric cells and numeric text pass, anything else counts as 0
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value) if value == value else 0.0
    try:
        parsed = float(str(value).strip())
    except (TypeError, ValueError):
        return 0.0
    return parsed if parsed == parsed else 0.0


@dataclass
class TreeNode:
    """One dot-segment prefix of the code space."""
    name: str
    full_path: str
    level: int
    is_expanded: bool
    children: dict[str, TreeNode] = field(default_factory=dict)
    data: list[LedgerRow] = field(default_factory=list)

    @property
    def has_children(self) -> bool:
        return bool(self.children)

    @property
    def is_data_group(self) -> bool:
        return not self.children and len(self.data) > 1

    def sorted_children(self) -> list[TreeNode]:
        return [self.children[k] for k in sorted(self.children)]

    def totals(self) -> tuple[float, float]:
        """Return (pagu, realisasi) summed over every row in this subtree."""
        pagu = sum(as_number(r[PAGU_REVISI]) if len(r) > PAGU_REVISI else 0.0 for r in self.data)
        realisasi = sum(as_number(r[REALISASI_SD]) if len(r) > REALISASI_SD else 0.0 for r in self.data)
        for child in self.children.values():
            child_pagu, child_realisasi = child.totals()
            pagu += child_pagu
            realisasi += child_realisasi
        return pagu, realisasi


@dataclass(frozen=True)
class LeafRow:
    """A ledger row emitted as-is."""
    row: tuple[Any, ...]
    level: int
    path: str
    is_visible: bool = True
    kind: Literal["leaf"] = "leaf"

    @property
    def code(self) -> str:
        return str(self.row[CODE]) if self.row else ""

    @property
    def description(self) -> str:
        return str(self.row[DESCRIPTION]) if len(self.row) > DESCRIPTION else ""

    @property
    def pagu(self) -> float:
        return as_number(self.row[PAGU_REVISI]) if len(self.row) > PAGU_REVISI else 0.0

    @property
    def realisasi(self) -> float:
        return as_number(self.row[REALISASI_SD]) if len(self.row) > REALISASI_SD else 0.0

    @property
    def percentage(self) -> float:
        return realization_percentage(self.pagu, self.realisasi)

    @property
    def remaining(self) -> float:
        return self.pagu - self.realisasi

    def as_record(self) -> dict[str, Any]:
        record: dict[str, Any] = {i: v for i, v in enumerate(self.row)}
        record.update({
            "__level": self.level,
            "__path": self.path,
            "__hasChildren": False,
            "__isExpanded": False,
            "__isLeaf": True,
            "__isDataGroup": False,
            "__isVisible": self.is_visible,
        })
        return record


@dataclass(frozen=True)
class _SyntheticRow:
    code: str
    description: str
    pagu: float
    realisasi: float
    level: int
    path: str
    is_expanded: bool
    is_visible: bool = True

    @property
    def percentage(self) -> float:
        return realization_percentage(self.pagu, self.realisasi)

    @property
    def remaining(self) -> float:
        # Not floored: negative means overspend
        return self.pagu - self.realisasi

    def _base_record(self) -> dict[str, Any]:
        return {
            CODE: self.code,
            DESCRIPTION: self.description,
            PAGU_REVISI: self.pagu,
            REALISASI_SD: self.realisasi,
            "__paguRevisi": self.pagu,
            "__realisasi": self.realisasi,
            "__persentaseRealisasi": self.percentage,
            "__sisaAnggaran": self.remaining,
            "__level": self.level,
            "__path": self.path,
            "__isExpanded": self.is_expanded,
            "__isLeaf": False,
            "__isVisible": self.is_visible,
        }


@dataclass(frozen=True)
class GroupRow(_SyntheticRow):
    """Aggregate over rows sharing one identical code."""
    data_count: int = 0
    kind: Literal["group"] = "group"

    def as_record(self) -> dict[str, Any]:
        record = self._base_record()
        record.update({"__hasChildren": True, "__isDataGroup": True, "__dataCount": self.data_count})
        return record


@dataclass(frozen=True)
class AggregateRow(_SyntheticRow):
    """Roll-up over an internal node's whole subtree."""
    child_count: int = 0
    kind: Literal["aggregate"] = "aggregate"

    def as_record(self) -> dict[str, Any]:
        record = self._base_record()
        record.update({"__hasChildren": True, "__isDataGroup": False})
        return record


DisplayRow = LeafRow | GroupRow | AggregateRow
