from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from realisasi.models.config_models import DEFAULT_AUTO_EXPAND_LEVELS
from realisasi.models.ledger import CODE, LedgerRow
from realisasi.models.tree import AggregateRow, DisplayRow, GroupRow, LeafRow, TreeNode

"""Account hierarchy: tree building, expansion state and flattening.

The tree is rebuilt from ledger rows on every change. The only state that
survives rebuilds is the caller-owned ``{path: is_expanded}`` mapping, which
is read here and never written; changes come back as new mappings from
``toggle_node``/``reset_expansion``.
"""

__all__ = [
    "ExpansionState",
    "default_expanded",
    "build_hierarchy",
    "toggle_node",
    "reset_expansion",
    "flatten_tree",
    "build_tree_view",
    "records",
]

ExpansionState = Mapping[str, bool]


def default_expanded(level: int, auto_expand_levels: int = DEFAULT_AUTO_EXPAND_LEVELS) -> bool:
    return level < auto_expand_levels


def build_hierarchy(
    rows: Sequence[LedgerRow],
    expansion: ExpansionState | None = None,
    auto_expand_levels: int = DEFAULT_AUTO_EXPAND_LEVELS,
) -> list[TreeNode]:
    """Build a forest keyed by dotted-code segments.

    Rows whose code equals an existing node's path are appended to that
    node's data (a data group). Rows without a string code are skipped.
    Returns the top-level nodes sorted by segment name.
    """
    expansion = expansion or {}
    roots: dict[str, TreeNode] = {}

    for row in rows:
        if not row:
            continue
        code = row[CODE]
        if not isinstance(code, str) or not code:
            continue

        parts = code.split(".")
        children = roots
        path = ""
        for index, part in enumerate(parts):
            path = f"{path}.{part}" if path else part
            is_last = index == len(parts) - 1
            node = children.get(part)
            if node is None:
                node = TreeNode(
                    name=part,
                    full_path=path,
                    level=index,
                    is_expanded=expansion.get(path, default_expanded(index, auto_expand_levels)),
                )
                children[part] = node
            if is_last:
                node.data.append(row)
            children = node.children

    return [roots[k] for k in sorted(roots)]


def toggle_node(
    expansion: ExpansionState,
    path: str,
    level: int,
    auto_expand_levels: int = DEFAULT_AUTO_EXPAND_LEVELS,
) -> dict[str, bool]:
    """Return a new state with the node's effective expansion flipped."""
    current = expansion.get(path, default_expanded(level, auto_expand_levels))
    updated = dict(expansion)
    updated[path] = not current
    return updated


def reset_expansion() -> dict[str, bool]:
    return {}


def _label(node: TreeNode, account_names: Mapping[str, str] | None) -> str:
    if account_names and node.name in account_names:
        return account_names[node.name]
    return f"[{node.name}]"


def _flatten(
    nodes: Sequence[TreeNode],
    out: list[DisplayRow],
    expansion: ExpansionState,
    account_names: Mapping[str, str] | None,
    parent_visible: bool,
    depth: int,
) -> None:
    for node in sorted(nodes, key=lambda n: n.name):
        is_visible = depth == 0 or parent_visible
        expanded = expansion.get(node.full_path, node.is_expanded)

        if not node.children:
            if not node.data:
                continue
            if len(node.data) == 1:
                out.append(LeafRow(row=tuple(node.data[0]), level=node.level, path=node.full_path,
                                   is_visible=is_visible))
                continue
            pagu, realisasi = node.totals()
            out.append(GroupRow(
                code=node.full_path,
                description=_label(node, account_names),
                pagu=pagu,
                realisasi=realisasi,
                level=node.level,
                path=node.full_path,
                is_expanded=expanded,
                is_visible=is_visible,
                data_count=len(node.data),
            ))
        else:
            pagu, realisasi = node.totals()
            out.append(AggregateRow(
                code=node.full_path,
                description=_label(node, account_names),
                pagu=pagu,
                realisasi=realisasi,
                level=node.level,
                path=node.full_path,
                is_expanded=expanded,
                is_visible=is_visible,
                child_count=len(node.children),
            ))

        if not expanded:
            continue
        child_visible = is_visible and expanded
        for i, row in enumerate(node.data):
            out.append(LeafRow(row=tuple(row), level=node.level + 1, path=f"{node.full_path}-{i}",
                               is_visible=child_visible))
        if node.children:
            _flatten(list(node.children.values()), out, expansion, account_names, child_visible, depth + 1)


def flatten_tree(
    nodes: Sequence[TreeNode],
    expansion: ExpansionState | None = None,
    account_names: Mapping[str, str] | None = None,
) -> list[DisplayRow]:
    """Walk the forest into display order with roll-up sums.

    Expansion flags in ``expansion`` win over the flags the nodes were built
    with. Children are visited in segment-name order, so the same forest and
    state always produce the same list.
    """
    out: list[DisplayRow] = []
    _flatten(nodes, out, expansion or {}, account_names, True, 0)
    return out


def build_tree_view(
    rows: Sequence[LedgerRow],
    expansion: ExpansionState | None = None,
    account_names: Mapping[str, str] | None = None,
    auto_expand_levels: int = DEFAULT_AUTO_EXPAND_LEVELS,
    limit: int | None = None,
) -> list[DisplayRow]:
    """Build and flatten in one go, optionally capping the input rows."""
    capped = rows[:limit] if limit is not None else rows
    forest = build_hierarchy(capped, expansion, auto_expand_levels)
    return flatten_tree(forest, expansion, account_names)


def records(rows: Sequence[DisplayRow]) -> list[dict[str, Any]]:
    return [r.as_record() for r in rows]
