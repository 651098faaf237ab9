from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence

from realisasi.models.activity import Activity, ActivityStatus, BudgetView
from realisasi.models.ledger import CODE, DESCRIPTION, PAGU_REVISI, REALISASI_SD, TOTAL_COLUMNS, LedgerRow
from realisasi.models.metrics import AccountSummary, AdditionalTotals, OverlayMetrics
from realisasi.models.tree import as_number, realization_percentage
from realisasi.services.normalization import is_six_digit_segment, segment_at_level

"""Overlay metrics: ledger totals recomputed with activity allocations folded in.

Activities in Outstanding/Komitmen state are added on top of column 6
(cumulative realization) of matching ledger rows, keyed by ``kode||uraian``.
Which states are folded in depends on the Budget View. Inputs are never
modified; every output row is a fresh list.
"""

__all__ = [
    "overlay_key",
    "allocation_amounts",
    "compute_active_ledger",
    "compute_totals",
    "compute_additional_totals",
    "progress_percentage",
    "summarize_accounts",
    "compute_overlay_metrics",
]

logger = logging.getLogger(__name__)

TRACKED_STATUSES = frozenset({ActivityStatus.OUTSTANDING, ActivityStatus.KOMITMEN})

# 0-based index of the six-digit account segment (level 7 of the code)
ACCOUNT_LEVEL = 6


def _as_view(view: BudgetView | str) -> BudgetView:
    return view if isinstance(view, BudgetView) else BudgetView(view)


def overlay_key(kode: object, uraian: object, normalize: bool = False) -> str:
    """Composite match key. ``normalize`` trims and case-folds both sides."""
    kode_text = "" if kode is None else str(kode)
    uraian_text = "" if uraian is None else str(uraian)
    if normalize:
        kode_text = kode_text.strip().casefold()
        uraian_text = uraian_text.strip().casefold()
    return f"{kode_text}||{uraian_text}"


def allocation_amounts(
    activities: Iterable[Activity],
    statuses: frozenset[ActivityStatus],
    normalize_keys: bool = False,
) -> dict[str, float]:
    """Sum allocation amounts per composite key over activities in ``statuses``."""
    amounts: dict[str, float] = {}
    for activity in activities:
        if activity.parsed_status not in statuses:
            continue
        for alloc in activity.allocations:
            key = overlay_key(alloc.kode, alloc.uraian, normalize_keys)
            amounts[key] = amounts.get(key, 0.0) + alloc.jumlah
    return amounts


def compute_active_ledger(
    ledger: Sequence[LedgerRow],
    activities: Iterable[Activity],
    view: BudgetView | str,
    normalize_keys: bool = False,
) -> list[LedgerRow]:
    """Return a row-for-row copy of ``ledger`` with the view's allocations added.

    Allocations without a matching row are dropped silently.
    """
    view = _as_view(view)
    amounts = allocation_amounts(activities, view.included_statuses, normalize_keys)

    active: list[LedgerRow] = []
    matched: set[str] = set()
    for row in ledger:
        copied = list(row)
        if len(copied) > DESCRIPTION:
            key = overlay_key(copied[CODE], copied[DESCRIPTION], normalize_keys)
            extra = amounts.get(key)
            if extra:
                while len(copied) <= REALISASI_SD:
                    copied.append(None)
                copied[REALISASI_SD] = as_number(copied[REALISASI_SD]) + extra
                matched.add(key)
        active.append(copied)

    unmatched = [k for k in amounts if k not in matched]
    if unmatched:
        logger.debug(f"{len(unmatched)} allocation key(s) matched no ledger row: {unmatched[:5]}")
    return active


def compute_totals(rows: Sequence[Sequence[object]]) -> list[float]:
    return [
        sum(as_number(r[col]) if len(r) > col else 0.0 for r in rows)
        for col in TOTAL_COLUMNS
    ]


def compute_additional_totals(activities: Iterable[Activity]) -> AdditionalTotals:
    """Overall Outstanding and Komitmen amounts, regardless of ledger matches."""
    outstanding = 0.0
    komitmen = 0.0
    for activity in activities:
        status = activity.parsed_status
        if status is ActivityStatus.OUTSTANDING:
            outstanding += activity.total_allocated
        elif status is ActivityStatus.KOMITMEN:
            komitmen += activity.total_allocated
    return AdditionalTotals(outstanding=outstanding, komitmen=komitmen)


def progress_percentage(totals: Sequence[float]) -> float:
    if len(totals) < 5:
        return 0.0
    return realization_percentage(totals[0], totals[4])


def _account_overlays(activities: Iterable[Activity]) -> tuple[dict[str, float], dict[str, float]]:
    outstanding: dict[str, float] = {}
    komitmen: dict[str, float] = {}
    for activity in activities:
        status = activity.parsed_status
        if status not in TRACKED_STATUSES:
            continue
        target = outstanding if status is ActivityStatus.OUTSTANDING else komitmen
        for alloc in activity.allocations:
            account = segment_at_level(alloc.kode, ACCOUNT_LEVEL)
            if not is_six_digit_segment(account):
                continue
            target[account] = target.get(account, 0.0) + alloc.jumlah
    return outstanding, komitmen


def summarize_accounts(
    ledger: Sequence[LedgerRow],
    account_names: Mapping[str, str],
    activities: Sequence[Activity],
    view: BudgetView | str,
) -> list[AccountSummary]:
    """One entry per level-7 account code in the ledger, sorted by code.

    Detail rows below the same account (``...521211.002523``,
    ``...521211.002524``) are merged into that account.

    Outstanding and Komitmen are always reported; they are added into
    ``realisasi`` only for views that include them.
    """
    view = _as_view(view)
    outstanding, komitmen = _account_overlays(activities)

    accounts: dict[str, list] = {}
    for row in ledger:
        if not row or not isinstance(row[CODE], str):
            continue
        account = segment_at_level(row[CODE], ACCOUNT_LEVEL)
        if not is_six_digit_segment(account):
            continue
        pagu = as_number(row[PAGU_REVISI]) if len(row) > PAGU_REVISI else 0.0
        realisasi = as_number(row[REALISASI_SD]) if len(row) > REALISASI_SD else 0.0
        entry = accounts.get(account)
        if entry is None:
            description = row[DESCRIPTION] if len(row) > DESCRIPTION else None
            name = account_names.get(account) or description or f"Akun {account}"
            accounts[account] = [str(name), pagu, realisasi]
        else:
            entry[1] += pagu
            entry[2] += realisasi

    included = view.included_statuses
    summaries: list[AccountSummary] = []
    for code in sorted(accounts):
        name, pagu, realisasi = accounts[code]
        out_amount = outstanding.get(code, 0.0)
        kom_amount = komitmen.get(code, 0.0)
        if ActivityStatus.OUTSTANDING in included:
            realisasi += out_amount
        if ActivityStatus.KOMITMEN in included:
            realisasi += kom_amount
        summaries.append(AccountSummary(
            code=code,
            uraian=name,
            pagu_revisi=pagu,
            realisasi=realisasi,
            outstanding=out_amount,
            komitmen=kom_amount,
            persentase=realization_percentage(pagu, realisasi),
            sisa=pagu - realisasi,
        ))
    return summaries


def compute_overlay_metrics(
    ledger: Sequence[LedgerRow],
    account_names: Mapping[str, str],
    activities: Sequence[Activity],
    view: BudgetView | str = BudgetView.LAPORAN,
    normalize_keys: bool = False,
) -> OverlayMetrics:
    """Compute every overlay output for one view."""
    view = _as_view(view)
    active = compute_active_ledger(ledger, activities, view, normalize_keys)
    totals = compute_totals(active)
    return OverlayMetrics(
        view=view,
        active_data=active,
        active_totals=totals,
        account_summaries=summarize_accounts(ledger, account_names, activities, view),
        additional_totals=compute_additional_totals(activities),
        progress_percentage=progress_percentage(totals),
    )
