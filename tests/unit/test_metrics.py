from __future__ import annotations

import copy

import pytest

from realisasi.models.activity import Activity, Allocation, BudgetView
from realisasi.services.ledger import process_ledger
from realisasi.services.metrics import (
    compute_active_ledger,
    compute_additional_totals,
    compute_overlay_metrics,
    compute_totals,
    overlay_key,
    progress_percentage,
    summarize_accounts,
)
from tests.ledger_samples import EXPECTED_CODES, EXPECTED_TOTALS


def test_laporan_view_is_identity(ledger_rows, activities):
    active = compute_active_ledger(ledger_rows, activities, BudgetView.LAPORAN)
    assert active == ledger_rows
    assert all(a is not r for a, r in zip(active, ledger_rows))


def test_outstanding_view_adds_only_outstanding(ledger_rows, activities):
    active = compute_active_ledger(ledger_rows, activities, "realisasi-outstanding")
    assert [r[6] for r in active] == [600_000, 150_000, 500_000]
    assert active[1] == ledger_rows[1]


def test_komitmen_view_adds_outstanding_and_komitmen(ledger_rows, activities):
    active = compute_active_ledger(ledger_rows, activities, BudgetView.KOMITMEN)
    assert [r[6] for r in active] == [600_000, 200_000, 600_000]
    assert compute_totals(active)[4] == 1_400_000


def test_overlay_never_mutates_inputs(ledger_rows, activities):
    rows_before = copy.deepcopy(ledger_rows)
    activities_before = copy.deepcopy(activities)
    for view in BudgetView:
        compute_overlay_metrics(ledger_rows, {}, activities, view)
    assert ledger_rows == rows_before
    assert activities == activities_before


def test_view_monotonicity(ledger_rows, activities):
    realization = [
        compute_totals(compute_active_ledger(ledger_rows, activities, view))[4]
        for view in (BudgetView.LAPORAN, BudgetView.OUTSTANDING, BudgetView.KOMITMEN)
    ]
    assert realization == sorted(realization)
    assert realization[0] == EXPECTED_TOTALS[4]


def test_unmatched_allocation_ignored(ledger_rows):
    drifted = [
        Activity(
            id="x",
            nama="Deskripsi berbeda",
            status="outstanding",
            allocations=(Allocation(EXPECTED_CODES[0], "Konsumsi Rapat ", 123),),
        )
    ]
    active = compute_active_ledger(ledger_rows, drifted, BudgetView.OUTSTANDING)
    assert active == ledger_rows


def test_normalized_keys_match_drifted_descriptions(ledger_rows):
    drifted = [
        Activity(
            id="x",
            nama="Deskripsi berbeda",
            status="outstanding",
            allocations=(Allocation(EXPECTED_CODES[0], "  KONSUMSI rapat ", 100),),
        )
    ]
    active = compute_active_ledger(ledger_rows, drifted, BudgetView.OUTSTANDING, normalize_keys=True)
    assert active[0][6] == 400_100


def test_overlay_key():
    assert overlay_key("A.1", "Uraian") == "A.1||Uraian"
    assert overlay_key(" A.1 ", "URAIAN ", normalize=True) == "a.1||uraian"
    assert overlay_key(None, None) == "||"


def test_overlay_on_row_with_non_numeric_realization():
    rows = [["A.1.B.2.C.3.D.521211", "ATK", 100, 0, 0, 0, "n/a"], ["A.1.B.2.C.3.D.521212", "X"]]
    acts = [
        Activity("1", "a", "Outstanding", (Allocation("A.1.B.2.C.3.D.521211", "ATK", 10),)),
        Activity("2", "b", "Outstanding", (Allocation("A.1.B.2.C.3.D.521212", "X", 5),)),
    ]
    active = compute_active_ledger(rows, acts, BudgetView.OUTSTANDING)
    assert active[0][6] == 10
    assert active[1] == ["A.1.B.2.C.3.D.521212", "X", None, None, None, None, 5]


def test_additional_totals_cover_all_activities(activities):
    totals = compute_additional_totals(activities)
    assert totals.outstanding == 200_000
    assert totals.komitmen == 150_000


def test_progress_percentage():
    assert progress_percentage([200, 0, 0, 0, 50]) == pytest.approx(25.0)
    assert progress_percentage([0, 0, 0, 0, 50]) == 0.0
    assert progress_percentage([-5, 0, 0, 0, 50]) == 0.0
    assert progress_percentage([]) == 0.0


def test_account_summary_groups_detail_rows_by_account(raw_ledger, activities):
    result = process_ledger(raw_ledger)
    laporan = summarize_accounts(result.final_data, result.account_name_map, activities, BudgetView.LAPORAN)

    assert [s.code for s in laporan] == ["521211", "521219"]
    bahan, lainnya = laporan
    assert bahan.uraian == "Belanja Bahan"
    assert bahan.pagu_revisi == 1_500_000
    assert bahan.realisasi == 550_000
    assert bahan.outstanding == 200_000
    assert bahan.komitmen == 50_000
    assert bahan.persentase == pytest.approx(550_000 / 1_500_000 * 100)
    assert bahan.sisa == 950_000
    assert lainnya.uraian == "Belanja Barang Non Operasional Lainnya"
    assert lainnya.pagu_revisi == 2_000_000
    assert (lainnya.outstanding, lainnya.komitmen) == (0, 100_000)

    outstanding = summarize_accounts(result.final_data, result.account_name_map, activities, BudgetView.OUTSTANDING)
    assert [s.realisasi for s in outstanding] == [750_000, 500_000]
    komitmen = summarize_accounts(result.final_data, result.account_name_map, activities, BudgetView.KOMITMEN)
    assert [s.realisasi for s in komitmen] == [800_000, 600_000]


def test_account_summary_merges_rows_and_falls_back_to_code():
    rows = [
        ["A.1.B.2.C.3.521211.000001", None, 100, 0, 0, 0, 10],
        ["Z.9.B.2.C.3.521211.000002", "Lain", 50, 0, 0, 0, 5],
        ["A.1.B.2.C.3.ABCDEF.000003", "Bukan akun", 1, 0, 0, 0, 1],
        ["A.1.B.2.C.3", "Terlalu pendek", 1, 0, 0, 0, 1],
    ]
    summary = summarize_accounts(rows, {}, [], BudgetView.LAPORAN)
    assert len(summary) == 1
    assert summary[0].code == "521211"
    assert summary[0].uraian == "Akun 521211"
    assert summary[0].pagu_revisi == 150
    assert summary[0].realisasi == 15


def test_compute_overlay_metrics_bundle(ledger_rows, account_names, activities):
    metrics = compute_overlay_metrics(ledger_rows, account_names, activities, "realisasi-komitmen")
    assert metrics.view is BudgetView.KOMITMEN
    assert metrics.active_totals == [3_500_000, 0, 400_000, 650_000, 1_400_000]
    assert metrics.progress_percentage == pytest.approx(40.0)
    assert metrics.additional_totals.komitmen == 150_000
    assert [s.code for s in metrics.account_summaries] == ["521211", "521219"]


def test_unknown_view_rejected(ledger_rows):
    with pytest.raises(ValueError):
        compute_active_ledger(ledger_rows, [], "realisasi-semua")
