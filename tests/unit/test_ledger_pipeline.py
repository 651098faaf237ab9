from __future__ import annotations

import logging
import random

import pytest

from realisasi.models.config_models import DEFAULT_FOOTER_MARKER, DEFAULT_HEADER_MARKER, PipelineOptions
from realisasi.services.ledger import (
    LedgerProcessingError,
    calculate_totals,
    filter_and_calculate_totals,
    filter_ledger_rows,
    is_ledger_row,
    process_ledger,
)
from realisasi.services.normalization import split_code
from tests.ledger_samples import ACCOUNT_PREFIX, EXPECTED_CODES, EXPECTED_TOTALS, build_raw_ledger, raw_row


@pytest.mark.parametrize(
    "code, expected",
    [
        ("A.1.B.2.C.3.D.521211", True),
        ("WA.6336.EBA.963.126.0B.521211.002523", True),
        ("A.1.B.2.C.3.D.E.521211", True),
        ("A.1.B.2.C.3.521211", False),
        ("A.1.B.2.C.3.D.52121X", False),
        ("A..1.B.2.C.3.D.521211", True),
        ("", False),
        (None, False),
    ],
)
def test_is_ledger_row(code, expected):
    assert is_ledger_row([code, "x"]) is expected


def test_filter_invariant_holds_for_every_kept_row():
    rows = [[c, "x"] for c in ("A.1.B.2.C.3.D.521211", "A.1", "A.1.B.2.C.3.D.E", "WA.6336.EBA.963.126.0B.521211.002523")]
    for row in filter_ledger_rows(rows):
        segments = split_code(row[0])
        assert len(segments) >= 8
        assert segments[-1].isdigit() and len(segments[-1]) == 6


def test_totals_match_exact_column_sums():
    rng = random.Random(7)
    rows = [
        ["A.1.B.2.C.3.D.521211", "x"] + [rng.randint(0, 10_000_000) for _ in range(5)]
        for _ in range(50)
    ]
    totals = calculate_totals(rows)
    for i, col in enumerate(range(2, 7)):
        assert totals[i] == sum(r[col] for r in rows)


def test_totals_coerce_bad_cells_to_zero():
    rows = [["k", "u", "1.234.567,89", "abc", None, "", 10]]
    assert calculate_totals(rows) == pytest.approx([1234567.89, 0.0, 0.0, 0.0, 10.0])
    assert calculate_totals([["k", "u"]]) == [0.0] * 5


def test_filter_and_calculate_totals_only_counts_kept_rows():
    rows = [
        ["A.1.B.2.C.3.D.521211", "x", 100, 0, 0, 0, 40],
        ["A.1", "parent", 999, 999, 999, 999, 999],
    ]
    final, totals = filter_and_calculate_totals(rows)
    assert final == [rows[0]]
    assert totals == [100.0, 0.0, 0.0, 0.0, 40.0]


def test_footer_header_and_single_ledger_row():
    rows = [
        [DEFAULT_FOOTER_MARKER],
        [DEFAULT_HEADER_MARKER] + [f"h{i}" for i in range(1, 20)],
        raw_row("A.1.B.2.C.3.D.521211", "Belanja ATK", [1_000_000, 0, 0, 0, 400_000]),
    ]
    result = process_ledger(rows)
    assert len(result.final_data) == 1
    assert result.final_data[0][:2] == ["A.1.B.2.C.3.D.521211", "Belanja ATK"]
    assert result.totals == [1_000_000, 0, 0, 0, 400_000]


def test_full_export_pipeline(raw_ledger):
    result = process_ledger(raw_ledger)

    assert [r[0] for r in result.final_data] == EXPECTED_CODES
    assert [r[1] for r in result.final_data] == ["Konsumsi rapat", "Alat tulis kantor", "Penggandaan"]
    assert all(len(r) == 7 for r in result.final_data)
    assert result.totals == EXPECTED_TOTALS
    assert result.preview == result.final_data
    assert result.input_rows == len(raw_ledger)
    assert result.account_name_map["521211"] == "Belanja Bahan"
    assert result.account_name_map["521219"] == "Belanja Barang Non Operasional Lainnya"
    assert result.account_name_map["002525"] == "Penggandaan"
    assert result.total_pagu == 3_500_000
    assert result.total_realisasi == 1_050_000


def test_steps_are_recorded(raw_ledger):
    result = process_ledger(raw_ledger)
    names = [s.name for s in result.steps]
    assert names == [
        "clean",
        "shift columns",
        "build codes",
        "prune columns",
        "normalize",
        "filter and totals",
        "account names",
    ]
    assert result.steps[5].output_rows == 3
    assert all(s.elapsed_seconds >= 0 for s in result.steps)


def test_preview_is_bounded_but_totals_are_not():
    layout = [("521211", "Belanja Bahan", None)] + [
        (None, f"{i:06d}. Baris {i}", [10, 0, 0, 0, 1]) for i in range(1, 151)
    ]
    header_layout = [
        ("6336", "a", None), ("EBA", "b", None), ("963", "c", None), ("126", "d", None), ("0B", "e", None),
    ]
    result = process_ledger(build_raw_ledger(header_layout + layout), PipelineOptions(preview_limit=100))
    assert len(result.final_data) == 150
    assert len(result.preview) == 100
    assert result.totals == [1500, 0, 0, 0, 150]
    assert result.final_data[0][0] == f"{ACCOUNT_PREFIX}.521211.000001"


def test_forward_fill_mode_for_flat_code_exports():
    rows = [
        [DEFAULT_HEADER_MARKER] + [f"h{i}" for i in range(1, 20)],
        raw_row(f"{ACCOUNT_PREFIX}.521211", "Belanja Bahan"),
        raw_row(None, "002523. Konsumsi rapat", [100, 0, 0, 0, 50]),
    ]
    result = process_ledger(rows, PipelineOptions(code_fill_mode="ffill"))
    assert [r[0] for r in result.final_data] == [f"{ACCOUNT_PREFIX}.521211.002523"]
    assert "forward fill" in [s.name for s in result.steps]


def test_unplaced_segments_warn(caplog):
    rows = [
        [DEFAULT_HEADER_MARKER] + [f"h{i}" for i in range(1, 20)],
        raw_row(f"{ACCOUNT_PREFIX}.521211", "Belanja Bahan"),
        raw_row("ZZZZ", "Kode asing"),
    ]
    with caplog.at_level(logging.DEBUG, logger="realisasi"):
        process_ledger(rows)
    assert "could not be placed" in caplog.text
    assert "code segment 'ZZZZ' has no slot" in caplog.text


def test_empty_after_cleaning_raises():
    with pytest.raises(LedgerProcessingError, match="cleaning produced no data"):
        process_ledger([[DEFAULT_FOOTER_MARKER]])
    with pytest.raises(LedgerProcessingError):
        process_ledger([])


def test_rerunning_normalization_on_output_is_stable(raw_ledger):
    from realisasi.services.normalization import normalize_rows

    result = process_ledger(raw_ledger)
    assert normalize_rows(result.final_data) == result.final_data
