# Shared pytest fixtures
from __future__ import annotations

import logging
import tempfile
from pathlib import Path
from typing import Any

import pytest

from realisasi.logging.init import LOGGER_NAME, reset_logging
from realisasi.models.activity import Activity, Allocation
from tests.ledger_samples import EXPECTED_CODES, build_raw_ledger, write_workbook


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """source_directory: ./data
preview_limit: 100
auto_expand_levels: 5
budget_view: realisasi-laporan
period_labels:
  periode_lalu: Realisasi s.d. Bulan Lalu
  periode_ini: Realisasi Bulan Ini
  sd_periode: Realisasi s.d. Bulan Ini
database:
  host: localhost
  port: 5432
  user: realisasi
  password: secret
  database: realisasi
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "realisasi.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def raw_ledger() -> list[list[Any]]:
    return build_raw_ledger()


@pytest.fixture()
def ledger_workbook(temp_workdir: Path) -> Path:
    return write_workbook(temp_workdir / "data" / "realisasi_mei.xlsx", build_raw_ledger())


@pytest.fixture()
def ledger_rows() -> list[list[Any]]:
    """Final ledger rows as the pipeline produces them from build_raw_ledger()."""
    return [
        [EXPECTED_CODES[0], "Konsumsi rapat", 1_000_000, 0, 300_000, 100_000, 400_000],
        [EXPECTED_CODES[1], "Alat tulis kantor", 500_000, 0, 100_000, 50_000, 150_000],
        [EXPECTED_CODES[2], "Penggandaan", 2_000_000, 0, 0, 500_000, 500_000],
    ]


@pytest.fixture()
def account_names() -> dict[str, str]:
    return {
        "521211": "Belanja Bahan",
        "521219": "Belanja Barang Non Operasional Lainnya",
        "002523": "Konsumsi rapat",
        "002524": "Alat tulis kantor",
        "002525": "Penggandaan",
    }


@pytest.fixture()
def activities() -> list[Activity]:
    return [
        Activity(
            id="a1",
            nama="Rapat koordinasi",
            status="Outstanding",
            allocations=(Allocation(EXPECTED_CODES[0], "Konsumsi rapat", 200_000),),
        ),
        Activity(
            id="a2",
            nama="Pengadaan ATK",
            status="KOMITMEN",
            allocations=(
                Allocation(EXPECTED_CODES[1], "Alat tulis kantor", 50_000),
                Allocation(EXPECTED_CODES[2], "Penggandaan", 100_000),
            ),
        ),
        Activity(
            id="a3",
            nama="Rencana bimtek",
            status="Rencana",
            allocations=(Allocation(EXPECTED_CODES[2], "Penggandaan", 999_000),),
        ),
        Activity(
            id="a4",
            nama="Sudah dibayar",
            status="Terbayar",
            allocations=(Allocation(EXPECTED_CODES[0], "Konsumsi rapat", 777_000),),
        ),
    ]


@pytest.fixture(autouse=True)
def _isolated_logging():
    """Give every test a fresh application logger that propagates to caplog."""
    def _reset() -> None:
        reset_logging()
        app_logger = logging.getLogger(LOGGER_NAME)
        for handler in app_logger.handlers[:]:
            app_logger.removeHandler(handler)
        app_logger.setLevel(logging.NOTSET)
        app_logger.propagate = True

    _reset()
    yield
    _reset()
