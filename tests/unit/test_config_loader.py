from __future__ import annotations

from pathlib import Path

import pytest

from realisasi.config.loader import ConfigError, load_activities, load_config
from realisasi.models.activity import ActivityStatus
from realisasi.models.config_models import DEFAULT_FOOTER_MARKER, DEFAULT_HEADER_MARKER


def test_load_config_applies_defaults(temp_workdir: Path):
    cfg_path = temp_workdir / "config" / "min.yml"
    cfg_path.write_text("source_directory: ./data\n", encoding="utf-8")
    cfg = load_config(cfg_path)

    assert cfg.source_directory == "./data"
    assert cfg.pipeline.header_marker == DEFAULT_HEADER_MARKER
    assert cfg.pipeline.footer_marker == DEFAULT_FOOTER_MARKER
    assert cfg.pipeline.preview_limit == 100
    assert cfg.pipeline.code_fill_mode == "trace"
    assert cfg.auto_expand_levels == 5
    assert cfg.budget_view == "realisasi-laporan"
    assert cfg.activities_file is None
    assert cfg.export_directory is None
    assert cfg.normalize_overlay_keys is False
    assert cfg.period_labels.periode_lalu == "Periode Lalu"
    assert cfg.database.host is None


def test_load_config_full(write_config: Path):
    cfg = load_config(write_config)
    assert cfg.period_labels.sd_periode == "Realisasi s.d. Bulan Ini"
    assert cfg.database.port == 5432
    assert cfg.database.password == "secret"


def test_missing_file(temp_workdir: Path):
    with pytest.raises(ConfigError, match="config file not found"):
        load_config(temp_workdir / "config" / "nope.yml")


@pytest.mark.parametrize(
    "body, fragment",
    [
        ("preview_limit: 10\n", "'source_directory' is a required property"),
        ("source_directory: ./data\nsheet_mappings: {}\n", "Additional properties"),
        ("source_directory: ./data\nbudget_view: realisasi-semua\n", "is not one of"),
        ("source_directory: ./data\ncode_fill_mode: backfill\n", "is not one of"),
        ("source_directory: ./data\npreview_limit: banyak\n", "is not of type"),
    ],
)
def test_validation_errors(temp_workdir: Path, body: str, fragment: str):
    cfg_path = temp_workdir / "config" / "bad.yml"
    cfg_path.write_text(body, encoding="utf-8")
    with pytest.raises(ConfigError, match="config validation failed") as exc:
        load_config(cfg_path)
    assert fragment in str(exc.value)


def test_invalid_yaml(temp_workdir: Path):
    cfg_path = temp_workdir / "config" / "broken.yml"
    cfg_path.write_text("source_directory: [./data\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="invalid yaml"):
        load_config(cfg_path)


def test_load_activities_yaml(temp_workdir: Path):
    path = temp_workdir / "config" / "activities.yml"
    path.write_text(
        """- id: 1
  nama: Rapat
  status: OUTSTANDING
  allocations:
    - kode: A.1.B.2.C.3.D.521211
      uraian: Belanja ATK
      jumlah: 2500000
    - kode: A.1.B.2.C.3.D.521212
      jumlah: null
- status: Rencana
""",
        encoding="utf-8",
    )
    activities = load_activities(path)
    assert len(activities) == 2
    first = activities[0]
    assert first.id == "1"
    assert first.parsed_status is ActivityStatus.OUTSTANDING
    assert first.total_allocated == 2_500_000
    assert first.allocations[1].uraian == ""
    assert first.allocations[1].jumlah == 0
    assert activities[1].allocations == ()


def test_load_activities_json_and_empty(temp_workdir: Path):
    json_path = temp_workdir / "config" / "activities.json"
    json_path.write_text('[{"status": "Komitmen", "allocations": [{"kode": "X", "jumlah": 5}]}]', encoding="utf-8")
    assert load_activities(json_path)[0].total_allocated == 5

    empty = temp_workdir / "config" / "empty.yml"
    empty.write_text("", encoding="utf-8")
    assert load_activities(empty) == []


def test_load_activities_errors(temp_workdir: Path):
    with pytest.raises(ConfigError, match="activities file not found"):
        load_activities(temp_workdir / "none.yml")

    bad = temp_workdir / "config" / "bad.yml"
    bad.write_text("- nama: tanpa status\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="activities validation failed"):
        load_activities(bad)

    broken = temp_workdir / "config" / "broken.json"
    broken.write_text("[{", encoding="utf-8")
    with pytest.raises(ConfigError, match="invalid json"):
        load_activities(broken)


def test_repository_sample_config_is_valid():
    root = Path(__file__).resolve().parents[2]
    cfg = load_config(root / "config" / "realisasi.yml")
    assert cfg.budget_view == "realisasi-laporan"
    activities = load_activities(root / "config" / "activities.yml")
    assert {a.parsed_status for a in activities} == {ActivityStatus.OUTSTANDING, ActivityStatus.KOMITMEN}
