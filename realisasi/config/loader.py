from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from realisasi.models.activity import Activity
from realisasi.models.config_models import (
    DEFAULT_AUTO_EXPAND_LEVELS,
    DEFAULT_FOOTER_MARKER,
    DEFAULT_HEADER_MARKER,
    DEFAULT_PREVIEW_LIMIT,
    CODE_FILL_TRACE,
    AppConfig,
    DatabaseConfig,
    PeriodLabels,
    PipelineOptions,
)

"""Config and activity file loading.

Responsibilities:
- Load YAML config (default config/realisasi.yml)
- Validate against the JSON schema shipped next to this module
- Apply defaults for every optional key
- Load the activity overlay list (YAML or JSON) with its own schema
"""

SCHEMA_DIR = Path(__file__).parent
SCHEMA_PATH = SCHEMA_DIR / "config_schema.json"
ACTIVITIES_SCHEMA_PATH = SCHEMA_DIR / "activities_schema.json"

DEFAULT_CONFIG_PATH = Path("config/realisasi.yml")


class ConfigError(Exception):
    pass


def _validate(data: Any, schema_path: Path, what: str) -> None:
    """Validate data against a JSON schema file.

    Raises:
        ConfigError: If the schema file is missing or not valid JSON, or the
            data fails validation (missing required keys, wrong types,
            unknown keys).
    """
    if not schema_path.exists():
        raise ConfigError(f"{what} schema not found: {schema_path}")

    try:
        schema = json.loads(schema_path.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"{what} validation failed: {e.message}") from e


def _read_document(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigError(f"invalid json: {e}") from e
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> AppConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    data = _read_document(path) or {}

    _validate(data, SCHEMA_PATH, "config")

    pipeline = PipelineOptions(
        header_marker=data.get("header_marker", DEFAULT_HEADER_MARKER),
        footer_marker=data.get("footer_marker", DEFAULT_FOOTER_MARKER),
        preview_limit=data.get("preview_limit", DEFAULT_PREVIEW_LIMIT),
        code_fill_mode=data.get("code_fill_mode", CODE_FILL_TRACE),
    )
    labels_raw = data.get("period_labels") or {}
    labels = PeriodLabels(**labels_raw)
    db_raw = data.get("database") or {}
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )
    return AppConfig(
        source_directory=data["source_directory"],
        pipeline=pipeline,
        auto_expand_levels=data.get("auto_expand_levels", DEFAULT_AUTO_EXPAND_LEVELS),
        budget_view=data.get("budget_view", "realisasi-laporan"),
        activities_file=data.get("activities_file"),
        export_directory=data.get("export_directory"),
        period_labels=labels,
        normalize_overlay_keys=bool(data.get("normalize_overlay_keys", False)),
        database=db,
    )


def load_activities(path: Path) -> list[Activity]:
    """Load the activity overlay list from a YAML or JSON file.

    An empty document yields an empty list.
    """
    if not path.exists():
        raise ConfigError(f"activities file not found: {path}")
    data = _read_document(path)
    if data is None:
        return []

    _validate(data, ACTIVITIES_SCHEMA_PATH, "activities")

    return [Activity.from_dict(item) for item in data]
