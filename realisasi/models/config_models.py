from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the ledger processing tool.

The loader in realisasi/config/loader.py builds these from the validated YAML
document; defaults here mirror the defaults documented in the JSON schema.
"""

DEFAULT_HEADER_MARKER = "Program Dukungan Manajemen"
DEFAULT_FOOTER_MARKER = (
    "*Lock Pagu adalah jumlah pagu yang sedang dalam proses usulan revisi DIPA atau POK."
)
DEFAULT_PREVIEW_LIMIT = 100
DEFAULT_AUTO_EXPAND_LEVELS = 5

CODE_FILL_TRACE = "trace"
CODE_FILL_FFILL = "ffill"


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection configuration.

    Used as fallback when environment variables are not set.
    Environment variables take precedence over these values.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class PeriodLabels:
    """Column headings for the three realization columns on export."""
    periode_lalu: str = "Periode Lalu"
    periode_ini: str = "Periode Ini"
    sd_periode: str = "s.d. Periode"


@dataclass(frozen=True)
class PipelineOptions:
    """Knobs for the spreadsheet-to-ledger pipeline."""
    header_marker: str = DEFAULT_HEADER_MARKER
    footer_marker: str = DEFAULT_FOOTER_MARKER
    preview_limit: int = DEFAULT_PREVIEW_LIMIT
    code_fill_mode: str = CODE_FILL_TRACE


@dataclass(frozen=True)
class AppConfig:
    """Root configuration object for a processing run."""
    source_directory: str
    pipeline: PipelineOptions = field(default_factory=PipelineOptions)
    auto_expand_levels: int = DEFAULT_AUTO_EXPAND_LEVELS
    budget_view: str = "realisasi-laporan"
    activities_file: str | None = None
    export_directory: str | None = None
    period_labels: PeriodLabels = field(default_factory=PeriodLabels)
    normalize_overlay_keys: bool = False
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
