from __future__ import annotations

from ..models.processing_result import ProcessingResult

"""SUMMARY line rendering for batch runs.

Format:
    SUMMARY files={n}/{n} success={s} failed={f} rows={r} view={view}
    elapsed_sec={e} throughput_rps={t}
"""


def _format_number(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # avoid scientific notation for tiny durations
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(total_files: int, result: ProcessingResult) -> str:
    """Render the SUMMARY line for a finished run.

    >>> from datetime import UTC, datetime
    >>> t = datetime(2025, 1, 1, tzinfo=UTC)
    >>> r = ProcessingResult(1, 0, 120, "realisasi-laporan", t, t, 2.0, 60.0)
    >>> render_summary_line(1, r)
    'SUMMARY files=1/1 success=1 failed=0 rows=120 view=realisasi-laporan elapsed_sec=2 throughput_rps=60'
    """
    return (
        f"SUMMARY files={total_files}/{total_files} "
        f"success={result.success_files} "
        f"failed={result.failed_files} "
        f"rows={result.total_ledger_rows} "
        f"view={result.budget_view} "
        f"elapsed_sec={_format_number(result.elapsed_seconds)} "
        f"throughput_rps={_format_number(result.throughput_rows_per_sec)}"
    )
