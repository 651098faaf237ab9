from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import replace
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any

from ..config.loader import ConfigError, load_activities
from ..db.result_store import ResultStoreError, save_processed_result
from ..excel.reader import EmptyWorkbookError, WorkbookReadError, read_first_sheet, write_ledger_file
from ..logging.error_log import ErrorLogBuffer, ErrorRecord
from ..models.activity import Activity, BudgetView
from ..models.config_models import AppConfig
from ..models.error_record import FILE_LEVEL
from ..models.excel_file import FileStatus, ReportFile
from ..models.ledger import LedgerResult
from ..models.processing_result import FileStat, ProcessingResult, StepStatsAccumulator
from .ledger import LedgerProcessingError, process_ledger
from .metrics import compute_overlay_metrics
from .progress import ProgressTracker

"""Batch processing of ledger exports.

Each ``.xlsx`` file in the source directory goes through
read → pipeline → overlay metrics → (export) → (store). A failing file is
recorded and skipped; the run carries on. Error records are flushed once at
the end of the run.
"""

__all__ = [
    "ProcessingError",
    "EXPORT_SUFFIX",
    "scan_excel_files",
    "resolve_activities",
    "process_file",
    "process_all",
]

logger = logging.getLogger(__name__)

EXPORT_SUFFIX = "_hasil_olahan.xlsx"


class ProcessingError(Exception):
    """Fatal batch condition; nothing was processed."""


def scan_excel_files(directory: Path) -> list[Path]:
    """Return the ``.xlsx`` files directly inside ``directory``, sorted by name.

    Excel lock files (``~$name.xlsx``) are skipped.

    Raises:
        ProcessingError: directory missing or unreadable
    """
    if not directory.exists():
        raise ProcessingError(f"Directory not found: {directory}")
    if not directory.is_dir():
        raise ProcessingError(f"Path is not a directory: {directory}")
    try:
        files = [
            p for p in directory.iterdir()
            if p.is_file() and p.suffix == ".xlsx" and not p.name.startswith("~$")
        ]
    except OSError as e:
        raise ProcessingError(f"Error reading directory {directory}: {e}") from e
    return sorted(files, key=lambda p: p.name)


def resolve_activities(config: AppConfig, activities: Sequence[Activity] | None = None) -> list[Activity]:
    """Explicit activities win; otherwise load ``activities_file`` when configured."""
    if activities is not None:
        return list(activities)
    if not config.activities_file:
        return []
    try:
        return load_activities(Path(config.activities_file))
    except ConfigError as e:
        raise ProcessingError(f"activities: {e}") from e


def _failed(report: ReportFile, error_log: ErrorLogBuffer, stage: str, error_type: str, message: str) -> ReportFile:
    error_log.append(ErrorRecord.create(
        file=report.name,
        stage=stage,
        row=-1,
        error_type=error_type,
        message=message,
    ))
    logger.error(f"{report.name}: {stage} failed: {message}")
    return replace(report, status=FileStatus.FAILED, end_time=datetime.now(UTC), error=message)


def _rollback(cursor: Any, report: ReportFile, error_log: ErrorLogBuffer) -> None:
    try:
        cursor.execute("ROLLBACK")
    except Exception as e:
        error_log.append(ErrorRecord.create(
            file=report.name,
            stage=FILE_LEVEL,
            row=-1,
            error_type="TRANSACTION_ROLLBACK_ERROR",
            message=str(e),
        ))


def _store(
    result: LedgerResult,
    report: ReportFile,
    cursor: Any,
    error_log: ErrorLogBuffer,
    report_type: str | None,
    report_date: date | None,
) -> ReportFile:
    """Save the result in its own transaction (when a real cursor is given)."""
    try:
        if cursor is not None:
            cursor.execute("BEGIN")
        stored_id = save_processed_result(cursor, result, report.name, report_type, report_date)
        if cursor is not None:
            cursor.execute("COMMIT")
    except ResultStoreError as e:
        if cursor is not None:
            _rollback(cursor, report, error_log)
        return _failed(report, error_log, "store", "RESULT_STORE_ERROR", str(e))
    except Exception as e:
        if cursor is not None:
            _rollback(cursor, report, error_log)
        return _failed(report, error_log, "store", "TRANSACTION_ERROR", str(e))
    return replace(report, stored_id=stored_id)


def process_file(
    path: Path,
    config: AppConfig,
    activities: Sequence[Activity],
    error_log: ErrorLogBuffer,
    cursor: Any = None,
    report_type: str | None = None,
    report_date: date | None = None,
) -> ReportFile:
    """Process one export. Never raises for per-file problems."""
    report = ReportFile(path=path, name=path.name, start_time=datetime.now(UTC), status=FileStatus.PROCESSING)

    try:
        raw_rows = read_first_sheet(path)
    except EmptyWorkbookError as e:
        return _failed(report, error_log, "read", "EMPTY_WORKBOOK", str(e))
    except WorkbookReadError as e:
        return _failed(report, error_log, "read", "WORKBOOK_READ_ERROR", str(e))

    try:
        result = process_ledger(raw_rows, config.pipeline)
    except LedgerProcessingError as e:
        return _failed(report, error_log, "process", "LEDGER_PROCESSING_ERROR", str(e))
    report = replace(report, result=result)

    metrics = compute_overlay_metrics(
        result.final_data,
        result.account_name_map,
        activities,
        BudgetView(config.budget_view),
        normalize_keys=config.normalize_overlay_keys,
    )
    report = replace(report, metrics=metrics)
    logger.info(
        f"{path.name}: ledger_rows={len(result.final_data)} view={metrics.view.value} "
        f"progress={metrics.progress_percentage:.2f}%"
    )

    if config.export_directory:
        target = Path(config.export_directory) / f"{path.stem}{EXPORT_SUFFIX}"
        try:
            write_ledger_file(result.final_data, target, config.period_labels)
        except OSError as e:
            return _failed(report, error_log, "export", "EXPORT_ERROR", str(e))
        report = replace(report, export_path=target)

    report = _store(result, report, cursor, error_log, report_type, report_date)
    if report.status is FileStatus.FAILED:
        return report
    return replace(report, status=FileStatus.SUCCESS, end_time=datetime.now(UTC))


def process_all(
    config: AppConfig,
    cursor: Any = None,
    activities: Sequence[Activity] | None = None,
    report_type: str | None = None,
    report_date: date | None = None,
) -> ProcessingResult:
    """Process every export in ``config.source_directory``.

    Args:
        config: application configuration
        cursor: DB-API cursor for storing results (None = mock mode)
        activities: overlay activities; loaded from ``activities_file`` when None
        report_type: label stored with each result
        report_date: report date stored with each result

    Raises:
        ProcessingError: source directory or activities file unusable
    """
    start_time = datetime.now(UTC)
    error_log = ErrorLogBuffer()

    file_paths = scan_excel_files(Path(config.source_directory))
    overlay = resolve_activities(config, activities)
    if overlay:
        logger.info(f"loaded {len(overlay)} activities for view {config.budget_view}")

    file_stats: list[FileStat] = []
    success_count = 0
    failed_count = 0
    total_rows = 0

    with ProgressTracker(len(file_paths)) as progress:
        for path in file_paths:
            progress.start_file(path)
            report = process_file(path, config, overlay, error_log, cursor, report_type, report_date)

            if report.status is FileStatus.SUCCESS:
                success_count += 1
                total_rows += report.ledger_rows
            else:
                failed_count += 1

            steps = StepStatsAccumulator()
            if report.result is not None:
                steps.add_steps(report.result.steps)
            total_steps, avg_step, slowest = steps.get_stats()
            elapsed = (
                (report.end_time - report.start_time).total_seconds()
                if report.start_time and report.end_time else 0.0
            )
            file_stats.append(FileStat(
                file_name=report.name,
                status=report.status.value,
                ledger_rows=report.ledger_rows,
                elapsed_seconds=elapsed,
                total_steps=total_steps,
                avg_step_seconds=avg_step,
                slowest_step=slowest,
            ))

            progress.set_postfix(success=success_count, failed=failed_count, rows=total_rows)
            progress.finish_file()

    log_path = error_log.flush()
    if log_path is not None:
        logger.warning(f"error details written to {log_path}")

    end_time = datetime.now(UTC)
    elapsed_seconds = (end_time - start_time).total_seconds()
    throughput = total_rows / elapsed_seconds if elapsed_seconds > 0 else 0.0

    return ProcessingResult(
        success_files=success_count,
        failed_files=failed_count,
        total_ledger_rows=total_rows,
        budget_view=config.budget_view,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=elapsed_seconds,
        throughput_rows_per_sec=throughput,
        file_stats=file_stats,
    )
