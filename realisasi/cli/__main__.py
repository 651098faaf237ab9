from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import date
from pathlib import Path
from typing import Any

import psycopg2
from dotenv import load_dotenv

from realisasi.config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from realisasi.excel.cleaner import clean_raw_table
from realisasi.excel.reader import WorkbookReadError, read_first_sheet
from realisasi.logging.init import enable_debug, log_summary, setup_logging
from realisasi.models.activity import BudgetView
from realisasi.models.config_models import AppConfig
from realisasi.models.tree import AggregateRow, GroupRow
from realisasi.services.hierarchy import build_tree_view
from realisasi.services.ledger import LedgerProcessingError, process_ledger
from realisasi.services.orchestrator import ProcessingError, process_all, scan_excel_files
from realisasi.services.summary import render_summary_line

"""Command line entry point: ``python -m realisasi.cli``.

Exit codes:
    0  every file processed (or no files found)
    2  at least one file failed
    1  fatal: bad config, missing source directory, unusable activities
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

INSPECT_ROWS = 5


def _dsn(cfg: AppConfig) -> str:
    """Environment first (.env already loaded), config ``database`` section as fallback."""
    db_cfg = cfg.database
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


@contextmanager
def _db_connection(cfg: AppConfig) -> Iterator[Any]:  # pragma: no cover (needs a live server)
    conn = psycopg2.connect(_dsn(cfg))
    conn.autocommit = False
    cur = conn.cursor()
    try:
        yield cur
        if not conn.closed:
            conn.commit()
    finally:
        cur.close()
        conn.close()


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env; its values win over variables already in the environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {value!r}") from e


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Budget realization ledger processor")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Config file (YAML)")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--inspect-data", action="store_true", help="Print the first cleaned rows per file then exit")
    p.add_argument("--tree", action="store_true", help="Print the account tree per file then exit")
    p.add_argument("--view", choices=[v.value for v in BudgetView], help="Override budget_view")
    p.add_argument("--report-type", help="Report type stored with each result")
    p.add_argument("--report-date", type=_parse_date, help="Report date (YYYY-MM-DD) stored with each result")
    return p.parse_args(argv)


def _inspect_data(cfg: AppConfig) -> int:
    try:
        files = scan_excel_files(Path(cfg.source_directory))
    except ProcessingError as e:
        print(f"inspect: {e}")
        return EXIT_FATAL
    if not files:
        print("inspect: no .xlsx files")
        return EXIT_SUCCESS_ALL
    for f in files:
        print(f"FILE: {f.name}")
        try:
            raw = read_first_sheet(f)
        except WorkbookReadError as e:
            print(f"  read_error: {e}")
            continue
        cleaned = clean_raw_table(raw, cfg.pipeline.header_marker, cfg.pipeline.footer_marker)
        print(f"  raw_rows={len(raw)} cleaned_rows={len(cleaned)}")
        for row in cleaned[:INSPECT_ROWS]:
            print(f"    {row!r}")
    return EXIT_SUCCESS_ALL


def _print_tree(cfg: AppConfig) -> int:
    try:
        files = scan_excel_files(Path(cfg.source_directory))
    except ProcessingError as e:
        print(f"tree: {e}")
        return EXIT_FATAL
    for f in files:
        print(f"FILE: {f.name}")
        try:
            result = process_ledger(read_first_sheet(f), cfg.pipeline)
        except (WorkbookReadError, LedgerProcessingError) as e:
            print(f"  error: {e}")
            continue
        for row in build_tree_view(result.preview, None, result.account_name_map, cfg.auto_expand_levels):
            if not row.is_visible:
                continue
            marker = "+" if isinstance(row, (AggregateRow, GroupRow)) and not row.is_expanded else "-"
            print(
                f"{'  ' * row.level}{marker} {row.code} {row.description} "
                f"pagu={row.pagu:,.0f} realisasi={row.realisasi:,.0f} ({row.percentage:.2f}%)"
            )
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # An explicit empty list must not fall back to sys.argv (pytest arguments)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.debug:
        enable_debug(logger)
        logger.debug("debug mode enabled")

    directory = Path(cfg.source_directory)
    if not directory.exists():
        logger.error(f"directory not found: {directory}")
        return EXIT_FATAL

    if args.view:
        cfg = replace(cfg, budget_view=args.view)

    logger.info(f"Processing files from: {directory}")

    if args.inspect_data:
        return _inspect_data(cfg)
    if args.tree:
        return _print_tree(cfg)

    run_kwargs = {"report_type": args.report_type, "report_date": args.report_date}
    db_mode = "mock"
    try:
        if os.getenv("DISABLE_DB_CONNECT") == "1":
            logger.debug("DB connect disabled via DISABLE_DB_CONNECT=1 -> mock mode")
            result = process_all(cfg, cursor=None, **run_kwargs)
        else:
            try:
                with _db_connection(cfg) as cur:
                    db_mode = "live"
                    result = process_all(cfg, cursor=cur, **run_kwargs)
            except psycopg2.OperationalError as db_e:
                db_mode = "mock"
                logger.info(f"DB connection failed -> fallback to mock mode: {db_e}")
                result = process_all(cfg, cursor=None, **run_kwargs)
    except ProcessingError as e:
        logger.error(f"processing({db_mode}): {e}")
        return EXIT_FATAL

    logger.info(f"mode={db_mode} ledger_rows={result.total_ledger_rows}")

    total_files = result.success_files + result.failed_files
    summary_line = render_summary_line(total_files, result)
    log_summary(summary_line.removeprefix("SUMMARY "))

    if result.failed_files > 0:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
