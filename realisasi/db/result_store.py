from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Mapping, Sequence
from datetime import date, datetime
from typing import Any

import psycopg2
from psycopg2.extras import Json

from realisasi.models.config_models import DEFAULT_PREVIEW_LIMIT
from realisasi.models.history import StoredResult
from realisasi.models.ledger import LedgerResult
from realisasi.services.normalization import derive_account_name_map, normalize_rows

"""Processed-result persistence over a DB-API cursor.

Results are kept in one ``processed_results`` table, one row per saved run,
with the ledger, totals and account name map as JSONB columns. Last write
wins; nothing is ever updated in place.

A cursor of None is mock mode: saves return a fresh id without touching a
database and loads return nothing.
"""

__all__ = [
    "TABLE",
    "ResultStoreError",
    "save_processed_result",
    "load_processed_results",
    "build_ledger_result",
]

logger = logging.getLogger(__name__)

TABLE = "processed_results"
DEFAULT_FILE_NAME = "File tanpa nama"

_INSERT_SQL = (
    f"INSERT INTO {TABLE} "
    "(id, file_name, processed_data, totals, account_name_map, report_type, report_date) "
    "VALUES (%s, %s, %s, %s, %s, %s, %s)"
)
_SELECT_SQL = (
    "SELECT id, file_name, processed_data, totals, account_name_map, report_type, report_date "
    f"FROM {TABLE} ORDER BY created_at DESC"
)


class ResultStoreError(Exception):
    pass


def save_processed_result(
    cursor: Any,
    result: LedgerResult,
    file_name: str,
    report_type: str | None = None,
    report_date: date | None = None,
) -> str:
    """Insert one result and return its id.

    Only final_data, totals and the account name map are stored; the preview
    and step timings are rebuilt on load.
    """
    record_id = str(uuid.uuid4())
    if cursor is None:
        logger.debug(f"mock mode: result for {file_name} not stored (id={record_id})")
        return record_id

    params = (
        record_id,
        file_name,
        Json(result.final_data),
        Json(result.totals),
        Json(dict(result.account_name_map)),
        report_type,
        report_date,
    )
    try:
        cursor.execute(_INSERT_SQL, params)
    except psycopg2.Error as e:
        raise ResultStoreError(f"failed storing result for {file_name}: {e}") from e
    logger.debug(f"stored result id={record_id} rows={len(result.final_data)}")
    return record_id


def _json_value(value: Any, default: Any) -> Any:
    if value is None:
        return default
    if isinstance(value, (str, bytes)):
        try:
            return json.loads(value)
        except ValueError as e:
            raise ResultStoreError(f"stored JSON is malformed: {e}") from e
    return value


def _as_date(value: Any) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        logger.warning(f"ignoring unparseable report_date: {value!r}")
        return None


def build_ledger_result(
    processed_data: Sequence[Sequence[Any]] | None,
    totals: Sequence[Any] | None,
    account_name_map: Mapping[str, str] | None,
    preview_limit: int = DEFAULT_PREVIEW_LIMIT,
) -> LedgerResult:
    """Rebuild a LedgerResult from stored columns.

    Rows are normalized again (a no-op for rows stored by this tool, a repair
    for older ones). Names derived from the rows fill gaps in the stored map;
    stored entries win.
    """
    rows = normalize_rows([list(r) for r in processed_data or []])
    names = dict(account_name_map or {})
    for code, name in derive_account_name_map(rows).items():
        names.setdefault(code, name)
    return LedgerResult(
        final_data=rows,
        totals=list(totals) if isinstance(totals, (list, tuple)) else [],
        preview=rows[:preview_limit],
        account_name_map=names,
    )


def load_processed_results(
    cursor: Any, preview_limit: int = DEFAULT_PREVIEW_LIMIT
) -> list[StoredResult]:
    """Return every stored result, newest first."""
    if cursor is None:
        return []
    try:
        cursor.execute(_SELECT_SQL)
        records = cursor.fetchall()
    except psycopg2.Error as e:
        raise ResultStoreError(f"failed loading results: {e}") from e

    stored: list[StoredResult] = []
    for record_id, file_name, data, totals, names, report_type, report_date in records:
        result = build_ledger_result(
            _json_value(data, []),
            _json_value(totals, []),
            _json_value(names, {}),
            preview_limit,
        )
        stored.append(StoredResult(
            id=str(record_id),
            file_name=file_name or DEFAULT_FILE_NAME,
            result=result,
            report_type=report_type or None,
            report_date=_as_date(report_date),
        ))
    return stored
