from __future__ import annotations

from collections.abc import Iterable, Sequence

from realisasi.models.history import (
    AccountRow,
    AccountTrend,
    AccountTrendPoint,
    MonthlyReport,
    MonthlyTrendPoint,
    StoredResult,
)
from realisasi.models.ledger import CODE, DESCRIPTION, PAGU_REVISI, REALISASI_INI, REALISASI_SD, LedgerResult
from realisasi.models.tree import as_number, realization_percentage
from realisasi.services.normalization import split_code

"""Month-over-month views over stored results.

Only results with a report date take part. Within one calendar month the
result with the latest report date wins; ties keep the first one seen.
"""

__all__ = [
    "MONTH_LABELS",
    "UNKNOWN_REPORT_TYPE",
    "month_label",
    "group_monthly_reports",
    "monthly_trend",
    "extract_account_rows",
    "account_trend",
    "accounts_with_realization",
]

MONTH_LABELS = ("Jan", "Feb", "Mar", "Apr", "Mei", "Jun", "Jul", "Agu", "Sep", "Okt", "Nov", "Des")
UNKNOWN_REPORT_TYPE = "Tidak diketahui"

ACCOUNT_ROW_SEGMENTS = 8


def month_label(month: int) -> str:
    return MONTH_LABELS[month - 1]


def group_monthly_reports(stored: Iterable[StoredResult]) -> list[MonthlyReport]:
    """Keep the latest report per month, sorted by report date ascending."""
    by_month: dict[tuple[int, int], MonthlyReport] = {}
    for item in stored:
        if item.report_date is None:
            continue
        key = (item.report_date.year, item.report_date.month)
        existing = by_month.get(key)
        if existing is not None and item.report_date <= existing.report_date:
            continue
        by_month[key] = MonthlyReport(
            id=item.id,
            file_name=item.file_name,
            report_date=item.report_date,
            report_type=item.report_type or UNKNOWN_REPORT_TYPE,
            year=item.report_date.year,
            month=item.report_date.month,
            result=item.result,
        )
    return sorted(by_month.values(), key=lambda r: r.report_date)


def monthly_trend(reports: Sequence[MonthlyReport]) -> list[MonthlyTrendPoint]:
    points: list[MonthlyTrendPoint] = []
    for report in reports:
        totals = report.totals
        pagu = totals[0] if totals else 0.0
        realisasi = totals[4] if len(totals) > 4 else 0.0
        points.append(MonthlyTrendPoint(
            month=month_label(report.month),
            year=report.year,
            total_pagu=pagu,
            total_realisasi=realisasi,
            persentase=realization_percentage(pagu, realisasi),
            report_type=report.report_type,
        ))
    return points


def extract_account_rows(result: LedgerResult) -> list[AccountRow]:
    """Ledger rows whose code has exactly eight segments, keyed by the last one."""
    rows: list[AccountRow] = []
    for row in result.final_data:
        code = row[CODE].strip() if row and isinstance(row[CODE], str) else ""
        segments = split_code(code)
        if len(segments) != ACCOUNT_ROW_SEGMENTS:
            continue
        uraian = row[DESCRIPTION] if len(row) > DESCRIPTION else None
        pagu = as_number(row[PAGU_REVISI]) if len(row) > PAGU_REVISI else 0.0
        realisasi = as_number(row[REALISASI_SD]) if len(row) > REALISASI_SD else 0.0
        rows.append(AccountRow(
            kode=segments[-1],
            kode_lengkap=code,
            uraian=str(uraian or "").strip(),
            pagu=pagu,
            realisasi=realisasi,
            realisasi_bulan_ini=as_number(row[REALISASI_INI]) if len(row) > REALISASI_INI else 0.0,
            persentase=realization_percentage(pagu, realisasi),
            sisa=pagu - realisasi,
        ))
    return rows


def account_trend(reports: Sequence[MonthlyReport], uraian: str) -> AccountTrend | None:
    """Cumulative realization per month for every account row named ``uraian``.

    Returns None when the description has no realization in any month.
    """
    points: list[AccountTrendPoint] = []
    for report in reports:
        matching = [a for a in extract_account_rows(report.result) if a.uraian == uraian]
        pagu = sum(a.pagu for a in matching)
        realisasi = sum(a.realisasi for a in matching)
        points.append(AccountTrendPoint(
            month=month_label(report.month),
            year=report.year,
            pagu=pagu,
            realisasi=realisasi,
            persentase=realization_percentage(pagu, realisasi),
        ))
    if all(p.realisasi == 0 for p in points):
        return None
    return AccountTrend(uraian=uraian, points=tuple(points))


def accounts_with_realization(reports: Sequence[MonthlyReport]) -> list[tuple[str, float]]:
    """Descriptions with realization summed across months, largest first."""
    sums: dict[str, float] = {}
    for report in reports:
        for account in extract_account_rows(report.result):
            if account.realisasi > 0:
                sums[account.uraian] = sums.get(account.uraian, 0.0) + account.realisasi
    return sorted(sums.items(), key=lambda item: item[1], reverse=True)
