"""Excel writer for route reconstruction reports."""

from __future__ import annotations

import logging
import re
from datetime import date
from os import PathLike
from pathlib import Path
from typing import Optional, Sequence

import pandas as pd
from openpyxl.styles import Border, Font, PatternFill, Side
from openpyxl.worksheet.worksheet import Worksheet

from .errors import ReportWriteError
from .models import AggregatedRun, Run
from .reports import (
    aggregate_summary_table,
    daily_run_counts,
    history_kpis,
    idle_table,
    segment_table,
    stop_legend_table,
)
from .services.route_service import RouteView
from .utils import utc_now

SUMMARY_SHEET = "Summary"
HISTORY_SHEET = "History"
IDLE_SHEET = "Idle"
MAX_SHEET_NAME_LEN = 31
_INVALID_SHEET_CHARS = re.compile(r"[\[\]:*?/\\]")
EXCEL_DATETIME_FORMAT = "yyyy-mm-dd hh:mm:ss"
# Blank rows between stacked tables on one sheet.
TABLE_GAP_ROWS = 2

__all__ = ["write_route_report"]

HEADER_FONT = Font(bold=True)
HEADER_FILL = PatternFill(patternType="solid", fgColor="FFDBEAFE")
HEADER_BORDER = Border(
    left=Side(style="thin", color="000000"),
    right=Side(style="thin", color="000000"),
    top=Side(style="thin", color="000000"),
    bottom=Side(style="thin", color="000000"),
)

LOGGER = logging.getLogger(__name__)

PathInput = str | Path | PathLike[str]


def _coerce_path(pathlike: PathInput) -> str:
    return str(Path(pathlike))


def _unique_sheet_name(base: str, used: set[str]) -> str:
    base = _INVALID_SHEET_CHARS.sub("-", base)[:MAX_SHEET_NAME_LEN]
    name = base
    i = 1
    while name in used:
        suffix = f"_{i}"
        name = base[: MAX_SHEET_NAME_LEN - len(suffix)] + suffix
        i += 1
    used.add(name)
    return name


def _autosize(ws: Worksheet) -> None:
    from .config import (
        EXCEL_AUTOSIZE_COLUMNS,
        EXCEL_AUTOSIZE_MAX_WIDTH,
        EXCEL_AUTOSIZE_MIN_WIDTH,
        EXCEL_AUTOSIZE_PADDING,
        EXCEL_AUTOSIZE_MAX_ROWS,
    )

    if not EXCEL_AUTOSIZE_COLUMNS:
        return
    if ws.max_row > EXCEL_AUTOSIZE_MAX_ROWS:
        return
    for col_cells in ws.columns:
        max_len = 0
        col_letter = getattr(col_cells[0], "column_letter", None)
        for cell in col_cells:
            if cell.value is None:
                continue
            max_len = max(max_len, len(str(cell.value)))
        width = min(
            EXCEL_AUTOSIZE_MAX_WIDTH,
            max(EXCEL_AUTOSIZE_MIN_WIDTH, max_len + EXCEL_AUTOSIZE_PADDING),
        )
        if col_letter:
            ws.column_dimensions[col_letter].width = width


def _style_header_row(ws: Worksheet, row_idx: int, max_col: int) -> None:
    for col_idx in range(1, max_col + 1):
        cell = ws.cell(row=row_idx, column=col_idx)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.border = HEADER_BORDER


def _write_tables(
    writer: pd.ExcelWriter, sheet_name: str, tables: Sequence[pd.DataFrame]
) -> None:
    """Stack ``tables`` vertically on one sheet with styled header rows."""

    start_row = 0
    header_rows = []
    for df in tables:
        df.to_excel(writer, sheet_name=sheet_name, index=False, startrow=start_row)
        header_rows.append((start_row + 1, len(df.columns)))
        start_row += len(df) + 1 + TABLE_GAP_ROWS
    ws = writer.sheets[sheet_name]
    for row_idx, width in header_rows:
        _style_header_row(ws, row_idx, width)
    _autosize(ws)


def _write_view_sheet(
    writer: pd.ExcelWriter, view: RouteView, used_sheet_names: set[str]
) -> None:
    sheet_name = _unique_sheet_name(view.title, used_sheet_names)
    _write_tables(
        writer,
        sheet_name,
        [segment_table(view.segments), stop_legend_table(view.journey)],
    )
    LOGGER.info(
        "Wrote route sheet %s (segments=%d, stops=%d)",
        sheet_name,
        len(view.segments),
        len(view.stops),
    )


def _write_history_sheet(
    writer: pd.ExcelWriter, history_runs: Sequence[Run], end_day: date
) -> None:
    kpis = history_kpis(history_runs)
    kpi_df = pd.DataFrame({"Metric": list(kpis.keys()), "Value": list(kpis.values())})
    _write_tables(
        writer, HISTORY_SHEET, [kpi_df, daily_run_counts(history_runs, end_day)]
    )


def write_route_report(
    filepath: PathInput,
    views: Sequence[RouteView],
    history_runs: Sequence[Run] = (),
    history_end_day: Optional[date] = None,
) -> None:
    """Write the route report workbook.

    Args:
        filepath: Destination ``.xlsx`` path.
        views: Route views, one sheet each (sheet named after the journey).
        history_runs: Completed runs feeding the History KPIs sheet.
        history_end_day: Last day of the daily run-count chart; defaults to today.

    Raises:
        ReportWriteError: If the workbook cannot be written.
    """

    filepath = _coerce_path(filepath)
    aggregates = [v.journey for v in views if isinstance(v.journey, AggregatedRun)]
    end_day = history_end_day or utc_now().date()
    try:
        with pd.ExcelWriter(
            filepath, engine="openpyxl", datetime_format=EXCEL_DATETIME_FORMAT
        ) as writer:
            used_sheet_names: set[str] = {SUMMARY_SHEET, HISTORY_SHEET, IDLE_SHEET}
            if aggregates:
                _write_tables(writer, SUMMARY_SHEET, [aggregate_summary_table(aggregates)])
            else:
                _write_tables(
                    writer,
                    SUMMARY_SHEET,
                    [pd.DataFrame({"Message": ["No journeys to display."]})],
                )
            for view in views:
                _write_view_sheet(writer, view, used_sheet_names)
            _write_history_sheet(writer, history_runs, end_day)
            idle_df = idle_table(aggregates)
            if not idle_df.empty:
                _write_tables(writer, IDLE_SHEET, [idle_df])
    except (OSError, ValueError) as exc:
        raise ReportWriteError(f"Failed to write route report {filepath}: {exc}") from exc
