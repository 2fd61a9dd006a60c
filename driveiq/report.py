"""Excel writer for trip history reports."""

from __future__ import annotations

import logging
from datetime import datetime, tzinfo
from os import PathLike
from pathlib import Path
from typing import Any, Dict, List, Sequence

import pandas as pd
from openpyxl.styles import Border, Font, PatternFill, Side
from openpyxl.worksheet.worksheet import Worksheet

from .config import (
    EXCEL_AUTOSIZE_COLUMNS,
    EXCEL_AUTOSIZE_MAX_ROWS,
    EXCEL_AUTOSIZE_MAX_WIDTH,
    EXCEL_AUTOSIZE_MIN_WIDTH,
    EXCEL_AUTOSIZE_PADDING,
    REPORT_COLUMN_ORDER,
)
from .history import driver_stats, filter_trips
from .models import TripRecord
from .scoring import driver_grade, format_duration, score_band, score_grade
from .utils import round_to, to_utc_aware

TRIPS_SHEET = "Trips"
SUMMARY_SHEET = "Summary"

HEADER_FONT = Font(bold=True)
HEADER_FILL = PatternFill(patternType="solid", fgColor="FF1E3A5F")
HEADER_BORDER = Border(
    left=Side(style="thin", color="000000"),
    right=Side(style="thin", color="000000"),
    top=Side(style="thin", color="000000"),
    bottom=Side(style="thin", color="000000"),
)
BAND_FILLS = {
    "good": PatternFill(patternType="solid", fgColor="FF10B981"),
    "fair": PatternFill(patternType="solid", fgColor="FFF59E0B"),
    "poor": PatternFill(patternType="solid", fgColor="FFEF4444"),
}

LOGGER = logging.getLogger(__name__)

PathInput = str | Path | PathLike[str]


def _local(dt: datetime | None, tz: tzinfo | None) -> datetime | None:
    if dt is None:
        return None
    return to_utc_aware(dt).astimezone(tz)


def _trip_row(record: TripRecord, tz: tzinfo | None) -> Dict[str, Any]:
    start = _local(record.start_time, tz)
    end = _local(record.end_time, tz)
    return {
        "Date": start.strftime("%Y-%m-%d") if start else "",
        "Start": start.strftime("%H:%M") if start else "",
        "End": end.strftime("%H:%M") if end else "",
        "Duration": format_duration(record.duration_minutes),
        "Distance (km)": round_to(record.distance_km, 2),
        "Max Speed (km/h)": record.max_speed,
        "Avg Speed (km/h)": round_to(record.avg_speed, 1),
        "Hard Brakes": record.hard_brakes,
        "Hard Accelerations": record.hard_accelerations,
        "Speeding": record.speeding_count,
        "Score": record.score,
        "Grade": score_grade(record.score),
    }


def build_trip_rows(
    records: Sequence[TripRecord], tz: tzinfo | None = None
) -> List[Dict[str, Any]]:
    """Presentation rows for the Trips sheet, newest trip first."""

    return [_trip_row(record, tz) for record in filter_trips(records)]


def _summary_rows(records: Sequence[TripRecord]) -> List[Dict[str, Any]]:
    stats = driver_stats(records)
    return [
        {"Metric": "Total Trips", "Value": stats.total_trips},
        {"Metric": "Total Distance (km)", "Value": stats.total_distance},
        {"Metric": "Average Score", "Value": stats.average_score},
        {"Metric": "Best Score", "Value": stats.best_score},
        {
            "Metric": "Driver Grade",
            "Value": driver_grade(stats.average_score) if stats.total_trips else "",
        },
    ]


def _autosize(ws: Worksheet) -> None:
    if not EXCEL_AUTOSIZE_COLUMNS:
        return
    if ws.max_row > EXCEL_AUTOSIZE_MAX_ROWS:
        return
    for col_cells in ws.columns:
        max_len = 0
        col_letter = getattr(col_cells[0], "column_letter", None)
        for cell in col_cells:
            val = cell.value
            if val is None:
                continue
            max_len = max(max_len, len(str(val)))
        width = min(
            EXCEL_AUTOSIZE_MAX_WIDTH,
            max(EXCEL_AUTOSIZE_MIN_WIDTH, max_len + EXCEL_AUTOSIZE_PADDING),
        )
        if col_letter:
            ws.column_dimensions[col_letter].width = width


def _style_header_row(ws: Worksheet, max_col: int) -> None:
    for col_idx in range(1, max_col + 1):
        cell = ws.cell(row=1, column=col_idx)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.border = HEADER_BORDER


def _colour_scores(ws: Worksheet, df: pd.DataFrame) -> None:
    if "Score" not in df.columns:
        return
    col_idx = list(df.columns).index("Score") + 1
    for row_offset, score in enumerate(df["Score"], start=2):
        ws.cell(row=row_offset, column=col_idx).fill = BAND_FILLS[score_band(score)]


def write_trip_report(
    filepath: PathInput,
    records: Sequence[TripRecord],
    *,
    device_id: str | None = None,
    tz: tzinfo | None = None,
) -> Path:
    """Write the trip history workbook and return its path.

    With ``device_id`` only that device's trips are reported.
    """

    path = Path(filepath)
    if device_id is not None:
        records = filter_trips(records, device_id=device_id)
    rows = build_trip_rows(records, tz)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        if not rows:
            pd.DataFrame({"Message": ["No trips recorded."]}).to_excel(
                writer, sheet_name=SUMMARY_SHEET, index=False
            )
            _autosize(writer.sheets[SUMMARY_SHEET])
            LOGGER.info("Wrote empty trip report to %s", path)
            return path

        trips_df = pd.DataFrame(rows)
        ordered = [c for c in REPORT_COLUMN_ORDER if c in trips_df.columns]
        remaining = [c for c in trips_df.columns if c not in ordered]
        trips_df = trips_df[ordered + remaining]
        trips_df.to_excel(writer, sheet_name=TRIPS_SHEET, index=False)
        ws = writer.sheets[TRIPS_SHEET]
        _style_header_row(ws, len(trips_df.columns))
        _colour_scores(ws, trips_df)
        _autosize(ws)

        summary_df = pd.DataFrame(_summary_rows(records))
        summary_df.to_excel(writer, sheet_name=SUMMARY_SHEET, index=False)
        ws = writer.sheets[SUMMARY_SHEET]
        _style_header_row(ws, len(summary_df.columns))
        _autosize(ws)
    LOGGER.info("Wrote trip report to %s (trips=%d)", path, len(rows))
    return path


__all__ = ["build_trip_rows", "write_trip_report"]
