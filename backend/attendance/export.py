"""CSV / JSON rendering of admin log rows."""

from __future__ import annotations

import csv
import io
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence, Union

from backend.attendance.schemas import AttendanceEntryResponse
from backend.attendance.timeutils import reporting_tz

logger = logging.getLogger(__name__)

NO_LOGS_WARNING = "No logs to export"

CSV_HEADERS = [
    "Employee",
    "Department",
    "Date",
    "Clock In",
    "Clock Out",
    "Duration (minutes)",
    "Work Summary",
    "Status",
    "Flagged",
    "Manual Entry",
]


def _format_time(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    return value.astimezone(reporting_tz()).strftime("%Y-%m-%d %H:%M:%S")


def _yes_with_reason(flag: bool, reason: Optional[str]) -> str:
    return f"Yes: {reason or ''}" if flag else "No"


def log_to_row(log: AttendanceEntryResponse) -> list[str]:
    return [
        log.employee_name or "",
        log.department or "",
        log.date.isoformat() if log.date else "",
        _format_time(log.clock_in),
        _format_time(log.clock_out),
        str(log.duration_minutes) if log.duration_minutes else "",
        log.work_summary or "",
        log.status.value,
        _yes_with_reason(log.is_flagged, log.flag_reason),
        _yes_with_reason(log.is_manual_entry, log.manual_entry_reason),
    ]


def render_logs_csv(logs: Sequence[AttendanceEntryResponse]) -> str:
    """Every cell quoted, embedded quotes doubled, one line per log."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    writer.writerows(log_to_row(log) for log in logs)
    return buffer.getvalue().rstrip("\n")


def render_logs_json(logs: Sequence[AttendanceEntryResponse]) -> str:
    return json.dumps([log.model_dump(mode="json") for log in logs], indent=2)


def export_logs_to_csv(
    logs: Sequence[AttendanceEntryResponse],
    filename: Union[str, Path] = "attendance-logs.csv",
) -> Optional[Path]:
    """Write *logs* as CSV; nothing is written when there are no logs."""
    if not logs:
        logger.warning(NO_LOGS_WARNING)
        return None
    path = Path(filename)
    path.write_text(render_logs_csv(logs), encoding="utf-8")
    logger.info("Exported %d attendance log(s) to %s", len(logs), path)
    return path


def export_logs_to_json(
    logs: Sequence[AttendanceEntryResponse],
    filename: Union[str, Path] = "attendance-logs.json",
) -> Optional[Path]:
    """Write *logs* as an indented JSON array; skipped when empty."""
    if not logs:
        logger.warning(NO_LOGS_WARNING)
        return None
    path = Path(filename)
    path.write_text(render_logs_json(logs), encoding="utf-8")
    logger.info("Exported %d attendance log(s) to %s", len(logs), path)
    return path
