"""Argument checks shared by the clock and correction commands.

Each helper either returns the cleaned value or raises the matching
error kind; none of them touch the database.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from backend.attendance.exceptions import (
    EmployeeRequired,
    InvalidRange,
    ReasonTooShort,
    SummaryTooShort,
)
from backend.common.constants import MIN_WORK_SUMMARY_LENGTH


def _trimmed(value: Optional[str]) -> str:
    return (value or "").strip()


def require_summary(work_summary: Optional[str]) -> str:
    summary = _trimmed(work_summary)
    if len(summary) < MIN_WORK_SUMMARY_LENGTH:
        raise SummaryTooShort(MIN_WORK_SUMMARY_LENGTH)
    return summary


def require_reason(reason: Optional[str], *, field: str, minimum: int) -> str:
    cleaned = _trimmed(reason)
    if len(cleaned) < minimum:
        raise ReasonTooShort(field, minimum)
    return cleaned


def require_range(clock_in: datetime, clock_out: datetime) -> None:
    if clock_out <= clock_in:
        raise InvalidRange()


def require_employee(employee_id: Optional[uuid.UUID]) -> uuid.UUID:
    if employee_id is None:
        raise EmployeeRequired()
    return employee_id


def optional_text(value: Optional[str]) -> Optional[str]:
    """Trim free text; blank becomes ``None``."""
    cleaned = _trimmed(value)
    return cleaned or None
