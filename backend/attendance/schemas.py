"""Attendance Pydantic v2 schemas — request / response validation.

Naming conventions:
  - *Request  → request bodies (write)
  - *Response → response bodies (read)
  - *Item     → rows embedded in a larger read representation

Minimum lengths for summaries and reasons are checked by the services so
they surface as ``SUMMARY_TOO_SHORT`` / ``REASON_TOO_SHORT`` rather than
as generic request validation errors.
"""


import uuid
from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from backend.common.constants import AttendanceEntryStatus
from backend.common.pagination import PaginationMeta


# ═════════════════════════════════════════════════════════════════════
# Clock in / out
# ═════════════════════════════════════════════════════════════════════


class ClockInRequest(BaseModel):
    """Payload for clocking in. The body itself is optional."""

    device_info: Optional[str] = Field(None, max_length=255)
    note: Optional[str] = Field(None, max_length=500)


class ClockOutRequest(BaseModel):
    """Payload for clocking out."""

    work_summary: Optional[str] = Field(
        None,
        max_length=2000,
        description="What was done during the session (10+ characters)",
    )


# ═════════════════════════════════════════════════════════════════════
# Entries
# ═════════════════════════════════════════════════════════════════════


class AttendanceEntryResponse(BaseModel):
    """One session as seen at read time.

    An open session past the expiry threshold is reported as
    ``AUTO_EXPIRED`` even if the sweep has not persisted it yet.
    """

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    employee_name: Optional[str] = None
    department: Optional[str] = None
    date: date
    clock_in: datetime
    clock_out: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    work_summary: Optional[str] = None
    status: AttendanceEntryStatus
    is_flagged: bool = False
    flag_reason: Optional[str] = None
    flagged_by: Optional[uuid.UUID] = None
    flagged_at: Optional[datetime] = None
    edit_reason: Optional[str] = None
    edited_by: Optional[uuid.UUID] = None
    edited_at: Optional[datetime] = None
    is_manual_entry: bool = False
    manual_entry_reason: Optional[str] = None
    created_by: Optional[uuid.UUID] = None
    device_info: Optional[str] = None
    note: Optional[str] = None


class AttendanceStatusResponse(BaseModel):
    """Live clock state of one employee."""

    is_clocked: bool
    clocked_in_at: Optional[datetime] = None
    entry_id: Optional[uuid.UUID] = None
    elapsed_seconds: Optional[int] = None
    will_auto_expire: bool = False
    expires_in_seconds: Optional[int] = None
    today_total_minutes: int = 0


class TodayAttendanceResponse(BaseModel):
    """All of today's sessions for the caller."""

    date: date
    entries: list[AttendanceEntryResponse]
    total_work_minutes: int = 0
    first_clock_in: Optional[datetime] = None
    last_clock_out: Optional[datetime] = None
    is_currently_in: bool = False
    has_auto_expired_entry: bool = False


class HistoryDay(BaseModel):
    date: date
    entries: list[AttendanceEntryResponse]
    total_work_minutes: int = 0


class HistoryResponse(BaseModel):
    """Month view grouped by day, newest day first."""

    data: list[HistoryDay]
    meta: PaginationMeta
    month: int
    year: int


# ═════════════════════════════════════════════════════════════════════
# Admin
# ═════════════════════════════════════════════════════════════════════


class EntryEditRequest(BaseModel):
    """Replace the times of a finished entry."""

    clock_in: datetime
    clock_out: datetime
    edit_reason: Optional[str] = Field(None, max_length=1000)
    work_summary: Optional[str] = Field(None, max_length=2000)


class FlagRequest(BaseModel):
    is_flagged: bool
    flag_reason: Optional[str] = Field(None, max_length=1000)


class ManualEntryRequest(BaseModel):
    """Record a session on an employee's behalf."""

    employee_id: Optional[uuid.UUID] = None
    clock_in: datetime
    clock_out: datetime
    work_summary: Optional[str] = Field(None, max_length=2000)
    manual_entry_reason: Optional[str] = Field(None, max_length=1000)


class LogQueryResponse(BaseModel):
    """One page of the admin log."""

    results: list[AttendanceEntryResponse]
    count: int
    page: int
    page_size: int
    total_pages: int


class LiveEmployeeItem(BaseModel):
    employee_id: uuid.UUID
    employee_code: str
    employee_name: str
    department: Optional[str] = None
    entry_id: uuid.UUID
    clocked_in_at: datetime
    elapsed_seconds: int
    will_auto_expire: bool
    expires_in_seconds: int


class IdleEmployeeItem(BaseModel):
    employee_id: uuid.UUID
    employee_code: str
    employee_name: str
    department: Optional[str] = None


class LiveBoardResponse(BaseModel):
    """Who is clocked in right now, and who is not."""

    active: list[LiveEmployeeItem]
    not_clocked_in: list[IdleEmployeeItem]
    active_count: int
    not_clocked_in_count: int


class SweepResponse(BaseModel):
    expired_count: int
    entry_ids: list[uuid.UUID]


class AuditEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    action: str
    actor_id: Optional[uuid.UUID] = None
    old_values: Optional[dict[str, Any]] = None
    new_values: Optional[dict[str, Any]] = None
    created_at: datetime
