"""Read-side views of attendance entries: live status, today, history, live board.

Reads never write. An IN_PROGRESS entry that is already past the expiry
threshold is *projected* as AUTO_EXPIRED (clock_out = clock_in +
threshold) so callers see the same answer whether or not the sweep has
caught up.
"""

from __future__ import annotations

import uuid
from collections import OrderedDict
from datetime import date, datetime
from typing import Iterable, Optional, Sequence

from sqlalchemy import inspect, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from backend.attendance.clock import ClockService, expired_clock_out, expiry_cutoff, is_overdue
from backend.attendance.models import AttendanceEntry, duration_minutes_between
from backend.attendance.schemas import (
    AttendanceEntryResponse,
    AttendanceStatusResponse,
    HistoryDay,
    HistoryResponse,
    IdleEmployeeItem,
    LiveBoardResponse,
    LiveEmployeeItem,
    TodayAttendanceResponse,
)
from backend.attendance.timeutils import (
    expiry_threshold,
    local_date,
    month_bounds,
    reporting_tz,
    resolve_now,
    warning_window,
)
from backend.common.constants import TERMINAL_STATUSES, AttendanceEntryStatus
from backend.common.pagination import build_meta
from backend.core_hr.models import Employee


# ── Projection ──────────────────────────────────────────────────────

def _loaded(obj, attr: str):
    """Relationship value if already loaded, else None (no lazy IO)."""
    if attr in inspect(obj).unloaded:
        return None
    return getattr(obj, attr)


def effective_state(
    entry: AttendanceEntry,
    now: datetime,
) -> tuple[AttendanceEntryStatus, Optional[datetime]]:
    """Status and clock-out as of *now*."""
    if is_overdue(entry, now):
        return AttendanceEntryStatus.AUTO_EXPIRED, expired_clock_out(entry)
    return entry.status, entry.clock_out


def effective_minutes(entry: AttendanceEntry, now: datetime) -> int:
    """Worked minutes of a finished entry; 0 while it is still open."""
    status, clock_out = effective_state(entry, now)
    if status not in TERMINAL_STATUSES or clock_out is None:
        return 0
    return duration_minutes_between(entry.clock_in, clock_out)


def build_entry_response(entry: AttendanceEntry, now: datetime) -> AttendanceEntryResponse:
    status, clock_out = effective_state(entry, now)
    duration = (
        duration_minutes_between(entry.clock_in, clock_out)
        if clock_out is not None
        else None
    )

    employee_name = department = None
    employee = _loaded(entry, "employee")
    if employee is not None:
        employee_name = employee.full_name
        dept = _loaded(employee, "department")
        department = dept.name if dept is not None else None

    return AttendanceEntryResponse(
        id=entry.id,
        employee_id=entry.employee_id,
        employee_name=employee_name,
        department=department,
        date=entry.date,
        clock_in=entry.clock_in,
        clock_out=clock_out,
        duration_minutes=duration,
        work_summary=entry.work_summary,
        status=status,
        is_flagged=entry.is_flagged,
        flag_reason=entry.flag_reason,
        flagged_by=entry.flagged_by,
        flagged_at=entry.flagged_at,
        edit_reason=entry.edit_reason,
        edited_by=entry.edited_by,
        edited_at=entry.edited_at,
        is_manual_entry=entry.is_manual_entry,
        manual_entry_reason=entry.manual_entry_reason,
        created_by=entry.created_by,
        device_info=entry.device_info,
        note=entry.note,
    )


def project_status(
    open_entry: Optional[AttendanceEntry],
    today_entries: Iterable[AttendanceEntry],
    now: datetime,
) -> AttendanceStatusResponse:
    """Pure status computation from the stored open entry and today's entries."""
    finished = sum(effective_minutes(e, now) for e in today_entries)

    if open_entry is None or is_overdue(open_entry, now):
        return AttendanceStatusResponse(
            is_clocked=False,
            today_total_minutes=finished,
        )

    elapsed = max(0, int((now - open_entry.clock_in).total_seconds()))
    expires_in = max(0, int(expiry_threshold().total_seconds()) - elapsed)
    # A session carried over from yesterday belongs to yesterday's total
    running = elapsed // 60 if open_entry.date == local_date(now) else 0
    return AttendanceStatusResponse(
        is_clocked=True,
        clocked_in_at=open_entry.clock_in,
        entry_id=open_entry.id,
        elapsed_seconds=elapsed,
        will_auto_expire=expires_in <= int(warning_window().total_seconds()),
        expires_in_seconds=expires_in,
        today_total_minutes=finished + running,
    )


def group_by_day(
    entries: Sequence[AttendanceEntry],
    now: datetime,
) -> list[HistoryDay]:
    """Group entries (already ordered) into day buckets, keeping order."""
    days: OrderedDict[date, list[AttendanceEntry]] = OrderedDict()
    for entry in entries:
        days.setdefault(entry.date, []).append(entry)
    return [
        HistoryDay(
            date=day,
            entries=[build_entry_response(e, now) for e in day_entries],
            total_work_minutes=sum(effective_minutes(e, now) for e in day_entries),
        )
        for day, day_entries in days.items()
    ]


# ═════════════════════════════════════════════════════════════════════
# StatusService
# ═════════════════════════════════════════════════════════════════════


class StatusService:
    """Async read operations for the employee and live-board views."""

    @staticmethod
    async def _entries_on(
        db: AsyncSession,
        employee_id: uuid.UUID,
        day: date,
    ) -> Sequence[AttendanceEntry]:
        result = await db.execute(
            select(AttendanceEntry)
            .where(
                AttendanceEntry.employee_id == employee_id,
                AttendanceEntry.date == day,
            )
            .order_by(AttendanceEntry.clock_in.asc())
        )
        return result.scalars().all()

    @staticmethod
    async def get_status(
        db: AsyncSession,
        employee_id: uuid.UUID,
        now: Optional[datetime] = None,
    ) -> AttendanceStatusResponse:
        """Whether the employee is clocked in, for how long, and today's total."""
        now = resolve_now(now)
        open_entry = await ClockService.get_open_entry(db, employee_id)
        today_entries = await StatusService._entries_on(db, employee_id, local_date(now))
        return project_status(open_entry, today_entries, now)

    @staticmethod
    async def get_today(
        db: AsyncSession,
        employee_id: uuid.UUID,
        now: Optional[datetime] = None,
    ) -> TodayAttendanceResponse:
        """Every entry of the current reporting day, oldest first."""
        now = resolve_now(now)
        today = local_date(now)
        entries = await StatusService._entries_on(db, employee_id, today)
        responses = [build_entry_response(e, now) for e in entries]

        is_in = any(r.status == AttendanceEntryStatus.IN_PROGRESS for r in responses)
        clock_outs = [r.clock_out for r in responses if r.clock_out is not None]

        return TodayAttendanceResponse(
            date=today,
            entries=responses,
            total_work_minutes=sum(effective_minutes(e, now) for e in entries),
            first_clock_in=responses[0].clock_in if responses else None,
            last_clock_out=None if is_in or not clock_outs else max(clock_outs),
            is_currently_in=is_in,
            has_auto_expired_entry=any(
                r.status == AttendanceEntryStatus.AUTO_EXPIRED for r in responses
            ),
        )

    @staticmethod
    async def get_history(
        db: AsyncSession,
        employee_id: uuid.UUID,
        *,
        month: Optional[int] = None,
        year: Optional[int] = None,
        page: int = 1,
        page_size: int = 20,
        now: Optional[datetime] = None,
    ) -> HistoryResponse:
        """One month of entries grouped by day, newest day first, paginated by day."""
        now = resolve_now(now)
        local_now = now.astimezone(reporting_tz())
        month = month or local_now.month
        year = year or local_now.year
        first, last = month_bounds(year, month)

        result = await db.execute(
            select(AttendanceEntry)
            .where(
                AttendanceEntry.employee_id == employee_id,
                AttendanceEntry.date >= first,
                AttendanceEntry.date <= last,
            )
            .order_by(AttendanceEntry.date.desc(), AttendanceEntry.clock_in.asc())
        )
        days = group_by_day(result.scalars().all(), now)

        offset = (page - 1) * page_size
        return HistoryResponse(
            data=days[offset:offset + page_size],
            meta=build_meta(page, page_size, len(days)),
            month=month,
            year=year,
        )

    @staticmethod
    async def get_live_board(
        db: AsyncSession,
        now: Optional[datetime] = None,
    ) -> LiveBoardResponse:
        """Active employees split into clocked-in (longest first) and not clocked in."""
        now = resolve_now(now)

        employees = (
            await db.execute(
                select(Employee)
                .where(Employee.is_active.is_(True))
                .options(selectinload(Employee.department))
                .order_by(Employee.first_name, Employee.last_name)
            )
        ).scalars().all()

        open_entries = (
            await db.execute(
                select(AttendanceEntry).where(
                    AttendanceEntry.status == AttendanceEntryStatus.IN_PROGRESS,
                    AttendanceEntry.clock_in >= expiry_cutoff(now),
                )
            )
        ).scalars().all()
        open_by_employee = {e.employee_id: e for e in open_entries}

        threshold = int(expiry_threshold().total_seconds())
        warning = int(warning_window().total_seconds())
        active: list[LiveEmployeeItem] = []
        idle: list[IdleEmployeeItem] = []

        for emp in employees:
            dept_name = emp.department.name if emp.department else None
            entry = open_by_employee.get(emp.id)
            if entry is None:
                idle.append(
                    IdleEmployeeItem(
                        employee_id=emp.id,
                        employee_code=emp.employee_code,
                        employee_name=emp.full_name,
                        department=dept_name,
                    )
                )
                continue

            elapsed = max(0, int((now - entry.clock_in).total_seconds()))
            expires_in = max(0, threshold - elapsed)
            active.append(
                LiveEmployeeItem(
                    employee_id=emp.id,
                    employee_code=emp.employee_code,
                    employee_name=emp.full_name,
                    department=dept_name,
                    entry_id=entry.id,
                    clocked_in_at=entry.clock_in,
                    elapsed_seconds=elapsed,
                    will_auto_expire=expires_in <= warning,
                    expires_in_seconds=expires_in,
                )
            )

        active.sort(key=lambda item: item.clocked_in_at)
        return LiveBoardResponse(
            active=active,
            not_clocked_in=idle,
            active_count=len(active),
            not_clocked_in_count=len(idle),
        )
