"""Admin log queries over attendance entries.

Status filters match the *effective* status: an IN_PROGRESS row that is
already overdue is returned for ``AUTO_EXPIRED`` and not for
``IN_PROGRESS``, consistent with what the entry responses report.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

from sqlalchemy import Select, and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from backend.attendance.clock import expiry_cutoff
from backend.attendance.exceptions import InvalidRange
from backend.attendance.models import AttendanceEntry
from backend.attendance.schemas import LogQueryResponse
from backend.attendance.status import build_entry_response
from backend.attendance.timeutils import resolve_now
from backend.common.constants import (
    DEFAULT_PAGE_SIZE,
    AttendanceEntryStatus,
    LogStatusFilter,
)
from backend.common.filters import apply_filters
from backend.common.pagination import paginate, total_pages
from backend.core_hr.models import Employee

_WITH_EMPLOYEE = (
    selectinload(AttendanceEntry.employee).selectinload(Employee.department),
)


def status_clause(status: LogStatusFilter, now: datetime):
    """WHERE clause selecting entries whose status at *now* is *status*."""
    cutoff = expiry_cutoff(now)
    if status == LogStatusFilter.FLAGGED:
        return AttendanceEntry.is_flagged.is_(True)
    if status == LogStatusFilter.IN_PROGRESS:
        return and_(
            AttendanceEntry.status == AttendanceEntryStatus.IN_PROGRESS,
            AttendanceEntry.clock_in >= cutoff,
        )
    if status == LogStatusFilter.AUTO_EXPIRED:
        return or_(
            AttendanceEntry.status == AttendanceEntryStatus.AUTO_EXPIRED,
            and_(
                AttendanceEntry.status == AttendanceEntryStatus.IN_PROGRESS,
                AttendanceEntry.clock_in < cutoff,
            ),
        )
    return AttendanceEntry.status == AttendanceEntryStatus(status.value)


def build_log_query(
    *,
    on_date: Optional[date] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    employee_id: Optional[uuid.UUID] = None,
    department_id: Optional[uuid.UUID] = None,
    status: Optional[LogStatusFilter] = None,
    now: datetime,
) -> Select:
    """Filtered query ordered by clock-in, newest first."""
    if date_from and date_to and date_from > date_to:
        raise InvalidRange()

    query = apply_filters(
        select(AttendanceEntry),
        AttendanceEntry,
        {
            "date": on_date,
            "date__from": date_from,
            "date__to": date_to,
            "employee_id": employee_id,
        },
    )
    if department_id is not None:
        query = query.where(
            AttendanceEntry.employee_id.in_(
                select(Employee.id).where(Employee.department_id == department_id)
            )
        )
    if status is not None:
        query = query.where(status_clause(status, now))

    return query.order_by(AttendanceEntry.clock_in.desc(), AttendanceEntry.id.desc())


class LogService:
    """Admin-facing reads across all employees."""

    @staticmethod
    async def query_entries(
        db: AsyncSession,
        *,
        on_date: Optional[date] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        employee_id: Optional[uuid.UUID] = None,
        department_id: Optional[uuid.UUID] = None,
        status: Optional[LogStatusFilter] = None,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
        now: Optional[datetime] = None,
    ) -> LogQueryResponse:
        now = resolve_now(now)
        query = build_log_query(
            on_date=on_date,
            date_from=date_from,
            date_to=date_to,
            employee_id=employee_id,
            department_id=department_id,
            status=status,
            now=now,
        )
        rows, total = await paginate(db, query, page, page_size, options=_WITH_EMPLOYEE)
        return LogQueryResponse(
            results=[build_entry_response(e, now) for e in rows],
            count=total,
            page=page,
            page_size=page_size,
            total_pages=total_pages(total, page_size),
        )

