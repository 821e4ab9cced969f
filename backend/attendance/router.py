"""Attendance router — clock in/out, own status and history, admin log tools.

All endpoints require authentication. ``/admin/*`` endpoints require the
hr_admin or system_admin role.
"""


import logging
import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from backend.attendance.clock import ClockService
from backend.attendance.corrections import CorrectionService
from backend.attendance.export import NO_LOGS_WARNING, render_logs_csv, render_logs_json
from backend.attendance.logs import LogService
from backend.attendance.schemas import (
    AttendanceEntryResponse,
    AttendanceStatusResponse,
    AuditEntryResponse,
    ClockInRequest,
    ClockOutRequest,
    EntryEditRequest,
    FlagRequest,
    HistoryResponse,
    LiveBoardResponse,
    LogQueryResponse,
    ManualEntryRequest,
    SweepResponse,
    TodayAttendanceResponse,
)
from backend.attendance.status import StatusService, build_entry_response
from backend.auth.dependencies import get_current_user, require_role
from backend.common.constants import (
    ADMIN_ROLES,
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    LogStatusFilter,
)
from backend.common.rate_limit import clock_rate_limit, limiter
from backend.core_hr.models import Employee
from backend.database import get_db, utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="", tags=["attendance"])

require_admin = require_role(*ADMIN_ROLES)


# ═════════════════════════════════════════════════════════════════════
# Employee self-service
# ═════════════════════════════════════════════════════════════════════


# ── GET /status ─────────────────────────────────────────────────────

@router.get("/status", response_model=AttendanceStatusResponse)
async def get_status(
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Current clock state of the authenticated user."""
    return await StatusService.get_status(db, employee.id)


# ── GET /today ──────────────────────────────────────────────────────

@router.get("/today", response_model=TodayAttendanceResponse)
async def get_today(
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """All of today's sessions of the authenticated user."""
    return await StatusService.get_today(db, employee.id)


# ── GET /history ────────────────────────────────────────────────────

@router.get("/history", response_model=HistoryResponse)
async def get_history(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    page: int = Query(1, ge=1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """The authenticated user's entries for a month, grouped by day."""
    return await StatusService.get_history(
        db,
        employee.id,
        month=month,
        year=year,
        page=page,
        page_size=page_size,
    )


# ── POST /clock-in ──────────────────────────────────────────────────

@router.post("/clock-in", response_model=AttendanceEntryResponse, status_code=201)
@limiter.limit(clock_rate_limit)
async def clock_in(
    request: Request,
    body: Optional[ClockInRequest] = None,
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Open a session for the current user."""
    body = body or ClockInRequest()
    ip = request.client.host if request.client else None
    entry = await ClockService.clock_in(
        db,
        employee.id,
        device_info=body.device_info,
        note=body.note,
        ip_address=ip,
    )
    return build_entry_response(entry, utcnow())


# ── POST /clock-out ─────────────────────────────────────────────────

@router.post("/clock-out", response_model=AttendanceEntryResponse)
@limiter.limit(clock_rate_limit)
async def clock_out(
    request: Request,
    body: ClockOutRequest,
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Close the current user's open session."""
    entry = await ClockService.clock_out(db, employee.id, body.work_summary)
    return build_entry_response(entry, utcnow())


# ═════════════════════════════════════════════════════════════════════
# Admin
# ═════════════════════════════════════════════════════════════════════


# ── GET /admin/logs ─────────────────────────────────────────────────

@router.get("/admin/logs", response_model=LogQueryResponse)
async def query_logs(
    date: Optional[date] = Query(None, description="Exact day"),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    employee_id: Optional[uuid.UUID] = Query(None),
    department_id: Optional[uuid.UUID] = Query(None),
    status: Optional[LogStatusFilter] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    _admin: Employee = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Filtered, paginated entries across all employees, newest first."""
    return await LogService.query_entries(
        db,
        on_date=date,
        date_from=date_from,
        date_to=date_to,
        employee_id=employee_id,
        department_id=department_id,
        status=status,
        page=page,
        page_size=page_size,
    )


# ── GET /admin/logs/export ──────────────────────────────────────────

@router.get("/admin/logs/export")
async def export_logs(
    date: Optional[date] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    employee_id: Optional[uuid.UUID] = Query(None),
    department_id: Optional[uuid.UUID] = Query(None),
    status: Optional[LogStatusFilter] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    export_format: str = Query("csv", alias="format", pattern="^(csv|json)$"),
    filename: Optional[str] = Query(None, max_length=100, pattern=r"^[\w.\-]+$"),
    _admin: Employee = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Download one page of the admin log as CSV or JSON."""
    result = await LogService.query_entries(
        db,
        on_date=date,
        date_from=date_from,
        date_to=date_to,
        employee_id=employee_id,
        department_id=department_id,
        status=status,
        page=page,
        page_size=page_size,
    )
    if not result.results:
        logger.warning(NO_LOGS_WARNING)
        return Response(status_code=204)

    if export_format == "json":
        content = render_logs_json(result.results)
        media_type = "application/json; charset=utf-8"
    else:
        content = render_logs_csv(result.results)
        media_type = "text/csv; charset=utf-8"

    filename = filename or f"attendance-logs.{export_format}"
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ── PATCH /admin/logs/{entry_id} ────────────────────────────────────

@router.patch("/admin/logs/{entry_id}", response_model=AttendanceEntryResponse)
async def edit_entry(
    entry_id: uuid.UUID,
    body: EntryEditRequest,
    admin: Employee = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Correct the times of a finished entry."""
    entry = await CorrectionService.edit_entry(
        db,
        entry_id,
        clock_in=body.clock_in,
        clock_out=body.clock_out,
        edit_reason=body.edit_reason,
        work_summary=body.work_summary,
        actor_id=admin.id,
    )
    return build_entry_response(entry, utcnow())


# ── PATCH /admin/logs/{entry_id}/flag ───────────────────────────────

@router.patch("/admin/logs/{entry_id}/flag", response_model=AttendanceEntryResponse)
async def flag_entry(
    entry_id: uuid.UUID,
    body: FlagRequest,
    admin: Employee = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Flag an entry for review, or clear its flag."""
    entry = await CorrectionService.set_flag(
        db,
        entry_id,
        is_flagged=body.is_flagged,
        flag_reason=body.flag_reason,
        actor_id=admin.id,
    )
    return build_entry_response(entry, utcnow())


# ── GET /admin/logs/{entry_id}/audit ────────────────────────────────

@router.get("/admin/logs/{entry_id}/audit", response_model=list[AuditEntryResponse])
async def entry_audit(
    entry_id: uuid.UUID,
    _admin: Employee = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Every recorded change of one entry, oldest first."""
    return await CorrectionService.get_entry_audit(db, entry_id)


# ── POST /admin/manual-entry ────────────────────────────────────────

@router.post("/admin/manual-entry", response_model=AttendanceEntryResponse, status_code=201)
async def create_manual_entry(
    body: ManualEntryRequest,
    admin: Employee = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Record a session on an employee's behalf."""
    entry = await CorrectionService.create_manual_entry(
        db,
        employee_id=body.employee_id,
        clock_in=body.clock_in,
        clock_out=body.clock_out,
        work_summary=body.work_summary,
        manual_entry_reason=body.manual_entry_reason,
        actor_id=admin.id,
    )
    return build_entry_response(entry, utcnow())


# ── GET /admin/live ─────────────────────────────────────────────────

@router.get("/admin/live", response_model=LiveBoardResponse)
async def live_board(
    _admin: Employee = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Who is clocked in right now."""
    return await StatusService.get_live_board(db)


# ── POST /admin/sweep ───────────────────────────────────────────────

@router.post("/admin/sweep", response_model=SweepResponse)
async def sweep(
    _admin: Employee = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Expire overdue sessions now instead of waiting for the scheduler."""
    expired = await ClockService.sweep_expired(db)
    return SweepResponse(
        expired_count=len(expired),
        entry_ids=[e.id for e in expired],
    )
