"""Status projector — live status, today view, history, live board.

Reads must never write: overdue sessions are reported as AUTO_EXPIRED
without the stored row changing.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

from backend.attendance.clock import ClockService
from backend.attendance.status import StatusService, build_entry_response, project_status
from backend.common.constants import AttendanceEntryStatus
from backend.core_hr.models import Employee
from tests.conftest import NOW, _make_employee, _make_entry


# ═════════════════════════════════════════════════════════════════════
# 1. GET STATUS
# ═════════════════════════════════════════════════════════════════════


async def test_status_when_not_clocked_in(db, test_employee):
    status = await StatusService.get_status(db, test_employee["id"], now=NOW)

    assert status.is_clocked is False
    assert status.clocked_in_at is None
    assert status.elapsed_seconds is None
    assert status.expires_in_seconds is None
    assert status.will_auto_expire is False
    assert status.today_total_minutes == 0


async def test_status_while_clocked_in(db, test_employee):
    await ClockService.clock_in(db, test_employee["id"], now=NOW)

    status = await StatusService.get_status(
        db, test_employee["id"], now=NOW + timedelta(minutes=30, seconds=20)
    )

    assert status.is_clocked is True
    assert status.clocked_in_at == NOW
    assert status.elapsed_seconds == 30 * 60 + 20
    assert status.expires_in_seconds == 210 * 60 - 20
    assert status.will_auto_expire is False
    assert status.today_total_minutes == 30


async def test_status_warns_inside_last_thirty_minutes(db, test_employee):
    await ClockService.clock_in(db, test_employee["id"], now=NOW - timedelta(minutes=215))

    status = await StatusService.get_status(db, test_employee["id"], now=NOW)

    assert status.is_clocked is True
    assert status.will_auto_expire is True
    assert 0 < status.expires_in_seconds <= 1500


async def test_status_warning_boundary_is_inclusive(db, test_employee):
    await ClockService.clock_in(db, test_employee["id"], now=NOW - timedelta(minutes=210))
    status = await StatusService.get_status(db, test_employee["id"], now=NOW)
    assert status.expires_in_seconds == 1800
    assert status.will_auto_expire is True


async def test_status_sums_finished_entries_of_today(db, test_employee):
    await _make_entry(
        db, test_employee["id"],
        clock_in=NOW - timedelta(hours=3), clock_out=NOW - timedelta(hours=2),
    )
    await _make_entry(
        db, test_employee["id"],
        clock_in=NOW - timedelta(minutes=90), clock_out=NOW - timedelta(minutes=45),
        status=AttendanceEntryStatus.MANUAL, is_manual_entry=True,
    )
    # Yesterday's work does not count
    await _make_entry(
        db, test_employee["id"],
        clock_in=NOW - timedelta(days=1), clock_out=NOW - timedelta(days=1) + timedelta(hours=2),
    )

    status = await StatusService.get_status(db, test_employee["id"], now=NOW)
    assert status.is_clocked is False
    assert status.today_total_minutes == 60 + 45


async def test_status_adds_running_minutes_to_finished_total(db, test_employee):
    await _make_entry(
        db, test_employee["id"],
        clock_in=NOW - timedelta(hours=3), clock_out=NOW - timedelta(hours=2),
    )
    await ClockService.clock_in(db, test_employee["id"], now=NOW - timedelta(minutes=10, seconds=59))

    status = await StatusService.get_status(db, test_employee["id"], now=NOW)
    assert status.today_total_minutes == 60 + 10


async def test_status_session_from_yesterday_not_counted_today(db, test_employee):
    # 23:00 IST on the 10th, read at 01:00 IST on the 11th
    late = datetime(2026, 3, 10, 17, 30, tzinfo=timezone.utc)
    await ClockService.clock_in(db, test_employee["id"], now=late)

    status = await StatusService.get_status(
        db, test_employee["id"], now=late + timedelta(hours=2)
    )

    assert status.is_clocked is True
    assert status.elapsed_seconds == 2 * 3600
    assert status.today_total_minutes == 0


async def test_status_projects_overdue_session_without_writing(db, test_employee):
    entry = await ClockService.clock_in(db, test_employee["id"], now=NOW)
    later = NOW + timedelta(minutes=250)

    status = await StatusService.get_status(db, test_employee["id"], now=later)

    assert status.is_clocked is False
    assert status.today_total_minutes == 240
    await db.refresh(entry)
    assert entry.status == AttendanceEntryStatus.IN_PROGRESS
    assert entry.clock_out is None


async def test_projection_matches_persisted_sweep(db, test_employee):
    """Lazy projection and the sweep agree on the same answer."""
    await ClockService.clock_in(db, test_employee["id"], now=NOW)
    later = NOW + timedelta(minutes=300)

    before = await StatusService.get_status(db, test_employee["id"], now=later)
    await ClockService.sweep_expired(db, later)
    after = await StatusService.get_status(db, test_employee["id"], now=later)

    assert before == after


async def test_project_status_is_pure_function(test_employee):
    status = project_status(None, [], NOW)
    assert status.is_clocked is False
    assert status.today_total_minutes == 0


# ═════════════════════════════════════════════════════════════════════
# 2. TODAY
# ═════════════════════════════════════════════════════════════════════


async def test_today_lists_entries_oldest_first(db, test_employee):
    await _make_entry(
        db, test_employee["id"],
        clock_in=NOW - timedelta(hours=3), clock_out=NOW - timedelta(hours=2),
    )
    await ClockService.clock_in(db, test_employee["id"], now=NOW - timedelta(minutes=20))

    today = await StatusService.get_today(db, test_employee["id"], now=NOW)

    assert today.date == date(2026, 3, 10)
    assert [e.status for e in today.entries] == [
        AttendanceEntryStatus.COMPLETED,
        AttendanceEntryStatus.IN_PROGRESS,
    ]
    assert today.first_clock_in == NOW - timedelta(hours=3)
    assert today.last_clock_out is None
    assert today.is_currently_in is True
    assert today.total_work_minutes == 60
    assert today.has_auto_expired_entry is False


async def test_today_reports_projected_expiry(db, test_employee):
    await ClockService.clock_in(db, test_employee["id"], now=NOW - timedelta(hours=5))

    today = await StatusService.get_today(db, test_employee["id"], now=NOW)

    assert today.is_currently_in is False
    assert today.has_auto_expired_entry is True
    assert today.entries[0].status == AttendanceEntryStatus.AUTO_EXPIRED
    assert today.entries[0].duration_minutes == 240
    assert today.last_clock_out == NOW - timedelta(hours=1)
    assert today.total_work_minutes == 240


# ═════════════════════════════════════════════════════════════════════
# 3. HISTORY
# ═════════════════════════════════════════════════════════════════════


async def test_history_groups_by_day_newest_first(db, test_employee):
    day1 = datetime(2026, 3, 2, 4, 0, tzinfo=timezone.utc)
    day2 = datetime(2026, 3, 5, 4, 0, tzinfo=timezone.utc)
    await _make_entry(db, test_employee["id"], clock_in=day1, clock_out=day1 + timedelta(hours=2))
    await _make_entry(db, test_employee["id"], clock_in=day2, clock_out=day2 + timedelta(hours=1))
    await _make_entry(
        db, test_employee["id"],
        clock_in=day2 + timedelta(hours=3), clock_out=day2 + timedelta(hours=4, minutes=30),
    )
    # Previous month is excluded
    feb = datetime(2026, 2, 27, 4, 0, tzinfo=timezone.utc)
    await _make_entry(db, test_employee["id"], clock_in=feb, clock_out=feb + timedelta(hours=1))

    history = await StatusService.get_history(
        db, test_employee["id"], month=3, year=2026, now=NOW
    )

    assert [d.date for d in history.data] == [date(2026, 3, 5), date(2026, 3, 2)]
    assert history.data[0].total_work_minutes == 60 + 90
    assert len(history.data[0].entries) == 2
    assert history.data[1].total_work_minutes == 120
    assert history.meta.total == 2


async def test_history_paginates_by_day(db, test_employee):
    for day in range(1, 6):
        ci = datetime(2026, 3, day, 4, 0, tzinfo=timezone.utc)
        await _make_entry(db, test_employee["id"], clock_in=ci, clock_out=ci + timedelta(hours=1))

    history = await StatusService.get_history(
        db, test_employee["id"], month=3, year=2026, page=2, page_size=2, now=NOW
    )

    assert [d.date for d in history.data] == [date(2026, 3, 3), date(2026, 3, 2)]
    assert history.meta.total_pages == 3
    assert history.meta.has_next is True
    assert history.meta.has_prev is True


async def test_history_defaults_to_current_month(db, test_employee):
    history = await StatusService.get_history(db, test_employee["id"], now=NOW)
    assert (history.month, history.year) == (3, 2026)
    assert history.data == []


# ═════════════════════════════════════════════════════════════════════
# 4. LIVE BOARD
# ═════════════════════════════════════════════════════════════════════


async def test_live_board_splits_active_and_idle(db, test_employee, test_department):
    idle = Employee(**_make_employee(
        email="idle@example.com", first_name="Ida", department_id=test_department["id"]
    ))
    gone = Employee(**_make_employee(email="gone@example.com", is_active=False))
    stale = Employee(**_make_employee(email="stale@example.com", first_name="Sam"))
    db.add_all([idle, gone, stale])
    await db.flush()

    await ClockService.clock_in(db, test_employee["id"], now=NOW - timedelta(minutes=220))
    await ClockService.clock_in(db, stale.id, now=NOW - timedelta(hours=6))

    board = await StatusService.get_live_board(db, now=NOW)

    assert board.active_count == 1
    live = board.active[0]
    assert live.employee_id == test_employee["id"]
    assert live.department == "Engineering"
    assert live.elapsed_seconds == 220 * 60
    assert live.will_auto_expire is True
    assert live.expires_in_seconds == 20 * 60

    idle_ids = {item.employee_id for item in board.not_clocked_in}
    assert idle_ids == {idle.id, stale.id}
    assert board.not_clocked_in_count == 2


async def test_entry_response_without_loaded_employee(db, test_employee):
    entry = await ClockService.clock_in(db, test_employee["id"], now=NOW)
    response = build_entry_response(entry, NOW + timedelta(minutes=1))
    assert response.employee_id == test_employee["id"]
    assert response.status == AttendanceEntryStatus.IN_PROGRESS
    assert response.duration_minutes is None
