"""Clock session engine — clock in, clock out, expire overdue sessions.

Business rules:
  - An employee has at most one IN_PROGRESS entry at any time
  - An entry open for more than the expiry threshold is closed as
    AUTO_EXPIRED with clock_out = clock_in + threshold
  - Every transition leaves an audit-trail row

Overdue sessions are closed lazily (by the next write touching the same
employee) and by the periodic sweep; both go through ``sweep_expired``.
Transitions out of IN_PROGRESS are conditional updates, so a sweep and a
clock-out racing on the same entry resolve to exactly one winner.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any, Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.attendance.exceptions import AlreadyClockedIn, InvalidRange, NoOpenSession
from backend.attendance.models import AttendanceEntry
from backend.attendance.timeutils import expiry_threshold, local_date, resolve_now
from backend.attendance.validators import optional_text, require_summary
from backend.common.audit import create_audit_entry
from backend.common.constants import AttendanceEntryStatus, AuditAction
from backend.common.locks import KeyedLock
from backend.database import utcnow

logger = logging.getLogger(__name__)

ENTITY_TYPE = "attendance_entry"

# Serializes clock commands per employee within this process; the partial
# unique index covers concurrent writers in other processes.
_employee_locks = KeyedLock()


def expiry_cutoff(now: datetime) -> datetime:
    """Open entries that clocked in before this instant are overdue."""
    return now - expiry_threshold()


def is_overdue(entry: AttendanceEntry, now: datetime) -> bool:
    return entry.is_open and entry.clock_in < expiry_cutoff(now)


def expired_clock_out(entry: AttendanceEntry) -> datetime:
    return entry.clock_in + expiry_threshold()


def snapshot(entry: AttendanceEntry) -> dict[str, Any]:
    """JSON-safe view of the mutable fields, for audit rows."""
    return {
        "date": entry.date.isoformat() if entry.date else None,
        "clock_in": entry.clock_in.isoformat() if entry.clock_in else None,
        "clock_out": entry.clock_out.isoformat() if entry.clock_out else None,
        "status": entry.status.value if entry.status else None,
        "work_summary": entry.work_summary,
        "is_flagged": entry.is_flagged,
        "flag_reason": entry.flag_reason,
        "edit_reason": entry.edit_reason,
    }


class ClockService:
    """Async clock commands for a single employee's sessions."""

    # ── Helpers ─────────────────────────────────────────────────────

    @staticmethod
    async def get_open_entry(
        db: AsyncSession,
        employee_id: uuid.UUID,
    ) -> Optional[AttendanceEntry]:
        """Return the stored IN_PROGRESS entry, overdue or not."""
        result = await db.execute(
            select(AttendanceEntry).where(
                AttendanceEntry.employee_id == employee_id,
                AttendanceEntry.status == AttendanceEntryStatus.IN_PROGRESS,
            )
        )
        return result.scalars().first()

    @staticmethod
    async def _close(
        db: AsyncSession,
        entry: AttendanceEntry,
        *,
        clock_out: datetime,
        status: AttendanceEntryStatus,
        work_summary: Optional[str] = None,
    ) -> bool:
        """Move *entry* out of IN_PROGRESS if nobody else did first."""
        values: dict[str, Any] = {
            "clock_out": clock_out,
            "status": status,
            "updated_at": utcnow(),
        }
        if work_summary is not None:
            values["work_summary"] = work_summary

        result = await db.execute(
            update(AttendanceEntry)
            .where(
                AttendanceEntry.id == entry.id,
                AttendanceEntry.status == AttendanceEntryStatus.IN_PROGRESS,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await db.refresh(entry)
            return False

        await db.refresh(entry)
        return True

    # ── Expiry ──────────────────────────────────────────────────────

    @staticmethod
    async def sweep_expired(
        db: AsyncSession,
        now: Optional[datetime] = None,
        *,
        employee_id: Optional[uuid.UUID] = None,
    ) -> list[AttendanceEntry]:
        """Close every overdue open entry (optionally for one employee).

        Returns the entries this call expired; entries closed concurrently
        by someone else are skipped, so repeated sweeps are no-ops.
        """
        now = resolve_now(now)
        query = select(AttendanceEntry).where(
            AttendanceEntry.status == AttendanceEntryStatus.IN_PROGRESS,
            AttendanceEntry.clock_in < expiry_cutoff(now),
        )
        if employee_id is not None:
            query = query.where(AttendanceEntry.employee_id == employee_id)

        candidates: Sequence[AttendanceEntry] = (
            (await db.execute(query.order_by(AttendanceEntry.clock_in))).scalars().all()
        )

        expired: list[AttendanceEntry] = []
        for entry in candidates:
            old_values = snapshot(entry)
            closed = await ClockService._close(
                db,
                entry,
                clock_out=expired_clock_out(entry),
                status=AttendanceEntryStatus.AUTO_EXPIRED,
            )
            if not closed:
                continue
            await create_audit_entry(
                db,
                action=AuditAction.auto_expire.value,
                entity_type=ENTITY_TYPE,
                entity_id=entry.id,
                old_values=old_values,
                new_values=snapshot(entry),
            )
            expired.append(entry)

        if expired:
            logger.info(
                "Auto-expired %d attendance session(s) older than %s",
                len(expired),
                expiry_threshold(),
            )
        return expired

    # ── Clock in / out ──────────────────────────────────────────────

    @staticmethod
    async def clock_in(
        db: AsyncSession,
        employee_id: uuid.UUID,
        *,
        device_info: Optional[str] = None,
        note: Optional[str] = None,
        ip_address: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> AttendanceEntry:
        """Open a new session starting at *now*."""
        now = resolve_now(now)

        async with _employee_locks.hold(employee_id):
            await ClockService.sweep_expired(db, now, employee_id=employee_id)

            if await ClockService.get_open_entry(db, employee_id) is not None:
                logger.info("Clock-in rejected for %s: %s", employee_id, AlreadyClockedIn.code)
                raise AlreadyClockedIn()

            entry = AttendanceEntry(
                employee_id=employee_id,
                date=local_date(now),
                clock_in=now,
                status=AttendanceEntryStatus.IN_PROGRESS,
                device_info=optional_text(device_info),
                note=optional_text(note),
                ip_address=ip_address,
            )
            db.add(entry)
            try:
                await db.flush()
            except IntegrityError:
                # Another process opened a session between our check and insert
                raise AlreadyClockedIn() from None

            await create_audit_entry(
                db,
                action=AuditAction.clock_in.value,
                entity_type=ENTITY_TYPE,
                entity_id=entry.id,
                actor_id=employee_id,
                new_values=snapshot(entry),
                ip_address=ip_address,
            )

        logger.info("Employee %s clocked in (entry %s)", employee_id, entry.id)
        return entry

    @staticmethod
    async def clock_out(
        db: AsyncSession,
        employee_id: uuid.UUID,
        work_summary: Optional[str],
        *,
        now: Optional[datetime] = None,
    ) -> AttendanceEntry:
        """Close the employee's open session at *now* with a work summary."""
        now = resolve_now(now)

        async with _employee_locks.hold(employee_id):
            await ClockService.sweep_expired(db, now, employee_id=employee_id)

            entry = await ClockService.get_open_entry(db, employee_id)
            if entry is None:
                logger.info("Clock-out rejected for %s: %s", employee_id, NoOpenSession.code)
                raise NoOpenSession()

            summary = require_summary(work_summary)
            if now <= entry.clock_in:
                raise InvalidRange()

            old_values = snapshot(entry)
            closed = await ClockService._close(
                db,
                entry,
                clock_out=now,
                status=AttendanceEntryStatus.COMPLETED,
                work_summary=summary,
            )
            if not closed:
                raise NoOpenSession()

            await create_audit_entry(
                db,
                action=AuditAction.clock_out.value,
                entity_type=ENTITY_TYPE,
                entity_id=entry.id,
                actor_id=employee_id,
                old_values=old_values,
                new_values=snapshot(entry),
            )

        logger.info(
            "Employee %s clocked out after %s min (entry %s)",
            employee_id,
            entry.duration_minutes,
            entry.id,
        )
        return entry
