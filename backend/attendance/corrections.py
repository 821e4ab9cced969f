"""Admin corrections — edit times, flag for review, record manual sessions.

Every command validates all of its arguments before touching the entry,
so a rejected command leaves the stored row exactly as it was.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.attendance.clock import ENTITY_TYPE, ClockService, snapshot
from backend.attendance.exceptions import EmployeeNotFound, EntryNotFound, SessionOpen
from backend.attendance.models import AttendanceEntry
from backend.attendance.timeutils import local_date, normalize, resolve_now
from backend.attendance.validators import (
    optional_text,
    require_employee,
    require_range,
    require_reason,
)
from backend.common.audit import AuditTrail, create_audit_entry, list_audit_entries
from backend.common.constants import (
    MIN_EDIT_REASON_LENGTH,
    MIN_FLAG_REASON_LENGTH,
    MIN_MANUAL_REASON_LENGTH,
    AttendanceEntryStatus,
    AuditAction,
)
from backend.core_hr.models import Employee

logger = logging.getLogger(__name__)


class CorrectionService:
    """Async admin commands on individual attendance entries."""

    # ── Helpers ─────────────────────────────────────────────────────

    @staticmethod
    async def _get_entry(db: AsyncSession, entry_id: uuid.UUID) -> AttendanceEntry:
        entry = await db.get(AttendanceEntry, entry_id)
        if entry is None:
            raise EntryNotFound(entry_id)
        return entry

    @staticmethod
    async def _require_closed(
        db: AsyncSession,
        entry: AttendanceEntry,
        now: datetime,
    ) -> None:
        """Settle a lazily expired session, then refuse one still running."""
        if entry.is_open:
            await ClockService.sweep_expired(db, now, employee_id=entry.employee_id)
        if entry.is_open:
            raise SessionOpen(entry.id)

    # ── Edit ────────────────────────────────────────────────────────

    @staticmethod
    async def edit_entry(
        db: AsyncSession,
        entry_id: uuid.UUID,
        *,
        clock_in: datetime,
        clock_out: datetime,
        edit_reason: Optional[str],
        actor_id: uuid.UUID,
        work_summary: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> AttendanceEntry:
        """Overwrite both timestamps of a finished entry and mark it EDITED."""
        now = resolve_now(now)
        entry = await CorrectionService._get_entry(db, entry_id)

        clock_in = normalize(clock_in)
        clock_out = normalize(clock_out)
        require_range(clock_in, clock_out)
        reason = require_reason(
            edit_reason, field="edit_reason", minimum=MIN_EDIT_REASON_LENGTH
        )
        await CorrectionService._require_closed(db, entry, now)

        old_values = snapshot(entry)
        entry.clock_in = clock_in
        entry.clock_out = clock_out
        entry.date = local_date(clock_in)
        entry.status = AttendanceEntryStatus.EDITED
        entry.edit_reason = reason
        entry.edited_by = actor_id
        entry.edited_at = now
        summary = optional_text(work_summary)
        if summary is not None:
            entry.work_summary = summary
        await db.flush()

        await create_audit_entry(
            db,
            action=AuditAction.edit.value,
            entity_type=ENTITY_TYPE,
            entity_id=entry.id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=snapshot(entry),
        )
        logger.info("Entry %s edited by %s", entry.id, actor_id)
        return entry

    # ── Flag ────────────────────────────────────────────────────────

    @staticmethod
    async def set_flag(
        db: AsyncSession,
        entry_id: uuid.UUID,
        *,
        is_flagged: bool,
        actor_id: uuid.UUID,
        flag_reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> AttendanceEntry:
        """Flag an entry for review (reason required) or clear the flag."""
        now = resolve_now(now)
        entry = await CorrectionService._get_entry(db, entry_id)

        reason = None
        if is_flagged:
            reason = require_reason(
                flag_reason, field="flag_reason", minimum=MIN_FLAG_REASON_LENGTH
            )
        await CorrectionService._require_closed(db, entry, now)

        old_values = snapshot(entry)
        entry.is_flagged = is_flagged
        entry.flag_reason = reason
        entry.flagged_by = actor_id if is_flagged else None
        entry.flagged_at = now if is_flagged else None
        await db.flush()

        await create_audit_entry(
            db,
            action=(AuditAction.flag if is_flagged else AuditAction.unflag).value,
            entity_type=ENTITY_TYPE,
            entity_id=entry.id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=snapshot(entry),
        )
        logger.info(
            "Entry %s %s by %s", entry.id, "flagged" if is_flagged else "unflagged", actor_id
        )
        return entry

    # ── Manual entry ────────────────────────────────────────────────

    @staticmethod
    async def create_manual_entry(
        db: AsyncSession,
        *,
        employee_id: Optional[uuid.UUID],
        clock_in: datetime,
        clock_out: datetime,
        manual_entry_reason: Optional[str],
        actor_id: uuid.UUID,
        work_summary: Optional[str] = None,
    ) -> AttendanceEntry:
        """Record a finished session on behalf of *employee_id*."""
        employee_id = require_employee(employee_id)
        clock_in = normalize(clock_in)
        clock_out = normalize(clock_out)
        require_range(clock_in, clock_out)
        reason = require_reason(
            manual_entry_reason,
            field="manual_entry_reason",
            minimum=MIN_MANUAL_REASON_LENGTH,
        )

        exists = await db.execute(select(Employee.id).where(Employee.id == employee_id))
        if exists.scalar_one_or_none() is None:
            raise EmployeeNotFound(employee_id)

        entry = AttendanceEntry(
            employee_id=employee_id,
            date=local_date(clock_in),
            clock_in=clock_in,
            clock_out=clock_out,
            work_summary=optional_text(work_summary),
            status=AttendanceEntryStatus.MANUAL,
            is_manual_entry=True,
            manual_entry_reason=reason,
            created_by=actor_id,
        )
        db.add(entry)
        await db.flush()

        await create_audit_entry(
            db,
            action=AuditAction.manual_create.value,
            entity_type=ENTITY_TYPE,
            entity_id=entry.id,
            actor_id=actor_id,
            new_values=snapshot(entry),
        )
        logger.info(
            "Manual entry %s created for %s by %s", entry.id, employee_id, actor_id
        )
        return entry

    # ── Audit ───────────────────────────────────────────────────────

    @staticmethod
    async def get_entry_audit(
        db: AsyncSession,
        entry_id: uuid.UUID,
    ) -> Sequence[AuditTrail]:
        await CorrectionService._get_entry(db, entry_id)
        return await list_audit_entries(db, entity_type=ENTITY_TYPE, entity_id=entry_id)
