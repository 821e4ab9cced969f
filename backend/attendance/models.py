"""Attendance ORM model: AttendanceEntry — one clocked session of one employee."""

from __future__ import annotations

import math
import uuid
from datetime import date, datetime
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import INET, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.common.constants import AttendanceEntryStatus
from backend.database import Base, UTCDateTime, utcnow

if TYPE_CHECKING:
    from backend.core_hr.models import Employee


def duration_minutes_between(clock_in: datetime, clock_out: datetime) -> int:
    """Whole minutes between two timestamps, half-up rounded."""
    return math.floor((clock_out - clock_in).total_seconds() / 60 + 0.5)


class AttendanceEntry(Base):
    __tablename__ = "attendance_entries"
    __table_args__ = (
        sa.Index("ix_attendance_entries_employee_date", "employee_id", "date"),
        sa.Index("ix_attendance_entries_status", "status"),
        sa.Index("ix_attendance_entries_clock_in", "clock_in"),
        # At most one open session per employee
        sa.Index(
            "uq_attendance_entries_open_session",
            "employee_id",
            unique=True,
            postgresql_where=sa.text("status = 'IN_PROGRESS'"),
            sqlite_where=sa.text("status = 'IN_PROGRESS'"),
        ),
        sa.CheckConstraint(
            "clock_out IS NULL OR clock_out > clock_in",
            name="ck_attendance_entries_range",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("employees.id"), nullable=False
    )
    date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    clock_in: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    clock_out: Mapped[Optional[datetime]] = mapped_column(UTCDateTime())
    work_summary: Mapped[Optional[str]] = mapped_column(sa.Text)
    status: Mapped[AttendanceEntryStatus] = mapped_column(
        sa.Enum(
            AttendanceEntryStatus,
            name="attendance_entry_status",
            native_enum=False,
            length=20,
        ),
        nullable=False,
        default=AttendanceEntryStatus.IN_PROGRESS,
    )

    # Review annotation, independent of status
    is_flagged: Mapped[bool] = mapped_column(sa.Boolean, default=False, nullable=False)
    flag_reason: Mapped[Optional[str]] = mapped_column(sa.Text)
    flagged_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("employees.id")
    )
    flagged_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime())

    # Admin corrections
    edit_reason: Mapped[Optional[str]] = mapped_column(sa.Text)
    edited_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("employees.id")
    )
    edited_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime())
    is_manual_entry: Mapped[bool] = mapped_column(sa.Boolean, default=False, nullable=False)
    manual_entry_reason: Mapped[Optional[str]] = mapped_column(sa.Text)
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("employees.id")
    )

    # Clock-in context
    device_info: Mapped[Optional[str]] = mapped_column(sa.String(255))
    note: Mapped[Optional[str]] = mapped_column(sa.Text)
    ip_address: Mapped[Optional[str]] = mapped_column(INET)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utcnow, onupdate=utcnow
    )

    # Relationships
    employee: Mapped["Employee"] = relationship(
        back_populates="attendance_entries",
        foreign_keys=[employee_id],
    )

    @property
    def duration_minutes(self) -> Optional[int]:
        """Worked minutes; ``None`` while the session is open."""
        if self.clock_out is None:
            return None
        return duration_minutes_between(self.clock_in, self.clock_out)

    @property
    def is_open(self) -> bool:
        return self.status == AttendanceEntryStatus.IN_PROGRESS

    def __repr__(self) -> str:
        return (
            f"<AttendanceEntry {self.id} {self.employee_id} "
            f"{self.date} {self.status.value}>"
        )
