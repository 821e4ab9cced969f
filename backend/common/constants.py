"""Enums and constants for the attendance service — matching PostgreSQL ENUM types."""

from __future__ import annotations

import enum


# ── Auth / Roles ────────────────────────────────────────────────────

class UserRole(str, enum.Enum):
    employee = "employee"
    manager = "manager"
    hr_admin = "hr_admin"
    system_admin = "system_admin"


# ── Attendance ──────────────────────────────────────────────────────

class AttendanceEntryStatus(str, enum.Enum):
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    AUTO_EXPIRED = "AUTO_EXPIRED"
    EDITED = "EDITED"
    MANUAL = "MANUAL"


TERMINAL_STATUSES = frozenset({
    AttendanceEntryStatus.COMPLETED,
    AttendanceEntryStatus.AUTO_EXPIRED,
    AttendanceEntryStatus.EDITED,
    AttendanceEntryStatus.MANUAL,
})


class LogStatusFilter(str, enum.Enum):
    """Status filter accepted by the admin log view (adds FLAGGED)."""

    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    AUTO_EXPIRED = "AUTO_EXPIRED"
    EDITED = "EDITED"
    MANUAL = "MANUAL"
    FLAGGED = "FLAGGED"


class AuditAction(str, enum.Enum):
    clock_in = "clock_in"
    clock_out = "clock_out"
    auto_expire = "auto_expire"
    edit = "edit"
    flag = "flag"
    unflag = "unflag"
    manual_create = "manual_create"


# ── Validation minimums (trimmed character counts) ──────────────────

MIN_WORK_SUMMARY_LENGTH = 10
MIN_EDIT_REASON_LENGTH = 5
MIN_FLAG_REASON_LENGTH = 5
MIN_MANUAL_REASON_LENGTH = 5

# ── Misc constants ──────────────────────────────────────────────────

ADMIN_ROLES = (UserRole.hr_admin, UserRole.system_admin)
MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 20
