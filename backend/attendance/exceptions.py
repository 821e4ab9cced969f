"""Attendance error kinds, each carried as the ``code`` of a problem document."""

from __future__ import annotations

import uuid
from typing import Any

from backend.common.exceptions import (
    ConflictError,
    NotFoundException,
    ValidationException,
)


class AlreadyClockedIn(ConflictError):
    code = "ALREADY_CLOCKED_IN"

    def __init__(self) -> None:
        super().__init__(
            "clock_in",
            "Already clocked in. Clock out before starting a new session.",
            code=self.code,
        )


class NoOpenSession(ConflictError):
    code = "NO_OPEN_SESSION"

    def __init__(self) -> None:
        super().__init__(
            "clock_out",
            "No open session found. Please clock in first.",
            code=self.code,
        )


class SessionOpen(ConflictError):
    code = "SESSION_OPEN"

    def __init__(self, entry_id: uuid.UUID) -> None:
        super().__init__(
            "status",
            f"Entry '{entry_id}' is still in progress and cannot be corrected yet.",
            code=self.code,
        )


class EntryNotFound(NotFoundException):
    code = "ENTRY_NOT_FOUND"

    def __init__(self, entry_id: Any) -> None:
        super().__init__("AttendanceEntry", entry_id, code=self.code)


class EmployeeNotFound(NotFoundException):
    code = "EMPLOYEE_NOT_FOUND"

    def __init__(self, employee_id: Any) -> None:
        super().__init__("Employee", employee_id, code=self.code)


class InvalidRange(ValidationException):
    code = "INVALID_RANGE"

    def __init__(self) -> None:
        super().__init__(
            {"clock_out": ["Clock-out must be after clock-in."]},
            code=self.code,
        )


class SummaryTooShort(ValidationException):
    code = "SUMMARY_TOO_SHORT"

    def __init__(self, minimum: int) -> None:
        super().__init__(
            {"work_summary": [f"Work summary must be at least {minimum} characters."]},
            code=self.code,
        )


class ReasonTooShort(ValidationException):
    code = "REASON_TOO_SHORT"

    def __init__(self, field: str, minimum: int) -> None:
        super().__init__(
            {field: [f"Reason must be at least {minimum} characters."]},
            code=self.code,
        )


class EmployeeRequired(ValidationException):
    code = "EMPLOYEE_REQUIRED"

    def __init__(self) -> None:
        super().__init__(
            {"employee_id": ["Select the employee this entry belongs to."]},
            code=self.code,
        )
