"""Common module — shared utilities for the attendance service."""

from backend.common.audit import AuditTrail, create_audit_entry, list_audit_entries
from backend.common.constants import (
    ADMIN_ROLES,
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    TERMINAL_STATUSES,
    AttendanceEntryStatus,
    AuditAction,
    LogStatusFilter,
    UserRole,
)
from backend.common.exceptions import (
    AppException,
    ConflictError,
    ForbiddenException,
    NotFoundException,
    ValidationException,
    register_exception_handlers,
)
from backend.common.filters import apply_filters
from backend.common.locks import KeyedLock
from backend.common.pagination import (
    PaginationMeta,
    build_meta,
    paginate,
    total_pages,
)

__all__ = [
    # Audit
    "AuditTrail",
    "create_audit_entry",
    "list_audit_entries",
    # Constants / Enums
    "AttendanceEntryStatus",
    "AuditAction",
    "LogStatusFilter",
    "UserRole",
    "ADMIN_ROLES",
    "TERMINAL_STATUSES",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    # Exceptions
    "AppException",
    "ConflictError",
    "ForbiddenException",
    "NotFoundException",
    "ValidationException",
    "register_exception_handlers",
    # Filters
    "apply_filters",
    # Locks
    "KeyedLock",
    # Pagination
    "PaginationMeta",
    "build_meta",
    "paginate",
    "total_pages",
]
