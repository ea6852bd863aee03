"""Common module — shared enums, errors, calendar and pagination helpers."""

from teamready.common.constants import (
    WORKER_ROLES,
    AbsenceFilter,
    AbsenceReason,
    AbsenceStatus,
    ExceptionStatus,
    ExceptionType,
    ReadinessStatus,
    ReviewAction,
    UserRole,
    WeekDay,
)
from teamready.common.exceptions import (
    AppException,
    ConflictError,
    ForbiddenException,
    InconsistentDateError,
    InvalidStateException,
    NotFoundException,
    ValidationException,
    register_exception_handlers,
)
from teamready.common.pagination import PaginationMeta, build_meta, paginate

__all__ = [
    # Constants / Enums
    "AbsenceFilter",
    "AbsenceReason",
    "AbsenceStatus",
    "ExceptionStatus",
    "ExceptionType",
    "ReadinessStatus",
    "ReviewAction",
    "UserRole",
    "WeekDay",
    "WORKER_ROLES",
    # Exceptions
    "AppException",
    "ConflictError",
    "ForbiddenException",
    "InconsistentDateError",
    "InvalidStateException",
    "NotFoundException",
    "ValidationException",
    "register_exception_handlers",
    # Pagination
    "PaginationMeta",
    "build_meta",
    "paginate",
]
