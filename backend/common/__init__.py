"""Common module — shared utilities for the staffing back-office."""

from backend.common.audit import AuditTrail, create_audit_entry
from backend.common.constants import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    EmploymentStatus,
    InvoiceStatus,
    LedgerEntryType,
    LeaveStatus,
    LeaveType,
    PaymentMethod,
    PaymentStatus,
    PostingStatus,
    SchoolStatus,
    StaffingStatus,
    UserRole,
)
from backend.common.exceptions import (
    AppException,
    ConflictError,
    ForbiddenException,
    InvalidTransitionException,
    NotFoundException,
    ValidationException,
    register_exception_handlers,
)
from backend.common.filters import apply_filters, apply_search, apply_sorting
from backend.common.pagination import (
    PaginatedResponse,
    PaginationMeta,
    PaginationParams,
    paginate,
)

__all__ = [
    # Audit
    "AuditTrail",
    "create_audit_entry",
    # Constants / Enums
    "EmploymentStatus",
    "InvoiceStatus",
    "LedgerEntryType",
    "LeaveStatus",
    "LeaveType",
    "PaymentMethod",
    "PaymentStatus",
    "PostingStatus",
    "SchoolStatus",
    "StaffingStatus",
    "UserRole",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    # Exceptions
    "AppException",
    "ConflictError",
    "ForbiddenException",
    "InvalidTransitionException",
    "NotFoundException",
    "ValidationException",
    "register_exception_handlers",
    # Filters
    "apply_filters",
    "apply_search",
    "apply_sorting",
    # Pagination
    "PaginatedResponse",
    "PaginationMeta",
    "PaginationParams",
    "paginate",
]
