"""Enums and constants for the staffing back-office — matching PostgreSQL ENUM types."""

from __future__ import annotations

import enum


# ── Auth / Roles ────────────────────────────────────────────────────

class UserRole(str, enum.Enum):
    admin = "admin"
    hr = "hr"
    accounts = "accounts"


# ── Schools / Employees ─────────────────────────────────────────────

class SchoolStatus(str, enum.Enum):
    active = "active"
    inactive = "inactive"


class EmploymentStatus(str, enum.Enum):
    active = "active"
    inactive = "inactive"


class StaffingStatus(str, enum.Enum):
    adequate = "adequate"
    shortage = "shortage"
    critical = "critical"


# ── Postings ────────────────────────────────────────────────────────

class PostingStatus(str, enum.Enum):
    continue_ = "continue"
    resign = "resign"
    terminate = "terminate"
    change_school = "change_school"


TERMINAL_POSTING_STATUSES = frozenset({PostingStatus.resign, PostingStatus.terminate})
ACTIVE_POSTING_STATUSES = frozenset({PostingStatus.continue_, PostingStatus.change_school})

POSTING_STATUS_MESSAGES: dict[PostingStatus, str] = {
    PostingStatus.continue_: "Employee posted successfully.",
    PostingStatus.resign: "Employee resignation recorded.",
    PostingStatus.terminate: "Employee termination recorded.",
    PostingStatus.change_school: "Employee transferred successfully.",
}


# ── Leave ───────────────────────────────────────────────────────────

class LeaveType(str, enum.Enum):
    paid = "paid"
    unpaid = "unpaid"
    sick = "sick"
    casual = "casual"
    emergency = "emergency"


class LeaveStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    cancelled = "cancelled"


# ── Invoices / Payments / Ledger ────────────────────────────────────

class InvoiceStatus(str, enum.Enum):
    draft = "draft"
    verified = "verified"
    sent = "sent"
    paid = "paid"
    overdue = "overdue"
    cancelled = "cancelled"


# Statuses whose unpaid balance rolls into the next month's invoice
CARRY_FORWARD_STATUSES = (
    InvoiceStatus.verified,
    InvoiceStatus.sent,
    InvoiceStatus.paid,
    InvoiceStatus.overdue,
)

PAYABLE_INVOICE_STATUSES = (
    InvoiceStatus.verified,
    InvoiceStatus.sent,
    InvoiceStatus.overdue,
)


class PaymentMethod(str, enum.Enum):
    cash = "cash"
    cheque = "cheque"
    bank_transfer = "bank_transfer"
    online = "online"
    dd = "dd"


class PaymentStatus(str, enum.Enum):
    pending = "pending"
    cleared = "cleared"
    failed = "failed"
    refunded = "refunded"


class LedgerEntryType(str, enum.Enum):
    invoice_generated = "invoice_generated"
    payment_received = "payment_received"
    credit_note = "credit_note"


# ── Misc constants ──────────────────────────────────────────────────

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 50
