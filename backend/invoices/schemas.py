"""Invoice Pydantic v2 schemas — request / response validation."""


import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from backend.common.constants import InvoiceStatus


class InvoiceGenerateRequest(BaseModel):
    school_id: uuid.UUID
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=2100)
    notes: Optional[str] = Field(None, max_length=2000)


class InvoiceGenerateAllRequest(BaseModel):
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=2100)


class InvoiceCancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=1000)


class InvoiceItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    posting_id: uuid.UUID
    employee_id: uuid.UUID
    employee_name: str
    designation: Optional[str] = None
    monthly_rate: Decimal
    deployed_days: int
    unpaid_leave_days: int
    billable_days: int
    per_day_rate: Decimal
    amount: Decimal
    join_date: Optional[date] = None
    leave_date: Optional[date] = None


class InvoiceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    invoice_number: str
    school_id: uuid.UUID
    school_name: str
    month: int
    year: int
    items: list[InvoiceItemOut] = []
    subtotal: Decimal
    previous_due: Decimal
    total_payable: Decimal
    paid_amount: Decimal
    balance_due: Decimal
    status: InvoiceStatus
    invoice_date: date
    due_date: date
    sent_date: Optional[date] = None
    paid_date: Optional[date] = None
    verified_by: Optional[uuid.UUID] = None
    verified_at: Optional[datetime] = None
    notes: Optional[str] = None
    terms: Optional[str] = None
    is_locked: bool
    created_at: datetime


class GenerationFailure(BaseModel):
    school_id: uuid.UUID
    school_name: str
    error: str


class GenerateAllOut(BaseModel):
    generated: list[InvoiceOut] = []
    failed: list[GenerationFailure] = []


class StatusTotals(BaseModel):
    status: InvoiceStatus
    count: int = 0
    total_payable: Decimal = Decimal("0")
    balance_due: Decimal = Decimal("0")


class InvoiceStatsOut(BaseModel):
    month: Optional[int] = None
    year: Optional[int] = None
    by_status: list[StatusTotals]
    total_invoices: int
    total_billed: Decimal
    total_collected: Decimal
    total_outstanding: Decimal
