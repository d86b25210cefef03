"""School ledger Pydantic v2 schemas."""


import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict

from backend.common.constants import LedgerEntryType


class LedgerEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    school_id: uuid.UUID
    invoice_id: Optional[uuid.UUID] = None
    payment_id: Optional[uuid.UUID] = None
    entry_type: LedgerEntryType
    debit: Decimal
    credit: Decimal
    balance: Decimal
    entry_date: date
    month: int
    year: int
    reference_number: Optional[str] = None
    description: Optional[str] = None
    created_at: datetime


class SchoolLedgerOut(BaseModel):
    """A school's running balance with the entries in the requested window."""

    school_id: uuid.UUID
    school_name: str
    balance: Decimal
    total_debit: Decimal
    total_credit: Decimal
    entries: list[LedgerEntryOut]


class MonthlyLedgerSummary(BaseModel):
    month: int
    year: int
    debit: Decimal
    credit: Decimal
    net: Decimal
