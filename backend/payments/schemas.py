"""Payment Pydantic v2 schemas."""


import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from backend.common.constants import InvoiceStatus, PaymentMethod, PaymentStatus


class PaymentCreate(BaseModel):
    amount: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2)
    payment_date: Optional[date] = None
    payment_method: PaymentMethod
    reference_number: Optional[str] = Field(None, max_length=100)
    bank_name: Optional[str] = Field(None, max_length=150)
    remarks: Optional[str] = Field(None, max_length=2000)


class PaymentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    payment_number: str
    invoice_id: uuid.UUID
    school_id: uuid.UUID
    amount: Decimal
    payment_date: date
    payment_method: PaymentMethod
    reference_number: Optional[str] = None
    bank_name: Optional[str] = None
    remarks: Optional[str] = None
    remaining_balance: Decimal
    status: PaymentStatus
    received_by: Optional[uuid.UUID] = None
    verified_by: Optional[uuid.UUID] = None
    verified_at: Optional[datetime] = None
    created_at: datetime


class InvoiceBalance(BaseModel):
    """Invoice figures after a payment was applied."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    invoice_number: str
    paid_amount: Decimal
    balance_due: Decimal
    status: InvoiceStatus
    paid_date: Optional[date] = None


class PaymentRecordedOut(BaseModel):
    payment: PaymentOut
    invoice: InvoiceBalance
