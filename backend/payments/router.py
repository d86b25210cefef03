"""Payment router.

Routes:
    /payments                         — List payments
    /payments/invoice/{invoice_id}    — Record / list payments for an invoice
    /payments/{id}                    — Payment detail
    /payments/{id}/verify             — Clear a pending payment
"""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth.dependencies import require_billing
from backend.auth.models import User
from backend.common.constants import PaymentMethod, PaymentStatus
from backend.common.pagination import PaginationParams
from backend.database import get_db
from backend.payments.schemas import InvoiceBalance, PaymentCreate, PaymentOut, PaymentRecordedOut
from backend.payments.service import PaymentService

router = APIRouter(prefix="", tags=["payments"])


@router.get("")
async def list_payments(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_billing),
    pagination: PaginationParams = Depends(),
    school_id: Optional[uuid.UUID] = Query(None),
    invoice_id: Optional[uuid.UUID] = Query(None),
    status: Optional[PaymentStatus] = Query(None),
    payment_method: Optional[PaymentMethod] = Query(None),
    from_date: Optional[date] = Query(None),
    to_date: Optional[date] = Query(None),
):
    result = await PaymentService.list_payments(
        db,
        pagination,
        school_id=school_id,
        invoice_id=invoice_id,
        status=status,
        payment_method=payment_method,
        from_date=from_date,
        to_date=to_date,
    )
    return result.envelope(PaymentOut)


@router.post("/invoice/{invoice_id}", status_code=201)
async def record_payment(
    invoice_id: uuid.UUID,
    body: PaymentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_billing),
):
    """Record a payment. Cash clears immediately; other methods start pending."""
    payment, invoice = await PaymentService.record_payment(
        db, invoice_id, body, actor_id=current_user.id,
    )
    out = PaymentRecordedOut(
        payment=PaymentOut.model_validate(payment),
        invoice=InvoiceBalance.model_validate(invoice),
    )
    return {
        "data": out.model_dump(mode="json"),
        "message": "Payment recorded successfully.",
    }


@router.get("/invoice/{invoice_id}")
async def invoice_payments(
    invoice_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_billing),
):
    payments = await PaymentService.payments_for_invoice(db, invoice_id)
    return {
        "data": [PaymentOut.model_validate(p).model_dump(mode="json") for p in payments],
        "message": "Invoice payments retrieved successfully.",
    }


@router.get("/{payment_id}", response_model=PaymentOut)
async def get_payment(
    payment_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_billing),
):
    return await PaymentService.get_payment(db, payment_id)


@router.put("/{payment_id}/verify", response_model=PaymentOut)
async def verify_payment(
    payment_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_billing),
):
    return await PaymentService.verify_payment(db, payment_id, actor_id=current_user.id)
