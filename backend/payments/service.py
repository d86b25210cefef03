"""Payment service — record payments against invoices and clear cheques."""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.common.audit import create_audit_entry
from backend.common.constants import (
    PAYABLE_INVOICE_STATUSES,
    InvoiceStatus,
    PaymentMethod,
    PaymentStatus,
)
from backend.common.exceptions import NotFoundException, ValidationException
from backend.common.pagination import PaginatedResponse, PaginationParams, paginate
from backend.config import settings
from backend.invoices.models import Invoice
from backend.invoices.service import InvoiceService, next_document_number
from backend.ledger.service import LedgerService
from backend.payments.models import Payment
from backend.payments.schemas import PaymentCreate

logger = logging.getLogger(__name__)


class PaymentService:

    @staticmethod
    async def record_payment(
        db: AsyncSession,
        invoice_id: uuid.UUID,
        data: PaymentCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> tuple[Payment, Invoice]:
        """Apply a payment to an invoice; the invoice turns ``paid`` at zero balance."""
        result = await db.execute(
            select(Invoice)
            .where(Invoice.id == invoice_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        invoice = result.scalars().first()
        if invoice is None:
            raise NotFoundException("Invoice", str(invoice_id))

        if invoice.status not in PAYABLE_INVOICE_STATUSES:
            raise ValidationException(
                {"invoice_id": [f"Cannot record a payment on a {invoice.status.value} invoice."]},
            )
        if data.amount > invoice.balance_due:
            raise ValidationException(
                {"amount": [f"Amount exceeds the balance due of {invoice.balance_due}."]},
            )

        today = date.today()
        remaining = invoice.balance_due - data.amount
        payment = Payment(
            payment_number=await next_document_number(
                db, Payment, settings.PAYMENT_NUMBER_PREFIX, today,
            ),
            invoice_id=invoice.id,
            school_id=invoice.school_id,
            amount=data.amount,
            payment_date=data.payment_date or today,
            payment_method=data.payment_method,
            reference_number=data.reference_number,
            bank_name=data.bank_name,
            remarks=data.remarks,
            remaining_balance=remaining,
            status=(
                PaymentStatus.cleared
                if data.payment_method == PaymentMethod.cash
                else PaymentStatus.pending
            ),
            received_by=actor_id,
        )
        db.add(payment)

        invoice.paid_amount = invoice.paid_amount + data.amount
        invoice.balance_due = invoice.total_payable - invoice.paid_amount
        if invoice.balance_due <= 0:
            invoice.status = InvoiceStatus.paid
            invoice.paid_date = today
        invoice.updated_by = actor_id
        await db.flush()

        await create_audit_entry(
            db,
            action="payment",
            entity_type="invoice",
            entity_id=invoice.id,
            actor_id=actor_id,
            new_values={
                "payment_number": payment.payment_number,
                "amount": str(data.amount),
                "balance_due": str(invoice.balance_due),
            },
        )
        await LedgerService.record_payment(db, payment, invoice, actor_id=actor_id)
        logger.info(
            "Payment %s of %s recorded on invoice %s (balance %s)",
            payment.payment_number, data.amount, invoice.invoice_number, invoice.balance_due,
        )
        return payment, invoice

    @staticmethod
    async def get_payment(db: AsyncSession, payment_id: uuid.UUID) -> Payment:
        payment = await db.get(Payment, payment_id)
        if payment is None:
            raise NotFoundException("Payment", str(payment_id))
        return payment

    @staticmethod
    async def verify_payment(
        db: AsyncSession, payment_id: uuid.UUID, *, actor_id: uuid.UUID,
    ) -> Payment:
        """Clear a pending (cheque / transfer) payment."""
        payment = await PaymentService.get_payment(db, payment_id)
        if payment.status != PaymentStatus.pending:
            raise ValidationException(
                {"status": [f"Payment already {payment.status.value}."]},
            )
        payment.status = PaymentStatus.cleared
        payment.verified_by = actor_id
        payment.verified_at = datetime.now(timezone.utc)
        await db.flush()
        return payment

    @staticmethod
    async def list_payments(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        school_id: Optional[uuid.UUID] = None,
        invoice_id: Optional[uuid.UUID] = None,
        status: Optional[PaymentStatus] = None,
        payment_method: Optional[PaymentMethod] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> PaginatedResponse:
        query = select(Payment)
        if school_id:
            query = query.where(Payment.school_id == school_id)
        if invoice_id:
            query = query.where(Payment.invoice_id == invoice_id)
        if status:
            query = query.where(Payment.status == status)
        if payment_method:
            query = query.where(Payment.payment_method == payment_method)
        if from_date:
            query = query.where(Payment.payment_date >= from_date)
        if to_date:
            query = query.where(Payment.payment_date <= to_date)
        if not pagination.sort:
            query = query.order_by(Payment.payment_date.desc(), Payment.created_at.desc())
        return await paginate(db, query, pagination, model=Payment)

    @staticmethod
    async def payments_for_invoice(db: AsyncSession, invoice_id: uuid.UUID) -> list[Payment]:
        await InvoiceService.get_invoice_model(db, invoice_id)
        result = await db.execute(
            select(Payment)
            .where(Payment.invoice_id == invoice_id)
            .order_by(Payment.payment_date, Payment.created_at)
        )
        return list(result.scalars().all())
