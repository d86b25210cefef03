"""Invoice service — monthly generation, carry-forward and status lifecycle.

    draft ──verify──▶ verified ──send──▶ sent ──(payments)──▶ paid
      │                  │                 │
      └──cancel──────────┴──────▶ cancelled└──(past due)──▶ overdue
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.billing.calculator import BillingCalculator
from backend.billing.dates import due_date, previous_month
from backend.common.audit import create_audit_entry
from backend.common.constants import (
    CARRY_FORWARD_STATUSES,
    InvoiceStatus,
    SchoolStatus,
)
from backend.common.exceptions import (
    ConflictError,
    InvalidTransitionException,
    NotFoundException,
    ValidationException,
)
from backend.common.pagination import PaginatedResponse, PaginationParams, paginate
from backend.config import settings
from backend.invoices.models import Invoice, InvoiceItem
from backend.invoices.schemas import (
    GenerateAllOut,
    GenerationFailure,
    InvoiceOut,
    InvoiceStatsOut,
    StatusTotals,
)
from backend.ledger.service import LedgerService
from backend.schools.models import School
from backend.schools.service import SchoolService

logger = logging.getLogger(__name__)

DEFAULT_TERMS = "Payment due within {days} days"


async def next_document_number(
    db: AsyncSession, model, prefix: str, on: date,
) -> str:
    """``PREFIX-YYMM-NNNNNN`` where NNNNNN is one more than the rows so far."""
    count = (await db.execute(select(func.count()).select_from(model))).scalar() or 0
    return f"{prefix}-{on:%y%m}-{count + 1:06d}"


class InvoiceService:

    # ── Reads ───────────────────────────────────────────────────────

    @staticmethod
    async def get_invoice_model(db: AsyncSession, invoice_id: uuid.UUID) -> Invoice:
        result = await db.execute(
            select(Invoice)
            .where(Invoice.id == invoice_id)
            .execution_options(populate_existing=True)
        )
        invoice = result.scalars().first()
        if invoice is None:
            raise NotFoundException("Invoice", str(invoice_id))
        return invoice

    @staticmethod
    async def list_invoices(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        school_id: Optional[uuid.UUID] = None,
        status: Optional[InvoiceStatus] = None,
        month: Optional[int] = None,
        year: Optional[int] = None,
    ) -> PaginatedResponse:
        query = select(Invoice)
        if school_id:
            query = query.where(Invoice.school_id == school_id)
        if status:
            query = query.where(Invoice.status == status)
        if month:
            query = query.where(Invoice.month == month)
        if year:
            query = query.where(Invoice.year == year)
        if not pagination.sort:
            query = query.order_by(Invoice.year.desc(), Invoice.month.desc(), Invoice.school_name)
        return await paginate(db, query, pagination, model=Invoice)

    @staticmethod
    async def live_invoice(
        db: AsyncSession, school_id: uuid.UUID, month: int, year: int,
    ) -> Optional[Invoice]:
        """The non-cancelled invoice for (school, month, year), if any."""
        result = await db.execute(
            select(Invoice).where(
                Invoice.school_id == school_id,
                Invoice.month == month,
                Invoice.year == year,
                Invoice.status != InvoiceStatus.cancelled,
            )
        )
        return result.scalars().first()

    @staticmethod
    async def carry_forward(
        db: AsyncSession, school_id: uuid.UUID, month: int, year: int,
    ) -> Decimal:
        """Unpaid balance of the previous month's invoice, or 0."""
        prev_month, prev_year = previous_month(month, year)
        result = await db.execute(
            select(Invoice.balance_due).where(
                Invoice.school_id == school_id,
                Invoice.month == prev_month,
                Invoice.year == prev_year,
                Invoice.status.in_(CARRY_FORWARD_STATUSES),
            )
        )
        balance = result.scalars().first()
        if balance is None:
            return Decimal("0")
        return max(Decimal("0"), Decimal(balance))

    # ── Generation ──────────────────────────────────────────────────

    @staticmethod
    async def generate_for_school(
        db: AsyncSession,
        school_id: uuid.UUID,
        month: int,
        year: int,
        *,
        notes: Optional[str] = None,
        actor_id: Optional[uuid.UUID] = None,
        invoice_date: Optional[date] = None,
    ) -> Invoice:
        school = await SchoolService.get_school_model(db, school_id)

        if await InvoiceService.live_invoice(db, school_id, month, year) is not None:
            raise ConflictError(
                "month",
                f"{month:02d}/{year}",
                detail=f"An invoice for {school.name} for {month:02d}/{year} already exists.",
            )

        billing = await BillingCalculator.school_billing(db, school_id, month, year)
        if not billing.lines:
            raise ValidationException(
                {"school_id": [f"No billable postings for {school.name} in {month:02d}/{year}."]},
                detail="Nothing to invoice.",
            )

        previous_due = await InvoiceService.carry_forward(db, school_id, month, year)
        invoice_date = invoice_date or date.today()
        total = billing.subtotal + previous_due

        invoice = Invoice(
            invoice_number=await next_document_number(
                db, Invoice, settings.INVOICE_NUMBER_PREFIX, invoice_date,
            ),
            school_id=school.id,
            school_name=school.name,
            month=month,
            year=year,
            subtotal=billing.subtotal,
            previous_due=previous_due,
            total_payable=total,
            paid_amount=Decimal("0"),
            balance_due=total,
            status=InvoiceStatus.draft,
            invoice_date=invoice_date,
            due_date=due_date(invoice_date),
            notes=notes,
            terms=DEFAULT_TERMS.format(days=settings.INVOICE_DUE_DAYS),
            created_by=actor_id,
            updated_by=actor_id,
            items=[InvoiceItem(**line.model_dump()) for line in billing.lines],
        )
        db.add(invoice)
        try:
            await db.flush()
        except IntegrityError:
            raise ConflictError("month", f"{month:02d}/{year}")

        await create_audit_entry(
            db,
            action="generate",
            entity_type="invoice",
            entity_id=invoice.id,
            actor_id=actor_id,
            new_values={
                "invoice_number": invoice.invoice_number,
                "subtotal": str(invoice.subtotal),
                "previous_due": str(previous_due),
            },
        )
        await LedgerService.record_invoice(db, invoice, actor_id=actor_id)
        logger.info(
            "Generated invoice %s for %s (%02d/%d): %s",
            invoice.invoice_number, school.code, month, year, total,
        )
        return await InvoiceService.get_invoice_model(db, invoice.id)

    @staticmethod
    async def generate_all(
        db: AsyncSession,
        month: int,
        year: int,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> GenerateAllOut:
        """Generate invoices for every active school; collect per-school failures."""
        schools: Sequence[School] = (
            await db.execute(
                select(School)
                .where(School.status == SchoolStatus.active)
                .order_by(School.name)
            )
        ).scalars().all()

        out = GenerateAllOut()
        for school in schools:
            if await InvoiceService.live_invoice(db, school.id, month, year) is not None:
                out.failed.append(
                    GenerationFailure(
                        school_id=school.id,
                        school_name=school.name,
                        error="Invoice already exists.",
                    )
                )
                continue
            try:
                # Savepoint per school; a failure undoes only that school
                async with db.begin_nested():
                    invoice = await InvoiceService.generate_for_school(
                        db, school.id, month, year, actor_id=actor_id,
                    )
            except (ValidationException, ConflictError) as exc:
                out.failed.append(
                    GenerationFailure(school_id=school.id, school_name=school.name, error=exc.detail)
                )
                continue
            out.generated.append(InvoiceOut.model_validate(invoice))

        logger.info(
            "Bulk invoice run %02d/%d: %d generated, %d skipped",
            month, year, len(out.generated), len(out.failed),
        )
        return out

    # ── Lifecycle ───────────────────────────────────────────────────

    @staticmethod
    async def _transition(
        db: AsyncSession,
        invoice: Invoice,
        target: InvoiceStatus,
        *,
        actor_id: Optional[uuid.UUID],
        action: str,
    ) -> Invoice:
        old_status = invoice.status
        invoice.status = target
        invoice.updated_by = actor_id
        await db.flush()
        await create_audit_entry(
            db,
            action=action,
            entity_type="invoice",
            entity_id=invoice.id,
            actor_id=actor_id,
            old_values={"status": old_status.value},
            new_values={"status": target.value},
        )
        return invoice

    @staticmethod
    async def verify(
        db: AsyncSession, invoice_id: uuid.UUID, *, actor_id: uuid.UUID,
    ) -> Invoice:
        invoice = await InvoiceService.get_invoice_model(db, invoice_id)
        if invoice.status != InvoiceStatus.draft:
            raise InvalidTransitionException("Invoice", invoice.status, InvoiceStatus.verified)
        invoice.verified_by = actor_id
        invoice.verified_at = datetime.now(timezone.utc)
        return await InvoiceService._transition(
            db, invoice, InvoiceStatus.verified, actor_id=actor_id, action="verify",
        )

    @staticmethod
    async def send(
        db: AsyncSession, invoice_id: uuid.UUID, *, actor_id: uuid.UUID,
    ) -> Invoice:
        invoice = await InvoiceService.get_invoice_model(db, invoice_id)
        if invoice.status != InvoiceStatus.verified:
            raise InvalidTransitionException("Invoice", invoice.status, InvoiceStatus.sent)
        invoice.sent_date = date.today()
        invoice.is_locked = True
        return await InvoiceService._transition(
            db, invoice, InvoiceStatus.sent, actor_id=actor_id, action="send",
        )

    @staticmethod
    async def cancel(
        db: AsyncSession,
        invoice_id: uuid.UUID,
        *,
        actor_id: uuid.UUID,
        reason: Optional[str] = None,
    ) -> Invoice:
        invoice = await InvoiceService.get_invoice_model(db, invoice_id)
        if invoice.status in (InvoiceStatus.paid, InvoiceStatus.sent, InvoiceStatus.cancelled):
            raise InvalidTransitionException("Invoice", invoice.status, InvoiceStatus.cancelled)
        if invoice.paid_amount > 0:
            raise InvalidTransitionException(
                "Invoice",
                invoice.status,
                InvoiceStatus.cancelled,
                detail="An invoice with recorded payments cannot be cancelled.",
            )
        if reason:
            invoice.notes = f"{invoice.notes}\nCancelled: {reason}" if invoice.notes else f"Cancelled: {reason}"
        invoice = await InvoiceService._transition(
            db, invoice, InvoiceStatus.cancelled, actor_id=actor_id, action="cancel",
        )
        await LedgerService.record_cancellation(db, invoice, reason=reason, actor_id=actor_id)
        return invoice

    @staticmethod
    async def mark_overdue(db: AsyncSession, *, today: Optional[date] = None) -> int:
        """Flag sent / verified invoices past their due date with a balance."""
        today = today or date.today()
        result = await db.execute(
            select(Invoice).where(
                Invoice.due_date < today,
                Invoice.status.in_((InvoiceStatus.sent, InvoiceStatus.verified)),
                Invoice.balance_due > 0,
            )
        )
        invoices = result.scalars().all()
        for invoice in invoices:
            invoice.status = InvoiceStatus.overdue
        await db.flush()
        logger.info("Marked %d invoices overdue", len(invoices))
        return len(invoices)

    # ── Stats ───────────────────────────────────────────────────────

    @staticmethod
    async def stats(
        db: AsyncSession,
        *,
        month: Optional[int] = None,
        year: Optional[int] = None,
    ) -> InvoiceStatsOut:
        query = select(
            Invoice.status,
            func.count(),
            func.coalesce(func.sum(Invoice.total_payable), 0),
            func.coalesce(func.sum(Invoice.paid_amount), 0),
            func.coalesce(func.sum(Invoice.balance_due), 0),
        ).group_by(Invoice.status)
        if month:
            query = query.where(Invoice.month == month)
        if year:
            query = query.where(Invoice.year == year)

        by_status = {s: StatusTotals(status=s) for s in InvoiceStatus}
        billed = collected = outstanding = Decimal("0")
        total = 0
        for status, count, payable, paid, balance in (await db.execute(query)).all():
            payable, paid, balance = (Decimal(str(v)) for v in (payable, paid, balance))
            by_status[status] = StatusTotals(
                status=status, count=count, total_payable=payable, balance_due=balance,
            )
            total += count
            if status == InvoiceStatus.cancelled:
                continue
            billed += payable
            collected += paid
            if status != InvoiceStatus.paid:
                outstanding += balance

        return InvoiceStatsOut(
            month=month,
            year=year,
            by_status=list(by_status.values()),
            total_invoices=total,
            total_billed=billed,
            total_collected=collected,
            total_outstanding=outstanding,
        )
