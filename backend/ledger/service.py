"""School ledger service — posts a debit for each generated invoice, a
credit for each payment and a credit note for each cancellation.

Entries for one school are serialised by a row lock on the school so every
entry's ``balance`` is the running balance after it.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.billing.dates import quantize
from backend.common.constants import LedgerEntryType
from backend.ledger.models import LedgerEntry
from backend.ledger.schemas import LedgerEntryOut, MonthlyLedgerSummary, SchoolLedgerOut
from backend.schools.models import School
from backend.schools.service import SchoolService

if TYPE_CHECKING:
    from backend.invoices.models import Invoice
    from backend.payments.models import Payment

logger = logging.getLogger(__name__)


class LedgerService:

    # ── Writes ──────────────────────────────────────────────────────

    @staticmethod
    async def post_entry(
        db: AsyncSession,
        *,
        school_id: uuid.UUID,
        entry_type: LedgerEntryType,
        entry_date: date,
        month: int,
        year: int,
        debit: Decimal = Decimal("0"),
        credit: Decimal = Decimal("0"),
        invoice_id: Optional[uuid.UUID] = None,
        payment_id: Optional[uuid.UUID] = None,
        reference_number: Optional[str] = None,
        description: Optional[str] = None,
        actor_id: Optional[uuid.UUID] = None,
    ) -> LedgerEntry:
        await db.execute(
            select(School.id).where(School.id == school_id).with_for_update()
        )
        balance = await LedgerService.balance(db, school_id) + debit - credit

        entry = LedgerEntry(
            school_id=school_id,
            invoice_id=invoice_id,
            payment_id=payment_id,
            entry_type=entry_type,
            debit=debit,
            credit=credit,
            balance=balance,
            entry_date=entry_date,
            month=month,
            year=year,
            reference_number=reference_number,
            description=description,
            created_by=actor_id,
        )
        db.add(entry)
        await db.flush()

        logger.info(
            "Ledger %s for school %s: +%s -%s, balance %s",
            entry_type.value, school_id, debit, credit, balance,
        )
        return entry

    @staticmethod
    async def record_invoice(
        db: AsyncSession, invoice: Invoice, *, actor_id: Optional[uuid.UUID] = None,
    ) -> LedgerEntry:
        """Debit the month's new charges; carried-forward dues are already on the ledger."""
        return await LedgerService.post_entry(
            db,
            school_id=invoice.school_id,
            entry_type=LedgerEntryType.invoice_generated,
            entry_date=invoice.invoice_date,
            month=invoice.month,
            year=invoice.year,
            debit=invoice.subtotal,
            invoice_id=invoice.id,
            reference_number=invoice.invoice_number,
            description=f"Invoice for {invoice.month:02d}/{invoice.year}",
            actor_id=actor_id,
        )

    @staticmethod
    async def record_payment(
        db: AsyncSession,
        payment: Payment,
        invoice: Invoice,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> LedgerEntry:
        return await LedgerService.post_entry(
            db,
            school_id=payment.school_id,
            entry_type=LedgerEntryType.payment_received,
            entry_date=payment.payment_date,
            month=payment.payment_date.month,
            year=payment.payment_date.year,
            credit=payment.amount,
            invoice_id=invoice.id,
            payment_id=payment.id,
            reference_number=payment.reference_number or payment.payment_number,
            description=(
                f"Payment received ({payment.payment_method.value}) "
                f"for invoice {invoice.invoice_number}"
            ),
            actor_id=actor_id,
        )

    @staticmethod
    async def record_cancellation(
        db: AsyncSession,
        invoice: Invoice,
        *,
        reason: Optional[str] = None,
        actor_id: Optional[uuid.UUID] = None,
    ) -> LedgerEntry:
        """Credit note reversing the invoice's debit."""
        return await LedgerService.post_entry(
            db,
            school_id=invoice.school_id,
            entry_type=LedgerEntryType.credit_note,
            entry_date=date.today(),
            month=invoice.month,
            year=invoice.year,
            credit=invoice.subtotal,
            invoice_id=invoice.id,
            reference_number=invoice.invoice_number,
            description=f"Invoice cancelled: {reason or 'No reason'}",
            actor_id=actor_id,
        )

    # ── Reads ───────────────────────────────────────────────────────

    @staticmethod
    async def _totals(db: AsyncSession, school_id: uuid.UUID) -> tuple[Decimal, Decimal]:
        result = await db.execute(
            select(
                func.coalesce(func.sum(LedgerEntry.debit), 0),
                func.coalesce(func.sum(LedgerEntry.credit), 0),
            ).where(LedgerEntry.school_id == school_id)
        )
        debit, credit = result.one()
        return quantize(Decimal(str(debit))), quantize(Decimal(str(credit)))

    @staticmethod
    async def balance(db: AsyncSession, school_id: uuid.UUID) -> Decimal:
        """What the school owes: total debits less total credits."""
        debit, credit = await LedgerService._totals(db, school_id)
        return debit - credit

    @staticmethod
    async def school_ledger(
        db: AsyncSession,
        school_id: uuid.UUID,
        *,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> SchoolLedgerOut:
        school = await SchoolService.get_school_model(db, school_id)

        query = select(LedgerEntry).where(LedgerEntry.school_id == school_id)
        if from_date:
            query = query.where(LedgerEntry.entry_date >= from_date)
        if to_date:
            query = query.where(LedgerEntry.entry_date <= to_date)
        # Posting order; each balance follows the one before it
        query = query.order_by(LedgerEntry.created_at)
        entries = (await db.execute(query)).scalars().all()

        debit, credit = await LedgerService._totals(db, school_id)
        return SchoolLedgerOut(
            school_id=school.id,
            school_name=school.name,
            balance=debit - credit,
            total_debit=debit,
            total_credit=credit,
            entries=[LedgerEntryOut.model_validate(e) for e in entries],
        )

    @staticmethod
    async def monthly_summary(
        db: AsyncSession, school_id: uuid.UUID, year: int,
    ) -> list[MonthlyLedgerSummary]:
        await SchoolService.get_school_model(db, school_id)
        result = await db.execute(
            select(
                LedgerEntry.month,
                func.coalesce(func.sum(LedgerEntry.debit), 0),
                func.coalesce(func.sum(LedgerEntry.credit), 0),
            )
            .where(LedgerEntry.school_id == school_id, LedgerEntry.year == year)
            .group_by(LedgerEntry.month)
            .order_by(LedgerEntry.month)
        )
        summary = []
        for month, debit, credit in result.all():
            debit, credit = quantize(Decimal(str(debit))), quantize(Decimal(str(credit)))
            summary.append(
                MonthlyLedgerSummary(
                    month=month, year=year, debit=debit, credit=credit, net=debit - credit,
                )
            )
        return summary
