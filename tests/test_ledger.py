"""School ledger tests — entries posted by invoice generation, payments
and cancellation, running balances, monthly summary and API endpoints.
"""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from backend.common.constants import LedgerEntryType, PaymentMethod
from backend.invoices.service import InvoiceService
from backend.ledger.service import LedgerService
from backend.payments.schemas import PaymentCreate
from backend.payments.service import PaymentService
from tests.conftest import seed_employee, seed_posting, seed_school

BASE = "/api/v1/ledger"


async def _april_invoice(db: AsyncSession, *, school=None):
    """A 30000.00 invoice for April 2026, dated 2 May."""
    school = school or await seed_school(db, name="Ledger School")
    emp = await seed_employee(db)
    await seed_posting(db, emp, school, billing=Decimal("26000"), start_date=date(2026, 4, 1))
    invoice = await InvoiceService.generate_for_school(
        db, school.id, 4, 2026, invoice_date=date(2026, 5, 2),
    )
    return school, invoice


def _cash(amount: str, on: date = date(2026, 5, 10)) -> PaymentCreate:
    return PaymentCreate(amount=Decimal(amount), payment_method=PaymentMethod.cash, payment_date=on)


class TestLedgerEntries:

    async def test_generation_posts_debit(self, db: AsyncSession):
        school, invoice = await _april_invoice(db)

        ledger = await LedgerService.school_ledger(db, school.id)

        [entry] = ledger.entries
        assert entry.entry_type == LedgerEntryType.invoice_generated
        assert entry.invoice_id == invoice.id
        assert entry.debit == Decimal("30000.00")
        assert entry.credit == Decimal("0")
        assert entry.balance == Decimal("30000.00")
        assert entry.reference_number == invoice.invoice_number
        assert (entry.month, entry.year) == (4, 2026)
        assert ledger.balance == Decimal("30000.00")

    async def test_payments_credit_running_balance(self, db: AsyncSession, hr_user):
        school, invoice = await _april_invoice(db)
        await InvoiceService.verify(db, invoice.id, actor_id=hr_user.id)

        payment, _ = await PaymentService.record_payment(db, invoice.id, _cash("12000"))
        await PaymentService.record_payment(db, invoice.id, _cash("8000.50"))

        ledger = await LedgerService.school_ledger(db, school.id)
        assert [e.entry_type for e in ledger.entries] == [
            LedgerEntryType.invoice_generated,
            LedgerEntryType.payment_received,
            LedgerEntryType.payment_received,
        ]
        assert [e.balance for e in ledger.entries] == [
            Decimal("30000.00"), Decimal("18000.00"), Decimal("9999.50"),
        ]
        assert ledger.entries[1].payment_id == payment.id
        assert ledger.total_credit == Decimal("20000.50")
        assert ledger.balance == Decimal("9999.50")

    async def test_cancellation_posts_credit_note(self, db: AsyncSession, hr_user):
        school, invoice = await _april_invoice(db)

        await InvoiceService.cancel(db, invoice.id, actor_id=hr_user.id, reason="Wrong rate")

        ledger = await LedgerService.school_ledger(db, school.id)
        note = ledger.entries[-1]
        assert note.entry_type == LedgerEntryType.credit_note
        assert note.credit == Decimal("30000.00")
        assert note.description == "Invoice cancelled: Wrong rate"
        assert ledger.balance == Decimal("0")

    async def test_carried_forward_due_is_not_debited_twice(self, db: AsyncSession, hr_user):
        school, april = await _april_invoice(db)
        await InvoiceService.verify(db, april.id, actor_id=hr_user.id)
        await PaymentService.record_payment(db, april.id, _cash("10000"))

        may = await InvoiceService.generate_for_school(db, school.id, 5, 2026)

        assert may.previous_due == Decimal("20000.00")
        assert await LedgerService.balance(db, school.id) == may.total_payable

    async def test_schools_are_kept_apart(self, db: AsyncSession):
        school_a, _ = await _april_invoice(db)
        school_b = await seed_school(db, name="Other School")

        assert await LedgerService.balance(db, school_b.id) == Decimal("0")
        assert await LedgerService.balance(db, school_a.id) == Decimal("30000.00")

    async def test_date_window_filters_entries_not_balance(self, db: AsyncSession, hr_user):
        school, invoice = await _april_invoice(db)
        await InvoiceService.verify(db, invoice.id, actor_id=hr_user.id)
        await PaymentService.record_payment(db, invoice.id, _cash("5000", date(2026, 6, 3)))

        ledger = await LedgerService.school_ledger(db, school.id, from_date=date(2026, 6, 1))

        assert [e.entry_type for e in ledger.entries] == [LedgerEntryType.payment_received]
        assert ledger.balance == Decimal("25000.00")

    async def test_monthly_summary(self, db: AsyncSession, hr_user):
        school, invoice = await _april_invoice(db)
        await InvoiceService.verify(db, invoice.id, actor_id=hr_user.id)
        await PaymentService.record_payment(db, invoice.id, _cash("12000"))

        summary = await LedgerService.monthly_summary(db, school.id, 2026)

        assert [(s.month, s.debit, s.credit) for s in summary] == [
            (4, Decimal("30000.00"), Decimal("0.00")),
            (5, Decimal("0.00"), Decimal("12000.00")),
        ]
        assert summary[1].net == Decimal("-12000.00")


class TestLedgerAPI:

    async def test_school_ledger_endpoint(self, client, db, hr_user, accounts_headers):
        school, invoice = await _april_invoice(db)
        await InvoiceService.verify(db, invoice.id, actor_id=hr_user.id)
        await db.commit()

        resp = await client.post(
            f"/api/v1/payments/invoice/{invoice.id}",
            json={"amount": "7500", "payment_method": "cash", "payment_date": "2026-05-12"},
            headers=accounts_headers,
        )
        assert resp.status_code == 201

        resp = await client.get(f"{BASE}/schools/{school.id}", headers=accounts_headers)

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["school_name"] == "Ledger School"
        assert Decimal(data["balance"]) == Decimal("22500")
        assert [e["entry_type"] for e in data["entries"]] == [
            "invoice_generated",
            "payment_received",
        ]

    async def test_summary_endpoint(self, client, db, auth_headers):
        school, _ = await _april_invoice(db)
        await db.commit()

        resp = await client.get(
            f"{BASE}/schools/{school.id}/summary", params={"year": 2026}, headers=auth_headers,
        )

        assert resp.status_code == 200
        assert [row["month"] for row in resp.json()["data"]] == [4]

    async def test_summary_requires_year(self, client, school, auth_headers):
        resp = await client.get(f"{BASE}/schools/{school.id}/summary", headers=auth_headers)
        assert resp.status_code == 422

    async def test_unknown_school(self, client, accounts_headers):
        resp = await client.get(f"{BASE}/schools/{uuid.uuid4()}", headers=accounts_headers)
        assert resp.status_code == 404

    async def test_requires_authentication(self, client, school):
        resp = await client.get(f"{BASE}/schools/{school.id}")
        assert resp.status_code == 401
