"""Payment test suite — recording against invoices, balance rules,
cheque clearing and API endpoints.
"""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from backend.common.constants import InvoiceStatus, PaymentMethod, PaymentStatus
from backend.common.exceptions import (
    InvalidTransitionException,
    NotFoundException,
    ValidationException,
)
from backend.invoices.models import Invoice
from backend.invoices.service import InvoiceService
from backend.payments.schemas import PaymentCreate
from backend.payments.service import PaymentService
from tests.conftest import reload, seed_employee, seed_posting, seed_school

BASE = "/api/v1/payments"


async def _invoice(db: AsyncSession, actor_id, *, send: bool = True) -> Invoice:
    """A 30000.00 April invoice, verified and (by default) sent."""
    school = await seed_school(db)
    emp = await seed_employee(db)
    await seed_posting(db, emp, school, billing=Decimal("26000"), start_date=date(2026, 4, 1))
    invoice = await InvoiceService.generate_for_school(db, school.id, 4, 2026)
    await InvoiceService.verify(db, invoice.id, actor_id=actor_id)
    if send:
        await InvoiceService.send(db, invoice.id, actor_id=actor_id)
    return invoice


def _pay(amount: str, method: PaymentMethod = PaymentMethod.cash, **kwargs) -> PaymentCreate:
    return PaymentCreate(amount=Decimal(amount), payment_method=method, **kwargs)


class TestRecordPayment:

    async def test_partial_payment(self, db: AsyncSession, hr_user):
        invoice = await _invoice(db, hr_user.id)

        payment, updated = await PaymentService.record_payment(db, invoice.id, _pay("12000.50"))

        assert payment.payment_number.startswith("PAY-")
        assert payment.remaining_balance == Decimal("17999.50")
        assert payment.status == PaymentStatus.cleared
        assert payment.school_id == invoice.school_id
        assert updated.paid_amount == Decimal("12000.50")
        assert updated.balance_due == Decimal("17999.50")
        assert updated.status == InvoiceStatus.sent

    async def test_full_payment_marks_paid(self, db: AsyncSession, hr_user):
        invoice = await _invoice(db, hr_user.id)
        await PaymentService.record_payment(db, invoice.id, _pay("10000"))

        _, updated = await PaymentService.record_payment(db, invoice.id, _pay("20000"))

        assert updated.status == InvoiceStatus.paid
        assert updated.balance_due == Decimal("0")
        assert updated.paid_date == date.today()

    async def test_verified_invoice_accepts_payment(self, db: AsyncSession, hr_user):
        invoice = await _invoice(db, hr_user.id, send=False)

        _, updated = await PaymentService.record_payment(db, invoice.id, _pay("100"))

        assert updated.status == InvoiceStatus.verified

    async def test_overpayment_rejected(self, db: AsyncSession, hr_user):
        invoice = await _invoice(db, hr_user.id)

        with pytest.raises(ValidationException) as exc_info:
            await PaymentService.record_payment(db, invoice.id, _pay("30000.01"))
        assert "amount" in exc_info.value.errors

    async def test_draft_invoice_rejected(self, db: AsyncSession):
        school = await seed_school(db)
        emp = await seed_employee(db)
        await seed_posting(db, emp, school, start_date=date(2026, 4, 1))
        draft = await InvoiceService.generate_for_school(db, school.id, 4, 2026)

        with pytest.raises(ValidationException):
            await PaymentService.record_payment(db, draft.id, _pay("100"))

    async def test_paid_invoice_rejects_more(self, db: AsyncSession, hr_user):
        invoice = await _invoice(db, hr_user.id)
        await PaymentService.record_payment(db, invoice.id, _pay("30000"))

        with pytest.raises(ValidationException):
            await PaymentService.record_payment(db, invoice.id, _pay("1"))

    async def test_unknown_invoice(self, db: AsyncSession):
        with pytest.raises(NotFoundException):
            await PaymentService.record_payment(db, uuid.uuid4(), _pay("1"))

    async def test_invoice_with_payments_cannot_be_cancelled(self, db: AsyncSession, hr_user):
        invoice = await _invoice(db, hr_user.id, send=False)
        await PaymentService.record_payment(db, invoice.id, _pay("100"))

        with pytest.raises(InvalidTransitionException) as exc_info:
            await InvoiceService.cancel(db, invoice.id, actor_id=hr_user.id)
        assert "payments" in exc_info.value.detail

    async def test_zero_amount_rejected_by_schema(self):
        with pytest.raises(ValueError):
            _pay("0")


class TestVerifyPayment:

    async def test_cheque_starts_pending_then_clears(self, db: AsyncSession, hr_user):
        invoice = await _invoice(db, hr_user.id)
        payment, _ = await PaymentService.record_payment(
            db,
            invoice.id,
            _pay("5000", PaymentMethod.cheque, reference_number="CHQ-4471", bank_name="SBI"),
        )
        assert payment.status == PaymentStatus.pending

        cleared = await PaymentService.verify_payment(db, payment.id, actor_id=hr_user.id)

        assert cleared.status == PaymentStatus.cleared
        assert cleared.verified_by == hr_user.id
        assert cleared.verified_at is not None

    async def test_cleared_payment_cannot_be_verified_again(self, db: AsyncSession, hr_user):
        invoice = await _invoice(db, hr_user.id)
        payment, _ = await PaymentService.record_payment(db, invoice.id, _pay("5000"))

        with pytest.raises(ValidationException):
            await PaymentService.verify_payment(db, payment.id, actor_id=hr_user.id)


class TestPaymentAPI:

    async def test_record_and_list(self, client, db, hr_user, accounts_headers):
        invoice = await _invoice(db, hr_user.id)
        await db.commit()

        resp = await client.post(
            f"{BASE}/invoice/{invoice.id}",
            json={"amount": "7500", "payment_method": "bank_transfer", "reference_number": "UTR991"},
            headers=accounts_headers,
        )
        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["payment"]["status"] == "pending"
        assert Decimal(data["invoice"]["balance_due"]) == Decimal("22500")
        assert data["invoice"]["status"] == "sent"

        resp = await client.get(f"{BASE}/invoice/{invoice.id}", headers=accounts_headers)
        assert [p["reference_number"] for p in resp.json()["data"]] == ["UTR991"]

        resp = await client.get(BASE, params={"status": "pending"}, headers=accounts_headers)
        assert resp.json()["meta"]["total"] == 1

        stored = await reload(db, Invoice, invoice.id)
        assert stored.paid_amount == Decimal("7500")

    async def test_verify_endpoint(self, client, db, hr_user, accounts_headers):
        invoice = await _invoice(db, hr_user.id)
        payment, _ = await PaymentService.record_payment(
            db, invoice.id, _pay("100", PaymentMethod.online),
        )
        await db.commit()

        resp = await client.put(f"{BASE}/{payment.id}/verify", headers=accounts_headers)

        assert resp.status_code == 200
        assert resp.json()["status"] == "cleared"

    async def test_overpayment_is_422(self, client, db, hr_user, accounts_headers):
        invoice = await _invoice(db, hr_user.id)
        await db.commit()

        resp = await client.post(
            f"{BASE}/invoice/{invoice.id}",
            json={"amount": "999999", "payment_method": "cash"},
            headers=accounts_headers,
        )

        assert resp.status_code == 422
        stored = await reload(db, Invoice, invoice.id)
        assert stored.paid_amount == Decimal("0")

    async def test_get_unknown_payment(self, client, accounts_headers):
        resp = await client.get(f"{BASE}/{uuid.uuid4()}", headers=accounts_headers)
        assert resp.status_code == 404
