"""Billing maths — month windows, deployed days, proration, and the
per-school calculator with leave deductions.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from backend.billing.calculator import BillingCalculator
from backend.billing.dates import (
    deployed_days,
    due_date,
    month_range,
    overlap_days,
    per_day_rate,
    previous_month,
    prorated_amount,
)
from backend.common.constants import LeaveType, PostingStatus
from backend.leave.schemas import LeaveCreate
from backend.leave.service import LeaveService
from backend.postings.schemas import PostingUpdate
from backend.postings.service import PostingService
from tests.conftest import seed_employee, seed_posting, seed_school


class TestDates:

    def test_month_range(self):
        assert month_range(2, 2028) == (date(2028, 2, 1), date(2028, 2, 29))
        assert month_range(4, 2026) == (date(2026, 4, 1), date(2026, 4, 30))

    def test_month_range_rejects_bad_month(self):
        with pytest.raises(ValueError):
            month_range(13, 2026)

    def test_previous_month_wraps_year(self):
        assert previous_month(1, 2026) == (12, 2025)
        assert previous_month(7, 2026) == (6, 2026)

    def test_overlap_days(self):
        window = (date(2026, 4, 1), date(2026, 4, 30))
        assert overlap_days(date(2026, 3, 20), date(2026, 4, 5), *window) == 5
        assert overlap_days(date(2026, 5, 1), date(2026, 5, 5), *window) == 0
        assert overlap_days(date(2026, 4, 30), date(2026, 4, 30), *window) == 1

    def test_deployed_days(self):
        # Open-ended posting runs to month end
        assert deployed_days(date(2026, 4, 11), None, 4, 2026) == 20
        assert deployed_days(date(2026, 1, 1), date(2026, 4, 10), 4, 2026) == 10
        assert deployed_days(date(2026, 5, 1), None, 4, 2026) == 0

    def test_prorated_amount_rounds_half_up(self):
        assert per_day_rate(Decimal("26000")) == Decimal("1000")
        assert prorated_amount(Decimal("26000"), 13) == Decimal("13000.00")
        # 100 / 26 * 1 = 3.846153...
        assert prorated_amount(Decimal("100"), 1) == Decimal("3.85")

    def test_due_date(self):
        assert due_date(date(2026, 5, 1)) == date(2026, 5, 31)
        assert due_date(date(2026, 5, 1), days=7) == date(2026, 5, 8)


class TestCalculator:

    async def test_full_month(self, db: AsyncSession):
        school = await seed_school(db)
        emp = await seed_employee(db, full_name="Sana Iqbal")
        await seed_posting(db, emp, school, billing=Decimal("26000"), start_date=date(2026, 3, 15))

        billing = await BillingCalculator.school_billing(db, school.id, 4, 2026)

        [line] = billing.lines
        assert line.employee_name == "Sana Iqbal"
        assert line.deployed_days == 30
        assert line.billable_days == 30
        assert line.per_day_rate == Decimal("1000.00")
        assert line.amount == Decimal("30000.00")
        assert billing.subtotal == Decimal("30000.00")

    async def test_mid_month_join(self, db: AsyncSession):
        school = await seed_school(db)
        emp = await seed_employee(db)
        await seed_posting(db, emp, school, billing=Decimal("26000"), start_date=date(2026, 4, 21))

        billing = await BillingCalculator.school_billing(db, school.id, 4, 2026)

        assert billing.lines[0].deployed_days == 10
        assert billing.lines[0].amount == Decimal("10000.00")
        assert billing.lines[0].join_date == date(2026, 4, 21)

    async def test_transfer_bills_both_schools(self, db: AsyncSession):
        school_a = await seed_school(db)
        school_b = await seed_school(db)
        emp = await seed_employee(db)
        first = await seed_posting(
            db, emp, school_a, billing=Decimal("26000"), start_date=date(2026, 3, 1),
        )
        await PostingService.update_posting(
            db, first.id, PostingUpdate(end_date=date(2026, 4, 10)),
        )
        await seed_posting(
            db, emp, school_b, billing=Decimal("52000"), start_date=date(2026, 4, 11),
        )

        a = await BillingCalculator.school_billing(db, school_a.id, 4, 2026)
        b = await BillingCalculator.school_billing(db, school_b.id, 4, 2026)

        assert [line.deployed_days for line in a.lines] == [10]
        assert a.lines[0].leave_date == date(2026, 4, 10)
        assert [line.deployed_days for line in b.lines] == [20]
        assert b.subtotal == Decimal("40000.00")

    async def test_resigned_posting_billed_until_end(self, db: AsyncSession):
        school = await seed_school(db)
        emp = await seed_employee(db)
        posting = await seed_posting(
            db, emp, school, billing=Decimal("26000"), start_date=date(2026, 4, 1),
        )
        await PostingService.update_posting(
            db, posting.id,
            PostingUpdate(status=PostingStatus.resign, end_date=date(2026, 4, 5)),
        )

        billing = await BillingCalculator.school_billing(db, school.id, 4, 2026)

        assert billing.lines[0].deployed_days == 5
        assert billing.subtotal == Decimal("5000.00")

    async def test_approved_deductible_leave_reduces_days(self, db: AsyncSession, hr_user):
        school = await seed_school(db)
        emp = await seed_employee(db)
        posting = await seed_posting(
            db, emp, school, billing=Decimal("26000"), start_date=date(2026, 4, 1),
        )
        unpaid = await LeaveService.create_leave(
            db,
            LeaveCreate(
                employee_id=emp.id,
                posting_id=posting.id,
                leave_type=LeaveType.unpaid,
                start_date=date(2026, 3, 30),
                end_date=date(2026, 4, 3),
            ),
        )
        await LeaveService.approve_leave(db, unpaid.id, hr_user.id)
        # Pending and non-deductible leave do not count
        await LeaveService.create_leave(
            db,
            LeaveCreate(
                employee_id=emp.id,
                posting_id=posting.id,
                leave_type=LeaveType.unpaid,
                start_date=date(2026, 4, 20),
                end_date=date(2026, 4, 21),
            ),
        )
        sick = await LeaveService.create_leave(
            db,
            LeaveCreate(
                employee_id=emp.id,
                posting_id=posting.id,
                leave_type=LeaveType.sick,
                start_date=date(2026, 4, 27),
                end_date=date(2026, 4, 27),
            ),
        )
        await LeaveService.approve_leave(db, sick.id, hr_user.id)

        billing = await BillingCalculator.school_billing(db, school.id, 4, 2026)

        line = billing.lines[0]
        assert line.unpaid_leave_days == 3
        assert line.billable_days == 27
        assert line.amount == Decimal("27000.00")

    async def test_leave_counts_only_on_its_own_posting(self, db: AsyncSession, hr_user):
        school_a = await seed_school(db, name="Alpha")
        school_b = await seed_school(db, name="Beta")
        emp = await seed_employee(db)
        first = await seed_posting(
            db, emp, school_a, billing=Decimal("26000"), start_date=date(2026, 4, 1),
        )
        await PostingService.update_posting(
            db, first.id, PostingUpdate(end_date=date(2026, 4, 10)),
        )
        middle = await seed_posting(
            db, emp, school_b, billing=Decimal("26000"), start_date=date(2026, 4, 11),
        )
        await PostingService.update_posting(
            db, middle.id, PostingUpdate(end_date=date(2026, 4, 20)),
        )
        back = await seed_posting(
            db, emp, school_a, billing=Decimal("26000"), start_date=date(2026, 4, 21),
        )

        # Runs past the end of the first posting; only 8-10 April fall inside it
        early = await LeaveService.create_leave(
            db,
            LeaveCreate(
                employee_id=emp.id,
                posting_id=first.id,
                leave_type=LeaveType.unpaid,
                start_date=date(2026, 4, 8),
                end_date=date(2026, 4, 14),
            ),
        )
        late = await LeaveService.create_leave(
            db,
            LeaveCreate(
                employee_id=emp.id,
                posting_id=back.id,
                leave_type=LeaveType.unpaid,
                start_date=date(2026, 4, 22),
                end_date=date(2026, 4, 23),
            ),
        )
        await LeaveService.approve_leave(db, early.id, hr_user.id)
        await LeaveService.approve_leave(db, late.id, hr_user.id)

        billing = await BillingCalculator.school_billing(db, school_a.id, 4, 2026)

        by_posting = {line.posting_id: line for line in billing.lines}
        assert by_posting[first.id].deployed_days == 10
        assert by_posting[first.id].unpaid_leave_days == 3
        assert by_posting[back.id].deployed_days == 10
        assert by_posting[back.id].unpaid_leave_days == 2
        assert billing.subtotal == Decimal("15000.00")

    async def test_no_postings_gives_no_lines(self, db: AsyncSession):
        school = await seed_school(db)

        billing = await BillingCalculator.school_billing(db, school.id, 4, 2026)

        assert billing.lines == []
        assert billing.subtotal == Decimal("0.00")

    async def test_zero_rate_logs_warning(self, db: AsyncSession, caplog):
        caplog.set_level(logging.WARNING, logger="backend.billing.calculator")
        school = await seed_school(db)
        emp = await seed_employee(db)
        await seed_posting(db, emp, school, billing=Decimal("0"), start_date=date(2026, 4, 1))

        billing = await BillingCalculator.school_billing(db, school.id, 4, 2026)

        assert billing.lines[0].amount == Decimal("0.00")
        assert "zero monthly billing salary" in caplog.text
