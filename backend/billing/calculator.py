"""Monthly billing calculator — turns postings and approved leave into
invoice line items for one school."""

from __future__ import annotations

import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.billing.dates import (
    deployed_days,
    month_range,
    overlap_days,
    per_day_rate,
    prorated_amount,
    quantize,
)
from backend.common.constants import LeaveStatus
from backend.config import settings
from backend.leave.models import Leave
from backend.postings.models import EmployeePosting

logger = logging.getLogger(__name__)


class BillingLine(BaseModel):
    posting_id: uuid.UUID
    employee_id: uuid.UUID
    employee_name: str
    designation: Optional[str]
    monthly_rate: Decimal
    deployed_days: int
    unpaid_leave_days: int
    billable_days: int
    per_day_rate: Decimal
    amount: Decimal
    join_date: Optional[date]
    leave_date: Optional[date]


class SchoolBilling(BaseModel):
    school_id: uuid.UUID
    month: int
    year: int
    lines: list[BillingLine] = []

    @property
    def subtotal(self) -> Decimal:
        return quantize(sum((line.amount for line in self.lines), Decimal("0")))


class BillingCalculator:

    @staticmethod
    async def school_billing(
        db: AsyncSession,
        school_id: uuid.UUID,
        month: int,
        year: int,
        *,
        working_days: Optional[int] = None,
    ) -> SchoolBilling:
        """Bill every posting at *school_id* that overlaps the month."""
        working_days = working_days or settings.BILLING_WORKING_DAYS_PER_MONTH
        first, last = month_range(month, year)

        result = await db.execute(
            select(EmployeePosting)
            .where(
                EmployeePosting.school_id == school_id,
                EmployeePosting.start_date <= last,
                or_(EmployeePosting.end_date.is_(None), EmployeePosting.end_date >= first),
            )
            .order_by(EmployeePosting.start_date, EmployeePosting.id)
            .execution_options(populate_existing=True)
        )
        postings = result.scalars().all()

        billing = SchoolBilling(school_id=school_id, month=month, year=year)
        for posting in postings:
            days = deployed_days(posting.start_date, posting.end_date, month, year)
            if days == 0:
                continue

            unpaid = await BillingCalculator._unpaid_leave_days(db, posting, first, last)
            billable = max(0, days - unpaid)
            rate = posting.monthly_billing_salary or Decimal("0")
            if rate <= 0:
                logger.warning(
                    "Posting %s has a zero monthly billing salary (%02d/%d)",
                    posting.id, month, year,
                )

            billing.lines.append(
                BillingLine(
                    posting_id=posting.id,
                    employee_id=posting.employee_id,
                    employee_name=posting.employee.full_name,
                    designation=posting.employee.designation,
                    monthly_rate=rate,
                    deployed_days=days,
                    unpaid_leave_days=unpaid,
                    billable_days=billable,
                    per_day_rate=quantize(per_day_rate(rate, working_days)),
                    amount=prorated_amount(rate, billable, working_days),
                    join_date=posting.start_date,
                    leave_date=posting.end_date,
                )
            )

        logger.info(
            "School %s billing %02d/%d: %d lines, subtotal %s",
            school_id, month, year, len(billing.lines), billing.subtotal,
        )
        return billing

    @staticmethod
    async def _unpaid_leave_days(
        db: AsyncSession,
        posting: EmployeePosting,
        first: date,
        last: date,
    ) -> int:
        """Approved deductible leave days on *posting* while it was deployed
        inside [first, last]."""
        window_start = max(first, posting.start_date)
        window_end = min(last, posting.end_date or last)
        result = await db.execute(
            select(Leave.start_date, Leave.end_date).where(
                Leave.posting_id == posting.id,
                Leave.is_deductible.is_(True),
                Leave.status == LeaveStatus.approved,
                Leave.start_date <= window_end,
                Leave.end_date >= window_start,
            )
        )
        return sum(
            overlap_days(start, end, window_start, window_end) for start, end in result.all()
        )
