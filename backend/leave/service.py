"""Leave service — record, review and list trainer leave.

Approved, deductible leave is read by the billing calculator to reduce
billable days; nothing here touches invoices directly.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.common.audit import create_audit_entry
from backend.common.constants import LeaveStatus, LeaveType
from backend.common.exceptions import NotFoundException, ValidationException
from backend.common.pagination import PaginatedResponse, PaginationParams, paginate
from backend.employees.service import EmployeeService
from backend.leave.models import Leave
from backend.leave.schemas import LeaveCreate
from backend.postings.models import EmployeePosting

logger = logging.getLogger(__name__)


def inclusive_days(start: date, end: date) -> int:
    """Calendar days from *start* to *end*, both ends counted."""
    return (end - start).days + 1


class LeaveService:
    """Leave lifecycle: pending → approved | rejected, pending/approved → cancelled."""

    @staticmethod
    async def _get(db: AsyncSession, leave_id: uuid.UUID) -> Leave:
        result = await db.execute(
            select(Leave)
            .where(Leave.id == leave_id)
            .execution_options(populate_existing=True)
        )
        leave = result.scalars().first()
        if leave is None:
            raise NotFoundException("Leave", str(leave_id))
        return leave

    @staticmethod
    async def get_leave(db: AsyncSession, leave_id: uuid.UUID) -> Leave:
        return await LeaveService._get(db, leave_id)

    # ─────────────────────────────────────────────────────────────────
    # Create
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def create_leave(
        db: AsyncSession,
        data: LeaveCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Leave:
        """Record leave; the school is taken from the posting."""
        await EmployeeService.get_employee_model(db, data.employee_id)

        posting = await db.get(EmployeePosting, data.posting_id)
        if posting is None:
            raise NotFoundException("EmployeePosting", str(data.posting_id))
        if posting.employee_id != data.employee_id:
            raise ValidationException(
                {"posting_id": ["Posting does not belong to this employee."]}
            )

        is_deductible = data.is_deductible
        if is_deductible is None:
            is_deductible = data.leave_type == LeaveType.unpaid

        leave = Leave(
            employee_id=data.employee_id,
            school_id=posting.school_id,
            posting_id=posting.id,
            leave_type=data.leave_type,
            start_date=data.start_date,
            end_date=data.end_date,
            number_of_days=inclusive_days(data.start_date, data.end_date),
            reason=data.reason,
            is_deductible=is_deductible,
            status=LeaveStatus.pending,
            created_by=actor_id,
        )
        db.add(leave)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="leave",
            entity_id=leave.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json"),
        )
        return await LeaveService._get(db, leave.id)

    # ─────────────────────────────────────────────────────────────────
    # Review
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def approve_leave(
        db: AsyncSession,
        leave_id: uuid.UUID,
        reviewer_id: uuid.UUID,
        *,
        remarks: Optional[str] = None,
    ) -> Leave:
        return await LeaveService._review(
            db, leave_id, reviewer_id, LeaveStatus.approved, remarks,
        )

    @staticmethod
    async def reject_leave(
        db: AsyncSession,
        leave_id: uuid.UUID,
        reviewer_id: uuid.UUID,
        reason: str,
    ) -> Leave:
        return await LeaveService._review(
            db, leave_id, reviewer_id, LeaveStatus.rejected, reason,
        )

    @staticmethod
    async def _review(
        db: AsyncSession,
        leave_id: uuid.UUID,
        reviewer_id: uuid.UUID,
        target: LeaveStatus,
        remarks: Optional[str],
    ) -> Leave:
        leave = await LeaveService._get(db, leave_id)
        if leave.status != LeaveStatus.pending:
            raise ValidationException(
                {"status": [f"Leave is already {leave.status.value}."]}
            )

        now = datetime.now(timezone.utc)
        old_status = leave.status.value
        leave.status = target
        leave.reviewed_by = reviewer_id
        leave.reviewed_at = now
        leave.reviewer_remarks = remarks
        await db.flush()

        await create_audit_entry(
            db,
            action="approve" if target == LeaveStatus.approved else "reject",
            entity_type="leave",
            entity_id=leave.id,
            actor_id=reviewer_id,
            old_values={"status": old_status},
            new_values={"status": target.value, "remarks": remarks},
        )
        logger.info("Leave %s %s by %s", leave.id, target.value, reviewer_id)
        return leave

    # ─────────────────────────────────────────────────────────────────
    # Cancel
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def cancel_leave(
        db: AsyncSession,
        leave_id: uuid.UUID,
        actor_id: uuid.UUID,
        *,
        reason: Optional[str] = None,
    ) -> Leave:
        leave = await LeaveService._get(db, leave_id)
        if leave.status not in (LeaveStatus.pending, LeaveStatus.approved):
            raise ValidationException(
                {"status": [f"Cannot cancel a leave with status '{leave.status.value}'."]}
            )

        old_status = leave.status.value
        leave.status = LeaveStatus.cancelled
        leave.cancelled_at = datetime.now(timezone.utc)
        if reason:
            leave.reviewer_remarks = f"Cancelled: {reason}"
        await db.flush()

        await create_audit_entry(
            db,
            action="cancel",
            entity_type="leave",
            entity_id=leave.id,
            actor_id=actor_id,
            old_values={"status": old_status},
            new_values={"status": LeaveStatus.cancelled.value},
        )
        return leave

    # ─────────────────────────────────────────────────────────────────
    # List
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def list_leaves(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        employee_id: Optional[uuid.UUID] = None,
        school_id: Optional[uuid.UUID] = None,
        status: Optional[LeaveStatus] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> PaginatedResponse:
        query = select(Leave)

        if employee_id:
            query = query.where(Leave.employee_id == employee_id)
        if school_id:
            query = query.where(Leave.school_id == school_id)
        if status:
            query = query.where(Leave.status == status)
        # Overlap with the requested window
        if from_date:
            query = query.where(Leave.end_date >= from_date)
        if to_date:
            query = query.where(Leave.start_date <= to_date)

        if not pagination.sort:
            query = query.order_by(Leave.start_date.desc())
        return await paginate(db, query, pagination, model=Leave)
