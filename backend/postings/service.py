"""Employee-posting service layer — create / update rules around the
synchronizer, plus history, current-posting and analytics reads.

All methods are static and receive an ``AsyncSession`` as the first arg.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.common.audit import create_audit_entry
from backend.common.constants import (
    TERMINAL_POSTING_STATUSES,
    PostingStatus,
    SchoolStatus,
)
from backend.common.exceptions import (
    InvalidTransitionException,
    NotFoundException,
    ValidationException,
)
from backend.common.filters import apply_filters
from backend.common.pagination import PaginatedResponse, PaginationParams, paginate
from backend.employees.schemas import EmployeeBrief
from backend.employees.service import EmployeeService
from backend.postings.models import EmployeePosting
from backend.postings.schemas import (
    CurrentPostingOut,
    EmploymentHistoryOut,
    PostingAnalyticsOut,
    PostingCreate,
    PostingOut,
    PostingSyncResult,
    PostingUpdate,
    SchoolStaffing,
    StatusCount,
)
from backend.postings.synchronizer import PostingSynchronizer
from backend.schools.models import School, school_trainers, staffing_status
from backend.schools.schemas import SchoolBrief
from backend.schools.service import SchoolService

logger = logging.getLogger(__name__)

TRANSFER_REMARK = "Transferred from previous school"


class PostingService:
    """Posting lifecycle operations."""

    # ── Reads ───────────────────────────────────────────────────────

    @staticmethod
    async def get_posting_model(db: AsyncSession, posting_id: uuid.UUID) -> EmployeePosting:
        result = await db.execute(
            select(EmployeePosting)
            .where(EmployeePosting.id == posting_id)
            .execution_options(populate_existing=True)
        )
        posting = result.scalars().first()
        if posting is None:
            raise NotFoundException("EmployeePosting", str(posting_id))
        return posting

    @staticmethod
    async def get_posting(db: AsyncSession, posting_id: uuid.UUID) -> PostingOut:
        posting = await PostingService.get_posting_model(db, posting_id)
        return PostingOut.model_validate(posting)

    @staticmethod
    async def get_active_posting(
        db: AsyncSession, employee_id: uuid.UUID,
    ) -> Optional[EmployeePosting]:
        result = await db.execute(
            select(EmployeePosting).where(
                EmployeePosting.employee_id == employee_id,
                EmployeePosting.is_active.is_(True),
            )
        )
        return result.scalars().first()

    @staticmethod
    async def list_postings(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        employee_id: Optional[uuid.UUID] = None,
        school_id: Optional[uuid.UUID] = None,
        status: Optional[PostingStatus] = None,
        is_active: Optional[bool] = None,
    ) -> PaginatedResponse:
        query = select(EmployeePosting)
        query = apply_filters(
            query,
            EmployeePosting,
            {
                "employee_id": employee_id,
                "school_id": school_id,
                "status": status,
                "is_active": is_active,
            },
        )
        if not pagination.sort:
            query = query.order_by(
                EmployeePosting.start_date.desc(), EmployeePosting.created_at.desc(),
            )
        return await paginate(db, query, pagination, model=EmployeePosting)

    # ── Create ──────────────────────────────────────────────────────

    @staticmethod
    async def create_posting(
        db: AsyncSession,
        data: PostingCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> tuple[EmployeePosting, PostingSyncResult]:
        """Insert a posting (inactive) and let the synchronizer activate it."""
        await EmployeeService.get_employee_model(db, data.employee_id)
        school = await SchoolService.get_school_model(db, data.school_id)
        if school.status != SchoolStatus.active:
            raise ValidationException(
                {"school_id": [f"School '{school.name}' is not active."]},
            )

        status = data.status
        remark = data.remark
        current = await PostingService.get_active_posting(db, data.employee_id)

        if status == PostingStatus.change_school:
            if current is None:
                raise ValidationException(
                    {"status": ["Employee has no active posting to transfer from."]},
                )
            if current.school_id == data.school_id:
                raise ValidationException(
                    {"school_id": ["Employee is already posted at this school."]},
                )
        elif status == PostingStatus.continue_ and current is not None:
            if current.school_id == data.school_id:
                raise ValidationException(
                    {"school_id": ["Employee is already posted at this school."]},
                )
            status = PostingStatus.change_school
            remark = remark or TRANSFER_REMARK

        posting = EmployeePosting(
            employee_id=data.employee_id,
            school_id=data.school_id,
            monthly_billing_salary=data.monthly_billing_salary,
            tds_percent=data.tds_percent,
            gst_percent=data.gst_percent,
            start_date=data.start_date or date.today(),
            status=status,
            remark=remark,
            is_active=False,
            created_by=actor_id,
            updated_by=actor_id,
        )
        db.add(posting)
        await db.flush()

        sync = await PostingSynchronizer.reconcile(db, posting)

        await create_audit_entry(
            db,
            action="create",
            entity_type="employee_posting",
            entity_id=posting.id,
            actor_id=actor_id,
            new_values={
                **data.model_dump(mode="json"),
                "status": status.value,
                "superseded_posting_ids": [str(i) for i in sync.superseded_posting_ids],
            },
        )
        return posting, sync

    # ── Update ──────────────────────────────────────────────────────

    @staticmethod
    async def update_posting(
        db: AsyncSession,
        posting_id: uuid.UUID,
        data: PostingUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> tuple[EmployeePosting, Optional[PostingSyncResult]]:
        posting = await PostingService.get_posting_model(db, posting_id)
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            return posting, None

        new_status: PostingStatus = changes.get("status", posting.status)
        new_school_id: uuid.UUID = changes.get("school_id", posting.school_id)
        status_changed = new_status != posting.status
        school_changed = new_school_id != posting.school_id

        if status_changed:
            PostingService._check_transition(posting.status, new_status)
        if new_status == PostingStatus.change_school and status_changed:
            current = await PostingService.get_active_posting(db, posting.employee_id)
            if current is None or current.id == posting.id:
                raise ValidationException(
                    {"status": ["Employee has no other active posting to transfer from."]},
                )
        if school_changed:
            school = await SchoolService.get_school_model(db, new_school_id)
            if school.status != SchoolStatus.active:
                raise ValidationException(
                    {"school_id": [f"School '{school.name}' is not active."]},
                )

        effective_end = changes.get("end_date", posting.end_date)
        effective_start = changes.get("start_date", posting.start_date)
        if effective_end is not None and effective_end < effective_start:
            raise ValidationException(
                {"end_date": ["end_date cannot be before start_date."]},
            )

        # Leaving the old school happens before the synchronizer adds the new one
        if school_changed and posting.is_active:
            await SchoolService.remove_trainer(db, posting.school_id, posting.employee_id)

        old_values: dict[str, Any] = {}
        for field, value in changes.items():
            old_val = getattr(posting, field)
            old_values[field] = getattr(old_val, "value", old_val)
            setattr(posting, field, value)
        posting.updated_at = datetime.now(timezone.utc)
        posting.updated_by = actor_id
        await db.flush()

        sync: Optional[PostingSyncResult] = None
        if status_changed or school_changed or posting.is_active:
            sync = await PostingSynchronizer.reconcile(db, posting)

        await create_audit_entry(
            db,
            action="update",
            entity_type="employee_posting",
            entity_id=posting.id,
            actor_id=actor_id,
            old_values={k: str(v) if v is not None else None for k, v in old_values.items()},
            new_values=data.model_dump(mode="json", exclude_unset=True),
        )
        return posting, sync

    @staticmethod
    def _check_transition(current: PostingStatus, target: PostingStatus) -> None:
        if current in TERMINAL_POSTING_STATUSES and target not in TERMINAL_POSTING_STATUSES:
            raise InvalidTransitionException(
                "Posting",
                current,
                target,
                detail=(
                    f"A '{current.value}' posting cannot be reactivated; "
                    "create a new posting instead."
                ),
            )
        if target == PostingStatus.continue_ and current != PostingStatus.continue_:
            raise InvalidTransitionException(
                "Posting",
                current,
                target,
                detail="Cannot change back to 'continue'; create a new posting instead.",
            )

    # ── History / current ───────────────────────────────────────────

    @staticmethod
    async def employment_history(
        db: AsyncSession, employee_id: uuid.UUID,
    ) -> EmploymentHistoryOut:
        employee = await EmployeeService.get_employee_model(db, employee_id)
        result = await db.execute(
            select(EmployeePosting)
            .where(EmployeePosting.employee_id == employee_id)
            .order_by(EmployeePosting.start_date.desc(), EmployeePosting.created_at.desc())
            .execution_options(populate_existing=True)
        )
        postings = [PostingOut.model_validate(p) for p in result.scalars().all()]
        schools = await SchoolService.schools_of_trainer(db, employee_id)
        return EmploymentHistoryOut(
            employee=EmployeeBrief.model_validate(employee),
            postings=postings,
            current_posting=next((p for p in postings if p.is_active), None),
            current_schools=[SchoolBrief.model_validate(s) for s in schools],
        )

    @staticmethod
    async def current_posting(
        db: AsyncSession, employee_id: uuid.UUID,
    ) -> CurrentPostingOut:
        employee = await EmployeeService.get_employee_model(db, employee_id)
        active = await PostingService.get_active_posting(db, employee_id)
        current: Optional[PostingOut] = None
        if active is not None:
            current = await PostingService.get_posting(db, active.id)
        schools = await SchoolService.schools_of_trainer(db, employee_id)
        return CurrentPostingOut(
            employee=EmployeeBrief.model_validate(employee),
            current_posting=current,
            current_schools=[SchoolBrief.model_validate(s) for s in schools],
            is_currently_posted=current is not None,
        )

    # ── Analytics ───────────────────────────────────────────────────

    @staticmethod
    async def analytics(db: AsyncSession) -> PostingAnalyticsOut:
        rows = await db.execute(
            select(EmployeePosting.status, EmployeePosting.is_active, func.count())
            .group_by(EmployeePosting.status, EmployeePosting.is_active)
        )
        counts = {s: StatusCount(status=s) for s in PostingStatus}
        total_active = 0
        for status, is_active, count in rows.all():
            if is_active:
                counts[status].active += count
                total_active += count
            else:
                counts[status].inactive += count

        trainer_counts = await db.execute(
            select(school_trainers.c.school_id, func.count())
            .group_by(school_trainers.c.school_id)
        )
        current_by_school = dict(trainer_counts.all())

        schools = await db.execute(
            select(School)
            .where(School.status == SchoolStatus.active)
            .order_by(School.name)
        )
        staffing = []
        for school in schools.scalars().all():
            current = current_by_school.get(school.id, 0)
            staffing.append(
                SchoolStaffing(
                    school_id=school.id,
                    school_name=school.name,
                    trainers_required=school.trainers_required,
                    current_count=current,
                    shortage=max(0, school.trainers_required - current),
                    staffing_status=staffing_status(current, school.trainers_required),
                )
            )

        return PostingAnalyticsOut(
            status_counts=list(counts.values()),
            total_active_postings=total_active,
            schools=staffing,
        )
