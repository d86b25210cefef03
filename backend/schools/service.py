"""School service layer — CRUD plus the current-trainer set operations.

The trainer set is only ever written through :meth:`SchoolService.add_trainer`
and :meth:`SchoolService.remove_trainer`; both are idempotent.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Optional

from sqlalchemy import delete, func, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.common.audit import create_audit_entry
from backend.common.constants import SchoolStatus
from backend.common.exceptions import ConflictError, NotFoundException
from backend.common.filters import apply_filters, apply_search
from backend.common.pagination import PaginatedResponse, PaginationParams, paginate
from backend.employees.models import Employee
from backend.employees.schemas import EmployeeBrief
from backend.schools.models import School, school_trainers, staffing_status
from backend.schools.schemas import SchoolCreate, SchoolOut, SchoolUpdate

logger = logging.getLogger(__name__)


class SchoolService:
    """Async CRUD operations for schools."""

    # ── Trainer set ─────────────────────────────────────────────────

    @staticmethod
    async def trainer_ids(db: AsyncSession, school_id: uuid.UUID) -> set[uuid.UUID]:
        result = await db.execute(
            select(school_trainers.c.employee_id).where(
                school_trainers.c.school_id == school_id,
            )
        )
        return {row[0] for row in result.all()}

    @staticmethod
    async def has_trainer(
        db: AsyncSession, school_id: uuid.UUID, employee_id: uuid.UUID,
    ) -> bool:
        result = await db.execute(
            select(func.count())
            .select_from(school_trainers)
            .where(
                school_trainers.c.school_id == school_id,
                school_trainers.c.employee_id == employee_id,
            )
        )
        return (result.scalar() or 0) > 0

    @staticmethod
    async def add_trainer(
        db: AsyncSession, school_id: uuid.UUID, employee_id: uuid.UUID,
    ) -> bool:
        """Set-union: add *employee_id* unless already present. Returns True if added."""
        if await SchoolService.has_trainer(db, school_id, employee_id):
            return False
        await db.execute(
            insert(school_trainers).values(school_id=school_id, employee_id=employee_id)
        )
        return True

    @staticmethod
    async def remove_trainer(
        db: AsyncSession, school_id: uuid.UUID, employee_id: uuid.UUID,
    ) -> bool:
        """Set-difference: removing an absent member is a no-op. Returns True if removed."""
        result = await db.execute(
            delete(school_trainers).where(
                school_trainers.c.school_id == school_id,
                school_trainers.c.employee_id == employee_id,
            )
        )
        return (result.rowcount or 0) > 0

    @staticmethod
    async def schools_of_trainer(db: AsyncSession, employee_id: uuid.UUID) -> list[School]:
        """Schools whose trainer set contains *employee_id*."""
        result = await db.execute(
            select(School)
            .join(school_trainers, school_trainers.c.school_id == School.id)
            .where(school_trainers.c.employee_id == employee_id)
            .order_by(School.name)
        )
        return list(result.scalars().all())

    @staticmethod
    async def trainers(db: AsyncSession, school_id: uuid.UUID) -> list[Employee]:
        result = await db.execute(
            select(Employee)
            .join(school_trainers, school_trainers.c.employee_id == Employee.id)
            .where(school_trainers.c.school_id == school_id)
            .order_by(Employee.full_name)
        )
        return list(result.scalars().all())

    # ── List ────────────────────────────────────────────────────────

    @staticmethod
    async def list_schools(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        search: Optional[str] = None,
        status: Optional[SchoolStatus] = None,
        city: Optional[str] = None,
    ) -> PaginatedResponse:
        query = select(School)
        query = apply_filters(query, School, {"status": status, "city__ilike": city})
        if search:
            query = apply_search(query, School, search, ["name", "code", "city"])
        if not pagination.sort:
            query = query.order_by(School.name)
        return await paginate(db, query, pagination, model=School)

    # ── Get single ──────────────────────────────────────────────────

    @staticmethod
    async def get_school_model(db: AsyncSession, school_id: uuid.UUID) -> School:
        school = await db.get(School, school_id)
        if school is None:
            raise NotFoundException("School", str(school_id))
        return school

    @staticmethod
    async def get_school(db: AsyncSession, school_id: uuid.UUID) -> SchoolOut:
        """Load a school with its current trainers and staffing figures."""
        school = await SchoolService.get_school_model(db, school_id)
        return await SchoolService.to_out(db, school)

    @staticmethod
    async def to_out(db: AsyncSession, school: School) -> SchoolOut:
        trainers = await SchoolService.trainers(db, school.id)
        detail = SchoolOut.model_validate(school)
        detail.current_trainers = [EmployeeBrief.model_validate(t) for t in trainers]
        detail.current_count = len(trainers)
        detail.shortage = max(0, school.trainers_required - len(trainers))
        detail.staffing_status = staffing_status(len(trainers), school.trainers_required)
        return detail

    # ── Create ──────────────────────────────────────────────────────

    @staticmethod
    async def create_school(
        db: AsyncSession,
        data: SchoolCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> School:
        school = School(**data.model_dump(), created_by=actor_id, updated_by=actor_id)
        db.add(school)
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            raise ConflictError("code", data.code)

        await create_audit_entry(
            db,
            action="create",
            entity_type="school",
            entity_id=school.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json"),
        )
        logger.info("Created school %s (%s)", school.code, school.id)
        return school

    # ── Update ──────────────────────────────────────────────────────

    @staticmethod
    async def update_school(
        db: AsyncSession,
        school_id: uuid.UUID,
        data: SchoolUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> School:
        school = await SchoolService.get_school_model(db, school_id)

        changes = data.model_dump(exclude_unset=True)
        old_values: dict[str, Any] = {}
        for field, value in changes.items():
            old = getattr(school, field)
            old_values[field] = getattr(old, "value", old)
            setattr(school, field, value)
        school.updated_by = actor_id
        await db.flush()

        if changes:
            await create_audit_entry(
                db,
                action="update",
                entity_type="school",
                entity_id=school.id,
                actor_id=actor_id,
                old_values=old_values,
                new_values=data.model_dump(mode="json", exclude_unset=True),
            )
        return school
