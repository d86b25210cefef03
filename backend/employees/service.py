"""Employee service layer — async CRUD for the employee master.

All methods are static and receive an ``AsyncSession`` as the first arg.
Uses:
  - ``paginate()`` from backend.common.pagination
  - ``apply_filters / apply_search`` from backend.common.filters
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.common.audit import create_audit_entry
from backend.common.constants import EmploymentStatus
from backend.common.exceptions import ConflictError, NotFoundException, ValidationException
from backend.common.filters import apply_filters, apply_search
from backend.common.pagination import PaginatedResponse, PaginationParams, paginate
from backend.employees.models import Employee
from backend.employees.schemas import EmployeeCreate, EmployeeOut, EmployeeUpdate, SchoolRef
from backend.schools.service import SchoolService

logger = logging.getLogger(__name__)


class EmployeeService:
    """Async CRUD operations for employees."""

    # ── List (paginated, searchable, filterable) ────────────────────

    @staticmethod
    async def list_employees(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        search: Optional[str] = None,
        employment_status: Optional[EmploymentStatus] = None,
        department: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> PaginatedResponse:
        """Return a paginated, filtered, searchable employee list."""
        query = select(Employee)

        filters: dict[str, Any] = {
            "employment_status": employment_status,
            "department__ilike": department,
            "is_active": is_active,
        }
        query = apply_filters(query, Employee, filters)

        if search:
            query = apply_search(
                query,
                Employee,
                search,
                ["full_name", "email", "employee_code"],
            )

        if not pagination.sort:
            query = query.order_by(Employee.full_name)

        return await paginate(db, query, pagination, model=Employee)

    @staticmethod
    async def list_active(db: AsyncSession) -> Sequence[Employee]:
        """Active employees, used to populate posting forms."""
        result = await db.execute(
            select(Employee)
            .where(
                Employee.is_active.is_(True),
                Employee.employment_status == EmploymentStatus.active,
            )
            .order_by(Employee.full_name)
        )
        return result.scalars().all()

    # ── Get single ──────────────────────────────────────────────────

    @staticmethod
    async def get_employee_model(db: AsyncSession, employee_id: uuid.UUID) -> Employee:
        employee = await db.get(Employee, employee_id)
        if employee is None:
            raise NotFoundException("Employee", str(employee_id))
        return employee

    @staticmethod
    async def get_employee(db: AsyncSession, employee_id: uuid.UUID) -> EmployeeOut:
        """Fetch an employee together with the schools currently listing them."""
        employee = await EmployeeService.get_employee_model(db, employee_id)
        detail = EmployeeOut.model_validate(employee)
        schools = await SchoolService.schools_of_trainer(db, employee.id)
        detail.current_schools = [SchoolRef.model_validate(s) for s in schools]
        return detail

    # ── Create ──────────────────────────────────────────────────────

    @staticmethod
    async def create_employee(
        db: AsyncSession,
        data: EmployeeCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Employee:
        """Create a new employee record."""
        employee = Employee(
            **data.model_dump(),
            created_by=actor_id,
            updated_by=actor_id,
        )

        db.add(employee)
        try:
            await db.flush()
        except IntegrityError as exc:
            await db.rollback()
            err = str(exc.orig)
            if "employee_code" in err:
                raise ConflictError("employee_code", data.employee_code)
            if "email" in err:
                raise ConflictError("email", data.email)
            raise

        await create_audit_entry(
            db,
            action="create",
            entity_type="employee",
            entity_id=employee.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json"),
        )
        logger.info("Created employee %s (%s)", employee.employee_code, employee.id)
        return employee

    # ── Update ──────────────────────────────────────────────────────

    @staticmethod
    async def update_employee(
        db: AsyncSession,
        employee_id: uuid.UUID,
        data: EmployeeUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Employee:
        """Partial-update an existing employee."""
        employee = await EmployeeService.get_employee_model(db, employee_id)

        changes = data.model_dump(exclude_unset=True)
        if not changes:
            return employee

        old_values: dict[str, Any] = {}
        for field, value in changes.items():
            old_val = getattr(employee, field, None)
            if hasattr(old_val, "value"):
                old_val = old_val.value
            old_values[field] = old_val
            setattr(employee, field, value)

        if employee.date_of_exit and employee.date_of_exit < employee.date_of_joining:
            raise ValidationException(
                {"date_of_exit": ["date_of_exit cannot be before date_of_joining."]},
            )
        if "employment_status" in changes:
            employee.is_active = employee.employment_status == EmploymentStatus.active

        employee.updated_at = datetime.now(timezone.utc)
        employee.updated_by = actor_id

        try:
            await db.flush()
        except IntegrityError as exc:
            await db.rollback()
            if "email" in str(exc.orig):
                raise ConflictError("email", changes.get("email", ""))
            raise

        await create_audit_entry(
            db,
            action="update",
            entity_type="employee",
            entity_id=employee.id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=data.model_dump(mode="json", exclude_unset=True),
        )
        return employee
