"""Employee router — employee master API endpoints.

Routes:
    /employees          — List, create employees
    /employees/active   — Active employees (posting form dropdown)
    /employees/{id}     — Get, update employee
"""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth.dependencies import get_current_user, require_staffing
from backend.auth.models import User
from backend.common.constants import EmploymentStatus
from backend.common.pagination import PaginationParams
from backend.database import get_db
from backend.employees.schemas import EmployeeBrief, EmployeeCreate, EmployeeOut, EmployeeUpdate
from backend.employees.service import EmployeeService

router = APIRouter(prefix="", tags=["employees"])


# ── GET /employees — List employees ─────────────────────────────────

@router.get("")
async def list_employees(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    pagination: PaginationParams = Depends(),
    search: Optional[str] = Query(None, description="Search by name, email, or employee code"),
    employment_status: Optional[EmploymentStatus] = Query(None),
    department: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
):
    """List employees with pagination, search, and filtering."""
    result = await EmployeeService.list_employees(
        db,
        pagination,
        search=search,
        employment_status=employment_status,
        department=department,
        is_active=is_active,
    )
    return result.envelope(EmployeeOut)


# ── GET /employees/active ───────────────────────────────────────────
# NOTE: must be defined before /{employee_id}.

@router.get("/active")
async def list_active_employees(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    employees = await EmployeeService.list_active(db)
    return {
        "data": [EmployeeBrief.model_validate(e).model_dump(mode="json") for e in employees],
        "message": "Active employees retrieved successfully.",
    }


# ── GET /employees/{id} ─────────────────────────────────────────────

@router.get("/{employee_id}")
async def get_employee(
    employee_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Retrieve an employee with the schools currently listing them as trainer."""
    detail = await EmployeeService.get_employee(db, employee_id)
    return {
        "data": detail.model_dump(mode="json"),
        "message": "Employee retrieved successfully.",
    }


# ── POST /employees — Create employee ──────────────────────────────

@router.post("", status_code=201)
async def create_employee(
    body: EmployeeCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_staffing),
):
    """Create a new employee record. Requires **hr** role or above."""
    employee = await EmployeeService.create_employee(db, body, actor_id=current_user.id)
    detail = await EmployeeService.get_employee(db, employee.id)
    return {
        "data": detail.model_dump(mode="json"),
        "message": "Employee created successfully.",
    }


# ── PUT /employees/{id} — Update employee ──────────────────────────

@router.put("/{employee_id}")
async def update_employee(
    employee_id: uuid.UUID,
    body: EmployeeUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_staffing),
):
    employee = await EmployeeService.update_employee(
        db, employee_id, body, actor_id=current_user.id,
    )
    detail = await EmployeeService.get_employee(db, employee.id)
    return {
        "data": detail.model_dump(mode="json"),
        "message": "Employee updated successfully.",
    }
