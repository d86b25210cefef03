"""School router — client school API endpoints.

Routes:
    /schools                 — List, create schools
    /schools/{id}            — Get, update school
    /schools/{id}/trainers   — Current trainer set
"""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth.dependencies import get_current_user, require_staffing
from backend.auth.models import User
from backend.common.constants import SchoolStatus
from backend.common.pagination import PaginationParams
from backend.database import get_db
from backend.employees.schemas import EmployeeBrief
from backend.schools.schemas import SchoolCreate, SchoolOut, SchoolUpdate
from backend.schools.service import SchoolService

router = APIRouter(prefix="", tags=["schools"])


@router.get("")
async def list_schools(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    pagination: PaginationParams = Depends(),
    search: Optional[str] = Query(None, description="Search by name, code, or city"),
    status: Optional[SchoolStatus] = Query(None),
    city: Optional[str] = Query(None),
):
    """List schools. Trainer counts are not included; use the detail endpoint."""
    result = await SchoolService.list_schools(
        db, pagination, search=search, status=status, city=city,
    )
    return result.envelope(SchoolOut)


@router.get("/{school_id}")
async def get_school(
    school_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    detail = await SchoolService.get_school(db, school_id)
    return {
        "data": detail.model_dump(mode="json"),
        "message": "School retrieved successfully.",
    }


@router.get("/{school_id}/trainers")
async def list_school_trainers(
    school_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    await SchoolService.get_school_model(db, school_id)
    trainers = await SchoolService.trainers(db, school_id)
    return {
        "data": [EmployeeBrief.model_validate(t).model_dump(mode="json") for t in trainers],
        "message": "Current trainers retrieved successfully.",
    }


@router.post("", status_code=201)
async def create_school(
    body: SchoolCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_staffing),
):
    """Register a client school. Requires **hr** role or above."""
    school = await SchoolService.create_school(db, body, actor_id=current_user.id)
    detail = await SchoolService.to_out(db, school)
    return {
        "data": detail.model_dump(mode="json"),
        "message": "School created successfully.",
    }


@router.put("/{school_id}")
async def update_school(
    school_id: uuid.UUID,
    body: SchoolUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_staffing),
):
    school = await SchoolService.update_school(db, school_id, body, actor_id=current_user.id)
    detail = await SchoolService.to_out(db, school)
    return {
        "data": detail.model_dump(mode="json"),
        "message": "School updated successfully.",
    }
