"""Leave router — record, approve / reject / cancel and list trainer leave.

All endpoints require the **hr** role (admin inherits it).
"""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth.dependencies import require_staffing
from backend.auth.models import User
from backend.common.constants import LeaveStatus
from backend.common.pagination import PaginationParams
from backend.database import get_db
from backend.leave.schemas import LeaveCreate, LeaveOut, LeaveRejectRequest, LeaveReviewRequest
from backend.leave.service import LeaveService

router = APIRouter(prefix="", tags=["leave"])


# ── GET /leaves ─────────────────────────────────────────────────────

@router.get("")
async def list_leaves(
    pagination: PaginationParams = Depends(),
    employee_id: Optional[uuid.UUID] = Query(None),
    school_id: Optional[uuid.UUID] = Query(None),
    status: Optional[LeaveStatus] = Query(None),
    from_date: Optional[date] = Query(None),
    to_date: Optional[date] = Query(None),
    user: User = Depends(require_staffing),
    db: AsyncSession = Depends(get_db),
):
    result = await LeaveService.list_leaves(
        db,
        pagination,
        employee_id=employee_id,
        school_id=school_id,
        status=status,
        from_date=from_date,
        to_date=to_date,
    )
    return result.envelope(LeaveOut)


# ── POST /leaves ────────────────────────────────────────────────────

@router.post("", response_model=LeaveOut, status_code=201)
async def create_leave(
    body: LeaveCreate,
    user: User = Depends(require_staffing),
    db: AsyncSession = Depends(get_db),
):
    """Record leave for an employee's posting. Starts as ``pending``."""
    return await LeaveService.create_leave(db, body, actor_id=user.id)


# ── GET /leaves/{id} ────────────────────────────────────────────────

@router.get("/{leave_id}", response_model=LeaveOut)
async def get_leave(
    leave_id: uuid.UUID,
    user: User = Depends(require_staffing),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.get_leave(db, leave_id)


# ── PUT /leaves/{id}/approve ────────────────────────────────────────

@router.put("/{leave_id}/approve", response_model=LeaveOut)
async def approve_leave(
    leave_id: uuid.UUID,
    body: LeaveReviewRequest,
    user: User = Depends(require_staffing),
    db: AsyncSession = Depends(get_db),
):
    """Approve a pending leave. Deductible leave then reduces billing."""
    return await LeaveService.approve_leave(db, leave_id, user.id, remarks=body.remarks)


# ── PUT /leaves/{id}/reject ─────────────────────────────────────────

@router.put("/{leave_id}/reject", response_model=LeaveOut)
async def reject_leave(
    leave_id: uuid.UUID,
    body: LeaveRejectRequest,
    user: User = Depends(require_staffing),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.reject_leave(db, leave_id, user.id, body.reason)


# ── PUT /leaves/{id}/cancel ─────────────────────────────────────────

@router.put("/{leave_id}/cancel", response_model=LeaveOut)
async def cancel_leave(
    leave_id: uuid.UUID,
    reason: Optional[str] = Query(None, max_length=500),
    user: User = Depends(require_staffing),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.cancel_leave(db, leave_id, user.id, reason=reason)
