"""Employee-posting router.

Routes:
    /employee-postings                       — List, create postings
    /employee-postings/history/{employee_id} — Full posting history
    /employee-postings/current/{employee_id} — Current posting and schools
    /employee-postings/analytics/overview    — Status counts and staffing
    /employee-postings/reconcile-schools     — Trainer-set audit / repair
    /employee-postings/{id}                  — Get, update posting
"""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth.dependencies import get_current_user, require_role, require_staffing
from backend.auth.models import User
from backend.common.constants import POSTING_STATUS_MESSAGES, PostingStatus, UserRole
from backend.common.pagination import PaginationParams
from backend.common.rate_limit import BULK_OPERATION_LIMIT, limiter
from backend.database import get_db
from backend.postings.schemas import PostingCreate, PostingMutationOut, PostingOut, PostingUpdate
from backend.postings.service import PostingService
from backend.postings.synchronizer import PostingSynchronizer

router = APIRouter(prefix="", tags=["employee-postings"])


# ── GET /employee-postings ──────────────────────────────────────────

@router.get("")
async def list_postings(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_staffing),
    pagination: PaginationParams = Depends(),
    employee_id: Optional[uuid.UUID] = Query(None),
    school_id: Optional[uuid.UUID] = Query(None),
    status: Optional[PostingStatus] = Query(None),
    is_active: Optional[bool] = Query(None),
):
    """List postings, newest ``start_date`` first."""
    result = await PostingService.list_postings(
        db,
        pagination,
        employee_id=employee_id,
        school_id=school_id,
        status=status,
        is_active=is_active,
    )
    return result.envelope(PostingOut)


# ── POST /employee-postings ─────────────────────────────────────────

@router.post("", status_code=201)
async def create_posting(
    body: PostingCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_staffing),
):
    """Post an employee to a school.

    A ``continue`` posting for an employee already posted elsewhere is
    recorded as a ``change_school`` transfer.
    """
    posting, sync = await PostingService.create_posting(db, body, actor_id=current_user.id)
    out = PostingMutationOut(
        posting=await PostingService.get_posting(db, posting.id),
        sync=sync,
    )
    return {
        "data": out.model_dump(mode="json"),
        "message": POSTING_STATUS_MESSAGES[posting.status],
    }


# ── Employee-scoped reads ───────────────────────────────────────────
# NOTE: these MUST be defined before /{posting_id}.

@router.get("/history/{employee_id}")
async def employment_history(
    employee_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    history = await PostingService.employment_history(db, employee_id)
    return {
        "data": history.model_dump(mode="json"),
        "message": "Employment history retrieved successfully.",
    }


@router.get("/current/{employee_id}")
async def current_posting(
    employee_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    current = await PostingService.current_posting(db, employee_id)
    return {
        "data": current.model_dump(mode="json"),
        "message": "Current posting retrieved successfully.",
    }


@router.get("/analytics/overview")
async def posting_analytics(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Posting counts by status and per-school staffing levels."""
    overview = await PostingService.analytics(db)
    return {
        "data": overview.model_dump(mode="json"),
        "message": "Posting analytics retrieved successfully.",
    }


@router.post("/reconcile-schools")
@limiter.limit(BULK_OPERATION_LIMIT)
async def reconcile_schools(
    request: Request,
    repair: bool = Query(False, description="Rewrite divergent trainer sets"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.admin)),
):
    """Compare each school's trainer set with active postings. Admin only."""
    report = await PostingSynchronizer.audit(db, repair=repair)
    return {
        "data": report.model_dump(mode="json"),
        "message": (
            f"{len(report.divergent_schools)} of {report.schools_checked} "
            "schools diverge from their active postings."
        ),
    }


# ── GET / PUT /employee-postings/{id} ───────────────────────────────

@router.get("/{posting_id}")
async def get_posting(
    posting_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_staffing),
):
    posting = await PostingService.get_posting(db, posting_id)
    return {
        "data": posting.model_dump(mode="json"),
        "message": "Posting retrieved successfully.",
    }


@router.put("/{posting_id}")
async def update_posting(
    posting_id: uuid.UUID,
    body: PostingUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_staffing),
):
    """Partial update. ``is_active`` is derived and cannot be set."""
    posting, sync = await PostingService.update_posting(
        db, posting_id, body, actor_id=current_user.id,
    )
    return {
        "data": {
            "posting": (await PostingService.get_posting(db, posting.id)).model_dump(mode="json"),
            "sync": sync.model_dump(mode="json") if sync else None,
        },
        "message": "Posting updated successfully.",
    }
