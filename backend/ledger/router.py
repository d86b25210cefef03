"""School ledger router.

Routes:
    /ledger/schools/{school_id}           — Running balance and entries
    /ledger/schools/{school_id}/summary   — Debits / credits per month of a year
"""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth.dependencies import require_billing
from backend.auth.models import User
from backend.database import get_db
from backend.ledger.service import LedgerService

router = APIRouter(prefix="", tags=["ledger"])


@router.get("/schools/{school_id}")
async def school_ledger(
    school_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_billing),
    from_date: Optional[date] = Query(None),
    to_date: Optional[date] = Query(None),
):
    ledger = await LedgerService.school_ledger(
        db, school_id, from_date=from_date, to_date=to_date,
    )
    return {
        "data": ledger.model_dump(mode="json"),
        "message": "School ledger retrieved successfully.",
    }


@router.get("/schools/{school_id}/summary")
async def monthly_summary(
    school_id: uuid.UUID,
    year: int = Query(..., ge=2000, le=2100),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_billing),
):
    summary = await LedgerService.monthly_summary(db, school_id, year)
    return {
        "data": [row.model_dump(mode="json") for row in summary],
        "message": "Monthly ledger summary retrieved successfully.",
    }
