"""Invoice router — monthly generation and lifecycle transitions.

Routes:
    /invoices                — List invoices
    /invoices/stats          — Counts and totals by status
    /invoices/generate       — Generate one school's invoice
    /invoices/generate-all   — Generate for every active school
    /invoices/mark-overdue   — Flag past-due invoices
    /invoices/{id}           — Invoice detail
    /invoices/{id}/verify | send | cancel
"""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth.dependencies import require_billing, require_role
from backend.auth.models import User
from backend.common.constants import InvoiceStatus, UserRole
from backend.common.pagination import PaginationParams
from backend.common.rate_limit import BULK_OPERATION_LIMIT, limiter
from backend.database import get_db
from backend.invoices.schemas import (
    InvoiceCancelRequest,
    InvoiceGenerateAllRequest,
    InvoiceGenerateRequest,
    InvoiceOut,
)
from backend.invoices.service import InvoiceService

router = APIRouter(prefix="", tags=["invoices"])


# ── GET /invoices ───────────────────────────────────────────────────

@router.get("")
async def list_invoices(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_billing),
    pagination: PaginationParams = Depends(),
    school_id: Optional[uuid.UUID] = Query(None),
    status: Optional[InvoiceStatus] = Query(None),
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None),
):
    result = await InvoiceService.list_invoices(
        db, pagination, school_id=school_id, status=status, month=month, year=year,
    )
    return result.envelope(InvoiceOut)


# ── GET /invoices/stats ─────────────────────────────────────────────

@router.get("/stats")
async def invoice_stats(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_billing),
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None),
):
    stats = await InvoiceService.stats(db, month=month, year=year)
    return {
        "data": stats.model_dump(mode="json"),
        "message": "Invoice statistics retrieved successfully.",
    }


# ── POST /invoices/generate ─────────────────────────────────────────

@router.post("/generate", status_code=201)
async def generate_invoice(
    body: InvoiceGenerateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_billing),
):
    """Generate the monthly invoice for one school as a draft."""
    invoice = await InvoiceService.generate_for_school(
        db, body.school_id, body.month, body.year,
        notes=body.notes, actor_id=current_user.id,
    )
    return {
        "data": InvoiceOut.model_validate(invoice).model_dump(mode="json"),
        "message": f"Invoice {invoice.invoice_number} generated.",
    }


# ── POST /invoices/generate-all ─────────────────────────────────────

@router.post("/generate-all")
@limiter.limit(BULK_OPERATION_LIMIT)
async def generate_all_invoices(
    request: Request,
    body: InvoiceGenerateAllRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_billing),
):
    """Generate invoices for every active school; failures are reported, not raised."""
    result = await InvoiceService.generate_all(
        db, body.month, body.year, actor_id=current_user.id,
    )
    return {
        "data": result.model_dump(mode="json"),
        "message": f"{len(result.generated)} invoices generated, {len(result.failed)} skipped.",
    }


# ── POST /invoices/mark-overdue ─────────────────────────────────────

@router.post("/mark-overdue")
async def mark_overdue(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.admin)),
):
    count = await InvoiceService.mark_overdue(db)
    return {"data": {"updated": count}, "message": f"{count} invoices marked overdue."}


# ── GET /invoices/{id} ──────────────────────────────────────────────

@router.get("/{invoice_id}")
async def get_invoice(
    invoice_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_billing),
):
    invoice = await InvoiceService.get_invoice_model(db, invoice_id)
    return {
        "data": InvoiceOut.model_validate(invoice).model_dump(mode="json"),
        "message": "Invoice retrieved successfully.",
    }


# ── Transitions ─────────────────────────────────────────────────────

@router.put("/{invoice_id}/verify")
async def verify_invoice(
    invoice_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_billing),
):
    invoice = await InvoiceService.verify(db, invoice_id, actor_id=current_user.id)
    return {
        "data": InvoiceOut.model_validate(invoice).model_dump(mode="json"),
        "message": "Invoice verified.",
    }


@router.put("/{invoice_id}/send")
async def send_invoice(
    invoice_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_billing),
):
    """Mark a verified invoice as sent. Sent invoices are locked."""
    invoice = await InvoiceService.send(db, invoice_id, actor_id=current_user.id)
    return {
        "data": InvoiceOut.model_validate(invoice).model_dump(mode="json"),
        "message": "Invoice sent.",
    }


@router.put("/{invoice_id}/cancel")
async def cancel_invoice(
    invoice_id: uuid.UUID,
    body: InvoiceCancelRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_billing),
):
    invoice = await InvoiceService.cancel(
        db, invoice_id, actor_id=current_user.id, reason=body.reason,
    )
    return {
        "data": InvoiceOut.model_validate(invoice).model_dump(mode="json"),
        "message": "Invoice cancelled.",
    }
