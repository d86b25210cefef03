"""Auth router — current user profile and logout."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth.dependencies import get_current_user
from backend.auth.models import User
from backend.auth.schemas import LogoutResponse, MeResponse
from backend.auth.service import AuthService
from backend.database import get_db

router = APIRouter(prefix="", tags=["auth"])


# ── GET /me ─────────────────────────────────────────────────────────

@router.get("/me", response_model=MeResponse)
async def me(user: User = Depends(get_current_user)):
    """Return the authenticated back-office user."""
    return MeResponse.model_validate(user)


# ── POST /logout ────────────────────────────────────────────────────

@router.post("/logout", response_model=LogoutResponse)
async def logout(
    request: Request,
    everywhere: bool = Query(False, description="Revoke every session of this user"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Revoke the current session (or all sessions with ``everywhere=true``)."""
    if everywhere:
        count = await AuthService.revoke_all_sessions(db, user.id)
        return LogoutResponse(message="All sessions revoked.", revoked_sessions=count)

    await AuthService.revoke_session(db, request.state.session_id)
    return LogoutResponse(message="Logged out successfully.")
