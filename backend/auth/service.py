"""Auth service — back-office users, JWT issuance, session lifecycle.

Interactive login flows are not part of this service: operators receive
tokens from ``scripts/create_user.py`` (or an upstream identity provider
calling :meth:`AuthService.issue_access_token`).
"""

from __future__ import annotations

import hashlib
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth.models import User, UserSession
from backend.common.constants import UserRole
from backend.common.exceptions import ConflictError, NotFoundException
from backend.config import settings

logger = logging.getLogger(__name__)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def create_access_token(user_id: uuid.UUID, role: UserRole) -> tuple[str, datetime]:
    """Return (encoded_jwt, expires_at)."""
    expires_at = datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRY_HOURS)
    payload = {
        "sub": str(user_id),
        "role": role.value,
        "type": "access",
        "jti": uuid.uuid4().hex,
        "exp": expires_at,
    }
    token = jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    return token, expires_at


class AuthService:
    """User and session operations."""

    @staticmethod
    async def create_user(
        db: AsyncSession,
        *,
        name: str,
        email: str,
        role: UserRole = UserRole.hr,
    ) -> User:
        user = User(name=name, email=email.lower(), role=role)
        db.add(user)
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            raise ConflictError("email", email)
        logger.info("Created %s user %s", role.value, user.email)
        return user

    @staticmethod
    async def get_user_by_email(db: AsyncSession, email: str) -> User:
        result = await db.execute(select(User).where(User.email == email.lower()))
        user = result.scalars().first()
        if user is None:
            raise NotFoundException("User", email)
        return user

    @staticmethod
    async def issue_access_token(
        db: AsyncSession,
        user: User,
        *,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> str:
        """Mint an access token for *user* and persist its session row."""
        token, expires_at = create_access_token(user.id, user.role)
        db.add(
            UserSession(
                user_id=user.id,
                token_hash=hash_token(token),
                ip_address=ip,
                user_agent=user_agent,
                expires_at=expires_at,
            )
        )
        await db.flush()
        return token

    @staticmethod
    async def revoke_session(db: AsyncSession, session_id: uuid.UUID) -> None:
        """Mark a session as revoked."""
        session = await db.get(UserSession, session_id)
        if session is not None:
            session.is_revoked = True
            await db.flush()

    @staticmethod
    async def revoke_all_sessions(db: AsyncSession, user_id: uuid.UUID) -> int:
        """Revoke every live session of a user; returns how many were revoked."""
        result = await db.execute(
            select(UserSession).where(
                UserSession.user_id == user_id,
                UserSession.is_revoked.is_(False),
            ),
        )
        sessions = result.scalars().all()
        for session in sessions:
            session.is_revoked = True
        await db.flush()
        return len(sessions)
