#!/usr/bin/env python3
"""Create a back-office user and print an access token for it.

Usage:
    python scripts/create_user.py --name "Asha Rao" --email asha@example.com --role hr
    python scripts/create_user.py --email asha@example.com --token-only   # existing user

Requires .env at project root (JWT_SECRET, DATABASE_URL).
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# ── Path setup ────────────────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from dotenv import load_dotenv

load_dotenv(PROJECT_ROOT / ".env")

from backend.auth.service import AuthService  # noqa: E402
from backend.common.constants import UserRole  # noqa: E402
from backend.common.exceptions import ConflictError, NotFoundException  # noqa: E402
from backend.database import async_session_factory, engine  # noqa: E402

import backend.postings.models  # noqa: E402,F401  (resolve Employee.postings)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("create_user")


async def run(args: argparse.Namespace) -> str:
    async with async_session_factory() as db:
        if args.token_only:
            user = await AuthService.get_user_by_email(db, args.email)
        else:
            user = await AuthService.create_user(
                db, name=args.name, email=args.email, role=UserRole(args.role),
            )
        token = await AuthService.issue_access_token(db, user, user_agent="create_user.py")
        await db.commit()
    await engine.dispose()
    return token


def main():
    parser = argparse.ArgumentParser(description="Create a back-office user")
    parser.add_argument("--email", required=True)
    parser.add_argument("--name", help="Display name (required unless --token-only)")
    parser.add_argument(
        "--role", choices=[r.value for r in UserRole], default=UserRole.hr.value,
    )
    parser.add_argument(
        "--token-only", action="store_true", help="Issue a token for an existing user",
    )
    args = parser.parse_args()

    if not args.token_only and not args.name:
        parser.error("--name is required when creating a user")

    try:
        token = asyncio.run(run(args))
    except (ConflictError, NotFoundException) as exc:
        logger.error("%s", exc.detail)
        sys.exit(1)
    print(token)


if __name__ == "__main__":
    main()
