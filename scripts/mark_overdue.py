#!/usr/bin/env python3
"""Mark sent/verified invoices past their due date as overdue.

Designed to run once a day:
    15 0 * * *

Usage:
    python scripts/mark_overdue.py
    python scripts/mark_overdue.py --as-of 2026-05-01
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import date
from pathlib import Path

# ── Path setup ────────────────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from dotenv import load_dotenv

load_dotenv(PROJECT_ROOT / ".env")

from backend.database import async_session_factory, engine  # noqa: E402
from backend.invoices.service import InvoiceService  # noqa: E402

import backend.auth.models  # noqa: E402,F401
import backend.employees.models  # noqa: E402,F401
import backend.postings.models  # noqa: E402,F401

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("mark_overdue")


async def run(as_of: date) -> int:
    async with async_session_factory() as db:
        count = await InvoiceService.mark_overdue(db, today=as_of)
        await db.commit()
    await engine.dispose()
    return count


def main():
    parser = argparse.ArgumentParser(description="Flag overdue invoices")
    parser.add_argument(
        "--as-of",
        type=date.fromisoformat,
        default=None,
        help="Reference date (YYYY-MM-DD, default: today)",
    )
    args = parser.parse_args()

    as_of = args.as_of or date.today()
    count = asyncio.run(run(as_of))
    logger.info("%d invoice(s) marked overdue as of %s", count, as_of.isoformat())


if __name__ == "__main__":
    main()
