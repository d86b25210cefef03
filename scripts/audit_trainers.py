#!/usr/bin/env python3
"""Compare every school's trainer set with its active postings.

Exit codes:
    0 = all schools consistent (or repaired with --repair)
    1 = divergence found

Usage:
    python scripts/audit_trainers.py           # report only
    python scripts/audit_trainers.py --repair  # rewrite divergent trainer sets
    python scripts/audit_trainers.py --json    # machine-readable output
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

from backend.database import async_session_factory, engine  # noqa: E402
from backend.postings.schemas import TrainerAuditOut  # noqa: E402
from backend.postings.synchronizer import PostingSynchronizer  # noqa: E402

import backend.auth.models  # noqa: E402,F401

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("audit_trainers")


async def run(repair: bool) -> TrainerAuditOut:
    async with async_session_factory() as db:
        report = await PostingSynchronizer.audit(db, repair=repair)
        await db.commit()
    await engine.dispose()
    return report


def main():
    parser = argparse.ArgumentParser(description="Audit school trainer sets")
    parser.add_argument("--repair", action="store_true", help="Fix divergent schools")
    parser.add_argument("--json", action="store_true", help="Print the report as JSON")
    args = parser.parse_args()

    report = asyncio.run(run(args.repair))

    if args.json:
        print(report.model_dump_json(indent=2))
    else:
        for d in report.divergent_schools:
            print(
                f"  {d.school_name} ({d.school_id}): missing={[str(i) for i in d.missing_employee_ids]} "
                f"extra={[str(i) for i in d.extra_employee_ids]}"
            )
        print(
            f"{report.schools_checked} schools checked, "
            f"{len(report.divergent_schools)} divergent, repaired={report.repaired}"
        )

    if report.divergent_schools and not report.repaired:
        sys.exit(1)


if __name__ == "__main__":
    main()
