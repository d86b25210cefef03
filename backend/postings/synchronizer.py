"""Posting synchronizer — keeps ``employee_postings.is_active`` and each
school's trainer set consistent after a posting is written.

Called explicitly by :class:`backend.postings.service.PostingService` inside
the request transaction, after the posting row has been flushed:

* ``resign`` / ``terminate`` → the posting is deactivated, its end date
  stamped, and the employee leaves the school's trainer set.
* ``continue`` / ``change_school`` → every other active posting of the
  employee is superseded (deactivated, its school loses the employee), then
  the employee joins this posting's school and the posting becomes active.

Reconciliations for one employee are serialised by a row lock on the
employee (``SELECT … FOR UPDATE``); the partial unique index
``uq_posting_employee_active`` rejects anything that slips past it.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.common.constants import ACTIVE_POSTING_STATUSES
from backend.common.exceptions import ConflictError, ValidationException
from backend.config import settings
from backend.employees.models import Employee
from backend.postings.models import EmployeePosting
from backend.postings.schemas import (
    PostingSyncResult,
    SchoolDivergence,
    TrainerAuditOut,
)
from backend.schools.models import School
from backend.schools.service import SchoolService

logger = logging.getLogger(__name__)

# Session-local set of posting ids currently being reconciled
_IN_PROGRESS_KEY = "postings.reconciling"


def _in_progress(db: AsyncSession) -> set[uuid.UUID]:
    return db.info.setdefault(_IN_PROGRESS_KEY, set())


class PostingSynchronizer:
    """Derives posting activity and school trainer sets from posting status."""

    @staticmethod
    async def reconcile(
        db: AsyncSession,
        posting: EmployeePosting,
        *,
        today: Optional[date] = None,
    ) -> PostingSyncResult:
        """Apply the posting's status to the trainer sets and activity flags."""
        guard = _in_progress(db)
        if posting.id in guard:
            logger.debug("Posting %s already being reconciled; skipping", posting.id)
            return PostingSyncResult(
                posting_id=posting.id, action="skipped", school_id=posting.school_id,
            )

        guard.add(posting.id)
        try:
            await PostingSynchronizer._lock_employee(db, posting.employee_id)
            today = today or date.today()
            if posting.is_terminal:
                return await PostingSynchronizer._deactivate(db, posting, today)
            return await PostingSynchronizer._activate(db, posting, today)
        finally:
            guard.discard(posting.id)

    # ── Branches ────────────────────────────────────────────────────

    @staticmethod
    async def _deactivate(
        db: AsyncSession, posting: EmployeePosting, today: date,
    ) -> PostingSyncResult:
        others_here = await db.execute(
            select(func.count())
            .select_from(EmployeePosting)
            .where(
                EmployeePosting.employee_id == posting.employee_id,
                EmployeePosting.school_id == posting.school_id,
                EmployeePosting.is_active.is_(True),
                EmployeePosting.id != posting.id,
            )
        )
        if not others_here.scalar():
            await SchoolService.remove_trainer(db, posting.school_id, posting.employee_id)

        posting.is_active = False
        if posting.end_date is None:
            posting.end_date = today
        await db.flush()

        logger.info(
            "Posting %s deactivated (%s); employee %s released from school %s",
            posting.id, posting.status.value, posting.employee_id, posting.school_id,
        )
        return PostingSyncResult(
            posting_id=posting.id, action="deactivated", school_id=posting.school_id,
        )

    @staticmethod
    async def _activate(
        db: AsyncSession, posting: EmployeePosting, today: date,
    ) -> PostingSyncResult:
        warnings: list[str] = []
        if posting.monthly_billing_salary is None or posting.monthly_billing_salary <= 0:
            message = f"Posting {posting.id} has no positive monthly billing salary."
            if settings.STRICT_BILLING_RATE:
                raise ValidationException(
                    {"monthly_billing_salary": ["Must be greater than 0 for an active posting."]},
                )
            logger.warning(message)
            warnings.append(message)

        result = await db.execute(
            select(EmployeePosting)
            .where(
                EmployeePosting.employee_id == posting.employee_id,
                EmployeePosting.is_active.is_(True),
                EmployeePosting.id != posting.id,
            )
            .order_by(EmployeePosting.start_date, EmployeePosting.id)
        )
        superseded = list(result.scalars().all())

        for other in superseded:
            await SchoolService.remove_trainer(db, other.school_id, other.employee_id)
            other.is_active = False
            if other.end_date is None:
                other.end_date = today
        # Previous postings must be inactive before this one claims the slot
        await db.flush()

        await SchoolService.add_trainer(db, posting.school_id, posting.employee_id)
        posting.is_active = True
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            raise ConflictError(
                "employee_id",
                posting.employee_id,
                detail="Employee already has an active posting; retry the request.",
            )

        logger.info(
            "Posting %s activated at school %s (superseded %d)",
            posting.id, posting.school_id, len(superseded),
        )
        return PostingSyncResult(
            posting_id=posting.id,
            action="activated",
            school_id=posting.school_id,
            superseded_posting_ids=[p.id for p in superseded],
            warnings=warnings,
        )

    # ── Helpers ─────────────────────────────────────────────────────

    @staticmethod
    async def _lock_employee(db: AsyncSession, employee_id: uuid.UUID) -> None:
        await db.execute(
            select(Employee.id).where(Employee.id == employee_id).with_for_update()
        )

    # ── Trainer-set audit ───────────────────────────────────────────

    @staticmethod
    async def audit(db: AsyncSession, *, repair: bool = False) -> TrainerAuditOut:
        """Compare every school's trainer set with its active postings.

        With ``repair=True`` the trainer sets are rewritten to match.
        """
        schools = (await db.execute(select(School).order_by(School.name))).scalars().all()

        rows = await db.execute(
            select(EmployeePosting.school_id, EmployeePosting.employee_id).where(
                EmployeePosting.is_active.is_(True),
                EmployeePosting.status.in_(ACTIVE_POSTING_STATUSES),
            )
        )
        expected: dict[uuid.UUID, set[uuid.UUID]] = {}
        for school_id, employee_id in rows.all():
            expected.setdefault(school_id, set()).add(employee_id)

        divergent: list[SchoolDivergence] = []
        for school in schools:
            want = expected.get(school.id, set())
            have = await SchoolService.trainer_ids(db, school.id)
            missing = want - have
            extra = have - want
            if not missing and not extra:
                continue

            logger.warning(
                "School %s trainer set diverges: %d missing, %d extra",
                school.code, len(missing), len(extra),
            )
            divergent.append(
                SchoolDivergence(
                    school_id=school.id,
                    school_name=school.name,
                    missing_employee_ids=sorted(missing, key=str),
                    extra_employee_ids=sorted(extra, key=str),
                )
            )
            if repair:
                for employee_id in missing:
                    await SchoolService.add_trainer(db, school.id, employee_id)
                for employee_id in extra:
                    await SchoolService.remove_trainer(db, school.id, employee_id)

        if repair and divergent:
            await db.flush()

        return TrainerAuditOut(
            schools_checked=len(schools),
            divergent_schools=divergent,
            repaired=repair and bool(divergent),
        )
