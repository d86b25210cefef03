"""School ORM models: School and its current-trainer set.

``school_trainers`` is the set ``School.current_trainers``: the composite
primary key makes each (school, employee) pair appear at most once, so
adding a trainer is a set-union and removing one a set-difference.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from backend.common.constants import SchoolStatus, StaffingStatus
from backend.common.models import created_at_column, pg_enum, updated_at_column, utcnow
from backend.database import Base

school_trainers = sa.Table(
    "school_trainers",
    Base.metadata,
    sa.Column(
        "school_id",
        UUID(as_uuid=True),
        sa.ForeignKey("schools.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    sa.Column(
        "employee_id",
        UUID(as_uuid=True),
        sa.ForeignKey("employees.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    sa.Column("added_at", sa.DateTime(timezone=True), default=utcnow),
    sa.Index("ix_school_trainers_employee_id", "employee_id"),
)


class School(Base):
    """Client school receiving trainers."""

    __tablename__ = "schools"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    code: Mapped[str] = mapped_column(sa.String(20), unique=True, nullable=False)
    city: Mapped[Optional[str]] = mapped_column(sa.String(100))
    address: Mapped[Optional[str]] = mapped_column(sa.Text)
    contact_person_name: Mapped[Optional[str]] = mapped_column(sa.String(150))
    mobile: Mapped[Optional[str]] = mapped_column(sa.String(20))
    email: Mapped[Optional[str]] = mapped_column(sa.String(255))
    trainers_required: Mapped[int] = mapped_column(
        sa.Integer, nullable=False, default=1
    )
    status: Mapped[SchoolStatus] = mapped_column(
        pg_enum(SchoolStatus, "school_status"),
        nullable=False,
        default=SchoolStatus.active,
    )

    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id")
    )
    updated_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id")
    )
    created_at: Mapped[datetime] = created_at_column()
    updated_at: Mapped[datetime] = updated_at_column()

    __table_args__ = (
        sa.CheckConstraint("trainers_required >= 1", name="ck_schools_trainers_required"),
    )

    def __repr__(self) -> str:
        return f"<School {self.code} {self.name!r}>"


def staffing_status(current_count: int, trainers_required: int) -> StaffingStatus:
    """Classify a school's staffing level."""
    if current_count >= trainers_required:
        return StaffingStatus.adequate
    if current_count > 0:
        return StaffingStatus.shortage
    return StaffingStatus.critical
