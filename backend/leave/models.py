"""Leave ORM model — trainer absences recorded against a posting."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.common.constants import LeaveStatus, LeaveType
from backend.common.models import created_at_column, pg_enum, updated_at_column
from backend.database import Base

if TYPE_CHECKING:
    from backend.employees.models import Employee


class Leave(Base):
    __tablename__ = "leaves"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("employees.id"), nullable=False
    )
    school_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("schools.id"), nullable=False
    )
    posting_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("employee_postings.id"), nullable=False
    )
    leave_type: Mapped[LeaveType] = mapped_column(
        pg_enum(LeaveType, "leave_type"), nullable=False
    )
    start_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    end_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    number_of_days: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(sa.Text)
    # Only deductible leave reduces billable days
    is_deductible: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    status: Mapped[LeaveStatus] = mapped_column(
        pg_enum(LeaveStatus, "leave_status"),
        nullable=False,
        default=LeaveStatus.pending,
    )
    reviewed_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id")
    )
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    reviewer_remarks: Mapped[Optional[str]] = mapped_column(sa.Text)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))

    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id")
    )
    created_at: Mapped[datetime] = created_at_column()
    updated_at: Mapped[datetime] = updated_at_column()

    # Relationships
    employee: Mapped[Employee] = relationship(lazy="selectin")

    __table_args__ = (
        sa.CheckConstraint("start_date <= end_date", name="ck_leaves_date_order"),
        sa.Index("ix_leaves_employee_start", "employee_id", "start_date"),
        sa.Index("ix_leaves_school_start", "school_id", "start_date"),
        sa.Index("ix_leaves_posting_id", "posting_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Leave employee={self.employee_id} {self.leave_type} "
            f"{self.start_date}..{self.end_date} {self.status}>"
        )
