"""EmployeePosting ORM model — one row per employee-to-school assignment interval."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.common.constants import (
    ACTIVE_POSTING_STATUSES,
    TERMINAL_POSTING_STATUSES,
    PostingStatus,
)
from backend.common.models import created_at_column, pg_enum, updated_at_column
from backend.database import Base

if TYPE_CHECKING:
    from backend.employees.models import Employee
    from backend.schools.models import School


class EmployeePosting(Base):
    __tablename__ = "employee_postings"

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
    monthly_billing_salary: Mapped[Decimal] = mapped_column(
        sa.Numeric(12, 2), nullable=False
    )
    tds_percent: Mapped[Decimal] = mapped_column(sa.Numeric(5, 2), default=0)
    gst_percent: Mapped[Decimal] = mapped_column(sa.Numeric(5, 2), default=0)
    start_date: Mapped[date] = mapped_column(sa.Date, nullable=False, default=date.today)
    end_date: Mapped[Optional[date]] = mapped_column(sa.Date)
    status: Mapped[PostingStatus] = mapped_column(
        pg_enum(PostingStatus, "posting_status"),
        nullable=False,
        default=PostingStatus.continue_,
    )
    remark: Mapped[Optional[str]] = mapped_column(sa.Text)
    # Only the synchronizer flips this flag
    is_active: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)

    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id")
    )
    updated_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id")
    )
    created_at: Mapped[datetime] = created_at_column()
    updated_at: Mapped[datetime] = updated_at_column()

    # Relationships
    employee: Mapped[Employee] = relationship(back_populates="postings", lazy="selectin")
    school: Mapped[School] = relationship(lazy="selectin")

    __table_args__ = (
        sa.CheckConstraint(
            "monthly_billing_salary >= 0", name="ck_employee_postings_billing_non_negative"
        ),
        sa.CheckConstraint(
            "tds_percent >= 0 AND tds_percent <= 100", name="ck_employee_postings_tds_range"
        ),
        sa.CheckConstraint(
            "gst_percent >= 0 AND gst_percent <= 100", name="ck_employee_postings_gst_range"
        ),
        # At most one active posting per employee
        sa.Index(
            "uq_posting_employee_active",
            "employee_id",
            unique=True,
            postgresql_where=sa.text("is_active"),
            sqlite_where=sa.text("is_active = 1"),
        ),
        sa.Index("ix_employee_postings_school_active", "school_id", "is_active"),
        sa.Index("ix_employee_postings_status", "status"),
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_POSTING_STATUSES

    @property
    def is_assignable(self) -> bool:
        return self.status in ACTIVE_POSTING_STATUSES

    def __repr__(self) -> str:
        return (
            f"<EmployeePosting employee={self.employee_id} school={self.school_id} "
            f"status={self.status} active={self.is_active}>"
        )
