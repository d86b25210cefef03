"""Employee ORM model — the trainers posted to client schools.

SQLAlchemy 2.0 async-compatible model with Mapped[] annotations.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.common.constants import EmploymentStatus
from backend.common.models import created_at_column, pg_enum, updated_at_column
from backend.database import Base

if TYPE_CHECKING:
    from backend.postings.models import EmployeePosting


class Employee(Base):
    """Employee master record."""

    __tablename__ = "employees"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    employee_code: Mapped[str] = mapped_column(
        sa.String(20), unique=True, nullable=False
    )
    full_name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    email: Mapped[str] = mapped_column(sa.String(255), unique=True, nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(sa.String(20))
    designation: Mapped[Optional[str]] = mapped_column(sa.String(150))
    department: Mapped[Optional[str]] = mapped_column(sa.String(150))
    date_of_joining: Mapped[date] = mapped_column(sa.Date, nullable=False)
    date_of_exit: Mapped[Optional[date]] = mapped_column(sa.Date)
    employment_status: Mapped[EmploymentStatus] = mapped_column(
        pg_enum(EmploymentStatus, "employment_status"),
        nullable=False,
        default=EmploymentStatus.active,
    )
    address: Mapped[Optional[str]] = mapped_column(sa.Text)
    is_active: Mapped[bool] = mapped_column(sa.Boolean, default=True)

    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id")
    )
    updated_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id")
    )
    created_at: Mapped[datetime] = created_at_column()
    updated_at: Mapped[datetime] = updated_at_column()

    # Relationships
    postings: Mapped[list[EmployeePosting]] = relationship(
        back_populates="employee",
        order_by="EmployeePosting.start_date.desc()",
    )

    def __repr__(self) -> str:
        return f"<Employee {self.employee_code} {self.full_name!r}>"
