"""Invoice ORM models: Invoice and its per-posting InvoiceItem lines."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.common.constants import InvoiceStatus
from backend.common.models import created_at_column, pg_enum, updated_at_column
from backend.database import Base


class Invoice(Base):
    __tablename__ = "invoices"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    invoice_number: Mapped[str] = mapped_column(sa.String(30), unique=True, nullable=False)
    school_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("schools.id"), nullable=False
    )
    school_name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    month: Mapped[int] = mapped_column(sa.SmallInteger, nullable=False)
    year: Mapped[int] = mapped_column(sa.SmallInteger, nullable=False)

    subtotal: Mapped[Decimal] = mapped_column(sa.Numeric(14, 2), nullable=False, default=0)
    previous_due: Mapped[Decimal] = mapped_column(sa.Numeric(14, 2), nullable=False, default=0)
    total_payable: Mapped[Decimal] = mapped_column(sa.Numeric(14, 2), nullable=False)
    paid_amount: Mapped[Decimal] = mapped_column(sa.Numeric(14, 2), nullable=False, default=0)
    balance_due: Mapped[Decimal] = mapped_column(sa.Numeric(14, 2), nullable=False)

    status: Mapped[InvoiceStatus] = mapped_column(
        pg_enum(InvoiceStatus, "invoice_status"),
        nullable=False,
        default=InvoiceStatus.draft,
    )
    invoice_date: Mapped[date] = mapped_column(sa.Date, nullable=False, default=date.today)
    due_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    sent_date: Mapped[Optional[date]] = mapped_column(sa.Date)
    paid_date: Mapped[Optional[date]] = mapped_column(sa.Date)

    verified_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id")
    )
    verified_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    notes: Mapped[Optional[str]] = mapped_column(sa.Text)
    terms: Mapped[Optional[str]] = mapped_column(sa.Text)
    # Set once the invoice is sent
    is_locked: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)

    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id")
    )
    updated_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id")
    )
    created_at: Mapped[datetime] = created_at_column()
    updated_at: Mapped[datetime] = updated_at_column()

    # Relationships
    items: Mapped[list[InvoiceItem]] = relationship(
        back_populates="invoice",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="InvoiceItem.employee_name",
    )

    __table_args__ = (
        sa.CheckConstraint("month BETWEEN 1 AND 12", name="ck_invoices_month"),
        sa.CheckConstraint("balance_due >= 0", name="ck_invoices_balance_non_negative"),
        # One live invoice per school per month
        sa.Index(
            "uq_invoice_school_month_live",
            "school_id",
            "month",
            "year",
            unique=True,
            postgresql_where=sa.text("status <> 'cancelled'"),
            sqlite_where=sa.text("status <> 'cancelled'"),
        ),
        sa.Index("ix_invoices_status", "status"),
        sa.Index("ix_invoices_due_date", "due_date"),
    )

    def __repr__(self) -> str:
        return f"<Invoice {self.invoice_number} {self.status}>"


class InvoiceItem(Base):
    __tablename__ = "invoice_items"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    invoice_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False
    )
    posting_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("employee_postings.id"), nullable=False
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("employees.id"), nullable=False
    )
    employee_name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    designation: Mapped[Optional[str]] = mapped_column(sa.String(150))
    monthly_rate: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), nullable=False)
    deployed_days: Mapped[int] = mapped_column(sa.SmallInteger, nullable=False)
    unpaid_leave_days: Mapped[int] = mapped_column(sa.SmallInteger, nullable=False, default=0)
    billable_days: Mapped[int] = mapped_column(sa.SmallInteger, nullable=False)
    per_day_rate: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), nullable=False)
    amount: Mapped[Decimal] = mapped_column(sa.Numeric(14, 2), nullable=False)
    join_date: Mapped[Optional[date]] = mapped_column(sa.Date)
    leave_date: Mapped[Optional[date]] = mapped_column(sa.Date)

    invoice: Mapped[Invoice] = relationship(back_populates="items")

    __table_args__ = (
        sa.CheckConstraint("deployed_days BETWEEN 0 AND 31", name="ck_invoice_items_deployed"),
        sa.Index("ix_invoice_items_invoice_id", "invoice_id"),
        sa.Index("ix_invoice_items_employee_id", "employee_id"),
    )
