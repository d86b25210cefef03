"""Payment ORM model — money received against one invoice."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from backend.common.constants import PaymentMethod, PaymentStatus
from backend.common.models import created_at_column, pg_enum, updated_at_column
from backend.database import Base


class Payment(Base):
    __tablename__ = "payments"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    payment_number: Mapped[str] = mapped_column(sa.String(30), unique=True, nullable=False)
    invoice_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("invoices.id"), nullable=False
    )
    school_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("schools.id"), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(sa.Numeric(14, 2), nullable=False)
    payment_date: Mapped[date] = mapped_column(sa.Date, nullable=False, default=date.today)
    payment_method: Mapped[PaymentMethod] = mapped_column(
        pg_enum(PaymentMethod, "payment_method"), nullable=False
    )
    reference_number: Mapped[Optional[str]] = mapped_column(sa.String(100))
    bank_name: Mapped[Optional[str]] = mapped_column(sa.String(150))
    remarks: Mapped[Optional[str]] = mapped_column(sa.Text)
    # Invoice balance left after this payment
    remaining_balance: Mapped[Decimal] = mapped_column(sa.Numeric(14, 2), nullable=False)
    status: Mapped[PaymentStatus] = mapped_column(
        pg_enum(PaymentStatus, "payment_status"),
        nullable=False,
        default=PaymentStatus.pending,
    )

    received_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id")
    )
    verified_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id")
    )
    verified_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    created_at: Mapped[datetime] = created_at_column()
    updated_at: Mapped[datetime] = updated_at_column()

    __table_args__ = (
        sa.CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
        sa.Index("ix_payments_invoice_id", "invoice_id"),
        sa.Index("ix_payments_school_date", "school_id", "payment_date"),
    )

    def __repr__(self) -> str:
        return f"<Payment {self.payment_number} {self.amount} {self.status}>"
