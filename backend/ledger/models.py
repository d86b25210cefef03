"""School ledger ORM model — one debit or credit per billing event."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from backend.common.constants import LedgerEntryType
from backend.common.models import created_at_column, pg_enum
from backend.database import Base


class LedgerEntry(Base):
    __tablename__ = "school_ledger"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    school_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("schools.id"), nullable=False
    )
    invoice_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("invoices.id")
    )
    payment_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("payments.id")
    )
    entry_type: Mapped[LedgerEntryType] = mapped_column(
        pg_enum(LedgerEntryType, "ledger_entry_type"), nullable=False
    )
    debit: Mapped[Decimal] = mapped_column(sa.Numeric(14, 2), nullable=False, default=0)
    credit: Mapped[Decimal] = mapped_column(sa.Numeric(14, 2), nullable=False, default=0)
    # School balance after this entry
    balance: Mapped[Decimal] = mapped_column(sa.Numeric(14, 2), nullable=False)
    entry_date: Mapped[date] = mapped_column(sa.Date, nullable=False, default=date.today)
    month: Mapped[int] = mapped_column(sa.SmallInteger, nullable=False)
    year: Mapped[int] = mapped_column(sa.SmallInteger, nullable=False)
    reference_number: Mapped[Optional[str]] = mapped_column(sa.String(100))
    description: Mapped[Optional[str]] = mapped_column(sa.Text)

    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id")
    )
    created_at: Mapped[datetime] = created_at_column()

    __table_args__ = (
        sa.CheckConstraint(
            "debit >= 0 AND credit >= 0", name="ck_school_ledger_amounts_non_negative"
        ),
        sa.Index("ix_school_ledger_school_date", "school_id", "entry_date"),
        sa.Index("ix_school_ledger_invoice_id", "invoice_id"),
    )

    def __repr__(self) -> str:
        return f"<LedgerEntry {self.entry_type} +{self.debit} -{self.credit} = {self.balance}>"
