"""Shared ORM column helpers."""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Type

import sqlalchemy as sa
from sqlalchemy.orm import MappedColumn, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def pg_enum(enum_cls: Type[enum.Enum], name: str) -> sa.Enum:
    """Map a ``str`` enum onto a PostgreSQL ENUM type by *value*.

    The ENUM types themselves are created by the Alembic migrations.
    """
    return sa.Enum(
        enum_cls,
        name=name,
        create_type=False,
        values_callable=lambda members: [m.value for m in members],
    )


def created_at_column() -> MappedColumn:
    return mapped_column(
        sa.DateTime(timezone=True), default=utcnow,
    )


def updated_at_column() -> MappedColumn:
    return mapped_column(
        sa.DateTime(timezone=True), default=utcnow, onupdate=utcnow,
    )
