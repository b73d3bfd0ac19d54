"""
Base model classes and mixins.

Provides Base declarative class, TimestampMixin and UUIDMixin.
"""

import enum
from datetime import UTC, datetime
from uuid import UUID, uuid4

from sqlalchemy import DateTime
from sqlalchemy.engine import Dialect
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


def utcnow() -> datetime:
    """Backend-assigned write timestamp."""
    return datetime.now(UTC)


def enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    """Persist enum values ("Major Outage"), not member names."""
    return [member.value for member in enum_cls]


class UTCDateTime(TypeDecorator[datetime]):
    """
    Timezone-aware UTC datetime on every backend.

    SQLite drops tzinfo on the way back; re-attach it so values read from
    any dialect compare with values created in Python.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    type_annotation_map = {datetime: UTCDateTime}


class TimestampMixin:
    """
    Mixin that adds created_at and updated_at timestamps.

    Both are assigned by the backend at write time; updated_at is refreshed
    by every ORM update.
    """

    created_at: Mapped[datetime] = mapped_column(
        default=utcnow,
        nullable=False,
        index=True,
        doc="Timestamp when the record was created",
    )

    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
        doc="Timestamp when the record was last updated",
    )


class UUIDMixin:
    """
    Mixin that adds UUID primary key.
    """

    id: Mapped[UUID] = mapped_column(
        primary_key=True,
        default=uuid4,
        doc="Unique identifier for the record",
    )
