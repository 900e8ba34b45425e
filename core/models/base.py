"""Base model and mixins for all SQLAlchemy models.

Provides:
- Base: Declarative base class for all models
- IdentityMixin: UUID primary key
- TimestampMixin: created_at / updated_at audit columns
- utcnow / to_utc / isoformat helpers shared by the models

Timestamps get a Python-side default as well as the server default so
rows created in the same second still sort by creation order.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Uuid, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_utc(value: datetime) -> datetime:
    """Normalise a datetime to aware UTC (naive values are taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def isoformat(value: datetime | None) -> str | None:
    """ISO-8601 in UTC; SQLite hands back naive datetimes."""
    return to_utc(value).isoformat() if value else None


class Base(DeclarativeBase):
    """Declarative base for all taskboard models."""
    pass


class IdentityMixin:
    """UUID primary key, generated client-side."""

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )


class TimestampMixin:
    """Standard audit columns.

    - created_at: set on insert
    - updated_at: refreshed on every change
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
        nullable=False,
    )
