"""
Declarative base, timestamp mixin and shared column types.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Numeric, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Commission percentages are stored with two decimal places
PERCENTAGE_PLACES = 2
Percentage = Numeric(5, PERCENTAGE_PLACES)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class TimestampMixin:
    """created_at is set by the database, updated_at on every ORM update."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        onupdate=utcnow,
        nullable=True,
    )
