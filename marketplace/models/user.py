"""
User model for authentication and role management.
"""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketplace.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from marketplace.models.audit import AuditLog
    from marketplace.models.service import Service


class UserRole(str, Enum):
    """User roles for access control."""
    USER = "user"
    MANAGER = "manager"
    ADMIN = "admin"


class User(Base, TimestampMixin):
    """
    User account model.

    - user: marketplace customer, no access to commission routes
    - manager: service provider, negotiates commissions on own services
    - admin: platform side, reviews and answers every commission offer
    """

    __tablename__ = "users"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[int] = mapped_column(primary_key=True)
    username: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        index=True,
        nullable=False,
    )
    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    role: Mapped[UserRole] = mapped_column(
        SQLAlchemyEnum(
            UserRole,
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
    )
    display_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    email: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )
    business_name: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        comment="Trading name shown for managers",
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )
    last_active_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Relationships
    services: Mapped[List["Service"]] = relationship(
        "Service",
        back_populates="manager",
    )
    audit_logs: Mapped[List["AuditLog"]] = relationship(
        "AuditLog",
        back_populates="user",
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}', role={self.role})>"
