"""
Service listing model.

Listings are owned by the catalog; the commission engine only touches the
commission projection columns at the bottom of the table.
"""

from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, ForeignKey, Integer, Numeric, String
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketplace.models.base import Base, Percentage, TimestampMixin

if TYPE_CHECKING:
    from marketplace.models.user import User


class ServiceCommissionStatus(str, Enum):
    """Commission state as shown on a listing."""
    PENDING = "pending"
    NEGOTIATING = "negotiating"
    AGREED = "agreed"
    REJECTED = "rejected"


class Service(Base, TimestampMixin):
    """A service listed by a manager."""

    __tablename__ = "services"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[int] = mapped_column(primary_key=True)
    manager_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    base_price: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2),
        nullable=True,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    # Commission projection (written by the negotiation engine)
    commission_status: Mapped[Optional[ServiceCommissionStatus]] = mapped_column(
        SQLAlchemyEnum(
            ServiceCommissionStatus,
            name="servicecommissionstatus",
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=True,
        index=True,
    )
    offered_commission_percentage: Mapped[Optional[Decimal]] = mapped_column(
        Percentage,
        nullable=True,
        comment="Manager's current ask, mirrored from the commission",
    )
    final_commission_percentage: Mapped[Optional[Decimal]] = mapped_column(
        Percentage,
        nullable=True,
        comment="Agreed percentage, set only once the commission is accepted",
    )
    commission_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        index=True,
        comment="Back-reference to commissions.id (not enforced)",
    )

    # Relationships
    manager: Mapped["User"] = relationship(
        "User",
        back_populates="services",
    )

    def __repr__(self) -> str:
        return f"<Service(id={self.id}, title='{self.title}', commission_status={self.commission_status})>"
