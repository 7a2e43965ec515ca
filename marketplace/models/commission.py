"""
Commission model and its negotiation ledger.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, event
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketplace.models.base import Base, Percentage, TimestampMixin, utcnow
from marketplace.models.user import UserRole

if TYPE_CHECKING:
    from marketplace.models.user import User


class CommissionStatus(str, Enum):
    """Negotiation state."""
    PENDING = "pending"          # Manager offer/counter awaiting admin
    NEGOTIATING = "negotiating"  # Admin counter awaiting manager
    ACCEPTED = "accepted"        # Terminal
    REJECTED = "rejected"        # Terminal


TERMINAL_STATUSES = frozenset({CommissionStatus.ACCEPTED, CommissionStatus.REJECTED})


class CommissionType(str, Enum):
    """Which side made the most recent active proposal."""
    MANAGER_OFFER = "manager_offer"
    ADMIN_COUNTER = "admin_counter"


class ManagerResponse(str, Enum):
    """Manager's answer to an admin counter."""
    ACCEPT = "accept"
    REJECT = "reject"
    COUNTER = "counter"


class NegotiationAction(str, Enum):
    """Ledger entry kinds, one per engine operation."""
    OFFER = "offer"
    OFFER_UPDATED = "offer_updated"
    ADMIN_ACCEPT = "admin_accept"
    ADMIN_REJECT = "admin_reject"
    ADMIN_COUNTER = "admin_counter"
    MANAGER_ACCEPT_COUNTER = "manager_accept_counter"
    MANAGER_REJECT_COUNTER = "manager_reject_counter"
    MANAGER_COUNTER = "manager_counter"


class Commission(Base, TimestampMixin):
    """
    Percentage the platform keeps from a manager's service revenue.

    Invariants kept by the negotiation engine:
    - final_percentage is set iff status is accepted
    - admin_counter_percentage is set only while negotiating
    - accepted/rejected are terminal
    - negotiation_history only grows
    """

    __tablename__ = "commissions"

    id: Mapped[int] = mapped_column(primary_key=True)
    manager_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    service_id: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        index=True,
        comment="services.id; the service may be deleted later",
    )

    offered_percentage: Mapped[Decimal] = mapped_column(
        Percentage,
        nullable=False,
    )
    admin_counter_percentage: Mapped[Optional[Decimal]] = mapped_column(
        Percentage,
        nullable=True,
    )
    final_percentage: Mapped[Optional[Decimal]] = mapped_column(
        Percentage,
        nullable=True,
    )

    status: Mapped[CommissionStatus] = mapped_column(
        SQLAlchemyEnum(
            CommissionStatus,
            name="commissionstatus",
            values_callable=lambda x: [e.value for e in x],
        ),
        default=CommissionStatus.PENDING,
        nullable=False,
        index=True,
    )
    type: Mapped[CommissionType] = mapped_column(
        SQLAlchemyEnum(
            CommissionType,
            name="commissiontype",
            values_callable=lambda x: [e.value for e in x],
        ),
        default=CommissionType.MANAGER_OFFER,
        nullable=False,
    )

    # Admin side
    admin_responded_by: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id"),
        nullable=True,
    )
    admin_responded_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    admin_notes: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
    )

    # Manager answer to a counter
    manager_response: Mapped[Optional[ManagerResponse]] = mapped_column(
        SQLAlchemyEnum(
            ManagerResponse,
            name="managerresponse",
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=True,
    )
    manager_notes: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
    )
    manager_responded_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Agreement
    agreed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    agreed_by: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id"),
        nullable=True,
    )

    # Optimistic concurrency token
    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    __mapper_args__ = {
        "version_id_col": version,
        "eager_defaults": True,
    }

    # Relationships
    manager: Mapped["User"] = relationship(
        "User",
        foreign_keys=[manager_id],
    )
    negotiation_history: Mapped[List["NegotiationEntry"]] = relationship(
        "NegotiationEntry",
        back_populates="commission",
        order_by="NegotiationEntry.id",
        lazy="selectin",
    )

    @property
    def is_finalized(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def effective_percentage(self) -> Decimal:
        """Percentage actually charged: the agreed one, or 0 before agreement."""
        if self.status == CommissionStatus.ACCEPTED and self.final_percentage is not None:
            return self.final_percentage
        return Decimal("0")

    def add_negotiation_entry(
        self,
        action: NegotiationAction,
        by_user_id: int,
        by_role: UserRole,
        percentage: Optional[Decimal] = None,
        note: Optional[str] = None,
    ) -> "NegotiationEntry":
        entry = NegotiationEntry(
            action=action,
            by_user_id=by_user_id,
            by_role=by_role,
            percentage=percentage,
            note=note,
            created_at=utcnow(),
        )
        self.negotiation_history.append(entry)
        return entry

    def __repr__(self) -> str:
        return f"<Commission(id={self.id}, service_id={self.service_id}, status={self.status})>"


class NegotiationEntry(Base):
    """
    One row of a commission's negotiation ledger.

    Rows are written once and never updated or deleted.
    """

    __tablename__ = "commission_negotiation_history"

    id: Mapped[int] = mapped_column(primary_key=True)
    commission_id: Mapped[int] = mapped_column(
        ForeignKey("commissions.id"),
        nullable=False,
        index=True,
    )
    action: Mapped[NegotiationAction] = mapped_column(
        SQLAlchemyEnum(
            NegotiationAction,
            name="negotiationaction",
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
    )
    by_user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
    )
    by_role: Mapped[UserRole] = mapped_column(
        SQLAlchemyEnum(
            UserRole,
            name="userrole",
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
    )
    percentage: Mapped[Optional[Decimal]] = mapped_column(
        Percentage,
        nullable=True,
    )
    note: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    # Relationships
    commission: Mapped["Commission"] = relationship(
        "Commission",
        back_populates="negotiation_history",
    )
    by_user: Mapped["User"] = relationship("User")

    def __repr__(self) -> str:
        return f"<NegotiationEntry(id={self.id}, action='{self.action}')>"


@event.listens_for(NegotiationEntry, "before_update")
def _reject_history_update(mapper, connection, target):
    raise ValueError("Negotiation history entries are append-only")


@event.listens_for(NegotiationEntry, "before_delete")
def _reject_history_delete(mapper, connection, target):
    raise ValueError("Negotiation history entries are append-only")
