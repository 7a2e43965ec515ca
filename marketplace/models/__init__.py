"""
Database models for the marketplace backend.

All models are exported here for convenient imports:
    from marketplace.models import User, Service, Commission, etc.
"""

from marketplace.models.audit import AuditAction, AuditLog
from marketplace.models.base import Base, TimestampMixin
from marketplace.models.commission import (
    TERMINAL_STATUSES,
    Commission,
    CommissionStatus,
    CommissionType,
    ManagerResponse,
    NegotiationAction,
    NegotiationEntry,
)
from marketplace.models.service import Service, ServiceCommissionStatus
from marketplace.models.user import User, UserRole

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    # User
    "User",
    "UserRole",
    # Service
    "Service",
    "ServiceCommissionStatus",
    # Commission
    "Commission",
    "CommissionStatus",
    "CommissionType",
    "ManagerResponse",
    "NegotiationAction",
    "NegotiationEntry",
    "TERMINAL_STATUSES",
    # Audit
    "AuditLog",
    "AuditAction",
]
