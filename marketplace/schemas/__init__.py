"""Pydantic schemas for request/response validation."""

from marketplace.schemas.auth import LoginRequest, LoginResponse
from marketplace.schemas.commission import (
    AdminCommissionListResponse,
    AdminRespondRequest,
    BulkRespondRequest,
    BulkRespondResponse,
    CommissionBreakdownResponse,
    CommissionListResponse,
    CommissionOfferCreate,
    CommissionResponse,
    CommissionStatsResponse,
    ManagerRespondRequest,
    ManagerSummaryResponse,
    NegotiationEntryResponse,
    NegotiationHistoryResponse,
)

__all__ = [
    # Auth
    "LoginRequest",
    "LoginResponse",
    # Commission
    "CommissionOfferCreate",
    "AdminRespondRequest",
    "ManagerRespondRequest",
    "BulkRespondRequest",
    "CommissionResponse",
    "CommissionListResponse",
    "AdminCommissionListResponse",
    "NegotiationEntryResponse",
    "NegotiationHistoryResponse",
    "BulkRespondResponse",
    "CommissionStatsResponse",
    "ManagerSummaryResponse",
    "CommissionBreakdownResponse",
]
