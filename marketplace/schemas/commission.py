"""
Commission request and response schemas.

Percentage ranges are enforced by the negotiation engine (400), these
models only check shape.
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import AliasChoices, BaseModel, Field, model_validator

from marketplace.models import (
    CommissionStatus,
    CommissionType,
    ManagerResponse,
    NegotiationAction,
    UserRole,
)
from marketplace.services.negotiation import ResponseAction


class CommissionOfferCreate(BaseModel):
    """Manager offer on one of their services."""

    service_id: int
    offered_percentage: Decimal
    notes: Optional[str] = Field(None, max_length=500)


class AdminRespondRequest(BaseModel):
    """Admin answer to a pending offer."""

    action: ResponseAction
    counter_percentage: Optional[Decimal] = None
    notes: Optional[str] = Field(None, max_length=500)


class ManagerRespondRequest(BaseModel):
    """Manager answer to an admin counter."""

    response: ResponseAction
    counter_percentage: Optional[Decimal] = None
    notes: Optional[str] = Field(None, max_length=500)


class BulkRespondRequest(BaseModel):
    """Same admin answer applied to several commissions."""

    commission_ids: List[int] = Field(..., min_length=1)
    action: ResponseAction
    counter_percentage: Optional[Decimal] = None
    notes: Optional[str] = Field(None, max_length=500)

    @model_validator(mode="after")
    def counter_needs_percentage(self):
        if self.action == ResponseAction.COUNTER and (
            self.counter_percentage is None or self.counter_percentage <= 0
        ):
            raise ValueError(
                "counter_percentage is required for counter offers and must be greater than 0"
            )
        return self


class NegotiationEntryResponse(BaseModel):
    """One negotiation ledger entry."""

    action: NegotiationAction
    by_user: int = Field(validation_alias=AliasChoices("by_user_id", "by_user"))
    by_role: UserRole
    percentage: Optional[Decimal] = None
    note: Optional[str] = None
    at: datetime = Field(validation_alias=AliasChoices("created_at", "at"))

    model_config = {"from_attributes": True}


class CommissionResponse(BaseModel):
    """Full commission record."""

    id: int
    manager_id: int
    service_id: int
    offered_percentage: Decimal
    admin_counter_percentage: Optional[Decimal] = None
    final_percentage: Optional[Decimal] = None
    effective_percentage: Decimal
    status: CommissionStatus
    type: CommissionType

    admin_responded_by: Optional[int] = None
    admin_responded_at: Optional[datetime] = None
    admin_notes: Optional[str] = None

    manager_response: Optional[ManagerResponse] = None
    manager_notes: Optional[str] = None
    manager_responded_at: Optional[datetime] = None

    agreed_at: Optional[datetime] = None
    agreed_by: Optional[int] = None

    version: int
    created_at: datetime
    updated_at: Optional[datetime] = None

    negotiation_history: List[NegotiationEntryResponse] = []

    model_config = {"from_attributes": True}


class NegotiationHistoryResponse(BaseModel):
    commission_id: int
    status: CommissionStatus
    entries: List[NegotiationEntryResponse]


class StatusStats(BaseModel):
    count: int
    avg_percentage: Optional[float] = None
    avg_final_percentage: Optional[float] = None


class CommissionListResponse(BaseModel):
    """Paginated list of commissions."""

    items: List[CommissionResponse]
    total: int
    page: int
    per_page: int
    pages: int


class AdminCommissionListResponse(CommissionListResponse):
    """Admin listing with per-status stats over the same filter."""

    stats: Dict[str, StatusStats] = {}


class BulkRespondItem(BaseModel):
    id: int
    success: bool
    error: Optional[str] = None

    model_config = {"from_attributes": True}


class BulkRespondResponse(BaseModel):
    results: List[BulkRespondItem]
    succeeded: int
    failed: int


class MonthStats(BaseModel):
    year: int
    month: int
    count: int
    avg_percentage: Optional[float] = None


class TotalStats(BaseModel):
    total: int
    avg_percentage: Optional[float] = None
    avg_counter_percentage: Optional[float] = None
    avg_final_percentage: Optional[float] = None


class CommissionStatsResponse(BaseModel):
    """Admin dashboard statistics."""

    by_status: Dict[str, StatusStats]
    by_month: List[MonthStats]
    totals: TotalStats


class ActiveCommission(BaseModel):
    id: int
    service_id: int
    percentage: Decimal
    agreed_at: Optional[datetime] = None


class ManagerSummaryResponse(BaseModel):
    """Commission overview for the current manager."""

    agreements: Dict[str, StatusStats]
    awaiting_response: int
    active_commissions: List[ActiveCommission]


class CommissionBreakdownResponse(BaseModel):
    """Commission preview for an order amount on a service."""

    service_id: int
    amount: Decimal
    commission_percentage: Decimal
    commission_amount: Decimal
    net_amount: Decimal
