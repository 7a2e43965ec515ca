"""Admin commission negotiation API endpoints."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.auth.dependencies import require_admin
from marketplace.config import settings
from marketplace.db import get_db
from marketplace.models import AuditAction, Commission, CommissionStatus, User
from marketplace.schemas.commission import (
    AdminCommissionListResponse,
    AdminRespondRequest,
    BulkRespondItem,
    BulkRespondRequest,
    BulkRespondResponse,
    CommissionResponse,
    CommissionStatsResponse,
    NegotiationEntryResponse,
    NegotiationHistoryResponse,
)
from marketplace.services.commission import (
    admin_respond,
    bulk_admin_respond,
    get_commission,
)
from marketplace.services.commission_stats import commission_stats, stats_by_status
from marketplace.services.errors import CommissionError, http_error
from marketplace.utils.audit import log_action

router = APIRouter(prefix="/commissions")

SORT_ORDERS = {
    "newest": Commission.created_at.desc(),
    "oldest": Commission.created_at.asc(),
    "percentage_asc": Commission.offered_percentage.asc(),
    "percentage_desc": Commission.offered_percentage.desc(),
}


@router.get("", response_model=AdminCommissionListResponse)
async def list_commissions(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
    status_filter: Optional[CommissionStatus] = Query(None, alias="status"),
    manager_id: Optional[int] = Query(None),
    service_id: Optional[int] = Query(None),
    min_percentage: Optional[Decimal] = Query(None, ge=0),
    max_percentage: Optional[Decimal] = Query(None, ge=0),
    sort: str = Query("newest", pattern="^(newest|oldest|percentage_asc|percentage_desc)$"),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
):
    """List all commissions with filters, sorting and per-status stats."""
    conditions = []
    if status_filter:
        conditions.append(Commission.status == status_filter)
    if manager_id is not None:
        conditions.append(Commission.manager_id == manager_id)
    if service_id is not None:
        conditions.append(Commission.service_id == service_id)
    if min_percentage is not None:
        conditions.append(Commission.offered_percentage >= min_percentage)
    if max_percentage is not None:
        conditions.append(Commission.offered_percentage <= max_percentage)

    total = await db.scalar(
        select(func.count()).select_from(Commission).where(*conditions)
    )

    result = await db.execute(
        select(Commission)
        .where(*conditions)
        .order_by(SORT_ORDERS[sort], Commission.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    commissions = result.scalars().all()

    return AdminCommissionListResponse(
        items=[CommissionResponse.model_validate(c) for c in commissions],
        total=total or 0,
        page=page,
        per_page=per_page,
        pages=(total + per_page - 1) // per_page if total else 0,
        stats=await stats_by_status(db, *conditions),
    )


@router.get("/pending", response_model=list[CommissionResponse])
async def list_pending_commissions(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Commissions waiting on an admin decision, oldest first."""
    result = await db.execute(
        select(Commission)
        .where(Commission.status == CommissionStatus.PENDING)
        .order_by(Commission.created_at.asc(), Commission.id.asc())
    )
    return result.scalars().all()


@router.get("/stats", response_model=CommissionStatsResponse)
async def get_commission_stats(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
):
    """Commission statistics by status, by month and overall."""
    return await commission_stats(db, date_from=date_from, date_to=date_to)


@router.patch("/bulk", response_model=BulkRespondResponse)
async def bulk_respond(
    request: Request,
    data: BulkRespondRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """
    Apply one admin response to several commissions.

    Every id gets its own result; a failing id never aborts the batch.
    """
    # Failed items roll the session back, which expires current_user
    admin_id = current_user.id

    if len(data.commission_ids) > settings.bulk_respond_max_items:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"At most {settings.bulk_respond_max_items} commissions per request",
        )

    results = await bulk_admin_respond(
        db,
        data.commission_ids,
        admin_id,
        data.action,
        counter_percentage=data.counter_percentage,
        notes=data.notes,
    )
    succeeded = sum(1 for r in results if r.success)

    await log_action(
        db=db,
        user_id=admin_id,
        action=AuditAction.BULK_RESPOND_COMMISSION,
        action_metadata={
            "action": data.action.value,
            "commission_ids": data.commission_ids,
            "succeeded": succeeded,
        },
        request=request,
    )
    await db.commit()

    return BulkRespondResponse(
        results=[BulkRespondItem.model_validate(r) for r in results],
        succeeded=succeeded,
        failed=len(results) - succeeded,
    )


@router.get("/{commission_id}", response_model=CommissionResponse)
async def get_commission_detail(
    commission_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Get a single commission with its negotiation history."""
    try:
        return await get_commission(db, commission_id)
    except CommissionError as e:
        raise http_error(e)


@router.get("/{commission_id}/history", response_model=NegotiationHistoryResponse)
async def get_commission_history(
    commission_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Ordered negotiation ledger of a commission."""
    try:
        commission = await get_commission(db, commission_id)
    except CommissionError as e:
        raise http_error(e)

    return NegotiationHistoryResponse(
        commission_id=commission.id,
        status=commission.status,
        entries=[
            NegotiationEntryResponse.model_validate(e) for e in commission.negotiation_history
        ],
    )


@router.patch("/{commission_id}/respond", response_model=CommissionResponse)
async def respond_to_commission(
    commission_id: int,
    request: Request,
    data: AdminRespondRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Accept, reject or counter a manager's offer."""
    try:
        commission = await admin_respond(
            db,
            commission_id,
            current_user.id,
            data.action,
            counter_percentage=data.counter_percentage,
            notes=data.notes,
        )
    except CommissionError as e:
        raise http_error(e)

    await log_action(
        db=db,
        user_id=current_user.id,
        action=AuditAction.RESPOND_COMMISSION,
        target_id=commission.id,
        action_metadata={
            "action": data.action.value,
            "counter_percentage": str(data.counter_percentage) if data.counter_percentage else None,
            "status": commission.status.value,
        },
        request=request,
    )
    await db.commit()

    return commission
