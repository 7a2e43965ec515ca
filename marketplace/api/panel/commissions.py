"""Manager panel commission API endpoints."""

from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.auth.dependencies import require_manager
from marketplace.db import get_db
from marketplace.models import AuditAction, Commission, CommissionStatus, Service, User
from marketplace.schemas.commission import (
    CommissionBreakdownResponse,
    CommissionListResponse,
    CommissionOfferCreate,
    CommissionResponse,
    ManagerRespondRequest,
    ManagerSummaryResponse,
    NegotiationEntryResponse,
    NegotiationHistoryResponse,
)
from marketplace.services.commission import (
    calculate_commission_breakdown,
    get_effective_commission,
    get_manager_commission,
    manager_respond,
    submit_offer,
)
from marketplace.services.commission_stats import manager_summary
from marketplace.services.errors import CommissionError, http_error
from marketplace.utils.audit import log_action

router = APIRouter(prefix="/commissions")


@router.post("/offers", response_model=CommissionResponse, status_code=status.HTTP_201_CREATED)
async def create_offer(
    request: Request,
    data: CommissionOfferCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_manager),
):
    """
    Offer a commission percentage on one of the manager's services.

    An open negotiation on the same service is restarted from this offer.
    """
    try:
        commission = await submit_offer(
            db,
            current_user.id,
            data.service_id,
            data.offered_percentage,
            notes=data.notes,
        )
    except CommissionError as e:
        raise http_error(e)

    await log_action(
        db=db,
        user_id=current_user.id,
        action=AuditAction.SUBMIT_COMMISSION_OFFER,
        target_id=commission.id,
        action_metadata={
            "service_id": data.service_id,
            "offered_percentage": str(commission.offered_percentage),
        },
        request=request,
    )
    await db.commit()

    return commission


@router.get("/offers", response_model=CommissionListResponse)
async def list_my_offers(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_manager),
    status_filter: Optional[CommissionStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
):
    """List the current manager's commissions, newest first."""
    conditions = [Commission.manager_id == current_user.id]
    if status_filter:
        conditions.append(Commission.status == status_filter)

    total = await db.scalar(
        select(func.count()).select_from(Commission).where(*conditions)
    )

    result = await db.execute(
        select(Commission)
        .where(*conditions)
        .order_by(Commission.created_at.desc(), Commission.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )

    return CommissionListResponse(
        items=[CommissionResponse.model_validate(c) for c in result.scalars().all()],
        total=total or 0,
        page=page,
        per_page=per_page,
        pages=(total + per_page - 1) // per_page if total else 0,
    )


@router.get("/offers/{commission_id}", response_model=CommissionResponse)
async def get_my_offer(
    commission_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_manager),
):
    """Get one of the manager's commissions."""
    try:
        return await get_manager_commission(db, commission_id, current_user.id)
    except CommissionError as e:
        raise http_error(e)


@router.get("/offers/{commission_id}/history", response_model=NegotiationHistoryResponse)
async def get_my_offer_history(
    commission_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_manager),
):
    """Negotiation ledger of one of the manager's commissions."""
    try:
        commission = await get_manager_commission(db, commission_id, current_user.id)
    except CommissionError as e:
        raise http_error(e)

    return NegotiationHistoryResponse(
        commission_id=commission.id,
        status=commission.status,
        entries=[
            NegotiationEntryResponse.model_validate(e) for e in commission.negotiation_history
        ],
    )


@router.patch("/offers/{commission_id}/respond", response_model=CommissionResponse)
async def respond_to_counter(
    commission_id: int,
    request: Request,
    data: ManagerRespondRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_manager),
):
    """Accept, reject or re-counter the admin's counter offer."""
    try:
        commission = await manager_respond(
            db,
            commission_id,
            current_user.id,
            data.response,
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
            "response": data.response.value,
            "counter_percentage": str(data.counter_percentage) if data.counter_percentage else None,
            "status": commission.status.value,
        },
        request=request,
    )
    await db.commit()

    return commission


@router.get("/summary", response_model=ManagerSummaryResponse)
async def get_my_summary(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_manager),
):
    """Commission counts and active agreements of the current manager."""
    return await manager_summary(db, current_user.id)


@router.get("/preview", response_model=CommissionBreakdownResponse)
async def preview_commission(
    service_id: int = Query(...),
    amount: Decimal = Query(..., gt=0),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_manager),
):
    """Show how an order amount on a service splits between platform and manager."""
    service = await db.get(Service, service_id)
    if not service or service.manager_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Service not found",
        )

    percentage = await get_effective_commission(db, service_id)
    breakdown = calculate_commission_breakdown(amount, percentage)

    return CommissionBreakdownResponse(
        service_id=service_id,
        amount=breakdown.amount,
        commission_percentage=breakdown.commission_percentage,
        commission_amount=breakdown.commission_amount,
        net_amount=breakdown.net_amount,
    )
