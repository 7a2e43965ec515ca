"""
Commission negotiation engine.

Each operation loads one commission, moves it through the transition
table in services.negotiation, commits it under an optimistic version
check and then mirrors the result onto the linked service.
"""

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import flag_modified
from sqlalchemy.orm.exc import StaleDataError

from marketplace.models import (
    Commission,
    CommissionStatus,
    CommissionType,
    NegotiationAction,
    Service,
    ServiceCommissionStatus,
    UserRole,
)
from marketplace.services.errors import (
    CommissionError,
    ConcurrentUpdateError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
)
from marketplace.services.negotiation import (
    Actor,
    ResponseAction,
    apply_transition,
    validate_percentage,
)
from marketplace.services.service_sync import sync_service_projection

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


@dataclass
class BulkRespondResult:
    id: int
    success: bool
    error: Optional[str] = None


@dataclass
class CommissionBreakdown:
    amount: Decimal
    commission_percentage: Decimal
    commission_amount: Decimal
    net_amount: Decimal


async def get_commission(db: AsyncSession, commission_id: int) -> Commission:
    """Load a commission with its negotiation history or raise NotFoundError."""
    commission = await db.get(Commission, commission_id)
    if not commission:
        raise NotFoundError(f"Commission {commission_id} not found")
    return commission


async def get_manager_commission(
    db: AsyncSession,
    commission_id: int,
    manager_id: int,
) -> Commission:
    """Load a commission owned by manager_id."""
    commission = await get_commission(db, commission_id)
    if commission.manager_id != manager_id:
        raise ForbiddenError("Access denied")
    return commission


async def _find_service_commission(db: AsyncSession, service: Service) -> Optional[Commission]:
    if service.commission_id is not None:
        commission = await db.get(Commission, service.commission_id)
        if commission and commission.service_id == service.id:
            return commission

    # Projection may have lagged behind; fall back to the latest commission row
    result = await db.execute(
        select(Commission)
        .where(Commission.service_id == service.id)
        .order_by(Commission.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def _commit(db: AsyncSession, commission: Commission) -> None:
    """Commit the commission; version mismatch means someone else wrote first."""
    if commission.id is not None:
        # Ledger-only changes still have to bump and check the version
        flag_modified(commission, "status")
    commission_id = commission.id
    try:
        await db.commit()
    except StaleDataError:
        await db.rollback()
        logger.warning(f"Concurrent update detected on commission {commission_id}")
        raise ConcurrentUpdateError(
            f"Commission {commission_id} was modified by another request, reload and retry"
        )


async def submit_offer(
    db: AsyncSession,
    manager_id: int,
    service_id: int,
    percentage: Decimal,
    notes: Optional[str] = None,
) -> Commission:
    """
    Create or update the manager's commission offer for a service.

    A service carries at most one commission: an open negotiation is
    reset to a fresh manager offer in place, a finalized one is left alone.

    Raises:
        ValidationError: percentage outside the allowed range
        NotFoundError: unknown service
        ForbiddenError: service belongs to another manager
        InvalidStateError: the service's commission is already finalized
    """
    percentage = validate_percentage(percentage, "offered percentage")

    service = await db.get(Service, service_id)
    if not service:
        raise NotFoundError(f"Service {service_id} not found")
    if service.manager_id != manager_id:
        raise ForbiddenError("Service not found or access denied")

    commission = await _find_service_commission(db, service)

    if commission is None:
        commission = Commission(
            manager_id=manager_id,
            service_id=service_id,
            offered_percentage=percentage,
            status=CommissionStatus.PENDING,
            type=CommissionType.MANAGER_OFFER,
        )
        commission.add_negotiation_entry(
            NegotiationAction.OFFER,
            by_user_id=manager_id,
            by_role=UserRole.MANAGER,
            percentage=percentage,
            note=notes,
        )
        db.add(commission)
    else:
        if commission.is_finalized:
            raise InvalidStateError(
                f"Commission {commission.id} for service {service_id} has already been "
                f"finalized ({commission.status.value})"
            )
        commission.offered_percentage = percentage
        commission.status = CommissionStatus.PENDING
        commission.type = CommissionType.MANAGER_OFFER
        commission.admin_counter_percentage = None
        commission.add_negotiation_entry(
            NegotiationAction.OFFER_UPDATED,
            by_user_id=manager_id,
            by_role=UserRole.MANAGER,
            percentage=percentage,
            note=notes,
        )

    await _commit(db, commission)

    logger.info(
        f"Commission {commission.id} offer {percentage}% on service {service_id} "
        f"by manager {manager_id}"
    )

    await sync_service_projection(db, commission)
    return commission


async def _respond(
    db: AsyncSession,
    commission: Commission,
    actor: Actor,
    action: ResponseAction,
    counter_percentage: Optional[Decimal],
    notes: Optional[str],
) -> Commission:
    transition = apply_transition(commission, actor, action, counter_percentage, notes)
    await _commit(db, commission)

    logger.info(
        f"Commission {commission.id}: {actor.role.value} {actor.user_id} "
        f"{transition.ledger_action.value} -> {commission.status.value}"
    )

    await sync_service_projection(db, commission)
    return commission


async def admin_respond(
    db: AsyncSession,
    commission_id: int,
    admin_id: int,
    action: ResponseAction,
    counter_percentage: Optional[Decimal] = None,
    notes: Optional[str] = None,
) -> Commission:
    """
    Accept, reject or counter a commission as an admin.

    Raises:
        NotFoundError: unknown commission
        InvalidStateError: commission already finalized
        ValidationError: counter without a positive percentage
        ConcurrentUpdateError: commission changed since it was read
    """
    commission = await get_commission(db, commission_id)
    return await _respond(
        db,
        commission,
        Actor(role=UserRole.ADMIN, user_id=admin_id),
        action,
        counter_percentage,
        notes,
    )


async def manager_respond(
    db: AsyncSession,
    commission_id: int,
    manager_id: int,
    response: ResponseAction,
    counter_percentage: Optional[Decimal] = None,
    notes: Optional[str] = None,
) -> Commission:
    """
    Answer an admin counter offer as the owning manager.

    Raises:
        NotFoundError: unknown commission
        ForbiddenError: commission belongs to another manager
        InvalidStateError: no outstanding admin counter
        ValidationError: counter without a positive percentage
        ConcurrentUpdateError: commission changed since it was read
    """
    commission = await get_manager_commission(db, commission_id, manager_id)
    return await _respond(
        db,
        commission,
        Actor(role=UserRole.MANAGER, user_id=manager_id),
        response,
        counter_percentage,
        notes,
    )


async def bulk_admin_respond(
    db: AsyncSession,
    commission_ids: Sequence[int],
    admin_id: int,
    action: ResponseAction,
    counter_percentage: Optional[Decimal] = None,
    notes: Optional[str] = None,
) -> list[BulkRespondResult]:
    """
    Apply the same admin response to many commissions.

    Items are processed one after another, each with its own commit.
    A failing item is reported in its result and never stops the batch.
    """
    results = []
    for commission_id in commission_ids:
        try:
            await admin_respond(
                db,
                commission_id,
                admin_id,
                action,
                counter_percentage=counter_percentage,
                notes=notes,
            )
        except CommissionError as e:
            results.append(BulkRespondResult(id=commission_id, success=False, error=e.message))
            continue
        except SQLAlchemyError as e:
            logger.exception(f"Bulk respond failed on commission {commission_id}")
            await db.rollback()
            results.append(BulkRespondResult(id=commission_id, success=False, error=str(e)))
            continue

        results.append(BulkRespondResult(id=commission_id, success=True))

    succeeded = sum(1 for r in results if r.success)
    logger.info(
        f"Bulk {getattr(action, 'value', action)} by admin {admin_id}: "
        f"{succeeded}/{len(results)} commissions updated"
    )
    return results


async def get_effective_commission(db: AsyncSession, service_id: int) -> Decimal:
    """
    Percentage currently charged on a service's revenue.

    Returns 0 when the service is unknown or no agreement has been reached.
    """
    service = await db.get(Service, service_id)
    if not service:
        return Decimal("0")

    if (
        service.commission_status == ServiceCommissionStatus.AGREED
        and service.final_commission_percentage is not None
    ):
        return service.final_commission_percentage

    result = await db.execute(
        select(Commission)
        .where(
            Commission.service_id == service_id,
            Commission.status == CommissionStatus.ACCEPTED,
        )
        .order_by(Commission.agreed_at.desc())
        .limit(1)
    )
    commission = result.scalar_one_or_none()
    if commission:
        return commission.effective_percentage
    return Decimal("0")


def calculate_commission_breakdown(amount: Decimal, percentage: Decimal) -> CommissionBreakdown:
    """Split an order amount into platform commission and manager net."""
    amount = Decimal(str(amount))
    percentage = Decimal(str(percentage))
    if percentage <= 0:
        return CommissionBreakdown(
            amount=amount,
            commission_percentage=Decimal("0"),
            commission_amount=Decimal("0.00"),
            net_amount=amount.quantize(CENTS, rounding=ROUND_HALF_UP),
        )

    commission_amount = (amount * percentage / 100).quantize(CENTS, rounding=ROUND_HALF_UP)
    return CommissionBreakdown(
        amount=amount,
        commission_percentage=percentage,
        commission_amount=commission_amount,
        net_amount=(amount - commission_amount).quantize(CENTS, rounding=ROUND_HALF_UP),
    )
