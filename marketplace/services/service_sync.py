"""
Service projection sync.

Mirrors a commission's state onto its service listing. The commission row
is authoritative: the listing update runs after the commission commit and
its failure is logged, never raised.
"""

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.models import (
    Commission,
    CommissionStatus,
    Service,
    ServiceCommissionStatus,
)

logger = logging.getLogger(__name__)

STATUS_PROJECTION = {
    CommissionStatus.PENDING: ServiceCommissionStatus.PENDING,
    CommissionStatus.NEGOTIATING: ServiceCommissionStatus.NEGOTIATING,
    CommissionStatus.ACCEPTED: ServiceCommissionStatus.AGREED,
    CommissionStatus.REJECTED: ServiceCommissionStatus.REJECTED,
}


async def update_service_commission_projection(
    db: AsyncSession,
    service_id: int,
    commission_status: ServiceCommissionStatus,
    commission_id: int,
    offered_percentage: Optional[Decimal] = None,
    final_commission_percentage: Optional[Decimal] = None,
) -> bool:
    """
    Write the commission projection onto a service (no commit).

    A missing service is not an error.

    Returns:
        True if the service row was updated, False if it does not exist
    """
    values = {
        "commission_status": commission_status,
        "commission_id": commission_id,
        "final_commission_percentage": final_commission_percentage,
    }
    if offered_percentage is not None:
        values["offered_commission_percentage"] = offered_percentage

    result = await db.execute(
        update(Service).where(Service.id == service_id).values(**values)
    )
    return bool(result.rowcount)


async def sync_service_projection(db: AsyncSession, commission: Commission) -> bool:
    """
    Push commission status and percentages onto its service and commit.

    Must run after the commission itself has been committed. The update
    runs in a savepoint so a failure leaves the rest of the session usable.
    """
    synced = False
    try:
        async with db.begin_nested():
            synced = await update_service_commission_projection(
                db,
                service_id=commission.service_id,
                commission_status=STATUS_PROJECTION[commission.status],
                commission_id=commission.id,
                offered_percentage=commission.offered_percentage,
                final_commission_percentage=commission.final_percentage,
            )
    except SQLAlchemyError:
        logger.exception(
            f"Commission projection sync failed for service {commission.service_id}"
        )
    else:
        if not synced:
            logger.warning(
                f"Service {commission.service_id} not found, "
                f"commission {commission.id} projection skipped"
            )

    await db.commit()
    return synced
