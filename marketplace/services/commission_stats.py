"""
Read-only aggregations over the commissions table.

SQL AVG skips NULLs, so averages of counter/final percentages only cover
commissions where that value is set.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.config import settings
from marketplace.models import Commission, CommissionStatus


def _avg(value) -> Optional[float]:
    if value is None:
        return None
    return round(float(value), 2)


def date_window(
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
) -> list:
    """WHERE clauses restricting commissions to a creation-date window."""
    conditions = []
    if date_from:
        conditions.append(Commission.created_at >= date_from)
    if date_to:
        conditions.append(Commission.created_at <= date_to)
    return conditions


async def stats_by_status(db: AsyncSession, *conditions) -> dict[str, dict[str, Any]]:
    """Count and average percentages grouped by status."""
    result = await db.execute(
        select(
            Commission.status,
            func.count(Commission.id).label("count"),
            func.avg(Commission.offered_percentage).label("avg_percentage"),
            func.avg(Commission.final_percentage).label("avg_final_percentage"),
        )
        .where(*conditions)
        .group_by(Commission.status)
    )

    stats = {}
    for row in result.all():
        status = row.status.value if isinstance(row.status, CommissionStatus) else row.status
        stats[status] = {
            "count": row.count,
            "avg_percentage": _avg(row.avg_percentage),
            "avg_final_percentage": _avg(row.avg_final_percentage),
        }
    return stats


async def stats_by_month(
    db: AsyncSession,
    *conditions,
    months: Optional[int] = None,
) -> list[dict[str, Any]]:
    """Count and average offered percentage per creation month, newest first."""
    months = months or settings.commission_stats_months
    year = func.extract("year", Commission.created_at).label("year")
    month = func.extract("month", Commission.created_at).label("month")

    result = await db.execute(
        select(
            year,
            month,
            func.count(Commission.id).label("count"),
            func.avg(Commission.offered_percentage).label("avg_percentage"),
        )
        .where(*conditions)
        .group_by(year, month)
        .order_by(year.desc(), month.desc())
        .limit(months)
    )

    return [
        {
            "year": int(row.year),
            "month": int(row.month),
            "count": row.count,
            "avg_percentage": _avg(row.avg_percentage),
        }
        for row in result.all()
    ]


async def stats_totals(db: AsyncSession, *conditions) -> dict[str, Any]:
    """Global count and average of every percentage column."""
    result = await db.execute(
        select(
            func.count(Commission.id).label("total"),
            func.avg(Commission.offered_percentage).label("avg_percentage"),
            func.avg(Commission.admin_counter_percentage).label("avg_counter_percentage"),
            func.avg(Commission.final_percentage).label("avg_final_percentage"),
        ).where(*conditions)
    )
    row = result.one()
    return {
        "total": row.total or 0,
        "avg_percentage": _avg(row.avg_percentage),
        "avg_counter_percentage": _avg(row.avg_counter_percentage),
        "avg_final_percentage": _avg(row.avg_final_percentage),
    }


async def commission_stats(
    db: AsyncSession,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
) -> dict[str, Any]:
    """Dashboard statistics: by status, by month and overall."""
    conditions = date_window(date_from, date_to)
    return {
        "by_status": await stats_by_status(db, *conditions),
        "by_month": await stats_by_month(db, *conditions),
        "totals": await stats_totals(db, *conditions),
    }


async def manager_summary(db: AsyncSession, manager_id: int) -> dict[str, Any]:
    """
    Commission overview for one manager.

    Returns per-status stats, how many commissions wait on the manager
    (an admin counter is outstanding) and the accepted agreements.
    """
    owned = Commission.manager_id == manager_id
    by_status = await stats_by_status(db, owned)

    result = await db.execute(
        select(Commission)
        .where(owned, Commission.status == CommissionStatus.ACCEPTED)
        .order_by(Commission.agreed_at.desc())
    )
    active = result.scalars().all()

    return {
        "agreements": by_status,
        "awaiting_response": by_status.get(CommissionStatus.NEGOTIATING.value, {}).get("count", 0),
        "active_commissions": [
            {
                "id": c.id,
                "service_id": c.service_id,
                "percentage": c.effective_percentage,
                "agreed_at": c.agreed_at,
            }
            for c in active
        ],
    }
