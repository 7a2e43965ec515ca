"""
Audit trail for logins and commission changes.

Rows are added to the caller's session; the route commits them together
with the change they describe.
"""

import logging
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.models.audit import AuditAction, AuditLog

logger = logging.getLogger(__name__)

COMMISSION_ACTIONS = frozenset({
    AuditAction.SUBMIT_COMMISSION_OFFER,
    AuditAction.RESPOND_COMMISSION,
    AuditAction.BULK_RESPOND_COMMISSION,
})


async def log_action(
    db: AsyncSession,
    user_id: int,
    action: AuditAction,
    request=None,
    target_id: Optional[int] = None,
    action_metadata: Optional[dict[str, Any]] = None,
) -> AuditLog:
    """
    Record an auditable action.

    Commission actions are tagged with the "commission" target type, and
    the client IP is taken from request when one is given.
    """
    log_entry = AuditLog(
        user_id=user_id,
        action=action,
        target_type="commission" if action in COMMISSION_ACTIONS else None,
        target_id=target_id,
        action_metadata=action_metadata,
        ip_address=get_client_ip(request) if request is not None else None,
    )
    db.add(log_entry)
    logger.debug(f"Audit: user {user_id} {action.value} target={target_id}")
    return log_entry


def get_client_ip(request) -> Optional[str]:
    """First X-Forwarded-For hop, else the socket peer."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    if request.client:
        return request.client.host

    return None
