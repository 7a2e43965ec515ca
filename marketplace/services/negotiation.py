"""
Commission negotiation state machine.

One transition table drives both sides of the negotiation:

    (role, action)            from                      to
    admin   accept            pending | negotiating     accepted
    admin   reject            pending | negotiating     rejected
    admin   counter           pending | negotiating     negotiating
    manager accept            negotiating               accepted
    manager reject            negotiating               rejected
    manager counter           negotiating               pending

apply_transition() only mutates the in-memory Commission; loading,
persisting and the service projection are handled by the caller.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from marketplace.config import settings
from marketplace.models import (
    Commission,
    CommissionStatus,
    CommissionType,
    ManagerResponse,
    NegotiationAction,
    UserRole,
)
from marketplace.models.base import PERCENTAGE_PLACES
from marketplace.services.errors import InvalidStateError, ValidationError

PERCENTAGE_STEP = Decimal(1).scaleb(-PERCENTAGE_PLACES)


class ResponseAction(str, Enum):
    """What a side can do with the proposal in front of it."""
    ACCEPT = "accept"
    REJECT = "reject"
    COUNTER = "counter"


@dataclass(frozen=True)
class Actor:
    """Caller identity as seen by the engine."""
    role: UserRole
    user_id: int


@dataclass(frozen=True)
class Transition:
    sources: frozenset
    target: CommissionStatus
    ledger_action: NegotiationAction
    requires_counter: bool = False


_OPEN = frozenset({CommissionStatus.PENDING, CommissionStatus.NEGOTIATING})
_AWAITING_MANAGER = frozenset({CommissionStatus.NEGOTIATING})

TRANSITIONS: dict[tuple[UserRole, ResponseAction], Transition] = {
    (UserRole.ADMIN, ResponseAction.ACCEPT): Transition(
        _OPEN, CommissionStatus.ACCEPTED, NegotiationAction.ADMIN_ACCEPT,
    ),
    (UserRole.ADMIN, ResponseAction.REJECT): Transition(
        _OPEN, CommissionStatus.REJECTED, NegotiationAction.ADMIN_REJECT,
    ),
    (UserRole.ADMIN, ResponseAction.COUNTER): Transition(
        _OPEN, CommissionStatus.NEGOTIATING, NegotiationAction.ADMIN_COUNTER,
        requires_counter=True,
    ),
    (UserRole.MANAGER, ResponseAction.ACCEPT): Transition(
        _AWAITING_MANAGER, CommissionStatus.ACCEPTED, NegotiationAction.MANAGER_ACCEPT_COUNTER,
    ),
    (UserRole.MANAGER, ResponseAction.REJECT): Transition(
        _AWAITING_MANAGER, CommissionStatus.REJECTED, NegotiationAction.MANAGER_REJECT_COUNTER,
    ),
    (UserRole.MANAGER, ResponseAction.COUNTER): Transition(
        _AWAITING_MANAGER, CommissionStatus.PENDING, NegotiationAction.MANAGER_COUNTER,
        requires_counter=True,
    ),
}


def validate_percentage(value: Optional[Decimal], field: str = "percentage") -> Decimal:
    """Check a proposed percentage against the configured bounds and stored precision."""
    if value is None:
        raise ValidationError(f"{field} is required")
    value = Decimal(str(value))
    low = settings.min_commission_percentage
    high = settings.max_commission_percentage
    if value < low or value > high:
        raise ValidationError(f"{field} must be between {low} and {high}, got {value}")
    if value != value.quantize(PERCENTAGE_STEP):
        raise ValidationError(
            f"{field} allows at most {PERCENTAGE_PLACES} decimal places, got {value}"
        )
    return value


def validate_counter(value: Optional[Decimal]) -> Decimal:
    if value is None or Decimal(str(value)) <= 0:
        raise ValidationError("Counter percentage is required and must be greater than 0")
    return validate_percentage(value, "counter percentage")


def check_can_respond(commission: Commission, actor: Actor) -> None:
    """Raise InvalidStateError when actor may not answer this commission now."""
    if commission.is_finalized:
        raise InvalidStateError(
            f"Commission {commission.id} has already been finalized ({commission.status.value})"
        )
    if actor.role == UserRole.MANAGER and (
        commission.status != CommissionStatus.NEGOTIATING
        or commission.admin_counter_percentage is None
    ):
        raise InvalidStateError("No admin counter offer to respond to")


def apply_transition(
    commission: Commission,
    actor: Actor,
    action: ResponseAction,
    counter_percentage: Optional[Decimal] = None,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Transition:
    """
    Move commission along the transition table and append one ledger entry.

    Raises:
        InvalidStateError: commission is finalized, or a manager answers
            without an outstanding admin counter
        ValidationError: counter without a usable percentage
    """
    try:
        action = ResponseAction(action)
    except ValueError:
        raise ValidationError(f"Unknown response action: {action}")

    transition = TRANSITIONS.get((actor.role, action))
    if transition is None:
        raise ValidationError(f"Role {actor.role.value} cannot negotiate commissions")

    check_can_respond(commission, actor)
    if commission.status not in transition.sources:
        raise InvalidStateError(
            f"Cannot {action.value} a commission in status {commission.status.value}"
        )

    if transition.requires_counter:
        counter_percentage = validate_counter(counter_percentage)

    now = now or datetime.now(timezone.utc)
    if actor.role == UserRole.ADMIN:
        percentage = _apply_admin(commission, actor, transition, counter_percentage, notes, now)
    else:
        percentage = _apply_manager(commission, actor, transition, counter_percentage, notes, now)

    commission.status = transition.target
    commission.add_negotiation_entry(
        transition.ledger_action,
        by_user_id=actor.user_id,
        by_role=actor.role,
        percentage=percentage,
        note=notes,
    )
    return transition


def _apply_admin(commission, actor, transition, counter_percentage, notes, now):
    commission.admin_responded_by = actor.user_id
    commission.admin_responded_at = now
    commission.admin_notes = notes

    if transition.target == CommissionStatus.NEGOTIATING:
        commission.admin_counter_percentage = counter_percentage
        commission.type = CommissionType.ADMIN_COUNTER
        return counter_percentage

    # Terminal: any outstanding counter is withdrawn
    commission.admin_counter_percentage = None
    if transition.target == CommissionStatus.ACCEPTED:
        _agree(commission, commission.offered_percentage, actor, now)
        return commission.offered_percentage
    return None


def _apply_manager(commission, actor, transition, counter_percentage, notes, now):
    commission.manager_notes = notes
    commission.manager_responded_at = now
    counter_on_table = commission.admin_counter_percentage
    commission.admin_counter_percentage = None

    if transition.target == CommissionStatus.ACCEPTED:
        commission.manager_response = ManagerResponse.ACCEPT
        _agree(commission, counter_on_table, actor, now)
        return counter_on_table

    if transition.target == CommissionStatus.REJECTED:
        commission.manager_response = ManagerResponse.REJECT
        return None

    # Counter goes back to the admin as a fresh manager offer
    commission.manager_response = ManagerResponse.COUNTER
    commission.offered_percentage = counter_percentage
    commission.type = CommissionType.MANAGER_OFFER
    commission.admin_notes = None
    commission.admin_responded_by = None
    commission.admin_responded_at = None
    return counter_percentage


def _agree(commission: Commission, percentage: Decimal, actor: Actor, now: datetime) -> None:
    commission.final_percentage = percentage
    commission.agreed_at = now
    commission.agreed_by = actor.user_id
