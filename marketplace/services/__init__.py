"""Business logic services."""

from marketplace.services.commission import (
    admin_respond,
    bulk_admin_respond,
    manager_respond,
    submit_offer,
)
from marketplace.services.negotiation import Actor, ResponseAction

__all__ = [
    "Actor",
    "ResponseAction",
    "submit_offer",
    "admin_respond",
    "manager_respond",
    "bulk_admin_respond",
]
