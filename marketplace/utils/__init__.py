"""Utility functions."""

from marketplace.utils.audit import get_client_ip, log_action
from marketplace.utils.password import hash_password, verify_password

__all__ = [
    "hash_password",
    "verify_password",
    "get_client_ip",
    "log_action",
]
