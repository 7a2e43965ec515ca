"""
Authentication middleware for role-based route protection.
"""

import logging
from typing import Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from marketplace.auth.jwt import get_token_from_cookie, verify_token

logger = logging.getLogger(__name__)

# Prefix -> role allowed through it
PROTECTED_PREFIXES = {
    "/api/admin": "admin",
    "/api/panel": "manager",
}


class AuthMiddleware(BaseHTTPMiddleware):
    """
    Rejects requests to role-gated API prefixes early.

    - /api/admin/* requires the admin role
    - /api/panel/* requires the manager role

    Route dependencies re-check the user against the database; this layer
    only looks at the token.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable,
    ) -> Response:
        path = request.url.path

        required_role = None
        for prefix, role in PROTECTED_PREFIXES.items():
            if path == prefix or path.startswith(prefix + "/"):
                required_role = role
                break

        if required_role is None:
            return await call_next(request)

        token = get_token_from_cookie(request)
        payload = verify_token(token) if token else None

        if not payload:
            return JSONResponse({"detail": "Not authenticated"}, status_code=401)

        if payload.get("role") != required_role:
            logger.warning(
                f"User {payload.get('user_id')} with role {payload.get('role')} "
                f"denied access to {path}"
            )
            return JSONResponse(
                {"detail": f"{required_role.capitalize()} access required"},
                status_code=403,
            )

        return await call_next(request)
