"""
Authentication API endpoints.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.auth.dependencies import get_current_user_optional
from marketplace.auth.jwt import COOKIE_NAME, create_access_token
from marketplace.config import settings
from marketplace.db import get_db
from marketplace.models import AuditAction, User
from marketplace.schemas.auth import LoginRequest, LoginResponse
from marketplace.utils.audit import log_action
from marketplace.utils.password import hash_password, password_needs_rehash, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/login", response_model=LoginResponse)
async def login(
    request: Request,
    response: Response,
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Authenticate user and set the JWT cookie.

    The returned role tells the client whether to use the admin
    (/api/admin) or manager (/api/panel) endpoints.
    """
    result = await db.execute(
        select(User).where(User.username == credentials.username)
    )
    user = result.scalar_one_or_none()

    if not user or not verify_password(credentials.password, user.password_hash):
        logger.warning(f"Failed login for username {credentials.username!r}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is disabled",
        )

    if password_needs_rehash(user.password_hash):
        user.password_hash = hash_password(credentials.password)

    token = create_access_token(user.id, user.role.value)

    response.set_cookie(
        key=COOKIE_NAME,
        value=token,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        max_age=settings.jwt_expire_hours * 3600,
    )

    user.last_active_at = datetime.now(timezone.utc)

    await log_action(
        db=db,
        user_id=user.id,
        action=AuditAction.LOGIN,
        request=request,
    )

    return LoginResponse(
        success=True,
        message="Login successful",
        user_id=user.id,
        role=user.role.value,
    )


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user_optional),
):
    """Clear the JWT cookie."""
    if current_user:
        await log_action(
            db=db,
            user_id=current_user.id,
            action=AuditAction.LOGOUT,
            request=request,
        )

    response.delete_cookie(
        key=COOKIE_NAME,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )

    return {"success": True, "message": "Logged out"}
