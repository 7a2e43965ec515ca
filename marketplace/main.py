"""
Marketplace commission negotiation service.

Main FastAPI application with:
- Cookie JWT authentication (admin/manager)
- Admin commission review API (/api/admin/commissions)
- Manager commission API (/api/panel/commissions)
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy import select

from marketplace.api import api_router
from marketplace.auth.middleware import AuthMiddleware
from marketplace.config import settings
from marketplace.db import get_db_context
from marketplace.models import User, UserRole
from marketplace.utils.password import hash_password

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def ensure_admin_account() -> None:
    """Create the configured admin account if no admin exists yet."""
    async with get_db_context() as db:
        result = await db.execute(
            select(User).where(User.role == UserRole.ADMIN).limit(1)
        )
        if result.scalar_one_or_none():
            return

        logger.info("Creating admin account...")
        db.add(
            User(
                username=settings.admin_username,
                password_hash=hash_password(settings.admin_password),
                role=UserRole.ADMIN,
                display_name="Admin",
                is_active=True,
            )
        )
    logger.info(f"Admin account created: {settings.admin_username}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup creates the admin account from settings when missing.
    """
    logger.info("Starting marketplace...")
    await ensure_admin_account()
    logger.info("Marketplace started")

    yield

    logger.info("Shutting down marketplace...")


app = FastAPI(
    title="Marketplace",
    description="Service marketplace with manager/admin commission negotiation",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
)

app.add_middleware(AuthMiddleware)

app.include_router(api_router)  # /api/* endpoints


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "marketplace.main:app",
        host="0.0.0.0",
        port=8000,
        reload=not settings.is_production,
    )
