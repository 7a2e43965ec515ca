"""API router aggregation."""

from fastapi import APIRouter

from marketplace.api.admin import admin_router
from marketplace.api.auth import router as auth_router
from marketplace.api.health import router as health_router
from marketplace.api.panel import panel_router

# Main API router (for /api/* endpoints)
api_router = APIRouter(prefix="/api")

api_router.include_router(health_router)
api_router.include_router(auth_router)
api_router.include_router(admin_router)
api_router.include_router(panel_router)

__all__ = ["api_router"]
