"""
🧭✨ Reelkeeper • API v1 Router Aggregator
=========================================

Exports the combined `router` and each sub-router.

Quick usage
-----------
    from app.api.v1.routers import router as v1_router
    app.include_router(v1_router, prefix="/api/v1")

Rate limits live in the child routers.
"""

from fastapi import APIRouter

from .discovery import router as discovery_router
from .media import router as media_router


def build_v1_router() -> APIRouter:
    """Compose the v1 surface: library (ingest, reads, toggles) and discovery."""
    r = APIRouter()
    r.include_router(media_router)
    r.include_router(discovery_router)
    return r


router = build_v1_router()

__all__ = ["router", "build_v1_router", "media_router", "discovery_router"]
