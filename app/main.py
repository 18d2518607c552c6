# app/main.py
from __future__ import annotations

"""
# Reelkeeper API — Application Entrypoint (FastAPI)

ASGI application factory and lifecycle for the personal media-tracking
dashboard backend.

## Middleware order
1) request id → 2) CORS → 3) gzip → 4) rate limits

## Probes
- `/healthz` — liveness (process up).
- `/readyz` — readiness (quick DB `SELECT 1`).
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator
import os

from fastapi import FastAPI
from loguru import logger
from starlette.middleware.cors import CORSMiddleware
from starlette.middleware.gzip import GZipMiddleware
from starlette.responses import JSONResponse

# Importing sets up Loguru sinks and the stdlib intercept.
from app.core import logger as _logsetup  # noqa: F401
from app.api.v1.routers import router as api_v1_router
from app.core.config import settings
from app.core.exception_handlers import install_exception_handlers
from app.core.limiter import install_rate_limiter
from app.db.session import async_engine, db_healthcheck
from app.middleware.request_id import RequestIDMiddleware


# ─────────────────────────────────────────────────────────────────────────────
# 🔄 Lifespan: startup & shutdown
# ─────────────────────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Log a banner on startup; dispose the DB engine on shutdown."""
    logger.info(
        "✅ {} starting up (env={}, catalog configured={})",
        settings.PROJECT_NAME,
        settings.ENV,
        settings.catalog_configured,
    )
    try:
        yield
    finally:
        await async_engine.dispose()
        logger.info("🛑 Database engine disposed; {} shutting down", settings.PROJECT_NAME)


# ─────────────────────────────────────────────────────────────────────────────
# 🏗️ App factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app() -> FastAPI:
    """Build the FastAPI app with middleware, exception handlers, routers and probes."""
    enable_docs = settings.ENABLE_DOCS and not settings.is_production
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        docs_url="/docs" if enable_docs else None,
        redoc_url="/redoc" if enable_docs else None,
        openapi_url="/openapi.json" if enable_docs else None,
        lifespan=lifespan,
    )

    # ── Middlewares (added innermost first; request id ends up outermost) ───
    install_rate_limiter(app)
    app.add_middleware(GZipMiddleware, minimum_size=1024)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.frontend_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "HEAD", "OPTIONS", "POST", "DELETE"],
        allow_headers=["Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
        max_age=3600,
    )
    app.add_middleware(RequestIDMiddleware)

    install_exception_handlers(app)

    # ── Routers (versioned API) ─────────────────────────────────────────────
    app.include_router(api_v1_router, prefix=settings.API_V1_STR)

    # ── Meta endpoints ──────────────────────────────────────────────────────
    @app.get("/healthz", tags=["meta"])
    async def healthz() -> dict[str, bool]:
        """Liveness probe; no external checks."""
        return {"ok": True}

    @app.get("/readyz", tags=["meta"])
    async def readyz() -> JSONResponse:
        """Readiness probe: 200 when the database answers, 503 otherwise."""
        db_ok = await db_healthcheck()
        return JSONResponse(
            {"ready": db_ok, "checks": {"db": db_ok}},
            status_code=200 if db_ok else 503,
        )

    return app


# ─────────────────────────────────────────────────────────────────────────────
# 🚀 Module-level ASGI app for Uvicorn
# ─────────────────────────────────────────────────────────────────────────────
app = create_app()
__all__ = ["create_app", "app"]


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("RELOAD", "1") == "1",
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )
