"""
FastAPI application entrypoint.

Lifespan:
  • On startup: verify DB connectivity, open the shared upstream clients.
  • On shutdown: close the clients and dispose the engine cleanly.

Routers:
  • /upview/feedback      — API-key feedback ingestion (rate limited)
  • /avatars              — cached Roblox headshots
  • /roblox, /auth/roblox — Roblox proxy and OAuth callback
  • /api/user             — API key and profile management
  • /workspaces           — workspace CRUD
  • /stripe               — checkout and webhooks
  • /health               — shallow liveness probe
"""

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from upview.core.clients import close_clients, open_clients
from upview.core.config import settings
from upview.core.database import engine
from upview.core.exception_handlers import setup_exception_handlers
from upview.routers.avatars import router as avatars_router
from upview.routers.billing import router as billing_router
from upview.routers.feedback import router as feedback_router
from upview.routers.roblox import router as roblox_router
from upview.routers.user import router as user_router
from upview.routers.workspaces import router as workspaces_router

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan ────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""

    # Startup: verify DB is reachable
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Database connection verified ✓")
    except Exception:
        logger.warning(
            "Could not reach the database on startup. "
            "The app will start, but requests will fail until the DB is available."
        )

    open_clients(app)
    logger.info("Upstream clients ready ✓")

    yield  # ← application runs here

    # Shutdown: close pooled connections
    await close_clients(app)
    await engine.dispose()
    logger.info("Database engine disposed ✓")


# ── App ─────────────────────────────────────────────────────
app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    description=(
        "Upview backend — player feedback ingestion, Roblox avatars, "
        "workspaces and billing."
    ),
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "x-api-key"],
    expose_headers=[
        "X-RateLimit-Limit",
        "X-RateLimit-Remaining",
        "X-RateLimit-Reset",
        "Retry-After",
    ],
)

setup_exception_handlers(app)

# Mount routers
app.include_router(feedback_router, prefix="/upview")
app.include_router(avatars_router, prefix="/avatars")
app.include_router(roblox_router)
app.include_router(user_router, prefix="/api/user")
app.include_router(workspaces_router, prefix="/workspaces")
app.include_router(billing_router, prefix="/stripe")


# ── Health check ────────────────────────────────────────────
@app.get(
    "/health",
    tags=["System"],
    summary="Liveness probe",
)
async def health_check() -> dict[str, str]:
    """Shallow health check — confirms the process is alive."""
    return {"status": "healthy"}
