"""
SuperClaw - Main Application Entry Point
"""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from superclaw.agent.structured_logging import api_log, enable_structured_logging
from superclaw.api import (
    auth_router,
    api_v1_router,
    usage_router,
    agents_router,
    cron_router,
    webhooks_router,
)
from superclaw.config import settings
from superclaw.db import init_db, async_session_maker

logger = logging.getLogger(__name__)

VERSION = "1.0.0"

# Global start time for uptime tracking
_app_start_time = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler - runs on startup and shutdown"""
    global _app_start_time
    _app_start_time = time.time()

    if settings.structured_logging:
        enable_structured_logging(logging.DEBUG if settings.debug else logging.INFO)

    # Startup
    api_log.info("SuperClaw starting up...")
    await init_db()
    api_log.info("Database initialized")

    # Monthly usage reset
    if settings.enable_scheduler:
        try:
            from superclaw.scripts.scheduled_tasks import start_scheduler
            start_scheduler()
        except Exception as e:
            api_log.error(f"Could not start scheduler: {e}")

    yield

    # Shutdown
    if settings.enable_scheduler:
        from superclaw.scripts.scheduled_tasks import stop_scheduler
        stop_scheduler()

    api_log.info("SuperClaw shutdown complete.")


app = FastAPI(
    title=settings.app_name,
    description="Multi-channel AI agent routing with tiered usage metering",
    version=VERSION,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth_router, prefix=settings.api_prefix)
app.include_router(api_v1_router, prefix=settings.api_prefix)
app.include_router(usage_router, prefix=settings.api_prefix)
app.include_router(agents_router, prefix=settings.api_prefix)
app.include_router(cron_router, prefix=settings.api_prefix)
app.include_router(webhooks_router, prefix=settings.api_prefix)


@app.get("/health")
async def health():
    """Health check with a database probe and uptime."""
    db_status = "connected"
    try:
        async with async_session_maker() as db:
            await db.execute(text("SELECT 1"))
    except Exception as e:
        db_status = f"error: {e}"

    uptime = time.time() - _app_start_time if _app_start_time else 0

    return {
        "name": settings.app_name,
        "status": "healthy" if db_status == "connected" else "degraded",
        "version": VERSION,
        "uptime_seconds": round(uptime, 1),
        "database": db_status,
        "completion_model": settings.completion_model,
        "scheduler": settings.enable_scheduler,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("superclaw.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
