"""FastAPI control surface: liveness, status and manual trigger."""

import logging
import time
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware

from greenboard import __version__
from greenboard.config import Settings
from greenboard.scheduler import ContributionScheduler

logger = logging.getLogger(__name__)

APPLICATION_NAME = "greenboard"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def create_app(scheduler: ContributionScheduler, settings: Settings) -> FastAPI:
    """Build the control surface around an explicitly provided scheduler."""
    started = time.monotonic()

    app = FastAPI(title="Greenboard Control API", version=__version__)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def uptime() -> float:
        return round(time.monotonic() - started, 3)

    @app.get("/", tags=["Health"])
    @app.get("/health", tags=["Health"])
    async def health_check() -> dict[str, Any]:
        """Liveness probe."""
        return {
            "status": "healthy",
            "timestamp": _now_iso(),
            "uptime": uptime(),
        }

    @app.get("/status", tags=["Status"])
    async def get_status() -> dict[str, Any]:
        """Scheduler snapshot plus process metadata."""
        return {
            "application": APPLICATION_NAME,
            "version": __version__,
            "environment": settings.environment,
            "dry_run": settings.app.dry_run,
            "scheduler": scheduler.status().model_dump(mode="json"),
            "uptime": uptime(),
            "timestamp": _now_iso(),
        }

    @app.post("/trigger", status_code=status.HTTP_202_ACCEPTED, tags=["Control"])
    async def trigger_run() -> dict[str, Any]:
        """Start a run in the background and acknowledge immediately."""
        logger.info("Manual trigger received via HTTP")
        busy = scheduler.executing
        scheduler.trigger()
        return {
            "message": "Task triggered successfully",
            "accepted": True,
            "already_running": busy,
            "timestamp": _now_iso(),
        }

    return app
