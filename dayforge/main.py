"""dayforge application entry point.

Quick Start:
    $ dayforge serve            # Start the API server
    $ dayforge plan --date ...  # Propose a day plan from the terminal

Environment:
    DAYFORGE_ENV                # development/production (default: development)
    DAYFORGE_LOG_LEVEL          # DEBUG/INFO/WARNING/ERROR (default: INFO)
    GOOGLE_MAPS_API_KEY         # enables travel blocks
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import uvicorn
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from fastapi import FastAPI

from dayforge import __version__
from dayforge.api.routes import router, set_orchestrator
from dayforge.config import get_settings
from dayforge.database import close_db, init_db
from dayforge.logging_config import get_logger, setup_logging
from dayforge.orchestrator import Orchestrator

setup_logging()
logger = get_logger(__name__)

_scheduler: Optional[AsyncIOScheduler] = None


async def _refresh_priorities(orch: Orchestrator) -> None:
    try:
        await orch.refresh_priorities()
    except Exception as exc:
        logger.error("priority_refresh_failed", error=f"{type(exc).__name__}: {exc}")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application startup and shutdown lifecycle."""
    global _scheduler
    settings = get_settings()
    logger.info("dayforge_starting", version=__version__, env=settings.dayforge_env)

    await init_db()

    orchestrator = Orchestrator()
    set_orchestrator(orchestrator)

    _scheduler = AsyncIOScheduler(job_defaults={"coalesce": True, "max_instances": 1})
    _scheduler.add_job(
        _refresh_priorities,
        trigger=IntervalTrigger(minutes=settings.priority_refresh_minutes),
        kwargs={"orch": orchestrator},
        id="refresh_task_priorities",
        name="Refresh stale task priorities",
    )
    _scheduler.start()

    logger.info(
        "dayforge_ready",
        travel_configured=orchestrator.travel.is_configured,
        api=f"http://{settings.api_host}:{settings.api_port}",
    )

    yield

    logger.info("dayforge_shutting_down")
    if _scheduler is not None and _scheduler.running:
        _scheduler.shutdown(wait=False)
    _scheduler = None
    set_orchestrator(None)
    try:
        await close_db()
    except Exception as exc:
        logger.warning("db_close_error", error=str(exc))
    logger.info("dayforge_stopped")


app = FastAPI(
    title="dayforge",
    description="Day planning and travel-block synchronization",
    version=__version__,
    lifespan=lifespan,
)
app.include_router(router, prefix="/api")


def run(host: Optional[str] = None, port: Optional[int] = None, reload: bool = False) -> None:
    """Serve the API with uvicorn."""
    settings = get_settings()
    uvicorn.run(
        "dayforge.main:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=reload,
        log_level=settings.dayforge_log_level.lower(),
    )


if __name__ == "__main__":
    run()
