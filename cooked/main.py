"""cooked - accountability pacts with check-ins, folds and weekly recaps."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from cooked.core.config import settings
from cooked.core.db_client import close_connection, init_db
from cooked.core.logging import configure_logfire, instrument_fastapi
from cooked.core.redis_client import redis_client
from cooked.core.scheduler import JOB_NAMES, start_scheduler, stop_scheduler
from cooked.core.scheduler_tracker import job_tracker
from cooked.interface.jobs_router import router as jobs_router


logger = logging.getLogger(__name__)


async def check_redis_connectivity() -> None:
    """Log whether Redis is reachable. Redis is optional, so this never fails startup."""
    if not redis_client.is_available:
        logger.info("startup_validation", extra={"service": "redis", "status": "disabled"})
        return

    if await redis_client.ping():
        logger.info("startup_validation", extra={"service": "redis", "status": "ok"})
    else:
        logger.warning("startup_validation", extra={"service": "redis", "status": "unavailable"})


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager."""
    # Configure logging first so startup logs are captured
    configure_logfire()

    await check_redis_connectivity()

    await init_db()
    logger.info("Database initialized")

    if settings.enable_scheduler:
        start_scheduler()
    else:
        logger.info("Scheduler disabled; jobs run only through /functions endpoints")

    yield

    if settings.enable_scheduler:
        stop_scheduler()
    await redis_client.close()
    await close_connection()


app = FastAPI(
    title="cooked",
    description="Accountability pacts: reminders, auto-folds and weekly recaps",
    version="0.1.0",
    lifespan=lifespan,
)

# Instrument FastAPI with Logfire
instrument_fastapi(app)

# Register routers
app.include_router(jobs_router)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "healthy", "redis": redis_client.get_health_status()}, status_code=200)


@app.get("/health/scheduler")
async def scheduler_health_check() -> JSONResponse:
    """Scheduler health check endpoint with job statuses."""
    job_statuses = {job_name: await job_tracker.get_job_status(job_name) for job_name in JOB_NAMES}

    dlq = job_tracker.get_dead_letter_queue()

    has_failures = any(job_status["consecutive_failures"] > 0 for job_status in job_statuses.values())

    overall_status = "degraded" if has_failures else "healthy"
    if dlq:
        overall_status = "critical"

    return JSONResponse(
        content={
            "status": overall_status,
            "jobs": job_statuses,
            "dead_letter_queue_size": len(dlq),
            "dead_letter_queue": dlq,
        },
        status_code=200 if overall_status == "healthy" else 503,
    )
