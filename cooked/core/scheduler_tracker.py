"""Run history and retry handling for scheduled jobs."""

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any

from cooked.core.config import Constants
from cooked.core.redis_client import redis_client


logger = logging.getLogger(__name__)


def _key(job_name: str, field: str) -> str:
    return f"scheduler:job:{job_name}:{field}"


class JobTracker:
    """Track job execution history and health status.

    State lives in Redis when it is configured, otherwise in process memory.
    """

    def __init__(self) -> None:
        """Initialize job tracker."""
        self._memory_storage: dict[str, dict[str, Any]] = {}
        self._dead_letter_queue: deque[tuple[str, str, str]] = deque(
            maxlen=Constants.TRACKER_DEAD_LETTER_QUEUE_MAXLEN
        )

    def _memory(self, job_name: str) -> dict[str, Any]:
        return self._memory_storage.setdefault(job_name, {})

    async def record_job_start(self, job_name: str) -> None:
        """Mark a job as currently running."""
        now = datetime.now(UTC).isoformat()

        if redis_client.is_available:
            await redis_client.set(_key(job_name, "current_run"), now, ttl_seconds=Constants.TRACKER_RUN_TTL_SECONDS)
        else:
            self._memory(job_name)["current_run"] = now

    async def _bump(self, job_name: str, field: str) -> int | None:
        key = _key(job_name, field)
        value = await redis_client.increment(key)
        await redis_client.expire(key, Constants.TRACKER_STATE_TTL_SECONDS)
        return value

    async def record_job_success(self, job_name: str) -> None:
        """Record a successful run and reset the consecutive failure counter."""
        now = datetime.now(UTC).isoformat()
        ttl = Constants.TRACKER_STATE_TTL_SECONDS

        if redis_client.is_available:
            await redis_client.set(_key(job_name, "last_success"), now, ttl_seconds=ttl)
            await redis_client.set(_key(job_name, "consecutive_failures"), "0", ttl_seconds=ttl)
            await self._bump(job_name, "success_count")
            await redis_client.delete(_key(job_name, "current_run"))
            return

        state = self._memory(job_name)
        state["last_success"] = now
        state["consecutive_failures"] = 0
        state["success_count"] = state.get("success_count", 0) + 1
        state.pop("current_run", None)

    async def record_job_failure(self, job_name: str, error: str) -> int | None:
        """Record a failed run.

        Args:
            job_name: Name of the scheduled job
            error: Error message (truncated before storing)

        Returns:
            The consecutive failure count, or None if Redis could not report it
        """
        now = datetime.now(UTC).isoformat()
        error = error[: Constants.TRACKER_ERROR_MAX_CHARS]
        ttl = Constants.TRACKER_STATE_TTL_SECONDS

        if redis_client.is_available:
            await redis_client.set(_key(job_name, "last_failure"), now, ttl_seconds=ttl)
            await redis_client.set(_key(job_name, "last_error"), error, ttl_seconds=ttl)
            consecutive_failures = await self._bump(job_name, "consecutive_failures")
            await self._bump(job_name, "failure_count")
            await redis_client.delete(_key(job_name, "current_run"))
            return consecutive_failures

        state = self._memory(job_name)
        state["last_failure"] = now
        state["last_error"] = error
        state["consecutive_failures"] = state.get("consecutive_failures", 0) + 1
        state["failure_count"] = state.get("failure_count", 0) + 1
        state.pop("current_run", None)
        return state["consecutive_failures"]

    async def get_job_status(self, job_name: str) -> dict[str, Any]:
        """Get job execution status.

        Args:
            job_name: Name of the scheduled job

        Returns:
            Dict with last run times, counters and whether a run is in flight
        """
        if redis_client.is_available:
            fields = (
                "last_success",
                "last_failure",
                "last_error",
                "consecutive_failures",
                "success_count",
                "failure_count",
                "current_run",
            )
            values = {field: await redis_client.get(_key(job_name, field)) for field in fields}
            state: dict[str, Any] = {
                **values,
                "consecutive_failures": int(values["consecutive_failures"] or 0),
                "success_count": int(values["success_count"] or 0),
                "failure_count": int(values["failure_count"] or 0),
            }
        else:
            state = self._memory_storage.get(job_name, {})

        return {
            "job_name": job_name,
            "last_success": state.get("last_success"),
            "last_failure": state.get("last_failure"),
            "last_error": state.get("last_error"),
            "consecutive_failures": state.get("consecutive_failures", 0),
            "success_count": state.get("success_count", 0),
            "failure_count": state.get("failure_count", 0),
            "currently_running": state.get("current_run") is not None,
            "current_run_started": state.get("current_run"),
        }

    async def add_to_dead_letter_queue(self, job_name: str, error: str, context: str) -> None:
        """Add a persistently failing job to the dead letter queue."""
        timestamp = datetime.now(UTC).isoformat()
        self._dead_letter_queue.append((job_name, error, context))

        logger.error(
            "Job added to dead letter queue",
            extra={
                "job_name": job_name,
                "error": error,
                "context": context,
                "timestamp": timestamp,
            },
        )

        if redis_client.is_available:
            await redis_client.set(
                f"scheduler:dlq:{job_name}:{timestamp}",
                f"{error} | {context}",
                ttl_seconds=Constants.TRACKER_DLQ_TTL_SECONDS,
            )

    def get_dead_letter_queue(self) -> list[dict[str, str]]:
        return [
            {
                "job_name": job_name,
                "error": error,
                "context": context,
            }
            for job_name, error, context in self._dead_letter_queue
        ]


# Global job tracker instance
job_tracker = JobTracker()


async def retry_job_with_backoff(
    job_func: Callable[[], Awaitable[Any]],
    job_name: str,
    max_retries: int = 3,
    base_delay: float = 2.0,
) -> None:
    """Execute a job with retry logic and exponential backoff.

    The jobs are idempotent, so a retry after a partial run only fills in
    whatever the failed attempt did not get to.

    Args:
        job_func: Async function to execute
        job_name: Name of the job for tracking
        max_retries: Maximum number of attempts
        base_delay: Base delay in seconds for exponential backoff
    """
    await job_tracker.record_job_start(job_name)

    last_error = None
    for attempt in range(max_retries):
        try:
            logger.info("Executing %s (attempt %d/%d)", job_name, attempt + 1, max_retries)
            await job_func()

            await job_tracker.record_job_success(job_name)
            logger.info("%s completed successfully", job_name)
            return

        except Exception as e:
            last_error = str(e) or type(e).__name__
            logger.error(
                "%s failed on attempt %d/%d: %s",
                job_name,
                attempt + 1,
                max_retries,
                last_error,
            )

            if attempt < max_retries - 1:
                delay = base_delay**attempt
                logger.info("Retrying %s in %ds", job_name, delay)
                await asyncio.sleep(delay)

    error_msg = f"Failed after {max_retries} attempts: {last_error}"
    consecutive_failures = await job_tracker.record_job_failure(job_name, error_msg)

    logger.critical(
        "%s failed after all retry attempts",
        job_name,
        extra={
            "error": error_msg,
            "consecutive_failures": consecutive_failures,
        },
    )

    if consecutive_failures and consecutive_failures >= Constants.TRACKER_DLQ_THRESHOLD:
        await job_tracker.add_to_dead_letter_queue(
            job_name=job_name,
            error=last_error or "Unknown error",
            context=f"Failed {consecutive_failures} consecutive times",
        )
