"""HTTP triggers for the scheduled jobs, for external cron or manual runs."""

import logging
import secrets
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, ConfigDict, Field

from cooked.core.config import settings
from cooked.services.auto_fold_service import auto_fold_missed_check_ins
from cooked.services.recap_service import generate_weekly_recaps
from cooked.services.reminder_service import send_check_in_reminders


logger = logging.getLogger(__name__)


async def require_cron_secret(request: Request) -> None:
    """Reject requests without the configured bearer secret. Open when no secret is set."""
    if not settings.cron_secret:
        return

    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not secrets.compare_digest(token, settings.cron_secret):
        logger.warning("job_auth_failed", extra={"path": request.url.path})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


router = APIRouter(prefix="/functions", tags=["jobs"], dependencies=[Depends(require_cron_secret)])


class CheckInReminderRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    pact_id: str | None = Field(default=None, alias="pactId")


class AutoFoldRequest(BaseModel):
    # Kept as text so a malformed date is a 400 rather than a validation 422
    date: str | None = None


class WeeklyRecapRequest(BaseModel):
    group_ids: list[str] | None = None
    week_offset: int = Field(default=1, ge=0)


def _job_failed(job_name: str, exc: Exception) -> HTTPException:
    logger.error("%s failed: %s", job_name, exc)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=str(exc) or "Internal server error",
    )


@router.post("/check-in-reminder")
async def check_in_reminder(body: CheckInReminderRequest | None = None) -> dict[str, Any]:
    """Send reminders for today's outstanding check-ins."""
    request = body or CheckInReminderRequest()
    try:
        summary = await send_check_in_reminders(pact_id=request.pact_id)
    except Exception as e:
        raise _job_failed("check_in_reminder", e) from e
    return {"success": True, **summary.model_dump(mode="json", exclude_none=True)}


@router.post("/missed-check-in-auto-fold")
async def missed_check_in_auto_fold(body: AutoFoldRequest | None = None) -> dict[str, Any]:
    """Fold yesterday's missed check-ins. ``date`` overrides "today" (YYYY-MM-DD)."""
    request = body or AutoFoldRequest()

    today = None
    if request.date:
        try:
            today = datetime.strptime(request.date, "%Y-%m-%d").date()
        except ValueError as e:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid date: {request.date}. Expected YYYY-MM-DD",
            ) from e

    try:
        summary = await auto_fold_missed_check_ins(today=today)
    except Exception as e:
        raise _job_failed("missed_check_in_auto_fold", e) from e
    return summary.model_dump(mode="json", exclude_none=True)


@router.post("/generate-weekly-recap")
async def generate_weekly_recap(body: WeeklyRecapRequest | None = None) -> dict[str, Any]:
    """Generate recaps for the week ``week_offset`` weeks back (default last week)."""
    request = body or WeeklyRecapRequest()
    try:
        summary = await generate_weekly_recaps(week_offset=request.week_offset, group_ids=request.group_ids)
    except Exception as e:
        raise _job_failed("generate_weekly_recap", e) from e
    return summary.model_dump(mode="json")
