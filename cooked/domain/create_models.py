"""Pydantic models for creating records in database."""

from datetime import date
from typing import Any

from pydantic import BaseModel, Field, field_validator

from cooked.domain.check_in import GHOSTED_EXCUSE, CheckInStatus, RoastThreadStatus


class CheckInCreate(BaseModel):
    """Pydantic model for creating a check-in record."""

    pact_id: str = Field(..., description="Pact ID")
    user_id: str = Field(..., description="User ID")
    status: CheckInStatus = Field(..., description="success or fold")
    check_in_date: date = Field(..., description="Calendar day the check-in counts for")
    excuse: str | None = Field(default=None, description="Excuse given with a fold")
    proof_url: str | None = Field(default=None, description="Proof image URL")
    is_late: bool = Field(default=False, description="Created after the day ended")

    @classmethod
    def ghosted_fold(cls, *, pact_id: str, user_id: str, check_in_date: date) -> "CheckInCreate":
        """Build the fold recorded for a participant who never checked in."""
        return cls(
            pact_id=pact_id,
            user_id=user_id,
            status=CheckInStatus.FOLD,
            check_in_date=check_in_date,
            excuse=GHOSTED_EXCUSE,
            proof_url=None,
            is_late=True,
        )


class RoastThreadCreate(BaseModel):
    """Pydantic model for creating a roast thread record."""

    check_in_id: str = Field(..., description="Fold check-in being roasted")
    status: RoastThreadStatus = Field(default=RoastThreadStatus.OPEN, description="Thread status")


class WeeklyRecapCreate(BaseModel):
    """Pydantic model for creating a weekly recap record."""

    group_id: str = Field(..., description="Group ID")
    week_start: date = Field(..., description="Monday of the recapped week")
    week_end: date = Field(..., description="Sunday of the recapped week")
    data: dict[str, Any] = Field(..., description="Serialized recap payload")

    @field_validator("week_start")
    @classmethod
    def validate_week_start_is_monday(cls, v: date) -> date:
        """Recaps always start on a Monday."""
        if v.isoweekday() != 1:
            msg = f"week_start must be a Monday, got {v.isoformat()}"
            raise ValueError(msg)
        return v
