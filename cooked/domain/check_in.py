"""Check-in and roast thread domain models."""

from datetime import date
from enum import StrEnum

from pydantic import BaseModel, Field


# Excuse recorded on folds created for participants who never checked in
GHOSTED_EXCUSE = "Ghosted 👻"


class CheckInStatus(StrEnum):
    """Outcome recorded for an obligation."""

    SUCCESS = "success"
    FOLD = "fold"


class RoastThreadStatus(StrEnum):
    """Roast thread lifecycle status."""

    OPEN = "open"
    CLOSED = "closed"


class CheckIn(BaseModel):
    """Check-in data transfer object (immutable history record)."""

    id: str | None = Field(default=None, description="Unique check-in ID from database")
    pact_id: str = Field(..., description="Pact the check-in belongs to")
    user_id: str = Field(..., description="User who checked in (or was folded)")
    status: CheckInStatus = Field(..., description="success or fold")
    check_in_date: date = Field(..., description="Calendar day the check-in counts for")
    excuse: str | None = Field(default=None, description="Excuse given with a fold")
    proof_url: str | None = Field(default=None, description="Proof image URL")
    is_late: bool = Field(default=False, description="Whether the record was created after the day ended")

