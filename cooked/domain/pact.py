"""Pact domain models and enums."""

import json
from datetime import date
from enum import StrEnum
from typing import Any, Self

from pydantic import BaseModel, Field, field_validator, model_validator


# ISO weekday bounds (1=Monday .. 7=Sunday)
ISO_MONDAY = 1
ISO_SUNDAY = 7


class Frequency(StrEnum):
    """How often a pact requires a check-in."""

    DAILY = "daily"
    WEEKLY = "weekly"
    CUSTOM = "custom"


class PactType(StrEnum):
    """Who a pact obligates on a due date."""

    INDIVIDUAL = "individual"
    GROUP = "group"
    RELAY = "relay"  # Obligation rotates across participants by assigned weekday


class PactStatus(StrEnum):
    """Pact lifecycle status."""

    ACTIVE = "active"
    ARCHIVED = "archived"


class WeeklyAnchor(StrEnum):
    """Which weekday a weekly pact falls due on."""

    SUNDAY = "sunday"  # Every pact is due on Sunday
    START_DATE = "start_date"  # Each pact is due on the weekday it started


def parse_weekday_list(value: Any) -> list[int]:  # noqa: ANN401
    """Normalize a stored weekday list (JSON text, list, or NULL) to a list of ints."""
    if value is None or value == "":
        return []
    if isinstance(value, str):
        value = json.loads(value)
    return [int(day) for day in value]


def validate_iso_weekdays(days: list[int]) -> list[int]:
    """Reject weekday numbers outside 1..7."""
    for day in days:
        if not ISO_MONDAY <= day <= ISO_SUNDAY:
            msg = f"Weekday must be an ISO weekday between 1 and 7, got {day}"
            raise ValueError(msg)
    return days


class Pact(BaseModel):
    """Pact data transfer object.

    A custom pact stored with no ``frequency_days`` is accepted here and is
    simply never due, so one under-configured pact cannot break a job that
    serves every pact at once.
    """

    id: str = Field(..., description="Unique pact ID from database")
    group_id: str = Field(..., description="Group the pact belongs to")
    name: str = Field(..., description="Pact name (e.g., 'Gym 3x a week')")
    frequency: Frequency = Field(..., description="daily, weekly or custom")
    frequency_days: list[int] = Field(
        default_factory=list,
        description="ISO weekdays (1=Mon..7=Sun) the pact is due on, custom frequency only",
    )
    pact_type: PactType = Field(default=PactType.INDIVIDUAL, description="individual, group or relay")
    start_date: date = Field(..., description="First calendar day the pact is active (inclusive)")
    end_date: date | None = Field(default=None, description="Last calendar day the pact is active (inclusive)")
    status: PactStatus = Field(default=PactStatus.ACTIVE, description="Lifecycle status")

    @field_validator("frequency_days", mode="before")
    @classmethod
    def parse_frequency_days(cls, v: Any) -> list[int]:  # noqa: ANN401
        """Accept JSON text or NULL as stored by the database."""
        return parse_weekday_list(v)

    @field_validator("frequency_days")
    @classmethod
    def validate_frequency_days(cls, v: list[int]) -> list[int]:
        """Validate weekday range."""
        return validate_iso_weekdays(v)

    @model_validator(mode="after")
    def validate_date_range(self) -> Self:
        """Validate that the pact does not end before it starts."""
        if self.end_date is not None and self.end_date < self.start_date:
            msg = f"end_date {self.end_date} is before start_date {self.start_date}"
            raise ValueError(msg)
        return self
