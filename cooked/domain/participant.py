"""Pact participant domain model."""

from typing import Any

from pydantic import BaseModel, Field, field_validator

from cooked.domain.pact import parse_weekday_list, validate_iso_weekdays


class Participant(BaseModel):
    """A user's membership in a pact."""

    pact_id: str = Field(..., description="Pact ID")
    user_id: str = Field(..., description="Participating user ID")
    relay_days: list[int] | None = Field(
        default=None,
        description="ISO weekdays this participant owns, relay pacts only",
    )

    @field_validator("relay_days", mode="before")
    @classmethod
    def parse_relay_days(cls, v: Any) -> list[int] | None:  # noqa: ANN401
        """Accept JSON text as stored by the database, keeping NULL as None."""
        if v is None:
            return None
        return parse_weekday_list(v)

    @field_validator("relay_days")
    @classmethod
    def validate_relay_days(cls, v: list[int] | None) -> list[int] | None:
        """Validate weekday range."""
        if v is None:
            return None
        return validate_iso_weekdays(v)
