"""User and group domain models."""

import json
import logging
from datetime import UTC, datetime, time
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator


logger = logging.getLogger(__name__)


class NotificationPreferences(BaseModel):
    """Per-user push notification preferences stored under ``settings.notifications``."""

    check_in_reminder: bool = True
    fold_alert: bool = True
    tagged_in_roast: bool = True
    new_roast_response: bool = True
    weekly_recap_ready: bool = True
    member_joined: bool = True
    pact_starting: bool = True
    pact_ending: bool = True
    quiet_hours_enabled: bool = False
    quiet_hours_start: time = time(22, 0)
    quiet_hours_end: time = time(8, 0)

    def in_quiet_hours(self, now: time | None = None) -> bool:
        """Check whether ``now`` falls in the quiet window (windows may wrap past midnight)."""
        if not self.quiet_hours_enabled:
            return False

        current = now or datetime.now(UTC).time()
        start = self.quiet_hours_start
        end = self.quiet_hours_end

        if start > end:
            return current >= start or current < end
        return start <= current < end

    def is_enabled(self, notification_type: str, now: time | None = None) -> bool:
        """Check whether a notification type may be delivered right now.

        Args:
            notification_type: Preference name (e.g., "check_in_reminder")
            now: Time of day to evaluate quiet hours against (defaults to current UTC time)

        Returns:
            False during quiet hours or when the type is switched off, True otherwise
        """
        if self.in_quiet_hours(now):
            return False

        preference = getattr(self, notification_type, True)
        return preference if isinstance(preference, bool) else True


class User(BaseModel):
    """User data transfer object."""

    id: str = Field(..., description="Unique user ID from database")
    display_name: str = Field(..., description="Display name shown in groups")
    avatar_url: str | None = Field(default=None, description="Avatar image URL")
    push_token: str | None = Field(default=None, description="Expo push token")
    settings: dict[str, Any] = Field(default_factory=dict, description="Free-form user settings")

    @field_validator("settings", mode="before")
    @classmethod
    def parse_settings(cls, v: Any) -> dict[str, Any]:  # noqa: ANN401
        """Accept JSON text or NULL as stored by the database."""
        if v is None or v == "":
            return {}
        if isinstance(v, str):
            return json.loads(v)
        return v

    @property
    def notification_preferences(self) -> NotificationPreferences:
        """Stored preferences merged over the defaults.

        Stored values that do not validate are logged and replaced by their
        defaults, so one bad setting never hides the rest.
        """
        stored = self.settings.get("notifications")
        if not isinstance(stored, dict):
            return NotificationPreferences()

        try:
            return NotificationPreferences.model_validate(stored)
        except ValidationError as e:
            invalid = {str(err["loc"][0]) for err in e.errors() if err["loc"]}
            logger.error("Ignoring invalid notification settings %s for user %s", sorted(invalid), self.id)
            valid = {key: value for key, value in stored.items() if key not in invalid}
            return NotificationPreferences.model_validate(valid)


class Group(BaseModel):
    """Group data transfer object."""

    id: str = Field(..., description="Unique group ID from database")
    name: str = Field(..., description="Group name")
