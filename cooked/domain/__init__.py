"""Domain models and DTOs."""

from cooked.domain.check_in import CheckIn, CheckInStatus, RoastThreadStatus
from cooked.domain.create_models import CheckInCreate, RoastThreadCreate, WeeklyRecapCreate
from cooked.domain.pact import Frequency, Pact, PactStatus, PactType, WeeklyAnchor
from cooked.domain.participant import Participant
from cooked.domain.user import Group, NotificationPreferences, User


__all__ = [
    "CheckIn",
    "CheckInCreate",
    "CheckInStatus",
    "Frequency",
    "Group",
    "NotificationPreferences",
    "Pact",
    "PactStatus",
    "PactType",
    "Participant",
    "RoastThreadCreate",
    "RoastThreadStatus",
    "User",
    "WeeklyAnchor",
    "WeeklyRecapCreate",
]
