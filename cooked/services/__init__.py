from cooked.services import (
    analytics_service,
    pact_service,
    user_service,
)


__all__ = [
    "analytics_service",
    "pact_service",
    "user_service",
]
