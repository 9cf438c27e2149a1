"""Configuration management for cooked."""

from pathlib import Path

from croniter import croniter
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from cooked.domain.pact import WeeklyAnchor


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # SQLite Configuration
    sqlite_db_path: str = Field(default="./data/cooked.db", description="Path to the SQLite database file")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")

    # Redis Configuration (optional)
    redis_url: str | None = Field(default=None, description="Redis connection URL (e.g., redis://localhost:6379)")

    # Expo Push Configuration
    expo_push_url: str = Field(
        default="https://exp.host/--/api/v2/push/send", description="Expo Push API send endpoint"
    )
    expo_access_token: str | None = Field(default=None, description="Expo access token for enhanced push security")

    # Job endpoint protection
    cron_secret: str | None = Field(
        default=None, description="Bearer secret required on job endpoints (disabled when unset)"
    )

    # Obligation rules
    weekly_anchor: WeeklyAnchor = Field(
        default=WeeklyAnchor.SUNDAY,
        description="Weekday a weekly pact is due on: every Sunday, or the pact's start_date weekday",
    )

    # Scheduler Configuration
    enable_scheduler: bool = Field(default=True, description="Run the in-process cron scheduler")
    reminder_crons: list[str] = Field(
        default=["0 9 * * *", "0 12 * * *", "0 18 * * *"],
        description="Crontab expressions (UTC) for check-in reminder runs",
    )
    auto_fold_cron: str = Field(default="5 0 * * *", description="Crontab expression (UTC) for the auto-fold run")
    weekly_recap_cron: str = Field(
        default="0 6 * * 1", description="Crontab expression (UTC) for weekly recap generation"
    )

    @field_validator("reminder_crons")
    @classmethod
    def validate_reminder_crons(cls, v: list[str]) -> list[str]:
        """Validate every reminder schedule is a 5-field crontab expression."""
        for expr in v:
            if not croniter.is_valid(expr):
                msg = f"Invalid crontab expression: {expr}"
                raise ValueError(msg)
        return v

    @field_validator("auto_fold_cron", "weekly_recap_cron")
    @classmethod
    def validate_cron(cls, v: str) -> str:
        """Validate a single crontab expression."""
        if not croniter.is_valid(v):
            msg = f"Invalid crontab expression: {v}"
            raise ValueError(msg)
        return v


# Application Constants
class Constants:
    """Application-wide constants."""

    # API Configuration
    API_TIMEOUT_SECONDS: int = 30

    # HTTP Status Codes
    HTTP_OK: int = 200

    # Expo Push
    EXPO_PUSH_CHUNK_SIZE: int = 100  # Expo recommends batches of 100 or less
    EXPO_DEVICE_NOT_REGISTERED: str = "DeviceNotRegistered"

    # Job summaries
    JOB_ERRORS_CAP: int = 50  # Max error entries returned in a job summary

    # Weekly Recap
    RECAP_LEADERBOARD_SIZE: int = 10
    RECAP_COMEBACK_MIN_IMPROVEMENT: float = 10.0  # Percentage points over previous week

    # Pagination Defaults
    DEFAULT_PER_PAGE_LIMIT: int = 500  # Default pagination limit for bulk job queries

    # Redis Configuration
    REDIS_MAX_CONNECTIONS: int = 10  # Maximum connections in Redis connection pool

    # Job Tracker Configuration
    TRACKER_DEAD_LETTER_QUEUE_MAXLEN: int = 100  # Max items in dead letter queue
    TRACKER_STATE_TTL_SECONDS: int = 86400 * 7  # Job history kept for a week
    TRACKER_RUN_TTL_SECONDS: int = 3600  # In-flight run marker
    TRACKER_DLQ_TTL_SECONDS: int = 86400 * 30
    TRACKER_DLQ_THRESHOLD: int = 3  # Consecutive failures before dead-lettering
    TRACKER_ERROR_MAX_CHARS: int = 500

    # Paths
    PROJECT_ROOT: Path = Path(__file__).parent.parent.parent


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
