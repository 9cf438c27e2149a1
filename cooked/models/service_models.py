"""Pydantic models for service layer return types.

These models provide type safety at service boundaries, converting database
dictionaries into typed objects with validation.
"""

from datetime import date
from typing import Literal

from pydantic import BaseModel, Field

from cooked.domain.pact import Pact
from cooked.domain.participant import Participant


class Obligation(BaseModel):
    """A participant expected to check in for a pact on a calendar day (derived, never stored)."""

    pact: Pact
    participant: Participant
    day: date

    @property
    def pact_id(self) -> str:
        return self.pact.id

    @property
    def user_id(self) -> str:
        return self.participant.user_id


class ReminderSummary(BaseModel):
    """Result of a check-in reminder run."""

    run_date: date
    pacts_processed: int
    outstanding: int
    reminders_sent: int
    failed: int
    skipped_no_token: int
    skipped_disabled: int
    tokens_cleared: int
    message: str | None = None


class JobErrorEntry(BaseModel):
    """A per-candidate failure collected during a job run."""

    pact_id: str
    user_id: str
    code: str
    severity: str
    error: str


class AutoFoldSummary(BaseModel):
    """Result of an auto-fold run."""

    success: bool
    run_date: date
    folded_for_date: date
    pacts_processed: int
    folds_created: int
    roast_threads_created: int
    already_folded: int
    errors_count: int
    errors: list[JobErrorEntry] = Field(default_factory=list)
    message: str | None = None


class ParticipantCompletion(BaseModel):
    """Expected obligations vs recorded outcomes for one user over a date range."""

    user_id: str
    expected: int
    successes: int
    folds: int
    rate: float  # Fraction in [0, 1]

    @property
    def percentage(self) -> float:
        return self.rate * 100


class RecapAwardWinner(BaseModel):
    user_id: str
    display_name: str
    avatar_url: str | None = None
    value: float


class RecapExcuseAward(BaseModel):
    user_id: str
    display_name: str
    avatar_url: str | None = None
    excuse: str
    count: int


class RecapLeaderboardEntry(BaseModel):
    user_id: str
    display_name: str
    avatar_url: str | None = None
    completion_rate: float  # Percentage, capped at 100
    check_ins: int
    folds: int


class RecapStreakHighlight(BaseModel):
    user_id: str
    display_name: str
    avatar_url: str | None = None
    pact_name: str
    streak_days: int


class RecapAwards(BaseModel):
    most_consistent: RecapAwardWinner | None = None
    biggest_fold: RecapAwardWinner | None = None
    excuse_hall_of_fame: RecapExcuseAward | None = None
    comeback_player: RecapAwardWinner | None = None


class RecapStats(BaseModel):
    group_completion_rate: float
    total_check_ins: int
    total_folds: int
    active_pacts: int
    roast_threads_opened: int
    leaderboard: list[RecapLeaderboardEntry] = Field(default_factory=list)


class RecapHighlights(BaseModel):
    biggest_improvement: RecapAwardWinner | None = None
    longest_streak: RecapStreakHighlight | None = None


class RecapData(BaseModel):
    """Weekly recap payload stored on the weekly_recaps record."""

    awards: RecapAwards
    stats: RecapStats
    highlights: RecapHighlights

    @property
    def has_activity(self) -> bool:
        return bool(self.stats.total_check_ins or self.stats.total_folds or self.stats.active_pacts)


class RecapGroupResult(BaseModel):
    """Outcome of recap generation for one group."""

    group_id: str
    status: Literal["created", "updated", "skipped", "error"]
    recap_id: str | None = None
    error: str | None = None


class RecapRunSummary(BaseModel):
    """Result of a weekly recap run."""

    week_start: date
    week_end: date
    groups_processed: int
    created: int
    updated: int
    skipped: int
    errors: int
    details: list[RecapGroupResult] = Field(default_factory=list)
