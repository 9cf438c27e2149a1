"""Analytics for pact completion, leaderboards and streaks.

This module provides pure functions for:
- Completion per participant and per group member over a date range
- Leaderboards ranked by completion percentage
- Award pickers used by the weekly recap (excuses, comebacks)
- Streak lengths over a run of successful check-ins

Key Concepts:
- Expected: number of obligations in the range, relay-aware.
- Completion percentage: successes / expected * 100, capped at 100. Nothing
  expected means 0%, never a division error.
- Streak: consecutive successes (newest first) whose gaps stay within what the
  pact's frequency allows.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from datetime import date

from pydantic import ValidationError

from cooked.core.obligations import completion_rate, count_participant_obligations
from cooked.domain.check_in import CheckIn, CheckInStatus
from cooked.domain.pact import Frequency, Pact, WeeklyAnchor
from cooked.domain.participant import Participant
from cooked.domain.user import User
from cooked.models.service_models import (
    ParticipantCompletion,
    RecapAwardWinner,
    RecapExcuseAward,
    RecapLeaderboardEntry,
)


logger = logging.getLogger(__name__)

# Days of slack between successes that still count as one streak
_DAILY_STREAK_GAP = 1.0
_WEEKLY_STREAK_GAP = 8.0


def _in_range(check_in: CheckIn, range_start: date, range_end: date) -> bool:
    return range_start <= check_in.check_in_date <= range_end


def participant_completion(
    *,
    pact: Pact,
    participant: Participant,
    check_ins: Iterable[CheckIn],
    range_start: date,
    range_end: date,
    weekly_anchor: WeeklyAnchor = WeeklyAnchor.SUNDAY,
) -> ParticipantCompletion:
    """Expected obligations vs recorded outcomes for one participant of one pact.

    Args:
        pact: Pact to evaluate
        participant: Participant of ``pact``
        check_ins: Check-ins to count (others' and out-of-range ones are ignored)
        range_start: First day of the range (inclusive)
        range_end: Last day of the range (inclusive)
        weekly_anchor: Which weekday weekly pacts fall due on

    Returns:
        ParticipantCompletion with the rate clamped to [0, 1]
    """
    expected = count_participant_obligations(pact, participant, range_start, range_end, weekly_anchor=weekly_anchor)

    own = [
        ci
        for ci in check_ins
        if ci.pact_id == pact.id and ci.user_id == participant.user_id and _in_range(ci, range_start, range_end)
    ]
    successes = sum(1 for ci in own if ci.status == CheckInStatus.SUCCESS)
    folds = sum(1 for ci in own if ci.status == CheckInStatus.FOLD)

    return ParticipantCompletion(
        user_id=participant.user_id,
        expected=expected,
        successes=successes,
        folds=folds,
        rate=completion_rate(successes, expected),
    )


def member_completions(
    *,
    member_ids: Sequence[str],
    pacts: Sequence[Pact],
    participants: Iterable[Participant],
    check_ins: Iterable[CheckIn],
    range_start: date,
    range_end: date,
    weekly_anchor: WeeklyAnchor = WeeklyAnchor.SUNDAY,
) -> dict[str, ParticipantCompletion]:
    """Aggregate completion per group member across all of the group's pacts.

    Only ``member_ids`` are reported, in that order. Participants and check-ins
    of non-members are ignored.
    """
    pacts_by_id = {p.id: p for p in pacts}
    expected = dict.fromkeys(member_ids, 0)
    successes = dict.fromkeys(member_ids, 0)
    folds = dict.fromkeys(member_ids, 0)

    for participant in participants:
        pact = pacts_by_id.get(participant.pact_id)
        if pact is None or participant.user_id not in expected:
            continue
        expected[participant.user_id] += count_participant_obligations(
            pact, participant, range_start, range_end, weekly_anchor=weekly_anchor
        )

    for check_in in check_ins:
        if check_in.user_id not in expected or not _in_range(check_in, range_start, range_end):
            continue
        if check_in.status == CheckInStatus.SUCCESS:
            successes[check_in.user_id] += 1
        elif check_in.status == CheckInStatus.FOLD:
            folds[check_in.user_id] += 1

    return {
        user_id: ParticipantCompletion(
            user_id=user_id,
            expected=expected[user_id],
            successes=successes[user_id],
            folds=folds[user_id],
            rate=completion_rate(successes[user_id], expected[user_id]),
        )
        for user_id in member_ids
    }


def build_leaderboard(
    completions: Mapping[str, ParticipantCompletion],
    users: Mapping[str, User],
) -> list[RecapLeaderboardEntry]:
    """Rank users with at least one expected obligation by completion percentage.

    Ties keep the order of ``completions``.

    Args:
        completions: Completion per user ID
        users: Known users by ID (users missing here are left out)

    Returns:
        Leaderboard entries sorted by completion percentage, descending
    """
    leaderboard = []
    for user_id, completion in completions.items():
        if completion.expected <= 0:
            continue

        user = users.get(user_id)
        if user is None:
            logger.warning("User %s not found for leaderboard", user_id)
            continue

        try:
            entry = RecapLeaderboardEntry(
                user_id=user_id,
                display_name=user.display_name,
                avatar_url=user.avatar_url,
                completion_rate=completion.percentage,
                check_ins=completion.successes,
                folds=completion.folds,
            )
        except ValidationError as e:
            logger.error("Failed to create leaderboard entry for user %s: %s", user_id, e)
            continue
        leaderboard.append(entry)

    leaderboard.sort(key=lambda e: e.completion_rate, reverse=True)
    return leaderboard


def pick_excuse_hall_of_fame(check_ins: Iterable[CheckIn], users: Mapping[str, User]) -> RecapExcuseAward | None:
    """Find the (user, excuse) pair repeated most often on folds.

    Ties go to the longer excuse, then to the pair seen first.
    """
    counts: dict[tuple[str, str], int] = {}
    for check_in in check_ins:
        if check_in.status != CheckInStatus.FOLD or not check_in.excuse:
            continue
        key = (check_in.user_id, check_in.excuse)
        counts[key] = counts.get(key, 0) + 1

    top: tuple[str, str] | None = None
    for key, count in counts.items():
        if top is None or count > counts[top] or (count == counts[top] and len(key[1]) > len(top[1])):
            top = key

    if top is None:
        return None

    user_id, excuse = top
    user = users.get(user_id)
    if user is None:
        return None

    return RecapExcuseAward(
        user_id=user_id,
        display_name=user.display_name,
        avatar_url=user.avatar_url,
        excuse=excuse,
        count=counts[top],
    )


def pick_comeback(
    current: Mapping[str, ParticipantCompletion],
    previous: Mapping[str, ParticipantCompletion],
    users: Mapping[str, User],
    *,
    min_improvement: float,
) -> RecapAwardWinner | None:
    """Find the user whose completion percentage improved most over the previous period.

    Only users with obligations in both periods qualify, and the improvement
    must exceed ``min_improvement`` percentage points.
    """
    winner: RecapAwardWinner | None = None
    best = 0.0

    for user_id, now in current.items():
        before = previous.get(user_id)
        if before is None or now.expected <= 0 or before.expected <= 0:
            continue

        improvement = now.percentage - before.percentage
        if improvement <= best or improvement <= min_improvement:
            continue

        user = users.get(user_id)
        if user is None:
            continue

        best = improvement
        winner = RecapAwardWinner(
            user_id=user_id,
            display_name=user.display_name,
            avatar_url=user.avatar_url,
            value=improvement,
        )

    return winner


def max_streak_gap(pact: Pact) -> float:
    """Largest gap in days between two successes that keeps a streak alive."""
    if pact.frequency == Frequency.WEEKLY:
        return _WEEKLY_STREAK_GAP
    if pact.frequency == Frequency.CUSTOM and pact.frequency_days:
        return 7 / len(pact.frequency_days) + 1
    return _DAILY_STREAK_GAP


def longest_streak(success_dates: Sequence[date], pact: Pact) -> int:
    """Length of the streak ending at the most recent success.

    Args:
        success_dates: Success dates for one user on one pact, newest first
        pact: Pact the successes belong to (its frequency sets the allowed gap)

    Returns:
        Number of successes in the current streak (0 when there are none)
    """
    if not success_dates:
        return 0

    max_gap = max_streak_gap(pact)
    streak = 1
    for newer, older in zip(success_dates, success_dates[1:], strict=False):
        if (newer - older).days > max_gap:
            break
        streak += 1
    return streak
