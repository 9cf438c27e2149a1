"""Pact obligation scheduling.

Pure functions that decide who owes a check-in on which calendar day. The
three scheduled jobs (reminders, auto-fold, weekly recap) all go through
these so their notion of "due" can never drift apart.

All dates are ``datetime.date`` values interpreted as UTC calendar days.
Nothing here does I/O or mutates its inputs.

Rules:
- A pact is only due within ``[start_date, end_date]`` (both inclusive).
- daily: every day.
- weekly: one day a week, chosen by ``WeeklyAnchor``.
- custom: the ISO weekdays listed in ``frequency_days``.
- relay pacts narrow each due day to the participant(s) whose ``relay_days``
  contain that weekday; unclaimed weekdays obligate nobody.
"""

from collections.abc import Iterable, Iterator, Mapping, Sequence
from datetime import date, timedelta

from cooked.domain.check_in import CheckIn
from cooked.domain.pact import ISO_SUNDAY, Frequency, Pact, PactType, WeeklyAnchor
from cooked.domain.participant import Participant
from cooked.models.service_models import Obligation


def iso_weekday(day: date) -> int:
    """Return the ISO weekday of a calendar day (1=Monday .. 7=Sunday)."""
    return day.isoweekday()


def is_pact_active(pact: Pact, day: date) -> bool:
    """Check if ``day`` falls inside the pact's inclusive active window."""
    if day < pact.start_date:
        return False
    return pact.end_date is None or day <= pact.end_date


def is_pact_due(pact: Pact, day: date, *, weekly_anchor: WeeklyAnchor = WeeklyAnchor.SUNDAY) -> bool:
    """Decide whether a pact requires a check-in on a calendar day.

    Args:
        pact: Pact to evaluate
        day: Calendar day (UTC)
        weekly_anchor: Which weekday weekly pacts fall due on

    Returns:
        True if the pact is active on ``day`` and its frequency lands on it
    """
    if not is_pact_active(pact, day):
        return False

    if pact.frequency == Frequency.DAILY:
        return True

    if pact.frequency == Frequency.WEEKLY:
        if weekly_anchor == WeeklyAnchor.START_DATE:
            return iso_weekday(day) == iso_weekday(pact.start_date)
        return iso_weekday(day) == ISO_SUNDAY

    if pact.frequency == Frequency.CUSTOM:
        # An empty day set means the pact is misconfigured: never due
        return iso_weekday(day) in pact.frequency_days

    return False


def is_participant_due(pact: Pact, participant: Participant, day: date) -> bool:
    """Decide whether a participant personally owes a check-in on a day the pact is due.

    Only meaningful once ``is_pact_due`` holds for the same pact and day.
    """
    if pact.pact_type != PactType.RELAY:
        return True

    if not participant.relay_days:
        return False

    return iso_weekday(day) in participant.relay_days


def due_participants(
    pact: Pact,
    participants: Iterable[Participant],
    day: date,
    *,
    weekly_anchor: WeeklyAnchor = WeeklyAnchor.SUNDAY,
) -> list[Participant]:
    """Return the participants who owe a check-in for ``pact`` on ``day``."""
    if not is_pact_due(pact, day, weekly_anchor=weekly_anchor):
        return []
    return [p for p in participants if is_participant_due(pact, p, day)]


def resolve_outstanding(
    pacts: Sequence[Pact],
    participants_by_pact: Mapping[str, Sequence[Participant]],
    check_ins: Iterable[CheckIn],
    day: date,
    *,
    weekly_anchor: WeeklyAnchor = WeeklyAnchor.SUNDAY,
) -> list[Obligation]:
    """List the (pact, participant) pairs that owe a check-in on ``day`` and have none recorded.

    Any check-in on ``day`` counts as recorded, success or fold, so a success
    is never reminded and a fold is never folded twice. Check-ins for other
    days or for pairs that are not candidates are ignored.

    Output follows pacts x participants iteration order.

    Args:
        pacts: Candidate pacts
        participants_by_pact: Participants keyed by pact ID
        check_ins: Check-ins already stored (any date, any status)
        day: Calendar day to resolve
        weekly_anchor: Which weekday weekly pacts fall due on

    Returns:
        Outstanding obligations for ``day``
    """
    recorded = {(ci.pact_id, ci.user_id) for ci in check_ins if ci.check_in_date == day}

    outstanding: list[Obligation] = []
    for pact in pacts:
        participants = participants_by_pact.get(pact.id, ())
        for participant in due_participants(pact, participants, day, weekly_anchor=weekly_anchor):
            if (pact.id, participant.user_id) in recorded:
                continue
            outstanding.append(Obligation(pact=pact, participant=participant, day=day))

    return outstanding


def iter_days(range_start: date, range_end: date) -> Iterator[date]:
    """Yield every calendar day from ``range_start`` to ``range_end`` inclusive."""
    current = range_start
    while current <= range_end:
        yield current
        current += timedelta(days=1)


def count_expected_obligations(
    pact: Pact,
    range_start: date,
    range_end: date,
    *,
    weekly_anchor: WeeklyAnchor = WeeklyAnchor.SUNDAY,
) -> int:
    """Count the days in an inclusive range on which the pact is due (0 for an inverted range)."""
    return sum(1 for day in iter_days(range_start, range_end) if is_pact_due(pact, day, weekly_anchor=weekly_anchor))


def count_participant_obligations(
    pact: Pact,
    participant: Participant,
    range_start: date,
    range_end: date,
    *,
    weekly_anchor: WeeklyAnchor = WeeklyAnchor.SUNDAY,
) -> int:
    """Count the days in an inclusive range on which a specific participant owes a check-in.

    Same as ``count_expected_obligations`` except relay participants only
    count the weekdays they own.
    """
    return sum(
        1
        for day in iter_days(range_start, range_end)
        if is_pact_due(pact, day, weekly_anchor=weekly_anchor) and is_participant_due(pact, participant, day)
    )


def completion_rate(successes: int, expected: int) -> float:
    """Fraction of obligations met, clamped to [0, 1]; 0.0 when nothing was expected."""
    if expected <= 0:
        return 0.0
    return max(0.0, min(successes / expected, 1.0))
