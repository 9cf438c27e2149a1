"""Weekly recap job: per-group stats, leaderboard and awards for a Monday-Sunday week."""

import logging
from collections import defaultdict
from collections.abc import Mapping, Sequence
from datetime import UTC, date, datetime, timedelta

from cooked.core import db_client
from cooked.core.config import Constants, settings
from cooked.core.logging import span
from cooked.core.obligations import completion_rate
from cooked.domain.check_in import CheckInStatus
from cooked.domain.create_models import WeeklyRecapCreate
from cooked.domain.pact import Pact
from cooked.domain.user import User
from cooked.interface import expo_push
from cooked.interface.expo_push import NotificationType
from cooked.models.service_models import (
    RecapAwards,
    RecapAwardWinner,
    RecapData,
    RecapGroupResult,
    RecapHighlights,
    RecapLeaderboardEntry,
    RecapRunSummary,
    RecapStats,
    RecapStreakHighlight,
)
from cooked.services import analytics_service, pact_service, user_service


logger = logging.getLogger(__name__)


def week_bounds(today: date, week_offset: int) -> tuple[date, date]:
    """Return (Monday, Sunday) of the week ``week_offset`` weeks before ``today``'s week."""
    target = today - timedelta(days=7 * week_offset)
    week_start = target - timedelta(days=target.isoweekday() - 1)
    return week_start, week_start + timedelta(days=6)


async def generate_weekly_recaps(
    *,
    week_offset: int = 1,
    group_ids: list[str] | None = None,
    today: date | None = None,
) -> RecapRunSummary:
    """Generate (or refresh) the weekly recap of each group.

    Groups with no check-ins, no folds and no active pacts are skipped. A recap
    that already exists for the group and week is updated in place; a new one
    triggers a "recap ready" push to the group's members. A failing group is
    reported in the summary and does not stop the others.

    Args:
        week_offset: How many weeks back to recap (1 = last week)
        group_ids: Only process these groups (defaults to every group)
        today: UTC calendar day the run is for (defaults to the current UTC date)

    Returns:
        RecapRunSummary with one detail entry per group
    """
    with span("recap_service.generate_weekly_recaps"):
        run_date = today or datetime.now(UTC).date()
        week_start, week_end = week_bounds(run_date, week_offset)

        if group_ids:
            targets = list(group_ids)
        else:
            targets = [g.id for g in await user_service.list_groups()]

        logger.info("Generating recaps for %d groups, week %s to %s", len(targets), week_start, week_end)

        results: list[RecapGroupResult] = []
        for group_id in targets:
            try:
                results.append(await _process_group(group_id, week_start, week_end))
            except Exception as e:
                logger.error("Error processing recap for group %s: %s", group_id, e)
                results.append(RecapGroupResult(group_id=group_id, status="error", error=str(e) or type(e).__name__))

        summary = RecapRunSummary(
            week_start=week_start,
            week_end=week_end,
            groups_processed=len(targets),
            created=sum(1 for r in results if r.status == "created"),
            updated=sum(1 for r in results if r.status == "updated"),
            skipped=sum(1 for r in results if r.status == "skipped"),
            errors=sum(1 for r in results if r.status == "error"),
            details=results,
        )
        logger.info(
            "Recap generation complete: %d created, %d updated, %d skipped, %d errors",
            summary.created,
            summary.updated,
            summary.skipped,
            summary.errors,
        )
        return summary


async def _process_group(group_id: str, week_start: date, week_end: date) -> RecapGroupResult:
    existing = await db_client.get_first_record(
        collection="weekly_recaps",
        filter_query=(f'group_id = "{db_client.sanitize_param(group_id)}" && week_start = "{week_start.isoformat()}"'),
    )

    member_ids = await user_service.list_group_member_ids(group_id=group_id)
    users = await user_service.get_users_by_id(user_ids=member_ids)

    recap = await build_group_recap(
        group_id=group_id,
        member_ids=member_ids,
        users=users,
        week_start=week_start,
        week_end=week_end,
    )

    if not recap.has_activity:
        logger.info("Skipping recap for group %s: no activity", group_id)
        return RecapGroupResult(group_id=group_id, status="skipped")

    payload = WeeklyRecapCreate(
        group_id=group_id,
        week_start=week_start,
        week_end=week_end,
        data=recap.model_dump(mode="json"),
    )

    if existing:
        await db_client.update_record(
            collection="weekly_recaps",
            record_id=existing["id"],
            data={"data": payload.data, "week_end": week_end.isoformat()},
        )
        logger.info("Updated recap %s for group %s", existing["id"], group_id)
        return RecapGroupResult(group_id=group_id, status="updated", recap_id=existing["id"])

    record = await db_client.create_record(collection="weekly_recaps", data=payload.model_dump(mode="json"))
    logger.info("Created recap %s for group %s", record["id"], group_id)

    try:
        await _notify_recap_ready(
            group_id=group_id,
            recap_id=record["id"],
            week_start=week_start,
            week_end=week_end,
            users=[users[uid] for uid in member_ids if uid in users],
        )
    except Exception as e:
        logger.error("Failed to send recap notification for group %s: %s", group_id, e)
    return RecapGroupResult(group_id=group_id, status="created", recap_id=record["id"])


async def build_group_recap(
    *,
    group_id: str,
    member_ids: Sequence[str],
    users: Mapping[str, User],
    week_start: date,
    week_end: date,
) -> RecapData:
    """Compute a group's recap for one week.

    Args:
        group_id: Group to recap
        member_ids: Group member user IDs; only members appear in stats and awards
        users: Member profiles by user ID
        week_start: Monday of the week
        week_end: Sunday of the week

    Returns:
        RecapData with awards, stats and highlights
    """
    weekly_anchor = settings.weekly_anchor

    pacts = await pact_service.list_group_pacts(group_id=group_id, range_start=week_start, range_end=week_end)
    pact_ids = [p.id for p in pacts]
    participants = await pact_service.list_participants(pact_ids=pact_ids)
    check_ins = await pact_service.list_check_ins(pact_ids=pact_ids, range_start=week_start, range_end=week_end)

    completions = analytics_service.member_completions(
        member_ids=member_ids,
        pacts=pacts,
        participants=participants,
        check_ins=check_ins,
        range_start=week_start,
        range_end=week_end,
        weekly_anchor=weekly_anchor,
    )
    leaderboard = analytics_service.build_leaderboard(completions, users)

    total_expected = sum(c.expected for c in completions.values())
    total_completed = sum(c.successes for c in completions.values())
    group_rate = round(completion_rate(total_completed, total_expected) * 100, 1)

    roast_threads_opened = await pact_service.count_roast_threads(
        check_in_ids=[ci.id for ci in check_ins if ci.id is not None]
    )

    # Previous week only counts when anything was recorded in it
    prev_start = week_start - timedelta(days=7)
    prev_end = week_end - timedelta(days=7)
    prev_check_ins = await pact_service.list_check_ins(pact_ids=pact_ids, range_start=prev_start, range_end=prev_end)
    comeback = None
    if prev_check_ins:
        prev_completions = analytics_service.member_completions(
            member_ids=member_ids,
            pacts=pacts,
            participants=participants,
            check_ins=prev_check_ins,
            range_start=prev_start,
            range_end=prev_end,
            weekly_anchor=weekly_anchor,
        )
        comeback = analytics_service.pick_comeback(
            completions,
            prev_completions,
            users,
            min_improvement=Constants.RECAP_COMEBACK_MIN_IMPROVEMENT,
        )

    return RecapData(
        awards=RecapAwards(
            most_consistent=_most_consistent(leaderboard),
            biggest_fold=_biggest_fold(leaderboard),
            excuse_hall_of_fame=analytics_service.pick_excuse_hall_of_fame(check_ins, users),
            comeback_player=comeback,
        ),
        stats=RecapStats(
            group_completion_rate=group_rate,
            total_check_ins=sum(1 for ci in check_ins if ci.status == CheckInStatus.SUCCESS),
            total_folds=sum(1 for ci in check_ins if ci.status == CheckInStatus.FOLD),
            active_pacts=len(pacts),
            roast_threads_opened=roast_threads_opened,
            leaderboard=leaderboard[: Constants.RECAP_LEADERBOARD_SIZE],
        ),
        highlights=RecapHighlights(
            biggest_improvement=comeback,
            longest_streak=await _longest_streak(pacts, users),
        ),
    )


def _winner(entry: RecapLeaderboardEntry, value: float) -> RecapAwardWinner:
    return RecapAwardWinner(
        user_id=entry.user_id,
        display_name=entry.display_name,
        avatar_url=entry.avatar_url,
        value=value,
    )


def _most_consistent(leaderboard: list[RecapLeaderboardEntry]) -> RecapAwardWinner | None:
    if not leaderboard or leaderboard[0].completion_rate <= 0:
        return None
    return _winner(leaderboard[0], leaderboard[0].completion_rate)


def _biggest_fold(leaderboard: list[RecapLeaderboardEntry]) -> RecapAwardWinner | None:
    best: RecapLeaderboardEntry | None = None
    for entry in leaderboard:
        if entry.folds > (best.folds if best else 0):
            best = entry
    return _winner(best, best.folds) if best else None


async def _longest_streak(pacts: Sequence[Pact], users: Mapping[str, User]) -> RecapStreakHighlight | None:
    """Longest current streak of any member on any of the group's pacts (all-time successes)."""
    best: RecapStreakHighlight | None = None

    for pact in pacts:
        successes = await pact_service.list_successes(pact_id=pact.id)
        dates_by_user: dict[str, list[date]] = defaultdict(list)
        for check_in in successes:
            dates_by_user[check_in.user_id].append(check_in.check_in_date)

        for user_id, dates in dates_by_user.items():
            streak = analytics_service.longest_streak(dates, pact)
            if best is not None and streak <= best.streak_days:
                continue
            user = users.get(user_id)
            if user is None:
                continue
            best = RecapStreakHighlight(
                user_id=user_id,
                display_name=user.display_name,
                avatar_url=user.avatar_url,
                pact_name=pact.name,
                streak_days=streak,
            )

    return best


async def _notify_recap_ready(
    *,
    group_id: str,
    recap_id: str,
    week_start: date,
    week_end: date,
    users: list[User],
) -> None:
    """Push "recap ready" to members who want it. Delivery problems never fail the recap."""
    groups = await user_service.get_groups_by_id(group_ids=[group_id])
    group = groups.get(group_id)

    messages = [
        expo_push.create_push_message(
            user.push_token,
            NotificationType.WEEKLY_RECAP_READY,
            {
                "groupId": group_id,
                "groupName": group.name if group else None,
                "recapId": recap_id,
                "weekStart": week_start.isoformat(),
                "weekEnd": week_end.isoformat(),
            },
        )
        for user in users
        if expo_push.is_expo_push_token(user.push_token)
        and user.notification_preferences.is_enabled(NotificationType.WEEKLY_RECAP_READY)
    ]
    if not messages:
        return

    tickets = await expo_push.send_push_notifications(messages)
    failed = sum(1 for t in tickets if not t.is_ok)
    if failed:
        logger.warning("Recap ready push failed for %d of %d members of group %s", failed, len(tickets), group_id)
    else:
        logger.info("Sent recap ready push to %d members of group %s", len(tickets), group_id)
