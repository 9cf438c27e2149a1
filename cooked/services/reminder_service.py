"""Check-in reminder job: push a nudge to everyone who still owes today's check-in."""

import logging
from datetime import UTC, date, datetime

from cooked.core import db_client
from cooked.core.config import constants, settings
from cooked.core.logging import span
from cooked.core.obligations import is_pact_due, resolve_outstanding
from cooked.domain.user import User
from cooked.interface import expo_push
from cooked.interface.expo_push import NotificationType
from cooked.models.service_models import Obligation, ReminderSummary
from cooked.services import pact_service, user_service


logger = logging.getLogger(__name__)


async def send_check_in_reminders(*, today: date | None = None, pact_id: str | None = None) -> ReminderSummary:
    """Send check-in reminders for every outstanding obligation on ``today``.

    Participants are skipped when they have no valid Expo token or have
    switched off ``check_in_reminder`` (quiet hours included). Tokens Expo
    reports as ``DeviceNotRegistered`` are cleared.

    Args:
        today: UTC calendar day to remind for (defaults to the current UTC date)
        pact_id: Only remind for this pact

    Returns:
        ReminderSummary with delivery counts
    """
    with span("reminder_service.send_check_in_reminders"):
        run_date = today or datetime.now(UTC).date()
        weekly_anchor = settings.weekly_anchor

        pacts = await pact_service.list_active_pacts(on=run_date, pact_id=pact_id)
        pacts_due = [p for p in pacts if is_pact_due(p, run_date, weekly_anchor=weekly_anchor)]

        if not pacts_due:
            message = "No active pacts found" if not pacts else "No pacts due today"
            logger.info("Check-in reminders for %s: %s", run_date, message)
            return _empty_summary(run_date, message)

        pact_ids = [p.id for p in pacts_due]
        participants = await pact_service.list_participants(pact_ids=pact_ids)
        check_ins = await pact_service.list_check_ins(pact_ids=pact_ids, range_start=run_date, range_end=run_date)

        outstanding = resolve_outstanding(
            pacts_due,
            pact_service.group_participants_by_pact(participants),
            check_ins,
            run_date,
            weekly_anchor=weekly_anchor,
        )

        users = await user_service.get_users_by_id(user_ids=(o.user_id for o in outstanding))
        groups = await user_service.get_groups_by_id(group_ids=(p.group_id for p in pacts_due))

        recipients: list[tuple[Obligation, User]] = []
        messages: list[expo_push.ExpoPushMessage] = []
        skipped_no_token = 0
        skipped_disabled = 0

        for obligation in outstanding:
            user = users.get(obligation.user_id)
            if user is None or not expo_push.is_expo_push_token(user.push_token):
                skipped_no_token += 1
                continue

            if not user.notification_preferences.is_enabled(NotificationType.CHECK_IN_REMINDER):
                skipped_disabled += 1
                continue

            group = groups.get(obligation.pact.group_id)
            messages.append(
                expo_push.create_push_message(
                    user.push_token,
                    NotificationType.CHECK_IN_REMINDER,
                    {
                        "groupId": obligation.pact.group_id,
                        "groupName": group.name if group else None,
                        "pactId": obligation.pact_id,
                        "pactName": obligation.pact.name,
                    },
                )
            )
            recipients.append((obligation, user))

        if not messages:
            logger.info("No reminders to send for %s (%d outstanding)", run_date, len(outstanding))
            return ReminderSummary(
                run_date=run_date,
                pacts_processed=len(pacts_due),
                outstanding=len(outstanding),
                reminders_sent=0,
                failed=0,
                skipped_no_token=skipped_no_token,
                skipped_disabled=skipped_disabled,
                tokens_cleared=0,
                message="All participants have already checked in or notifications disabled",
            )

        tickets = await expo_push.send_push_notifications(messages)

        sent = 0
        failed = 0
        stale_user_ids: set[str] = set()
        for ticket, (obligation, user) in zip(tickets, recipients, strict=True):
            if ticket.is_ok:
                sent += 1
                continue

            failed += 1
            logger.error(
                "Failed to send reminder to user %s for pact %s: %s %s",
                user.id,
                obligation.pact_id,
                ticket.message,
                ticket.details,
            )
            if ticket.error_code == constants.EXPO_DEVICE_NOT_REGISTERED:
                stale_user_ids.add(user.id)

        tokens_cleared = await _clear_stale_tokens(stale_user_ids)

        logger.info(
            "Check-in reminders for %s: %d sent, %d failed, %d pacts",
            run_date,
            sent,
            failed,
            len(pacts_due),
        )
        return ReminderSummary(
            run_date=run_date,
            pacts_processed=len(pacts_due),
            outstanding=len(outstanding),
            reminders_sent=sent,
            failed=failed,
            skipped_no_token=skipped_no_token,
            skipped_disabled=skipped_disabled,
            tokens_cleared=tokens_cleared,
        )


async def _clear_stale_tokens(user_ids: set[str]) -> int:
    cleared = 0
    for user_id in sorted(user_ids):
        try:
            await user_service.clear_push_token(user_id=user_id)
            cleared += 1
        except (db_client.DatabaseError, db_client.RecordNotFoundError) as e:
            logger.error("Failed to clear push token for user %s: %s", user_id, e)
            continue
    return cleared


def _empty_summary(run_date: date, message: str) -> ReminderSummary:
    return ReminderSummary(
        run_date=run_date,
        pacts_processed=0,
        outstanding=0,
        reminders_sent=0,
        failed=0,
        skipped_no_token=0,
        skipped_disabled=0,
        tokens_cleared=0,
        message=message,
    )
