"""Typed loaders for pacts, participants and check-ins.

Rows that fail validation are logged and skipped so one bad pact never
blocks a job run for everyone else.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable
from datetime import date

from pydantic import ValidationError

from cooked.core import db_client
from cooked.core.logging import span
from cooked.domain.check_in import CheckIn, CheckInStatus
from cooked.domain.pact import Pact, PactStatus
from cooked.domain.participant import Participant


logger = logging.getLogger(__name__)


def _id_list(ids: Iterable[str]) -> str:
    return ",".join(db_client.sanitize_param(i) for i in ids)


def _active_window_filter(range_start: date, range_end: date) -> str:
    """Filter for active pacts whose [start_date, end_date] overlaps the range."""
    return (
        f'status = "{PactStatus.ACTIVE}" && start_date <= "{range_end.isoformat()}" '
        f'&& (end_date = null || end_date >= "{range_start.isoformat()}")'
    )


def _parse_pacts(records: list[dict]) -> list[Pact]:
    pacts = []
    for record in records:
        try:
            pacts.append(Pact(**record))
        except ValidationError as e:
            logger.error("Skipping invalid pact %s: %s", record.get("id"), e)
            continue
    return pacts


async def list_active_pacts(*, on: date, pact_id: str | None = None) -> list[Pact]:
    """List active pacts whose window contains ``on``.

    Args:
        on: Calendar day the pacts must be active on
        pact_id: Restrict to a single pact

    Returns:
        Validated pacts, ordered by ID
    """
    with span("pact_service.list_active_pacts"):
        filter_query = _active_window_filter(on, on)
        if pact_id is not None:
            filter_query = f'id = "{db_client.sanitize_param(pact_id)}" && {filter_query}'

        records = await db_client.list_all_records(collection="pacts", filter_query=filter_query)
        return _parse_pacts(records)


async def list_group_pacts(*, group_id: str, range_start: date, range_end: date) -> list[Pact]:
    """List a group's active pacts that overlap the inclusive date range."""
    with span("pact_service.list_group_pacts"):
        filter_query = f'group_id = "{db_client.sanitize_param(group_id)}" && ' + _active_window_filter(
            range_start, range_end
        )
        records = await db_client.list_all_records(collection="pacts", filter_query=filter_query)
        return _parse_pacts(records)


async def list_participants(*, pact_ids: list[str]) -> list[Participant]:
    """List participants of the given pacts."""
    if not pact_ids:
        return []

    records = await db_client.list_all_records(
        collection="pact_participants",
        filter_query=f'pact_id ?= "{_id_list(pact_ids)}"',
    )

    participants = []
    for record in records:
        try:
            participants.append(Participant(**record))
        except ValidationError as e:
            logger.error(
                "Skipping invalid participant %s on pact %s: %s", record.get("user_id"), record.get("pact_id"), e
            )
            continue
    return participants


def group_participants_by_pact(participants: Iterable[Participant]) -> dict[str, list[Participant]]:
    """Index participants by pact ID, preserving input order."""
    grouped: dict[str, list[Participant]] = defaultdict(list)
    for participant in participants:
        grouped[participant.pact_id].append(participant)
    return dict(grouped)


async def list_check_ins(
    *,
    pact_ids: list[str],
    range_start: date,
    range_end: date,
    status: CheckInStatus | None = None,
) -> list[CheckIn]:
    """List check-ins for the given pacts with ``check_in_date`` in the inclusive range."""
    if not pact_ids:
        return []

    filter_query = (
        f'pact_id ?= "{_id_list(pact_ids)}" '
        f'&& check_in_date >= "{range_start.isoformat()}" && check_in_date <= "{range_end.isoformat()}"'
    )
    if status is not None:
        filter_query += f' && status = "{status}"'

    records = await db_client.list_all_records(collection="check_ins", filter_query=filter_query)
    return _parse_check_ins(records)


async def list_successes(*, pact_id: str) -> list[CheckIn]:
    """List every success for a pact, newest first."""
    records = await db_client.list_all_records(
        collection="check_ins",
        filter_query=f'pact_id = "{db_client.sanitize_param(pact_id)}" && status = "{CheckInStatus.SUCCESS}"',
        sort="-check_in_date",
    )
    return _parse_check_ins(records)


def _parse_check_ins(records: list[dict]) -> list[CheckIn]:
    check_ins = []
    for record in records:
        try:
            check_ins.append(CheckIn(**record))
        except ValidationError as e:
            logger.error("Skipping invalid check-in %s: %s", record.get("id"), e)
            continue
    return check_ins


async def count_roast_threads(*, check_in_ids: list[str]) -> int:
    """Count roast threads opened on the given check-ins."""
    if not check_in_ids:
        return 0

    records = await db_client.list_all_records(
        collection="roast_threads",
        filter_query=f'check_in_id ?= "{_id_list(check_in_ids)}"',
    )
    return len(records)
