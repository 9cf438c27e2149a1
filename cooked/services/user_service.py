"""User and group lookups used by the scheduled jobs."""

import logging
from collections.abc import Iterable

from pydantic import ValidationError

from cooked.core import db_client
from cooked.domain.user import Group, User


logger = logging.getLogger(__name__)


async def get_users_by_id(*, user_ids: Iterable[str]) -> dict[str, User]:
    """Fetch users in one query and index them by ID.

    Unknown IDs are simply absent from the result.
    """
    unique_ids = sorted(set(user_ids))
    if not unique_ids:
        return {}

    id_list = ",".join(db_client.sanitize_param(i) for i in unique_ids)
    records = await db_client.list_all_records(collection="users", filter_query=f'id ?= "{id_list}"')

    users: dict[str, User] = {}
    for record in records:
        try:
            user = User(**record)
        except ValidationError as e:
            logger.error("Skipping invalid user %s: %s", record.get("id"), e)
            continue
        users[user.id] = user
    return users


async def clear_push_token(*, user_id: str) -> None:
    """Forget a push token Expo reported as no longer registered."""
    await db_client.update_record(collection="users", record_id=user_id, data={"push_token": None})
    logger.info("Cleared push token for user %s", user_id)


async def list_groups() -> list[Group]:
    """List every group."""
    records = await db_client.list_all_records(collection="groups")

    groups = []
    for record in records:
        try:
            groups.append(Group(**record))
        except ValidationError as e:
            logger.error("Skipping invalid group %s: %s", record.get("id"), e)
            continue
    return groups


async def get_groups_by_id(*, group_ids: Iterable[str]) -> dict[str, Group]:
    """Fetch groups in one query and index them by ID."""
    unique_ids = sorted(set(group_ids))
    if not unique_ids:
        return {}

    id_list = ",".join(db_client.sanitize_param(i) for i in unique_ids)
    records = await db_client.list_all_records(collection="groups", filter_query=f'id ?= "{id_list}"')

    groups: dict[str, Group] = {}
    for record in records:
        try:
            group = Group(**record)
        except ValidationError as e:
            logger.error("Skipping invalid group %s: %s", record.get("id"), e)
            continue
        groups[group.id] = group
    return groups


async def list_group_member_ids(*, group_id: str) -> list[str]:
    """List the user IDs of a group's members in join order."""
    records = await db_client.list_all_records(
        collection="group_members",
        filter_query=f'group_id = "{db_client.sanitize_param(group_id)}"',
    )
    return [record["user_id"] for record in records]
