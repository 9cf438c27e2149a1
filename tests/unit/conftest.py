"""Pytest configuration and fixtures for unit tests."""

from datetime import date
from typing import Any

import pytest

from cooked.interface.expo_push import ExpoPushMessage, ExpoPushTicket
from tests.unit.mocks import InMemoryDBClient


@pytest.fixture
def in_memory_db():
    """Provides a fresh InMemoryDBClient for each test."""
    return InMemoryDBClient()


class PushOutbox:
    """Records push messages instead of calling Expo.

    ``tickets`` lets a test script Expo's answer per push token.
    """

    def __init__(self) -> None:
        self.sent: list[ExpoPushMessage] = []
        self.tickets: dict[str, ExpoPushTicket] = {}

    async def send(self, messages: list[ExpoPushMessage]) -> list[ExpoPushTicket]:
        self.sent.extend(messages)
        return [self.tickets.get(m.to, ExpoPushTicket(status="ok", id=f"ticket-{m.to}")) for m in messages]


@pytest.fixture
def push_outbox(monkeypatch) -> PushOutbox:
    """Patches Expo delivery with an in-memory outbox."""
    outbox = PushOutbox()
    monkeypatch.setattr("cooked.interface.expo_push.send_push_notifications", outbox.send)
    return outbox


@pytest.fixture
def patched_db(monkeypatch, in_memory_db, push_outbox):
    """Patches cooked.core.db_client functions to use InMemoryDBClient.

    Expo delivery is patched too so no test makes a real HTTP call.
    """
    monkeypatch.setattr("cooked.core.db_client.create_record", in_memory_db.create_record)
    monkeypatch.setattr("cooked.core.db_client.get_record", in_memory_db.get_record)
    monkeypatch.setattr("cooked.core.db_client.update_record", in_memory_db.update_record)
    monkeypatch.setattr("cooked.core.db_client.list_records", in_memory_db.list_records)
    monkeypatch.setattr("cooked.core.db_client.list_all_records", in_memory_db.list_all_records)
    monkeypatch.setattr("cooked.core.db_client.get_first_record", in_memory_db.get_first_record)

    return in_memory_db


class World:
    """Builds groups, users, pacts and check-ins in the in-memory database."""

    def __init__(self, db: InMemoryDBClient) -> None:
        self.db = db

    async def user(
        self,
        display_name: str,
        *,
        push_token: str | None = None,
        settings: dict[str, Any] | None = None,
    ) -> str:
        record = await self.db.create_record(
            "users",
            {"display_name": display_name, "avatar_url": None, "push_token": push_token, "settings": settings},
        )
        return record["id"]

    async def group(self, name: str, *, members: list[str] | None = None) -> str:
        record = await self.db.create_record("groups", {"name": name})
        for user_id in members or []:
            await self.db.create_record("group_members", {"group_id": record["id"], "user_id": user_id})
        return record["id"]

    async def pact(
        self,
        group_id: str,
        *,
        name: str = "Gym",
        frequency: str = "daily",
        frequency_days: list[int] | None = None,
        pact_type: str = "individual",
        start_date: date = date(2024, 1, 1),
        end_date: date | None = None,
        status: str = "active",
        participants: list[str] | None = None,
        relay_days: dict[str, list[int]] | None = None,
    ) -> str:
        record = await self.db.create_record(
            "pacts",
            {
                "group_id": group_id,
                "name": name,
                "frequency": frequency,
                "frequency_days": frequency_days,
                "pact_type": pact_type,
                "start_date": start_date.isoformat(),
                "end_date": end_date.isoformat() if end_date else None,
                "status": status,
            },
        )
        for user_id in participants or []:
            await self.db.create_record(
                "pact_participants",
                {
                    "pact_id": record["id"],
                    "user_id": user_id,
                    "relay_days": (relay_days or {}).get(user_id),
                },
            )
        return record["id"]

    async def check_in(
        self,
        pact_id: str,
        user_id: str,
        day: date,
        *,
        status: str = "success",
        excuse: str | None = None,
    ) -> str:
        record = await self.db.create_record(
            "check_ins",
            {
                "pact_id": pact_id,
                "user_id": user_id,
                "status": status,
                "check_in_date": day.isoformat(),
                "excuse": excuse,
                "proof_url": None,
                "is_late": False,
            },
        )
        return record["id"]


@pytest.fixture
def world(patched_db) -> World:
    """Provides a World builder over the patched in-memory database."""
    return World(patched_db)
