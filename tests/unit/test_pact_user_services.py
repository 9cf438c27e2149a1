"""Unit tests for the pact and user loaders."""

from datetime import date

import pytest

from cooked.domain.check_in import CheckInStatus
from cooked.services import pact_service, user_service


@pytest.mark.unit
class TestListActivePacts:
    async def test_window_and_status(self, world):
        group_id = await world.group("Crew")
        running = await world.pact(group_id, name="Running")
        await world.pact(group_id, name="Future", start_date=date(2024, 2, 1))
        await world.pact(group_id, name="Ended", end_date=date(2024, 1, 2))
        ends_today = await world.pact(group_id, name="Ends today", end_date=date(2024, 1, 3))
        await world.pact(group_id, name="Archived", status="archived")

        pacts = await pact_service.list_active_pacts(on=date(2024, 1, 3))

        assert [p.id for p in pacts] == [running, ends_today]

    async def test_single_pact(self, world):
        group_id = await world.group("Crew")
        await world.pact(group_id, name="A")
        second = await world.pact(group_id, name="B")

        pacts = await pact_service.list_active_pacts(on=date(2024, 1, 3), pact_id=second)

        assert [p.name for p in pacts] == ["B"]

    async def test_invalid_rows_are_skipped(self, world, patched_db):
        group_id = await world.group("Crew")
        good = await world.pact(group_id)
        await patched_db.create_record(
            "pacts",
            {
                "group_id": group_id,
                "name": "Broken",
                "frequency": "custom",
                "frequency_days": "[0, 9]",
                "pact_type": "individual",
                "start_date": "2024-01-01",
                "end_date": None,
                "status": "active",
            },
        )

        pacts = await pact_service.list_active_pacts(on=date(2024, 1, 3))

        assert [p.id for p in pacts] == [good]


@pytest.mark.unit
class TestListGroupPacts:
    async def test_overlap_with_range(self, world):
        group_id = await world.group("Crew")
        other_group = await world.group("Other")
        overlapping = await world.pact(group_id, start_date=date(2024, 1, 5))
        await world.pact(group_id, start_date=date(2024, 1, 8))
        await world.pact(other_group)

        pacts = await pact_service.list_group_pacts(
            group_id=group_id, range_start=date(2024, 1, 1), range_end=date(2024, 1, 7)
        )

        assert [p.id for p in pacts] == [overlapping]


@pytest.mark.unit
class TestParticipantsAndCheckIns:
    async def test_group_participants_by_pact(self, world):
        alice = await world.user("Alice")
        bob = await world.user("Bob")
        group_id = await world.group("Crew", members=[alice, bob])
        first = await world.pact(group_id, participants=[alice, bob])
        second = await world.pact(group_id, participants=[bob])

        participants = await pact_service.list_participants(pact_ids=[first, second])
        grouped = pact_service.group_participants_by_pact(participants)

        assert [p.user_id for p in grouped[first]] == [alice, bob]
        assert [p.user_id for p in grouped[second]] == [bob]

    async def test_no_pacts_means_no_queries(self, patched_db):
        assert await pact_service.list_participants(pact_ids=[]) == []
        assert await pact_service.list_check_ins(
            pact_ids=[], range_start=date(2024, 1, 1), range_end=date(2024, 1, 7)
        ) == []
        assert await pact_service.count_roast_threads(check_in_ids=[]) == 0

    async def test_check_ins_in_range_and_status(self, world):
        alice = await world.user("Alice")
        group_id = await world.group("Crew", members=[alice])
        pact_id = await world.pact(group_id, participants=[alice])
        await world.check_in(pact_id, alice, date(2024, 1, 1))
        await world.check_in(pact_id, alice, date(2024, 1, 2), status="fold", excuse="Ghosted 👻")
        await world.check_in(pact_id, alice, date(2024, 1, 8))

        in_week = await pact_service.list_check_ins(
            pact_ids=[pact_id], range_start=date(2024, 1, 1), range_end=date(2024, 1, 7)
        )
        folds = await pact_service.list_check_ins(
            pact_ids=[pact_id],
            range_start=date(2024, 1, 1),
            range_end=date(2024, 1, 7),
            status=CheckInStatus.FOLD,
        )

        assert [c.check_in_date for c in in_week] == [date(2024, 1, 1), date(2024, 1, 2)]
        assert [c.excuse for c in folds] == ["Ghosted 👻"]

    async def test_list_successes_newest_first(self, world):
        alice = await world.user("Alice")
        group_id = await world.group("Crew", members=[alice])
        pact_id = await world.pact(group_id, participants=[alice])
        await world.check_in(pact_id, alice, date(2024, 1, 1))
        await world.check_in(pact_id, alice, date(2024, 1, 3))
        await world.check_in(pact_id, alice, date(2024, 1, 2), status="fold")

        successes = await pact_service.list_successes(pact_id=pact_id)

        assert [c.check_in_date for c in successes] == [date(2024, 1, 3), date(2024, 1, 1)]

    async def test_count_roast_threads(self, world, patched_db):
        alice = await world.user("Alice")
        group_id = await world.group("Crew", members=[alice])
        pact_id = await world.pact(group_id, participants=[alice])
        fold_id = await world.check_in(pact_id, alice, date(2024, 1, 2), status="fold")
        await patched_db.create_record("roast_threads", {"check_in_id": fold_id, "status": "open"})

        assert await pact_service.count_roast_threads(check_in_ids=[fold_id, "missing"]) == 1


@pytest.mark.unit
class TestUserService:
    async def test_get_users_by_id(self, world):
        alice = await world.user("Alice", push_token="ExponentPushToken[a]")
        await world.user("Bob")

        users = await user_service.get_users_by_id(user_ids=[alice, alice, "missing"])

        assert list(users) == [alice]
        assert users[alice].push_token == "ExponentPushToken[a]"

    async def test_get_users_by_id_empty(self, patched_db):
        assert await user_service.get_users_by_id(user_ids=[]) == {}

    async def test_clear_push_token(self, world, patched_db):
        alice = await world.user("Alice", push_token="ExponentPushToken[a]")

        await user_service.clear_push_token(user_id=alice)

        stored = await patched_db.get_record("users", alice)
        assert stored["push_token"] is None

    async def test_groups_and_members(self, world):
        alice = await world.user("Alice")
        bob = await world.user("Bob")
        crew = await world.group("Crew", members=[alice, bob])
        other = await world.group("Other", members=[bob])

        groups = await user_service.list_groups()
        by_id = await user_service.get_groups_by_id(group_ids=[other])
        members = await user_service.list_group_member_ids(group_id=crew)

        assert [g.name for g in groups] == ["Crew", "Other"]
        assert list(by_id) == [other]
        assert members == [alice, bob]
