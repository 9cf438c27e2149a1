"""Tests for the missed check-in auto-fold job."""

from datetime import date

import pytest

from cooked.core import db_client
from cooked.core.errors import ErrorCode
from cooked.domain.check_in import GHOSTED_EXCUSE
from cooked.services import pact_service
from cooked.services.auto_fold_service import auto_fold_missed_check_ins


TODAY = date(2024, 1, 4)  # Thursday
YESTERDAY = date(2024, 1, 3)  # Wednesday


@pytest.mark.unit
class TestAutoFold:
    async def test_folds_participants_without_check_in(self, world, patched_db):
        alice = await world.user("Alice")
        bob = await world.user("Bob")
        group = await world.group("Crew", members=[alice, bob])
        pact = await world.pact(group, participants=[alice, bob])
        await world.check_in(pact, bob, YESTERDAY)

        summary = await auto_fold_missed_check_ins(today=TODAY)

        assert summary.success is True
        assert summary.folded_for_date == YESTERDAY
        assert summary.pacts_processed == 1
        assert summary.folds_created == 1
        assert summary.roast_threads_created == 1

        folds = [r for r in patched_db.records("check_ins") if r["status"] == "fold"]
        assert len(folds) == 1
        fold = folds[0]
        assert fold["user_id"] == alice
        assert fold["pact_id"] == pact
        assert fold["check_in_date"] == "2024-01-03"
        assert fold["excuse"] == GHOSTED_EXCUSE
        assert fold["is_late"] is True

        threads = patched_db.records("roast_threads")
        assert [t["check_in_id"] for t in threads] == [fold["id"]]
        assert threads[0]["status"] == "open"

    async def test_second_run_creates_nothing(self, world, patched_db):
        alice = await world.user("Alice")
        group = await world.group("Crew", members=[alice])
        await world.pact(group, participants=[alice])

        first = await auto_fold_missed_check_ins(today=TODAY)
        second = await auto_fold_missed_check_ins(today=TODAY)

        assert first.folds_created == 1
        assert second.folds_created == 0
        assert second.already_folded == 0
        assert second.success is True
        assert len(patched_db.records("check_ins")) == 1
        assert len(patched_db.records("roast_threads")) == 1

    async def test_nothing_due_yesterday(self, world, patched_db):
        alice = await world.user("Alice")
        group = await world.group("Crew", members=[alice])
        # Due Mon/Fri only; yesterday was a Wednesday
        await world.pact(group, frequency="custom", frequency_days=[1, 5], participants=[alice])

        summary = await auto_fold_missed_check_ins(today=TODAY)

        assert summary.success is True
        assert summary.message == "No pacts due yesterday"
        assert patched_db.records("check_ins") == []

    async def test_weekly_pact_folds_only_after_sunday(self, world, patched_db):
        alice = await world.user("Alice")
        group = await world.group("Crew", members=[alice])
        await world.pact(group, frequency="weekly", participants=[alice])

        midweek = await auto_fold_missed_check_ins(today=TODAY)
        monday = await auto_fold_missed_check_ins(today=date(2024, 1, 8))

        assert midweek.folds_created == 0
        assert monday.folds_created == 1
        assert monday.folded_for_date == date(2024, 1, 7)

    async def test_relay_folds_only_the_owner(self, world, patched_db):
        alice = await world.user("Alice")
        bob = await world.user("Bob")
        group = await world.group("Crew", members=[alice, bob])
        await world.pact(
            group,
            pact_type="relay",
            participants=[alice, bob],
            relay_days={alice: [1, 3, 5], bob: [2, 4]},
        )

        summary = await auto_fold_missed_check_ins(today=TODAY)

        assert summary.folds_created == 1
        assert [r["user_id"] for r in patched_db.records("check_ins")] == [alice]

    async def test_pact_not_started_yesterday_is_skipped(self, world, patched_db):
        alice = await world.user("Alice")
        group = await world.group("Crew", members=[alice])
        await world.pact(group, start_date=TODAY, participants=[alice])

        summary = await auto_fold_missed_check_ins(today=TODAY)

        assert summary.folds_created == 0
        assert summary.message == "No pacts due yesterday"

    async def test_concurrent_fold_counts_as_already_folded(self, world, patched_db, monkeypatch):
        alice = await world.user("Alice")
        group = await world.group("Crew", members=[alice])
        pact = await world.pact(group, participants=[alice])
        # Another run folded Alice after this run read the check-ins
        await world.check_in(pact, alice, YESTERDAY, status="fold", excuse=GHOSTED_EXCUSE)

        async def stale_check_ins(**kwargs):
            return []

        monkeypatch.setattr(pact_service, "list_check_ins", stale_check_ins)

        summary = await auto_fold_missed_check_ins(today=TODAY)

        assert summary.success is True
        assert summary.folds_created == 0
        assert summary.already_folded == 1
        assert summary.errors_count == 0
        assert patched_db.records("roast_threads") == []

    async def test_failures_are_collected_and_run_continues(self, world, patched_db, monkeypatch):
        alice = await world.user("Alice")
        bob = await world.user("Bob")
        group = await world.group("Crew", members=[alice, bob])
        await world.pact(group, participants=[alice, bob])

        async def flaky_create(collection, data):
            if collection == "check_ins" and data["user_id"] == alice:
                msg = "disk I/O error"
                raise db_client.DatabaseError(msg)
            return await patched_db.create_record(collection, data)

        monkeypatch.setattr(db_client, "create_record", flaky_create)

        summary = await auto_fold_missed_check_ins(today=TODAY)

        assert summary.success is False
        assert summary.folds_created == 1
        assert summary.errors_count == 1
        error = summary.errors[0]
        assert error.user_id == alice
        assert error.code == ErrorCode.ERR_DATABASE
        assert error.severity == "high"
        assert [r["user_id"] for r in patched_db.records("check_ins")] == [bob]

    async def test_roast_thread_failure_keeps_fold(self, world, patched_db, monkeypatch):
        alice = await world.user("Alice")
        group = await world.group("Crew", members=[alice])
        await world.pact(group, participants=[alice])

        async def no_threads(collection, data):
            if collection == "roast_threads":
                msg = "connection reset"
                raise db_client.DatabaseError(msg)
            return await patched_db.create_record(collection, data)

        monkeypatch.setattr(db_client, "create_record", no_threads)

        summary = await auto_fold_missed_check_ins(today=TODAY)

        assert summary.folds_created == 1
        assert summary.roast_threads_created == 0
        assert summary.errors[0].code == ErrorCode.ERR_NETWORK_ERROR
        assert summary.errors[0].severity == "medium"

    async def test_error_list_is_capped(self, world, patched_db, monkeypatch):
        members = [await world.user(f"User {i}") for i in range(60)]
        group = await world.group("Crowd", members=members)
        await world.pact(group, participants=members)

        async def broken_create(collection, data):
            msg = "database is locked"
            raise db_client.DatabaseError(msg)

        monkeypatch.setattr(db_client, "create_record", broken_create)

        summary = await auto_fold_missed_check_ins(today=TODAY)

        assert summary.errors_count == 60
        assert len(summary.errors) == 50
