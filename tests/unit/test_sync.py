# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for offline sync conflict rules and the sync service."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import IntegrityError

from src.domains.sync.conflicts import (
    ConflictResolution,
    SyncOutcome,
    is_stale,
    mastery_resolution,
    new_messages,
    progress_resolution,
)
from src.domains.sync.service import (
    SyncConflictNotFoundError,
    SyncDeviceNotFoundError,
    SyncService,
)
from src.infrastructure.database.models import LearnerMastery
from src.models.sync import SyncItem, SyncPushRequest

SERVER_TIME = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
EARLIER = SERVER_TIME - timedelta(hours=2)
LATER = SERVER_TIME + timedelta(hours=2)


class TestConflictRules:
    """Tests for per-resource conflict rules."""

    def test_is_stale(self) -> None:
        assert is_stale(EARLIER, SERVER_TIME) is True
        assert is_stale(SERVER_TIME, SERVER_TIME) is False
        assert is_stale(EARLIER, None) is False

    def test_naive_timestamps_are_utc(self) -> None:
        assert is_stale(datetime(2025, 3, 1, 10, 0), SERVER_TIME) is True

    def test_progress_resolution(self) -> None:
        assert progress_resolution(EARLIER, SERVER_TIME) == ConflictResolution.SERVER_WINS
        assert progress_resolution(LATER, SERVER_TIME) == ConflictResolution.MERGE

    def test_mastery_resolution(self) -> None:
        assert mastery_resolution(EARLIER, SERVER_TIME) == ConflictResolution.LATEST_WINS
        assert mastery_resolution(LATER, SERVER_TIME) == ConflictResolution.CLIENT_WINS
        assert mastery_resolution(EARLIER, None) == ConflictResolution.CLIENT_WINS

    def test_outcome_constructors(self) -> None:
        assert SyncOutcome.synced().conflict is False

        outcome = SyncOutcome.conflicted({"mastery": 0.9}, ConflictResolution.SERVER_WINS)
        assert outcome.conflict is True
        assert outcome.server_data == {"mastery": 0.9}


class TestNewMessages:
    """Tests for merging conversation messages."""

    def test_known_ids_are_skipped(self) -> None:
        existing = [{"id": "m-1", "content": "สวัสดี"}]
        incoming = [{"id": "m-1", "content": "สวัสดี"}, {"id": "m-2", "content": "Hello"}]

        appended = new_messages(existing, incoming)

        assert [m["id"] for m in appended] == ["m-2"]

    def test_missing_ids_are_assigned(self) -> None:
        appended = new_messages([], [{"content": "a"}, {"content": "b"}])

        assert len(appended) == 2
        assert appended[0]["id"] != appended[1]["id"]
        assert all("timestamp" in m for m in appended)

    def test_duplicates_within_batch(self) -> None:
        appended = new_messages([], [{"id": "m-1"}, {"id": "m-1"}])

        assert len(appended) == 1


@pytest.fixture
def xapi():
    return AsyncMock()


@pytest.fixture
def service(mock_db, xapi):
    return SyncService(db=mock_db, xapi=xapi)


def _push(*items: SyncItem, device_id: str = "device-1") -> SyncPushRequest:
    return SyncPushRequest(device_id=device_id, platform="android", items=list(items))


def _mastery(record: LearnerMastery | None = None) -> LearnerMastery:
    return record or LearnerMastery(
        user_id="user-1",
        competency_id="comp-1",
        mastery=0.8,
        confidence=0.6,
        last_assessed=SERVER_TIME,
        decay_rate=0.05,
        history=[],
    )


class TestProcessSyncPush:
    """Tests for SyncService.process_sync_push."""

    @pytest.mark.asyncio
    async def test_new_mastery_is_synced(self, service, mock_db, make_result) -> None:
        item = SyncItem(
            id="c-1",
            operation="create",
            resource_type="mastery",
            data={"competency_id": "comp-1", "mastery": 1.4, "confidence": 0.5},
            client_timestamp=LATER,
        )
        mock_db.execute.side_effect = [make_result(scalar=None), make_result(scalar=None)]

        response = await service.process_sync_push("user-1", _push(item))

        assert response.synced_items == ["c-1"]
        assert response.failed_items == []
        assert response.sync_version == 1
        added = [call.args[0] for call in mock_db.add.call_args_list]
        mastery = next(obj for obj in added if isinstance(obj, LearnerMastery))
        assert mastery.mastery == 1.0
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stale_mastery_is_conflict(self, service, mock_db, make_result) -> None:
        record = _mastery()
        item = SyncItem(
            id="c-2",
            operation="update",
            resource_type="mastery",
            data={"competency_id": "comp-1", "mastery": 0.3},
            client_timestamp=EARLIER,
        )
        device = SimpleNamespace(last_sync_version=4)
        mock_db.execute.side_effect = [make_result(scalar=record), make_result(scalar=device)]

        response = await service.process_sync_push("user-1", _push(item))

        assert response.synced_items == []
        assert response.conflicts[0].resolution == "latest_wins"
        assert response.conflicts[0].server_data["mastery"] == 0.8
        assert record.mastery == 0.8
        assert response.sync_version == 5
        assert device.conflict_count == 1

    @pytest.mark.asyncio
    async def test_newer_mastery_overwrites(self, service, mock_db, make_result) -> None:
        record = _mastery()
        item = SyncItem(
            operation="update",
            resource_type="mastery",
            data={"competency_id": "comp-1", "mastery": 0.9, "confidence": 0.7},
            client_timestamp=LATER,
        )
        mock_db.execute.side_effect = [make_result(scalar=record), make_result(scalar=None)]

        response = await service.process_sync_push("user-1", _push(item))

        assert len(response.synced_items) == 1
        assert record.mastery == 0.9
        assert record.last_assessed == LATER

    @pytest.mark.asyncio
    async def test_bad_items_fail_without_aborting_batch(self, service, mock_db, make_result, xapi) -> None:
        unsupported = SyncItem(
            id="bad-1", operation="create", resource_type="badge", client_timestamp=LATER
        )
        missing_field = SyncItem(
            id="bad-2", operation="create", resource_type="mastery", data={}, client_timestamp=LATER
        )
        statement = SyncItem(
            id="ok-1",
            operation="create",
            resource_type="xapi_statement",
            data={"id": "s-1"},
            client_timestamp=LATER,
        )
        mock_db.execute.return_value = make_result(scalar=None)

        response = await service.process_sync_push(
            "user-1", _push(unsupported, missing_field, statement)
        )

        assert response.synced_items == ["ok-1"]
        errors = {f.id: f.error for f in response.failed_items}
        assert errors["bad-1"] == "Unsupported resource type: badge"
        assert errors["bad-2"] == "Missing required field: competency_id"
        xapi.store_statement.assert_awaited_once_with({"id": "s-1"}, user_id="user-1", commit=False)

    @pytest.mark.asyncio
    async def test_duplicate_quiz_attempt_is_conflict(self, service, mock_db, make_result) -> None:
        existing = SimpleNamespace(
            id="att-1",
            quiz_id="quiz-1",
            user_id="user-1",
            attempt_number=1,
            responses=[],
            points_earned=8.0,
            points_possible=10.0,
            percentage=80.0,
            passed=True,
            started_at=SERVER_TIME,
            submitted_at=SERVER_TIME,
            time_spent=120,
            device_id=None,
            sync_status="synced",
            created_at=SERVER_TIME,
        )
        item = SyncItem(
            id="q-1",
            operation="create",
            resource_type="quiz_attempt",
            data={"quiz_id": "quiz-1", "attempt_number": 1},
            client_timestamp=LATER,
        )
        mock_db.execute.side_effect = [make_result(scalar=existing), make_result(scalar=None)]

        response = await service.process_sync_push("user-1", _push(item))

        assert response.conflicts[0].resolution == "server_wins"
        assert response.conflicts[0].id == "q-1"

    @pytest.mark.asyncio
    async def test_unknown_references_fail_per_item(self, service, mock_db, make_result) -> None:
        mastery = SyncItem(
            id="m-1",
            operation="create",
            resource_type="mastery",
            data={"competency_id": "ghost", "mastery": 0.5},
            client_timestamp=LATER,
        )
        attempt = SyncItem(
            id="q-2",
            operation="create",
            resource_type="quiz_attempt",
            data={"quiz_id": "ghost", "attempt_number": 1},
            client_timestamp=LATER,
        )
        statement = SyncItem(
            id="s-1", operation="create", resource_type="xapi_statement", data={}, client_timestamp=LATER
        )
        mock_db.execute.return_value = make_result(scalar=None)
        mock_db.get.return_value = None

        response = await service.process_sync_push("user-1", _push(mastery, attempt, statement))

        assert response.synced_items == ["s-1"]
        errors = {f.id: f.error for f in response.failed_items}
        assert errors == {"m-1": "Competency not found: ghost", "q-2": "Quiz not found: ghost"}

    @pytest.mark.asyncio
    async def test_rejected_write_does_not_abort_batch(self, service, mock_db, make_result) -> None:
        first = SyncItem(
            id="a",
            operation="create",
            resource_type="mastery",
            data={"competency_id": "comp-1", "mastery": 0.5},
            client_timestamp=LATER,
        )
        second = SyncItem(
            id="b", operation="create", resource_type="xapi_statement", data={}, client_timestamp=LATER
        )
        mock_db.execute.return_value = make_result(scalar=None)
        # enqueue a, write a, enqueue b, write b
        mock_db.flush.side_effect = [
            None,
            IntegrityError("INSERT", {}, Exception("foreign key violation")),
            None,
            None,
        ]

        response = await service.process_sync_push("user-1", _push(first, second))

        assert response.synced_items == ["b"]
        assert response.failed_items[0].id == "a"
        assert response.failed_items[0].error == "Could not store mastery change"
        assert mock_db.begin_nested.call_count == 2
        mock_db.commit.assert_awaited_once()


class TestSyncBookkeeping:
    """Tests for pull, device management and conflict resolution."""

    @pytest.mark.asyncio
    async def test_pull_returns_no_changes(self, service, mock_db, make_result) -> None:
        mock_db.execute.return_value = make_result(scalar=SimpleNamespace(last_sync_version=7))

        response = await service.pull_changes("user-1", "device-1", last_sync_version=3)

        assert response.changes == []
        assert response.sync_version == 7
        assert response.has_more is False

    @pytest.mark.asyncio
    async def test_remove_unknown_device(self, service, mock_db, make_result) -> None:
        mock_db.execute.return_value = make_result(scalar=None)

        with pytest.raises(SyncDeviceNotFoundError):
            await service.remove_device("user-1", "device-9")

    @pytest.mark.asyncio
    async def test_resolve_unknown_conflict(self, service, mock_db, make_result) -> None:
        mock_db.execute.return_value = make_result(scalar=None)

        with pytest.raises(SyncConflictNotFoundError):
            await service.resolve_conflict("user-1", "queue-1", "use_server")

    @pytest.mark.asyncio
    async def test_resolve_with_server_copy_drops_item(self, service, mock_db, make_result) -> None:
        queue_item = SimpleNamespace(id="queue-1", resource_type="mastery", data={})
        mock_db.execute.return_value = make_result(scalar=queue_item)

        await service.resolve_conflict("user-1", "queue-1", "use_server")

        mock_db.delete.assert_awaited_once_with(queue_item)
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_cleanup_reports_deleted(self, service, mock_db, make_result) -> None:
        mock_db.execute.return_value = make_result(rowcount=12)

        assert await service.cleanup_sync_queue(days=30) == 12
