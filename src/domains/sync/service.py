# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Offline sync service.

This module provides the SyncService class for:
- Applying changes pushed by offline devices
- Detecting and resolving conflicts with server state
- Per-device sync bookkeeping and queue cleanup
"""

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import get_settings
from src.domains.sync.conflicts import (
    ConflictResolution,
    QueueStatus,
    SyncOutcome,
    mastery_resolution,
    new_messages,
    progress_resolution,
)
from src.domains.xapi import XAPIService, XAPIServiceError
from src.infrastructure.database.models import (
    Competency,
    Conversation,
    DeviceSyncState,
    Lesson,
    LearnerMastery,
    LearnerProgress,
    Quiz,
    QuizAttempt,
    SyncQueueItem,
    new_id,
)
from src.models.adaptive import LessonProgressResponse
from src.models.quiz import QuizAttemptResponse
from src.models.sync import (
    ConflictSummary,
    DeviceSyncStateResponse,
    SyncConflict,
    SyncFailure,
    SyncItem,
    SyncPullResponse,
    SyncPushRequest,
    SyncPushResponse,
    SyncStatusResponse,
)
from src.utils.datetime import days_ago, format_iso, parse_iso, utc_now

logger = logging.getLogger(__name__)

Handler = Callable[[str, SyncItem], Awaitable[SyncOutcome]]


class SyncServiceError(Exception):
    """Base exception for sync service errors."""

    pass


class SyncItemError(SyncServiceError):
    """Raised when a pushed change cannot be applied."""

    pass


class SyncConflictNotFoundError(SyncServiceError):
    """Raised when a conflict does not exist for the user."""

    pass


class SyncDeviceNotFoundError(SyncServiceError):
    """Raised when a device has no sync state for the user."""

    pass


class SyncResolutionError(SyncServiceError):
    """Raised when a resolution could not be applied."""

    pass


class SyncService:
    """Service for offline device synchronisation.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession, xapi: XAPIService | None = None) -> None:
        self.db = db
        self._xapi = xapi or XAPIService(db)
        self._handlers: dict[str, Handler] = {
            "lesson_progress": self._sync_lesson_progress,
            "quiz_attempt": self._sync_quiz_attempt,
            "mastery": self._sync_mastery,
            "conversation": self._sync_conversation,
            "xapi_statement": self._sync_xapi_statement,
        }

    # =========================================================================
    # Push / pull
    # =========================================================================

    async def process_sync_push(self, user_id: str, request: SyncPushRequest) -> SyncPushResponse:
        """Apply a batch of offline changes.

        Each change is queued, applied and marked synced, failed or
        conflict. One bad change never aborts the rest of the batch.

        Args:
            user_id: Owner of the device.
            request: Device id and its changes.

        Returns:
            Per-item outcome and the device's new sync version.
        """
        synced: list[str] = []
        failed: list[SyncFailure] = []
        conflicts: list[SyncConflict] = []

        for item in request.items:
            queue_item = self._enqueue(user_id, request.device_id, item)
            await self.db.flush()

            status = await self._apply(user_id, queue_item, item)
            if status == QueueStatus.SYNCED:
                synced.append(item.id or queue_item.id)
            elif status == QueueStatus.CONFLICT:
                conflict = queue_item.conflict_data or {}
                conflicts.append(
                    SyncConflict(
                        id=item.id,
                        queue_id=queue_item.id,
                        client_data=item.data,
                        server_data=conflict.get("server_data"),
                        resolution=conflict.get("resolution") or ConflictResolution.MANUAL.value,
                    )
                )
            else:
                failed.append(SyncFailure(id=item.id, error=queue_item.error_message or "Unknown error"))

        state = await self._get_or_create_device(user_id, request.device_id)
        state.platform = request.platform
        if request.app_version:
            state.app_version = request.app_version
        state.last_sync_at = utc_now()
        state.last_sync_version = (state.last_sync_version or 0) + 1
        state.pending_count = len(failed) + len(conflicts)
        state.failed_count = len(failed)
        state.conflict_count = len(conflicts)

        await self.db.commit()

        logger.info(
            "Sync push for user=%s device=%s: synced=%d failed=%d conflicts=%d",
            user_id,
            request.device_id,
            len(synced),
            len(failed),
            len(conflicts),
        )

        return SyncPushResponse(
            synced_items=synced,
            failed_items=failed,
            conflicts=conflicts,
            sync_version=state.last_sync_version,
            server_timestamp=utc_now(),
        )

    async def pull_changes(self, user_id: str, device_id: str, last_sync_version: int = 0) -> SyncPullResponse:
        """Server-side changes for a device since a sync version.

        Server changes are not tracked per version, so the change list
        is always empty; the current version lets the device confirm it
        is up to date.
        """
        state = await self._get_device(user_id, device_id)
        logger.debug(
            "Pull for user=%s device=%s since version %d", user_id, device_id, last_sync_version
        )
        return SyncPullResponse(
            changes=[],
            sync_version=state.last_sync_version if state else 0,
            has_more=False,
        )

    # =========================================================================
    # Status and devices
    # =========================================================================

    async def get_sync_status(self, user_id: str, device_id: str | None = None) -> SyncStatusResponse:
        """Devices, pending count and open conflicts for a user."""
        device_query = select(DeviceSyncState).where(DeviceSyncState.user_id == user_id)
        if device_id:
            device_query = device_query.where(DeviceSyncState.device_id == device_id)
        result = await self.db.execute(device_query.order_by(DeviceSyncState.last_sync_at.desc()))
        devices = [DeviceSyncStateResponse.model_validate(d) for d in result.scalars().all()]

        pending_query = (
            select(func.count())
            .select_from(SyncQueueItem)
            .where(SyncQueueItem.user_id == user_id, SyncQueueItem.status == QueueStatus.PENDING.value)
        )
        if device_id:
            pending_query = pending_query.where(SyncQueueItem.device_id == device_id)
        pending_result = await self.db.execute(pending_query)
        pending = pending_result.scalar() or 0

        result = await self.db.execute(
            select(SyncQueueItem)
            .where(
                SyncQueueItem.user_id == user_id,
                SyncQueueItem.status == QueueStatus.CONFLICT.value,
            )
            .order_by(SyncQueueItem.created_at)
        )
        conflicts = [
            ConflictSummary(
                id=item.id,
                resource_type=item.resource_type,
                client_data=item.data,
                server_data=(item.conflict_data or {}).get("server_data"),
                resolution=(item.conflict_data or {}).get("resolution"),
                created_at=item.created_at,
            )
            for item in result.scalars().all()
        ]

        return SyncStatusResponse(
            devices=devices,
            pending_count=pending,
            conflict_count=len(conflicts),
            conflicts=conflicts,
        )

    async def list_devices(self, user_id: str) -> list[DeviceSyncStateResponse]:
        result = await self.db.execute(
            select(DeviceSyncState)
            .where(DeviceSyncState.user_id == user_id)
            .order_by(DeviceSyncState.last_sync_at.desc())
        )
        return [DeviceSyncStateResponse.model_validate(d) for d in result.scalars().all()]

    async def remove_device(self, user_id: str, device_id: str) -> None:
        """Forget a device and drop its queued changes.

        Raises:
            SyncDeviceNotFoundError: If the device never synced.
        """
        state = await self._get_device(user_id, device_id)
        if state is None:
            raise SyncDeviceNotFoundError(f"Device not found: {device_id}")

        await self.db.execute(
            delete(SyncQueueItem).where(
                SyncQueueItem.user_id == user_id,
                SyncQueueItem.device_id == device_id,
            )
        )
        await self.db.delete(state)
        await self.db.commit()
        logger.info("Removed device %s for user %s", device_id, user_id)

    # =========================================================================
    # Conflicts and cleanup
    # =========================================================================

    async def resolve_conflict(
        self,
        user_id: str,
        queue_id: str,
        resolution: str,
        merged_data: dict[str, Any] | None = None,
    ) -> None:
        """Settle a conflicted change.

        ``use_server`` keeps the server copy. ``use_client`` and
        ``use_merged`` re-apply the change as of now with the client or
        merged data. The queue item is deleted once settled.

        Raises:
            SyncConflictNotFoundError: If the conflict does not exist.
            SyncResolutionError: If re-applying the change fails again.
        """
        result = await self.db.execute(
            select(SyncQueueItem).where(
                SyncQueueItem.id == queue_id,
                SyncQueueItem.user_id == user_id,
                SyncQueueItem.status == QueueStatus.CONFLICT.value,
            )
        )
        queue_item = result.scalar_one_or_none()
        if queue_item is None:
            raise SyncConflictNotFoundError(f"Conflict not found: {queue_id}")

        if resolution != "use_server":
            data = merged_data if resolution == "use_merged" else queue_item.data
            item = SyncItem(
                operation=queue_item.operation,
                resource_type=queue_item.resource_type,
                resource_id=queue_item.resource_id,
                data=data or {},
                client_timestamp=utc_now(),
            )
            status = await self._apply(user_id, queue_item, item)
            if status != QueueStatus.SYNCED:
                await self.db.commit()
                raise SyncResolutionError("Failed to resolve conflict")

        await self.db.delete(queue_item)
        await self.db.commit()
        logger.info("Conflict %s resolved with %s", queue_id, resolution)

    async def cleanup_sync_queue(self, days: int = 30) -> int:
        """Delete synced queue items processed more than ``days`` ago."""
        result = await self.db.execute(
            delete(SyncQueueItem).where(
                SyncQueueItem.status == QueueStatus.SYNCED.value,
                SyncQueueItem.processed_at < days_ago(days),
            )
        )
        await self.db.commit()
        deleted = result.rowcount or 0
        logger.info("Cleaned up %d synced items older than %d days", deleted, days)
        return deleted

    # =========================================================================
    # Item processing
    # =========================================================================

    def _enqueue(self, user_id: str, device_id: str, item: SyncItem) -> SyncQueueItem:
        queue_item = SyncQueueItem(
            id=new_id(),
            user_id=user_id,
            device_id=device_id,
            resource_type=item.resource_type,
            resource_id=item.resource_id,
            operation=item.operation,
            data=item.data,
            client_timestamp=item.client_timestamp,
            status=QueueStatus.PENDING.value,
            retry_count=0,
            created_at=utc_now(),
        )
        self.db.add(queue_item)
        return queue_item

    async def _apply(self, user_id: str, queue_item: SyncQueueItem, item: SyncItem) -> QueueStatus:
        """Apply one change and record the outcome on its queue item."""
        queue_item.processed_at = utc_now()
        handler = self._handlers.get(item.resource_type)
        if handler is None:
            return self._fail(queue_item, f"Unsupported resource type: {item.resource_type}")

        try:
            # Savepoint per change: a rejected write only discards this change
            async with self.db.begin_nested():
                outcome = await handler(user_id, item)
                await self.db.flush()
        except (SyncServiceError, XAPIServiceError, KeyError, ValueError, TypeError) as e:
            logger.warning("Sync item %s failed: %s", queue_item.id, str(e))
            return self._fail(queue_item, str(e))
        except SQLAlchemyError as e:
            logger.warning("Sync item %s rejected by the database: %s", queue_item.id, str(e))
            return self._fail(queue_item, f"Could not store {item.resource_type} change")

        if outcome.conflict:
            queue_item.status = QueueStatus.CONFLICT.value
            queue_item.conflict_data = {
                "server_data": outcome.server_data,
                "client_data": item.data,
                "resolution": outcome.resolution.value if outcome.resolution else None,
            }
            return QueueStatus.CONFLICT

        queue_item.status = QueueStatus.SYNCED.value
        queue_item.error_message = None
        return QueueStatus.SYNCED

    @staticmethod
    def _fail(queue_item: SyncQueueItem, message: str) -> QueueStatus:
        queue_item.status = QueueStatus.FAILED.value
        queue_item.error_message = message
        queue_item.retry_count = (queue_item.retry_count or 0) + 1
        return QueueStatus.FAILED

    async def _sync_lesson_progress(self, user_id: str, item: SyncItem) -> SyncOutcome:
        if item.operation == "delete":
            return SyncOutcome.synced()

        lesson_id = _require(item.data, "lesson_id")
        completion = float(item.data.get("completion_percentage") or 0)
        time_spent = int(item.data.get("time_spent") or 0)

        result = await self.db.execute(
            select(LearnerProgress).where(
                LearnerProgress.user_id == user_id,
                LearnerProgress.lesson_id == lesson_id,
            )
        )
        progress = result.scalar_one_or_none()

        if progress is not None:
            resolution = progress_resolution(item.client_timestamp, progress.last_accessed_at)
            if resolution == ConflictResolution.SERVER_WINS:
                return SyncOutcome.conflicted(
                    LessonProgressResponse.model_validate(progress).model_dump(mode="json"),
                    ConflictResolution.SERVER_WINS,
                )
            progress.update_progress(completion, time_spent, at=item.client_timestamp)
            return SyncOutcome.synced()

        lesson_result = await self.db.execute(select(Lesson.course_id).where(Lesson.id == lesson_id))
        course_id = lesson_result.scalar_one_or_none()
        if course_id is None:
            raise SyncItemError(f"Lesson not found: {lesson_id}")

        progress = LearnerProgress(
            user_id=user_id,
            lesson_id=lesson_id,
            course_id=course_id,
            status="not-started",
            completion_percentage=0.0,
            time_spent=0,
            last_accessed_at=item.client_timestamp,
        )
        progress.update_progress(completion, time_spent, at=item.client_timestamp)
        self.db.add(progress)
        return SyncOutcome.synced()

    async def _sync_quiz_attempt(self, user_id: str, item: SyncItem) -> SyncOutcome:
        if item.operation != "create":
            return SyncOutcome.synced()

        quiz_id = _require(item.data, "quiz_id")
        attempt_number = int(_require(item.data, "attempt_number"))

        result = await self.db.execute(
            select(QuizAttempt).where(
                QuizAttempt.user_id == user_id,
                QuizAttempt.quiz_id == quiz_id,
                QuizAttempt.attempt_number == attempt_number,
            )
        )
        existing = result.scalar_one_or_none()
        if existing is not None:
            return SyncOutcome.conflicted(
                QuizAttemptResponse.model_validate(existing).model_dump(mode="json"),
                ConflictResolution.SERVER_WINS,
            )
        if await self.db.get(Quiz, quiz_id) is None:
            raise SyncItemError(f"Quiz not found: {quiz_id}")

        submitted_at = _timestamp(item.data.get("submitted_at")) or item.client_timestamp
        self.db.add(
            QuizAttempt(
                user_id=user_id,
                quiz_id=quiz_id,
                attempt_number=attempt_number,
                responses=list(item.data.get("responses") or []),
                points_earned=float(item.data.get("points_earned") or 0),
                points_possible=float(item.data.get("points_possible") or 0),
                percentage=float(item.data.get("percentage") or 0),
                passed=bool(item.data.get("passed")),
                started_at=_timestamp(item.data.get("started_at")) or submitted_at,
                submitted_at=submitted_at,
                device_id=item.data.get("device_id"),
                sync_status="synced",
            )
        )
        return SyncOutcome.synced()

    async def _sync_mastery(self, user_id: str, item: SyncItem) -> SyncOutcome:
        if item.operation == "delete":
            return SyncOutcome.synced()

        competency_id = _require(item.data, "competency_id")
        mastery = min(1.0, max(0.0, float(_require(item.data, "mastery"))))
        confidence = min(1.0, max(0.0, float(item.data.get("confidence") or 0)))

        result = await self.db.execute(
            select(LearnerMastery).where(
                LearnerMastery.user_id == user_id,
                LearnerMastery.competency_id == competency_id,
            )
        )
        record = result.scalar_one_or_none()

        if record is None:
            if await self.db.get(Competency, competency_id) is None:
                raise SyncItemError(f"Competency not found: {competency_id}")
            self.db.add(
                LearnerMastery(
                    user_id=user_id,
                    competency_id=competency_id,
                    mastery=mastery,
                    confidence=confidence,
                    last_assessed=item.client_timestamp,
                    decay_rate=get_settings().learning.decay_rate,
                    history=[],
                )
            )
            return SyncOutcome.synced()

        resolution = mastery_resolution(item.client_timestamp, record.last_assessed)
        if resolution == ConflictResolution.LATEST_WINS:
            snapshot = record.snapshot()
            snapshot["last_assessed"] = format_iso(record.last_assessed)
            return SyncOutcome.conflicted(snapshot, resolution)

        record.mastery = mastery
        record.confidence = confidence
        record.last_assessed = item.client_timestamp
        return SyncOutcome.synced()

    async def _sync_conversation(self, user_id: str, item: SyncItem) -> SyncOutcome:
        if item.operation == "create":
            messages = new_messages([], item.data.get("messages") or [])
            self.db.add(
                Conversation(
                    user_id=user_id,
                    lesson_id=item.data.get("lesson_id"),
                    course_id=item.data.get("course_id"),
                    title=str(item.data.get("title") or "Offline conversation")[:200],
                    language=item.data.get("language") or "th",
                    tutor_mode=item.data.get("tutor_mode") or "explain",
                    messages=messages,
                    last_message_at=item.client_timestamp,
                )
            )
            return SyncOutcome.synced()

        if item.operation == "update" and item.resource_id:
            result = await self.db.execute(
                select(Conversation).where(
                    Conversation.id == item.resource_id,
                    Conversation.user_id == user_id,
                )
            )
            conversation = result.scalar_one_or_none()
            if conversation is not None:
                appended = new_messages(conversation.messages or [], item.data.get("messages") or [])
                if appended:
                    conversation.messages = [*(conversation.messages or []), *appended]
                    conversation.last_message_at = utc_now()
        return SyncOutcome.synced()

    async def _sync_xapi_statement(self, user_id: str, item: SyncItem) -> SyncOutcome:
        if item.operation != "create":
            return SyncOutcome.synced()
        await self._xapi.store_statement(item.data, user_id=user_id, commit=False)
        return SyncOutcome.synced()

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _get_device(self, user_id: str, device_id: str) -> DeviceSyncState | None:
        result = await self.db.execute(
            select(DeviceSyncState).where(
                DeviceSyncState.user_id == user_id,
                DeviceSyncState.device_id == device_id,
            )
        )
        return result.scalar_one_or_none()

    async def _get_or_create_device(self, user_id: str, device_id: str) -> DeviceSyncState:
        state = await self._get_device(user_id, device_id)
        if state is not None:
            return state
        state = DeviceSyncState(
            user_id=user_id,
            device_id=device_id,
            platform="web",
            last_sync_version=0,
            pending_count=0,
            failed_count=0,
            conflict_count=0,
        )
        self.db.add(state)
        return state


def _require(data: dict[str, Any], key: str) -> Any:
    value = data.get(key)
    if value is None or value == "":
        raise SyncItemError(f"Missing required field: {key}")
    return value


def _timestamp(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    return parse_iso(str(value))
