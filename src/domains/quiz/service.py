# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Quiz service.

This module provides the QuizService class for:
- Item and quiz authoring
- Delivering quizzes to learners without answers
- Grading attempts, then updating mastery and gamification
- Per-user statistics and per-quiz analytics
"""

import logging
from collections import defaultdict
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import get_settings
from src.domains.gamification import GamificationService, outcome_to_dict
from src.domains.mastery import MasteryEvidence, MasteryService
from src.domains.quiz.grading import (
    QuizDefinitionError,
    competency_performance,
    prepare_quiz_for_user,
    quiz_statistics,
    score_responses,
    validate_item_definition,
)
from src.infrastructure.database.models import Competency, Quiz, QuizAttempt, QuizItem
from src.infrastructure.notifications import NotificationService
from src.models.gamification import RewardResponse
from src.models.quiz import (
    GradedResponseModel,
    ItemAnalytics,
    PreparedQuizResponse,
    QuizAnalyticsResponse,
    QuizAttemptResponse,
    QuizCreateRequest,
    QuizItemCreateRequest,
    QuizItemResponse,
    QuizItemUpdateRequest,
    QuizResponse,
    QuizResultResponse,
    QuizScoreModel,
    QuizStatisticsResponse,
    QuizSubmitRequest,
    QuizUpdateRequest,
)
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class QuizServiceError(Exception):
    """Base exception for quiz service errors."""

    pass


class QuizNotFoundError(QuizServiceError):
    """Raised when a quiz is not found."""

    pass


class QuizItemNotFoundError(QuizServiceError):
    """Raised when a quiz item (or its competency) is not found."""

    pass


class QuizValidationError(QuizServiceError):
    """Raised when an item or quiz definition is invalid."""

    pass


class MaxAttemptsReachedError(QuizServiceError):
    """Raised when the user has used every allowed attempt."""

    pass


class QuizService:
    """Service for quiz authoring, delivery and grading.

    Attributes:
        db: Async database session.
    """

    def __init__(
        self,
        db: AsyncSession,
        mastery: MasteryService | None = None,
        gamification: GamificationService | None = None,
        notifications: NotificationService | None = None,
    ) -> None:
        self.db = db
        self._notifications = notifications or NotificationService(db)
        self._mastery = mastery or MasteryService(db)
        self._gamification = gamification or GamificationService(db, self._notifications)
        self._learning = get_settings().learning

    # =========================================================================
    # Grading
    # =========================================================================

    async def grade_quiz(
        self,
        user_id: str,
        quiz_id: str,
        request: QuizSubmitRequest,
    ) -> QuizResultResponse:
        """Grade a submitted attempt.

        The attempt is stored before mastery, gamification and the result
        notification run; failures in those follow-up steps are logged and
        reported as ``mastery_updated=False`` or a missing gamification block.

        Args:
            user_id: Learner ID.
            quiz_id: Quiz being answered.
            request: Submitted answers.

        Returns:
            Graded result.

        Raises:
            QuizNotFoundError: If the quiz does not exist.
            MaxAttemptsReachedError: If no attempts remain.
        """
        quiz = await self._get_quiz(quiz_id)

        prior_attempts = await self.count_attempts(user_id, quiz_id)
        if prior_attempts >= quiz.max_attempts:
            raise MaxAttemptsReachedError(f"Maximum attempts ({quiz.max_attempts}) reached")

        items_by_id = await self._load_items(quiz.items)
        score = score_responses(
            items_by_id,
            [answer.model_dump() for answer in request.responses],
            partial_credit=bool((quiz.config or {}).get("partial_credit")),
        )
        for item_id in score.skipped_item_ids:
            logger.warning("Quiz item %s not found in quiz %s", item_id, quiz_id)

        percentage = score.percentage
        passed = percentage >= self._learning.pass_threshold
        now = utc_now()

        attempt = QuizAttempt(
            user_id=user_id,
            quiz_id=quiz_id,
            attempt_number=prior_attempts + 1,
            responses=[r.to_dict() for r in score.responses],
            points_earned=score.earned,
            points_possible=score.possible,
            percentage=percentage,
            passed=passed,
            started_at=request.started_at or now,
            submitted_at=now,
            device_id=request.device_id,
            sync_status="pending",
        )
        self.db.add(attempt)
        await self.db.commit()
        await self.db.refresh(attempt)

        logger.info(
            "Quiz graded: user=%s quiz=%s attempt=%d score=%.1f",
            user_id,
            quiz_id,
            attempt.attempt_number,
            percentage,
        )

        mastery_updated = False
        try:
            await self.update_mastery_from_quiz(user_id, attempt, items_by_id)
            mastery_updated = True
        except Exception as e:
            logger.error("Failed to update mastery from quiz %s: %s", quiz_id, str(e), exc_info=True)
            await self.db.rollback()

        gamification = None
        try:
            outcome = await self._gamification.handle_quiz_completion(
                user_id, quiz_id, percentage, passed
            )
            gamification = RewardResponse(**outcome_to_dict(outcome))
        except Exception as e:
            logger.error("Failed to award gamification rewards: %s", str(e), exc_info=True)
            await self.db.rollback()

        try:
            await self._notifications.notify_quiz_result(user_id, quiz_id, quiz.title, percentage, passed)
        except Exception as e:
            logger.warning("Failed to send quiz result notification: %s", str(e))

        return QuizResultResponse(
            attempt_id=attempt.id,
            attempt_number=attempt.attempt_number,
            score=QuizScoreModel(earned=score.earned, possible=score.possible, percentage=percentage),
            passed=passed,
            perfect=score.perfect,
            responses=[GradedResponseModel(**r.to_dict()) for r in score.responses],
            mastery_updated=mastery_updated,
            gamification=gamification,
        )

    async def update_mastery_from_quiz(
        self,
        user_id: str,
        attempt: QuizAttempt,
        items_by_id: dict[str, QuizItem],
    ) -> int:
        """Feed an attempt into mastery, one update per competency.

        Returns:
            Number of competencies updated.
        """
        performance = competency_performance(attempt.responses, items_by_id)
        expected = float(self._learning.expected_item_time_ms)

        for competency_id, perf in performance.items():
            await self._mastery.update_mastery(
                user_id,
                competency_id,
                MasteryEvidence(
                    correctness=perf.correctness,
                    time_on_task=perf.mean_time_ms,
                    expected_time=expected,
                    hints_used=perf.hints_used,
                    attempt_number=attempt.attempt_number,
                ),
                event_type="quiz",
            )
        return len(performance)

    async def count_attempts(self, user_id: str, quiz_id: str) -> int:
        result = await self.db.execute(
            select(func.count())
            .select_from(QuizAttempt)
            .where(QuizAttempt.user_id == user_id, QuizAttempt.quiz_id == quiz_id)
        )
        return result.scalar() or 0

    async def get_quiz_statistics(self, user_id: str, quiz_id: str) -> QuizStatisticsResponse:
        """Attempt count plus best, last and average scores."""
        result = await self.db.execute(
            select(QuizAttempt.percentage)
            .where(QuizAttempt.user_id == user_id, QuizAttempt.quiz_id == quiz_id)
            .order_by(QuizAttempt.submitted_at.desc())
        )
        return QuizStatisticsResponse(**quiz_statistics(list(result.scalars().all())))

    async def list_user_attempts(self, user_id: str, quiz_id: str) -> list[QuizAttemptResponse]:
        result = await self.db.execute(
            select(QuizAttempt)
            .where(QuizAttempt.user_id == user_id, QuizAttempt.quiz_id == quiz_id)
            .order_by(QuizAttempt.attempt_number.desc())
        )
        return [QuizAttemptResponse.model_validate(a) for a in result.scalars().all()]

    # =========================================================================
    # Delivery
    # =========================================================================

    async def start_quiz(self, user_id: str, quiz_id: str, language: str = "th") -> PreparedQuizResponse:
        """Prepare a published quiz for a learner.

        Raises:
            QuizNotFoundError: If missing or unpublished.
            MaxAttemptsReachedError: If no attempts remain.
        """
        quiz = await self._get_quiz(quiz_id)
        if not quiz.published:
            raise QuizNotFoundError(f"Quiz not found: {quiz_id}")

        used = await self.count_attempts(user_id, quiz_id)
        if used >= quiz.max_attempts:
            raise MaxAttemptsReachedError(f"Maximum attempts ({quiz.max_attempts}) reached")

        items_by_id = await self._load_items(quiz.items)
        pool = [items_by_id[i] for i in quiz.items if i in items_by_id]
        prepared = prepare_quiz_for_user(quiz, pool, language)

        return PreparedQuizResponse(
            **prepared,
            attempts_used=used,
            attempts_remaining=quiz.max_attempts - used,
        )

    # =========================================================================
    # Item authoring
    # =========================================================================

    async def create_item(self, request: QuizItemCreateRequest) -> QuizItemResponse:
        """Create a quiz item.

        Raises:
            QuizItemNotFoundError: If the competency does not exist.
            QuizValidationError: If the item cannot be graded.
        """
        options = [o.model_dump() for o in request.options]
        try:
            validate_item_definition(request.item_type.value, options, request.correct_answer)
        except QuizDefinitionError as e:
            raise QuizValidationError(str(e)) from e
        await self._ensure_competency(request.competency_id)

        item = QuizItem(
            item_type=request.item_type.value,
            stem=request.stem.model_dump(),
            options=options,
            correct_answer=request.correct_answer,
            explanation=request.explanation.model_dump() if request.explanation else {},
            competency_id=request.competency_id,
            difficulty=request.difficulty,
            tags=list(request.tags),
        )
        self.db.add(item)
        await self.db.commit()
        await self.db.refresh(item)

        logger.info("Created quiz item %s (%s)", item.id, item.item_type)
        return QuizItemResponse.model_validate(item)

    async def update_item(self, item_id: str, request: QuizItemUpdateRequest) -> QuizItemResponse:
        """Apply a partial update to an item.

        Raises:
            QuizItemNotFoundError: If the item does not exist.
            QuizValidationError: If the updated item is not gradable.
        """
        item = await self._get_item(item_id)

        options = [o.model_dump() for o in request.options] if request.options is not None else item.options
        correct_answer = (
            request.correct_answer if request.correct_answer is not None else item.correct_answer
        )
        try:
            validate_item_definition(item.item_type, options, correct_answer)
        except QuizDefinitionError as e:
            raise QuizValidationError(str(e)) from e

        item.options = options
        item.correct_answer = correct_answer
        if request.stem is not None:
            item.stem = {**item.stem, **request.stem.model_dump(exclude_unset=True)}
        if request.explanation is not None:
            item.explanation = {**item.explanation, **request.explanation.model_dump(exclude_unset=True)}
        if request.difficulty is not None:
            item.difficulty = request.difficulty
        if request.tags is not None:
            item.tags = list(request.tags)

        await self.db.commit()
        await self.db.refresh(item)
        return QuizItemResponse.model_validate(item)

    async def delete_item(self, item_id: str) -> None:
        item = await self._get_item(item_id)
        await self.db.delete(item)
        await self.db.commit()
        logger.info("Deleted quiz item %s", item_id)

    async def get_item(self, item_id: str) -> QuizItemResponse:
        return QuizItemResponse.model_validate(await self._get_item(item_id))

    async def list_items(self, competency_id: str | None = None) -> list[QuizItemResponse]:
        """Items, optionally only those assessing one competency."""
        query = select(QuizItem)
        if competency_id:
            query = query.where(QuizItem.competency_id == competency_id)
        result = await self.db.execute(query.order_by(QuizItem.created_at.desc()))
        return [QuizItemResponse.model_validate(i) for i in result.scalars().all()]

    # =========================================================================
    # Quiz authoring
    # =========================================================================

    async def create_quiz(self, request: QuizCreateRequest) -> QuizResponse:
        """Create a draft quiz.

        Raises:
            QuizItemNotFoundError: If any pool item does not exist.
        """
        await self._ensure_items(request.items)

        quiz = Quiz(
            title=request.title.model_dump(),
            lesson_id=request.lesson_id,
            course_id=request.course_id,
            items=list(request.items),
            config=request.config.model_dump(),
            published=False,
        )
        self.db.add(quiz)
        await self.db.commit()
        await self.db.refresh(quiz)

        logger.info("Created quiz %s with %d items", quiz.id, len(quiz.items))
        return QuizResponse.model_validate(quiz)

    async def update_quiz(self, quiz_id: str, request: QuizUpdateRequest) -> QuizResponse:
        """Apply a partial update to a quiz.

        Raises:
            QuizNotFoundError: If the quiz does not exist.
            QuizItemNotFoundError: If a new pool item does not exist.
            QuizValidationError: If the pool is smaller than item_count.
        """
        quiz = await self._get_quiz(quiz_id)

        items = list(request.items) if request.items is not None else list(quiz.items)
        config = request.config.model_dump() if request.config is not None else dict(quiz.config)
        if len(items) < int(config.get("item_count", 1)):
            raise QuizValidationError(
                f"Quiz needs at least {config.get('item_count')} items, got {len(items)}"
            )
        if request.items is not None:
            await self._ensure_items(items)

        quiz.items = items
        quiz.config = config
        if request.title is not None:
            quiz.title = {**quiz.title, **request.title.model_dump(exclude_unset=True)}
        if request.published is not None:
            quiz.published = request.published

        await self.db.commit()
        await self.db.refresh(quiz)
        return QuizResponse.model_validate(quiz)

    async def delete_quiz(self, quiz_id: str) -> None:
        quiz = await self._get_quiz(quiz_id)
        await self.db.delete(quiz)
        await self.db.commit()
        logger.info("Deleted quiz %s", quiz_id)

    async def get_quiz(self, quiz_id: str) -> QuizResponse:
        return QuizResponse.model_validate(await self._get_quiz(quiz_id))

    async def list_quizzes(self, course_id: str | None = None, lesson_id: str | None = None) -> list[QuizResponse]:
        query = select(Quiz)
        if course_id:
            query = query.where(Quiz.course_id == course_id)
        if lesson_id:
            query = query.where(Quiz.lesson_id == lesson_id)
        result = await self.db.execute(query.order_by(Quiz.created_at.desc()))
        return [QuizResponse.model_validate(q) for q in result.scalars().all()]

    async def list_attempts(self, quiz_id: str, limit: int = 50, offset: int = 0) -> list[QuizAttemptResponse]:
        """All attempts on a quiz, newest first."""
        await self._get_quiz(quiz_id)
        result = await self.db.execute(
            select(QuizAttempt)
            .where(QuizAttempt.quiz_id == quiz_id)
            .order_by(QuizAttempt.submitted_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return [QuizAttemptResponse.model_validate(a) for a in result.scalars().all()]

    async def get_quiz_analytics(self, quiz_id: str) -> QuizAnalyticsResponse:
        """Pass rate, average score and per-item correct rates.

        Raises:
            QuizNotFoundError: If the quiz does not exist.
        """
        await self._get_quiz(quiz_id)
        result = await self.db.execute(select(QuizAttempt).where(QuizAttempt.quiz_id == quiz_id))
        attempts = result.scalars().all()

        return QuizAnalyticsResponse(quiz_id=quiz_id, **summarize_attempts(attempts))

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _load_items(self, item_ids: list[str]) -> dict[str, QuizItem]:
        if not item_ids:
            return {}
        result = await self.db.execute(select(QuizItem).where(QuizItem.id.in_(item_ids)))
        return {item.id: item for item in result.scalars().all()}

    async def _ensure_items(self, item_ids: list[str]) -> None:
        found = await self._load_items(item_ids)
        missing = [i for i in item_ids if i not in found]
        if missing:
            raise QuizItemNotFoundError(f"Quiz items not found: {', '.join(missing)}")

    async def _ensure_competency(self, competency_id: str) -> None:
        result = await self.db.execute(select(Competency.id).where(Competency.id == competency_id))
        if result.scalar_one_or_none() is None:
            raise QuizItemNotFoundError(f"Competency not found: {competency_id}")

    async def _get_quiz(self, quiz_id: str) -> Quiz:
        result = await self.db.execute(select(Quiz).where(Quiz.id == quiz_id))
        quiz = result.scalar_one_or_none()
        if not quiz:
            raise QuizNotFoundError(f"Quiz not found: {quiz_id}")
        return quiz

    async def _get_item(self, item_id: str) -> QuizItem:
        result = await self.db.execute(select(QuizItem).where(QuizItem.id == item_id))
        item = result.scalar_one_or_none()
        if not item:
            raise QuizItemNotFoundError(f"Quiz item not found: {item_id}")
        return item


def summarize_attempts(attempts: list[Any]) -> dict[str, Any]:
    """Aggregate attempts into quiz analytics figures."""
    if not attempts:
        return {
            "total_attempts": 0,
            "unique_users": 0,
            "pass_rate": 0.0,
            "average_score": 0.0,
            "items": [],
        }

    per_item: dict[str, list[bool]] = defaultdict(list)
    for attempt in attempts:
        for response in attempt.responses or []:
            per_item[response["item_id"]].append(bool(response.get("correct")))

    return {
        "total_attempts": len(attempts),
        "unique_users": len({a.user_id for a in attempts}),
        "pass_rate": sum(1 for a in attempts if a.passed) / len(attempts) * 100,
        "average_score": sum(a.percentage for a in attempts) / len(attempts),
        "items": [
            ItemAnalytics(
                item_id=item_id,
                responses=len(results),
                correct_rate=sum(results) / len(results) * 100,
            )
            for item_id, results in sorted(per_item.items())
        ],
    }
