# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Mastery tracking service.

This module provides the MasteryService class for:
- Applying assessment evidence to per-competency mastery
- Time decay of stale mastery estimates
- Skill graph, recommendations and course progress views
"""

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import get_settings
from src.domains.mastery.calculator import (
    MasteryEvidence,
    calculate_mastery_update,
    decay_factor,
    mastery_status,
)
from src.domains.mastery.recommendations import (
    CompetencyNode,
    build_skill_graph,
    recommend_competencies,
    summarize_progress,
)
from src.infrastructure.database.models import Competency, LearnerMastery
from src.models.mastery import (
    CompetencyRecommendationResponse,
    CourseMasteryProgressResponse,
    MasteryResponse,
    RecommendationsResponse,
    SkillGraphNode,
    SkillGraphResponse,
)
from src.utils.datetime import days_ago, ensure_utc, utc_now

logger = logging.getLogger(__name__)

# Decay changes smaller than this are not persisted
DECAY_EPSILON = 0.01


class MasteryServiceError(Exception):
    """Base exception for mastery service errors."""

    pass


class MasteryNotFoundError(MasteryServiceError):
    """Raised when a user has no mastery record for a competency."""

    pass


class MasteryCompetencyNotFoundError(MasteryServiceError):
    """Raised when evidence references an unknown competency."""

    pass


class MasteryService:
    """Service for reading and updating learner mastery.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def update_mastery(
        self,
        user_id: str,
        competency_id: str,
        evidence: MasteryEvidence,
        event_type: str = "practice",
    ) -> MasteryResponse:
        """Apply assessment evidence to a competency.

        Creates the mastery record on first assessment.

        Args:
            user_id: Learner ID.
            competency_id: Assessed competency.
            evidence: Assessment evidence.
            event_type: History event kind (quiz, practice, manual).

        Returns:
            Updated mastery.

        Raises:
            MasteryCompetencyNotFoundError: If the competency does not exist.
        """
        record = await self._get_record(user_id, competency_id)

        if record is None:
            result = await self.db.execute(select(Competency.id).where(Competency.id == competency_id))
            if result.scalar_one_or_none() is None:
                raise MasteryCompetencyNotFoundError(f"Competency not found: {competency_id}")
            record = LearnerMastery(
                user_id=user_id,
                competency_id=competency_id,
                mastery=0.0,
                confidence=0.0,
                decay_rate=get_settings().learning.decay_rate,
                history=[],
            )
            self.db.add(record)

        before = record.mastery or 0.0
        update = calculate_mastery_update(before, record.confidence or 0.0, evidence)

        now = utc_now()
        record.mastery = update.mastery
        record.confidence = update.confidence
        record.last_assessed = now
        record.add_history_event(
            event_type,
            {
                "correctness": evidence.correctness,
                "time_on_task": evidence.time_on_task,
                "hints_used": evidence.hints_used,
                "attempt_number": evidence.attempt_number,
                "raw_score": round(update.raw_score, 4),
            },
            at=now,
        )

        await self.db.commit()
        await self.db.refresh(record)

        logger.debug(
            "Mastery updated: user=%s competency=%s %.3f -> %.3f",
            user_id,
            competency_id,
            before,
            record.mastery,
        )
        return self._to_response(record)

    async def get_user_mastery(self, user_id: str) -> list[MasteryResponse]:
        """All mastery records of a user."""
        result = await self.db.execute(
            select(LearnerMastery)
            .where(LearnerMastery.user_id == user_id)
            .order_by(LearnerMastery.last_assessed.desc())
        )
        return [self._to_response(r) for r in result.scalars().all()]

    async def get_competency_mastery(self, user_id: str, competency_id: str) -> MasteryResponse:
        """Mastery of one competency.

        Raises:
            MasteryNotFoundError: If the user was never assessed on it.
        """
        record = await self._get_record(user_id, competency_id)
        if record is None:
            raise MasteryNotFoundError(f"No mastery for competency {competency_id}")
        return self._to_response(record)

    async def get_mastery_map(
        self,
        user_id: str,
        competency_ids: list[str] | None = None,
    ) -> dict[str, float]:
        """Mastery by competency id, optionally restricted to some ids."""
        query = select(LearnerMastery.competency_id, LearnerMastery.mastery).where(
            LearnerMastery.user_id == user_id
        )
        if competency_ids is not None:
            if not competency_ids:
                return {}
            query = query.where(LearnerMastery.competency_id.in_(competency_ids))
        result = await self.db.execute(query)
        return {competency_id: value for competency_id, value in result.all()}

    async def apply_mastery_decay(self, user_id: str, days_threshold: int = 7) -> int:
        """Decay mastery of competencies not assessed recently.

        Records untouched for more than ``days_threshold`` days lose
        ``decay_rate`` per elapsed week. Changes under 0.01 are skipped.

        Args:
            user_id: Learner ID.
            days_threshold: Minimum age in days before decay applies.

        Returns:
            Number of records updated.
        """
        result = await self.db.execute(
            select(LearnerMastery).where(
                LearnerMastery.user_id == user_id,
                LearnerMastery.last_assessed < days_ago(days_threshold),
                LearnerMastery.mastery > 0,
            )
        )
        records = result.scalars().all()

        now = utc_now()
        updated = 0
        for record in records:
            days_since = (now - ensure_utc(record.last_assessed)).days
            factor = decay_factor(days_since, record.decay_rate)
            decayed = record.mastery * factor

            if abs(record.mastery - decayed) <= DECAY_EPSILON:
                continue

            record.mastery = decayed
            record.confidence = (record.confidence or 0.0) * factor
            record.last_assessed = now
            record.add_history_event(
                "decay",
                {"days_since_assessed": days_since, "factor": round(factor, 4)},
                at=now,
            )
            updated += 1

        if updated:
            await self.db.commit()
            logger.info("Applied mastery decay to %d records for user %s", updated, user_id)

        return updated

    async def build_skill_graph(self, user_id: str, course_id: str) -> SkillGraphResponse:
        """Competency graph of a course annotated with the user's mastery."""
        nodes, mastery = await self._load_course(user_id, course_id)
        return SkillGraphResponse(
            course_id=course_id,
            nodes=[SkillGraphNode(**node) for node in build_skill_graph(nodes, mastery)],
        )

    async def get_recommendations(self, user_id: str, course_id: str) -> RecommendationsResponse:
        """Competencies to remediate and to learn next in a course."""
        nodes, mastery = await self._load_course(user_id, course_id)
        recommendations = recommend_competencies(nodes, mastery)
        return RecommendationsResponse(
            course_id=course_id,
            remediation=[
                CompetencyRecommendationResponse(**vars(r)) for r in recommendations.remediation
            ],
            next=[CompetencyRecommendationResponse(**vars(r)) for r in recommendations.next],
        )

    async def get_course_progress(self, user_id: str, course_id: str) -> CourseMasteryProgressResponse:
        """Competency counts per mastery band for a course."""
        nodes, mastery = await self._load_course(user_id, course_id)
        summary = summarize_progress([n.id for n in nodes], mastery)
        return CourseMasteryProgressResponse(course_id=course_id, **summary)

    async def load_course_competencies(self, course_id: str) -> list[CompetencyNode]:
        """Competencies of a course as graph nodes."""
        result = await self.db.execute(
            select(Competency).where(Competency.course_id == course_id).order_by(Competency.code)
        )
        return [CompetencyNode.from_model(c) for c in result.scalars().all()]

    async def _load_course(
        self,
        user_id: str,
        course_id: str,
    ) -> tuple[list[CompetencyNode], dict[str, float]]:
        nodes = await self.load_course_competencies(course_id)
        mastery = await self.get_mastery_map(user_id, [n.id for n in nodes])
        return nodes, mastery

    async def _get_record(self, user_id: str, competency_id: str) -> LearnerMastery | None:
        result = await self.db.execute(
            select(LearnerMastery).where(
                LearnerMastery.user_id == user_id,
                LearnerMastery.competency_id == competency_id,
            )
        )
        return result.scalar_one_or_none()

    def _to_response(self, record: LearnerMastery) -> MasteryResponse:
        snapshot: dict[str, Any] = record.snapshot()
        return MasteryResponse(
            competency_id=snapshot["competency_id"],
            mastery=snapshot["mastery"],
            confidence=snapshot["confidence"],
            status=mastery_status(snapshot["mastery"]).value,
            last_assessed=snapshot["last_assessed"],
            history=snapshot["history"],
        )
