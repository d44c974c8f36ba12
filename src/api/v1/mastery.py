# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Mastery tracking API endpoints.

This module provides endpoints for learner mastery:
- GET /{user_id} - All mastery records of a user
- GET /{user_id}/competencies/{competency_id} - One competency
- POST /{user_id}/update - Record assessment evidence
- POST /{user_id}/decay - Apply time decay to stale estimates
- GET /{user_id}/courses/{course_id}/skill-graph - Annotated skill graph
- GET /{user_id}/courses/{course_id}/recommendations - What to study
- GET /{user_id}/courses/{course_id}/progress - Mastery band counts

Learners can only read and update their own mastery; admins can act
for any user.
"""

import logging

from fastapi import APIRouter, HTTPException, status

from src.api.dependencies import DB, AuthenticatedUser, ensure_self_or_admin
from src.domains.mastery import (
    MasteryCompetencyNotFoundError,
    MasteryEvidence,
    MasteryNotFoundError,
    MasteryService,
)
from src.models.mastery import (
    CourseMasteryProgressResponse,
    MasteryDecayRequest,
    MasteryDecayResponse,
    MasteryResponse,
    MasteryUpdateRequest,
    RecommendationsResponse,
    SkillGraphResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/{user_id}", response_model=list[MasteryResponse], summary="Get user mastery")
async def get_user_mastery(user_id: str, db: DB, current_user: AuthenticatedUser) -> list[MasteryResponse]:
    ensure_self_or_admin(current_user, user_id)
    return await MasteryService(db).get_user_mastery(user_id)


@router.get(
    "/{user_id}/competencies/{competency_id}",
    response_model=MasteryResponse,
    summary="Get competency mastery",
)
async def get_competency_mastery(
    user_id: str,
    competency_id: str,
    db: DB,
    current_user: AuthenticatedUser,
) -> MasteryResponse:
    ensure_self_or_admin(current_user, user_id)
    try:
        return await MasteryService(db).get_competency_mastery(user_id, competency_id)
    except MasteryNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("/{user_id}/update", response_model=MasteryResponse, summary="Record assessment evidence")
async def update_mastery(
    user_id: str,
    data: MasteryUpdateRequest,
    db: DB,
    current_user: AuthenticatedUser,
) -> MasteryResponse:
    """Apply one assessment of a competency to the learner's mastery.

    Raises:
        HTTPException: 404 if the competency does not exist.
    """
    ensure_self_or_admin(current_user, user_id)
    evidence = MasteryEvidence(
        correctness=data.correctness,
        time_on_task=data.time_on_task,
        expected_time=data.expected_time,
        hints_used=data.hints_used,
        attempt_number=data.attempt_number,
    )
    try:
        return await MasteryService(db).update_mastery(
            user_id,
            data.competency_id,
            evidence,
            event_type=data.event_type,
        )
    except MasteryCompetencyNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("/{user_id}/decay", response_model=MasteryDecayResponse, summary="Apply mastery decay")
async def apply_decay(
    user_id: str,
    data: MasteryDecayRequest,
    db: DB,
    current_user: AuthenticatedUser,
) -> MasteryDecayResponse:
    ensure_self_or_admin(current_user, user_id)
    updated = await MasteryService(db).apply_mastery_decay(user_id, data.days_threshold)
    return MasteryDecayResponse(updated=updated)


@router.get(
    "/{user_id}/courses/{course_id}/skill-graph",
    response_model=SkillGraphResponse,
    summary="Get skill graph",
)
async def get_skill_graph(
    user_id: str,
    course_id: str,
    db: DB,
    current_user: AuthenticatedUser,
) -> SkillGraphResponse:
    ensure_self_or_admin(current_user, user_id)
    return await MasteryService(db).build_skill_graph(user_id, course_id)


@router.get(
    "/{user_id}/courses/{course_id}/recommendations",
    response_model=RecommendationsResponse,
    summary="Get competency recommendations",
)
async def get_recommendations(
    user_id: str,
    course_id: str,
    db: DB,
    current_user: AuthenticatedUser,
) -> RecommendationsResponse:
    ensure_self_or_admin(current_user, user_id)
    return await MasteryService(db).get_recommendations(user_id, course_id)


@router.get(
    "/{user_id}/courses/{course_id}/progress",
    response_model=CourseMasteryProgressResponse,
    summary="Get course mastery progress",
)
async def get_course_progress(
    user_id: str,
    course_id: str,
    db: DB,
    current_user: AuthenticatedUser,
) -> CourseMasteryProgressResponse:
    ensure_self_or_admin(current_user, user_id)
    return await MasteryService(db).get_course_progress(user_id, course_id)
