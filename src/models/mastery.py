# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Mastery tracking API models."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

MasteryEventType = Literal["quiz", "practice", "decay", "manual"]


class MasteryUpdateRequest(BaseModel):
    """Evidence for a single competency assessment."""

    competency_id: str
    correctness: float = Field(ge=0, le=1, description="Fraction correct")
    time_on_task: float = Field(ge=0, description="Time spent in milliseconds")
    expected_time: float = Field(gt=0, description="Expected time in milliseconds")
    hints_used: int = Field(default=0, ge=0)
    attempt_number: int = Field(default=1, ge=1)
    event_type: Literal["quiz", "practice", "manual"] = "practice"


class MasteryDecayRequest(BaseModel):
    """Apply decay to competencies not assessed recently."""

    days_threshold: int = Field(default=7, ge=1, le=365)


class MasteryHistoryEvent(BaseModel):
    timestamp: str
    mastery: float
    event_type: MasteryEventType
    evidence: dict[str, Any] = Field(default_factory=dict)


class MasteryResponse(BaseModel):
    """Mastery of one competency with recent history."""

    competency_id: str
    mastery: float
    confidence: float
    status: str
    last_assessed: datetime
    history: list[MasteryHistoryEvent] = Field(default_factory=list)


class MasteryDecayResponse(BaseModel):
    updated: int = Field(ge=0, description="Records whose mastery decayed")


class SkillGraphNode(BaseModel):
    competency_id: str
    code: str
    name: dict[str, Any]
    prerequisites: list[str]
    dependents: list[str]
    mastery: float
    status: str


class SkillGraphResponse(BaseModel):
    course_id: str
    nodes: list[SkillGraphNode]


class CompetencyRecommendationResponse(BaseModel):
    competency_id: str
    code: str
    name: dict[str, Any]
    mastery: float
    reason: str


class RecommendationsResponse(BaseModel):
    """Competencies to remediate and to learn next."""

    course_id: str
    remediation: list[CompetencyRecommendationResponse]
    next: list[CompetencyRecommendationResponse]


class CourseMasteryProgressResponse(BaseModel):
    """Competency counts per mastery band for a course."""

    course_id: str
    total: int
    mastered: int
    developing: int
    not_started: int
    average_mastery: float
