# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy models for the adaptive LMS database.

Importing this package registers every table on ``Base.metadata``.
"""

from src.infrastructure.database.models.analytics import AnalyticsAggregate, AnalyticsEvent
from src.infrastructure.database.models.base import (
    Base,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
    new_id,
)
from src.infrastructure.database.models.content import Competency, Course, CourseModule, Lesson
from src.infrastructure.database.models.conversation import Conversation
from src.infrastructure.database.models.gamification import (
    Achievement,
    LeaderboardEntry,
    UserAchievement,
    UserGameStats,
    level_for_xp,
    xp_for_level,
)
from src.infrastructure.database.models.notification import Notification, NotificationPreference
from src.infrastructure.database.models.progress import LearnerMastery, LearnerProgress
from src.infrastructure.database.models.quiz import Quiz, QuizAttempt, QuizItem
from src.infrastructure.database.models.sync import DeviceSyncState, SyncQueueItem
from src.infrastructure.database.models.user import DeviceSession, EmailVerificationCode, User
from src.infrastructure.database.models.xapi import XAPIStatementRecord

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "new_id",
    # Users
    "User",
    "DeviceSession",
    "EmailVerificationCode",
    # Content
    "Course",
    "CourseModule",
    "Lesson",
    "Competency",
    # Progress
    "LearnerProgress",
    "LearnerMastery",
    # Quizzes
    "QuizItem",
    "Quiz",
    "QuizAttempt",
    # Gamification
    "UserGameStats",
    "Achievement",
    "UserAchievement",
    "LeaderboardEntry",
    "level_for_xp",
    "xp_for_level",
    # Notifications
    "Notification",
    "NotificationPreference",
    # xAPI
    "XAPIStatementRecord",
    # Sync
    "SyncQueueItem",
    "DeviceSyncState",
    # Tutor
    "Conversation",
    # Analytics
    "AnalyticsEvent",
    "AnalyticsAggregate",
]
