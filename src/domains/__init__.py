# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services layer for the adaptive LMS.

This package contains domain services that encapsulate business logic.
Services take an AsyncSession, raise domain exceptions and leave HTTP
concerns to the API layer.

Domains:
    auth: Registration, login, tokens and device sessions.
    user: Profiles and session management.
    course: Courses, modules, lessons and competencies.
    progress: Per-lesson learner progress.
    quiz: Quiz authoring, delivery and grading.
    mastery: Competency mastery, decay and recommendations.
    adaptive: Learning paths and next-lesson selection.
    gamification: XP, levels, streaks, achievements and leaderboards.
    xapi: Learning Record Store.
    sync: Offline device synchronisation.
    tutor: Lesson-grounded AI tutor conversations.
    analytics: Events, aggregates, reports and insights.
    bilingual: Thai / English content transforms.
"""
