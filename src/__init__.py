"""Adaptive LMS Backend.

Bilingual (Thai / English) adaptive learning platform: courses, quizzes,
competency mastery, adaptive learning paths, gamification, an xAPI
record store, offline sync and a lesson-grounded AI tutor.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
