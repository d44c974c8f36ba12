# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Course content domain package.

This package provides course content management including:
- Course, module, lesson and competency CRUD
- Publish workflow checks
- Prerequisite DAG validation
"""

from src.domains.course.graph import (
    dependents_map,
    has_cycle_from,
    prerequisite_closure,
    validate_dag,
)
from src.domains.course.service import (
    CompetencyNotFoundError,
    CourseConflictError,
    CourseModuleNotFoundError,
    CourseNotFoundError,
    CourseService,
    CourseServiceError,
    CourseValidationError,
    LessonNotFoundError,
    PrerequisiteCycleError,
)

__all__ = [
    "CourseService",
    "CourseServiceError",
    "CourseNotFoundError",
    "CourseModuleNotFoundError",
    "LessonNotFoundError",
    "CompetencyNotFoundError",
    "CourseConflictError",
    "CourseValidationError",
    "PrerequisiteCycleError",
    "dependents_map",
    "has_cycle_from",
    "prerequisite_closure",
    "validate_dag",
]
