# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Initial LMS database schema.

Creates every table registered on the ORM metadata: users and device
sessions, content, progress and mastery, quizzes, gamification,
notifications, xAPI statements, sync queue, tutor conversations and
analytics.

Revision ID: 001_initial_schema
Revises: None
Create Date: 2025-01-06
"""

from typing import Sequence, Union

from alembic import op

from src.infrastructure.database.models import Base

revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all LMS tables."""
    Base.metadata.create_all(op.get_bind(), checkfirst=True)


def downgrade() -> None:
    """Drop all LMS tables."""
    Base.metadata.drop_all(op.get_bind(), checkfirst=True)
