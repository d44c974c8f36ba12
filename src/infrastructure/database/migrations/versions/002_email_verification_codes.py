# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Email verification codes.

Revision ID: 002_email_verification_codes
Revises: 001_initial_schema
Create Date: 2025-02-03
"""

from typing import Sequence, Union

from alembic import op

from src.infrastructure.database.models import EmailVerificationCode

revision: str = "002_email_verification_codes"
down_revision: Union[str, None] = "001_initial_schema"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Databases created after this table was added already have it
    EmailVerificationCode.__table__.create(op.get_bind(), checkfirst=True)


def downgrade() -> None:
    EmailVerificationCode.__table__.drop(op.get_bind(), checkfirst=True)
