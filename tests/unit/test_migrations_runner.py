# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for migration ordering."""

import pytest

from src.infrastructure.database.migrations.runner import (
    MigrationError,
    get_pending_migrations,
    get_script_directory,
)

REVISIONS = ["001_initial_schema", "002_email_verification_codes"]


class TestPendingMigrations:
    """Tests for get_pending_migrations."""

    def test_fresh_database_gets_everything(self) -> None:
        assert get_pending_migrations(None) == REVISIONS

    def test_up_to_date(self) -> None:
        assert get_pending_migrations(REVISIONS[-1]) == []

    def test_from_intermediate_revision(self) -> None:
        assert get_pending_migrations(REVISIONS[0]) == REVISIONS[1:]

    def test_target_revision(self) -> None:
        assert get_pending_migrations(None, REVISIONS[0]) == REVISIONS[:1]

    def test_unknown_revisions(self) -> None:
        with pytest.raises(MigrationError):
            get_pending_migrations("999_future")
        with pytest.raises(MigrationError):
            get_pending_migrations(None, "999_future")


def test_revisions_form_a_single_chain() -> None:
    script = get_script_directory()

    assert script.get_heads() == [REVISIONS[-1]]
    for revision in script.walk_revisions():
        assert callable(revision.module.upgrade)
        assert callable(revision.module.downgrade)
