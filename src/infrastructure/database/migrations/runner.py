# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Upgrade the LMS database to a schema revision.

Revisions live in ``versions/`` and are read by alembic's
``ScriptDirectory``; their order comes from each file's
``down_revision``. The upgrade runs through an ``EnvironmentContext``
over an async connection, so no alembic.ini or env.py is needed. The
applied revision is tracked by alembic in ``alembic_version``.

Usage:
    lms-migrate                       # upgrade to head
    lms-migrate 001_initial_schema    # upgrade to a given revision
"""

import asyncio
import logging
import sys
from pathlib import Path

from alembic.config import Config
from alembic.runtime.environment import EnvironmentContext
from alembic.script import ScriptDirectory
from alembic.script.revision import RevisionError
from alembic.util import CommandError
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from src.infrastructure.database.models import Base

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent
HEAD = "head"


class MigrationError(Exception):
    """Raised when an upgrade path cannot be resolved."""

    pass


def alembic_config() -> Config:
    config = Config()
    config.set_main_option("script_location", str(MIGRATIONS_DIR))
    return config


def get_script_directory(config: Config | None = None) -> ScriptDirectory:
    return ScriptDirectory.from_config(config or alembic_config())


def get_pending_migrations(
    current_version: str | None,
    target_revision: str | None = None,
) -> list[str]:
    """Revisions an upgrade would apply, oldest first.

    Args:
        current_version: Revision stored in the database, None when empty.
        target_revision: Revision to stop at; the head when omitted.

    Raises:
        MigrationError: If a revision is unknown or the target is not
            ahead of the current revision.
    """
    script = get_script_directory()
    target = target_revision or HEAD
    try:
        if current_version is not None and current_version == script.get_revision(target).revision:
            return []
        steps = list(script.iterate_revisions(target, current_version or "base"))
    except (RevisionError, CommandError) as e:
        raise MigrationError(str(e)) from e
    return [step.revision for step in reversed(steps)]


def _upgrade(connection: Connection, target: str) -> list[str]:
    config = alembic_config()
    script = get_script_directory(config)
    applied: list[str] = []

    def upgrade_steps(current, context):
        return script._upgrade_revs(target, current)

    def on_applied(ctx, step, heads, run_args) -> None:
        applied.append(step.up_revision_id)
        logger.info("Applied migration: %s", step.up_revision_id)

    with EnvironmentContext(config, script, fn=upgrade_steps, destination_rev=target) as env:
        env.configure(
            connection=connection,
            target_metadata=Base.metadata,
            on_version_apply=on_applied,
        )
        with env.begin_transaction():
            env.run_migrations()

    return applied


async def run_migrations(db_url: str, target_revision: str | None = None) -> list[str]:
    """Upgrade the database at ``db_url``.

    Returns:
        Revisions applied, oldest first.

    Raises:
        MigrationError: If the target revision cannot be reached.
    """
    engine = create_async_engine(db_url, poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            return await connection.run_sync(_upgrade, target_revision or HEAD)
    except (RevisionError, CommandError) as e:
        raise MigrationError(str(e)) from e
    finally:
        await engine.dispose()


def main() -> None:
    """Upgrade the configured database."""
    from src.core.config import get_settings
    from src.utils.logging import setup_logging

    settings = get_settings()
    setup_logging(settings)
    target = sys.argv[1] if len(sys.argv) > 1 else None

    try:
        applied = asyncio.run(run_migrations(settings.db.url, target))
    except MigrationError as e:
        logger.error("Migration failed: %s", e)
        sys.exit(1)

    if applied:
        logger.info("Migrations complete: %s", ", ".join(applied))
    else:
        logger.info("Database already up to date")


if __name__ == "__main__":
    main()
