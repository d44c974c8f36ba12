# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Learning Record Store table for xAPI statements.

The full statement parts are kept as JSONB. Actor, verb and activity
identifiers are copied into indexed columns for the statement query API.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, String
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base
from src.utils.datetime import utc_now


class XAPIStatementRecord(Base):
    """A stored xAPI 1.0.3 statement."""

    __tablename__ = "xapi_statements"

    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True)
    actor: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False)
    verb: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False)
    object: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False)
    result: Mapped[dict[str, Any] | None] = mapped_column(JSONB)
    context: Mapped[dict[str, Any] | None] = mapped_column(JSONB)
    authority: Mapped[dict[str, Any] | None] = mapped_column(JSONB)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    stored: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, nullable=False)
    version: Mapped[str] = mapped_column(String(10), nullable=False, default="1.0.3")

    actor_mbox: Mapped[str | None] = mapped_column(String(255), index=True)
    actor_account_name: Mapped[str | None] = mapped_column(String(255), index=True)
    verb_id: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    object_id: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    user_id: Mapped[str | None] = mapped_column(UUID(as_uuid=False), index=True)

    def to_statement(self) -> dict[str, Any]:
        """Rebuild the xAPI JSON representation."""
        statement: dict[str, Any] = {
            "id": self.id,
            "actor": self.actor,
            "verb": self.verb,
            "object": self.object,
            "timestamp": self.timestamp.isoformat(),
            "stored": self.stored.isoformat() if self.stored else None,
            "version": self.version,
        }
        if self.result is not None:
            statement["result"] = self.result
        if self.context is not None:
            statement["context"] = self.context
        if self.authority is not None:
            statement["authority"] = self.authority
        return statement
