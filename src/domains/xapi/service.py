# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""xAPI Learning Record Store service.

This module provides the XAPIService class for:
- Validating and storing statements, idempotently by statement id
- Querying statements by actor, verb, activity and time window
- Reading the latest state of an activity for an agent
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.xapi.validation import (
    BatchItemResult,
    normalize_statement,
    validate_batch,
    validate_statement,
)
from src.infrastructure.database.models import XAPIStatementRecord
from src.utils.datetime import parse_iso, utc_now

logger = logging.getLogger(__name__)

DEFAULT_QUERY_LIMIT = 50
MAX_QUERY_LIMIT = 100


class XAPIServiceError(Exception):
    """Base exception for xAPI store errors."""

    pass


class XAPIValidationError(XAPIServiceError):
    """Raised when statements fail validation.

    Attributes:
        details: Issues for a single statement, or per-index results for
            a batch.
    """

    def __init__(self, message: str, details: list[dict[str, Any]]) -> None:
        super().__init__(message)
        self.details = details


class XAPIDuplicateError(XAPIServiceError):
    """Raised when every submitted statement already exists."""

    def __init__(self, message: str, statement_ids: list[str]) -> None:
        super().__init__(message)
        self.statement_ids = statement_ids


@dataclass
class StoreResult:
    statement_id: str
    duplicate: bool


@dataclass
class BatchStoreResult:
    created: list[str] = field(default_factory=list)
    duplicates: list[str] = field(default_factory=list)


class XAPIService:
    """Service for the statement store.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # =========================================================================
    # Storing
    # =========================================================================

    async def store_statement(
        self,
        statement: Mapping[str, Any],
        user_id: str | None = None,
        commit: bool = True,
    ) -> StoreResult:
        """Validate and store one statement.

        A statement whose id is already stored is reported as a duplicate
        and left untouched.

        Args:
            statement: Statement JSON.
            user_id: Authenticated submitter, if any.
            commit: Commit the session after storing.

        Returns:
            Stored id and whether it was a duplicate.

        Raises:
            XAPIValidationError: If the statement is invalid.
        """
        normalized = normalize_statement(statement)
        issues = validate_statement(normalized)
        if issues:
            logger.warning("xAPI statement %s failed validation", normalized.get("id"))
            raise XAPIValidationError(
                "Statement validation failed", [issue.to_dict() for issue in issues]
            )

        if await self._exists(normalized["id"]):
            logger.info("xAPI statement duplicate: %s", normalized["id"])
            return StoreResult(statement_id=normalized["id"], duplicate=True)

        self.db.add(self._to_record(normalized, user_id))
        if commit:
            await self.db.commit()

        logger.info("xAPI statement stored: %s (%s)", normalized["id"], normalized["verb"]["id"])
        return StoreResult(statement_id=normalized["id"], duplicate=False)

    async def store_statements(
        self,
        statements: Sequence[Mapping[str, Any]],
        user_id: str | None = None,
    ) -> BatchStoreResult:
        """Validate and store a batch of statements.

        Nothing is stored when any statement is invalid.

        Raises:
            XAPIValidationError: With the per-index results of invalid
                statements.
            XAPIDuplicateError: If every statement was already stored.
        """
        normalized: Any = statements
        if isinstance(statements, list):
            normalized = [normalize_statement(s) if isinstance(s, Mapping) else s for s in statements]
        validation = validate_batch(normalized)
        if not validation.valid:
            logger.warning(
                "xAPI batch validation failed: %d invalid of %d",
                len(validation.invalid),
                len(normalized) if isinstance(normalized, list) else 0,
            )
            raise XAPIValidationError(
                "Batch validation failed", [_batch_item(r) for r in validation.invalid]
            )

        ids = [s["id"] for s in normalized]
        result = await self.db.execute(
            select(XAPIStatementRecord.id).where(XAPIStatementRecord.id.in_(ids))
        )
        seen = set(result.scalars().all())

        outcome = BatchStoreResult()
        for statement in normalized:
            if statement["id"] in seen:
                outcome.duplicates.append(statement["id"])
                continue
            seen.add(statement["id"])
            self.db.add(self._to_record(statement, user_id))
            outcome.created.append(statement["id"])

        if not outcome.created:
            raise XAPIDuplicateError("All statements are duplicates", outcome.duplicates)

        await self.db.commit()
        logger.info(
            "xAPI batch stored: created=%d duplicates=%d",
            len(outcome.created),
            len(outcome.duplicates),
        )
        return outcome

    # =========================================================================
    # Querying
    # =========================================================================

    async def query_statements(
        self,
        actor: str | None = None,
        verb: str | None = None,
        activity: str | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
        limit: int = DEFAULT_QUERY_LIMIT,
        offset: int = 0,
    ) -> dict[str, Any]:
        """Query stored statements, newest first.

        Args:
            actor: Email (matched as mbox) or account name.
            verb: Verb IRI.
            activity: Object IRI.
            since: Earliest timestamp, inclusive.
            until: Latest timestamp, inclusive.
            limit: Page size, capped at 100.
            offset: Rows to skip.

        Returns:
            statements, total, limit, offset and has_more.
        """
        limit = max(1, min(limit, MAX_QUERY_LIMIT))
        conditions = []
        if actor:
            if "@" in actor:
                mbox = actor if actor.startswith("mailto:") else f"mailto:{actor}"
                conditions.append(XAPIStatementRecord.actor_mbox == mbox)
            else:
                conditions.append(XAPIStatementRecord.actor_account_name == actor)
        if verb:
            conditions.append(XAPIStatementRecord.verb_id == verb)
        if activity:
            conditions.append(XAPIStatementRecord.object_id == activity)
        if since:
            conditions.append(XAPIStatementRecord.timestamp >= since)
        if until:
            conditions.append(XAPIStatementRecord.timestamp <= until)

        count_result = await self.db.execute(
            select(func.count()).select_from(XAPIStatementRecord).where(*conditions)
        )
        total = count_result.scalar() or 0

        result = await self.db.execute(
            select(XAPIStatementRecord)
            .where(*conditions)
            .order_by(XAPIStatementRecord.timestamp.desc())
            .offset(offset)
            .limit(limit)
        )
        statements = [record.to_statement() for record in result.scalars().all()]

        return {
            "statements": statements,
            "total": total,
            "limit": limit,
            "offset": offset,
            "has_more": offset + len(statements) < total,
        }

    async def get_activity_state(self, activity_id: str, agent: str) -> dict[str, Any] | None:
        """Latest statement an agent made about an activity."""
        page = await self.query_statements(actor=agent, activity=activity_id, limit=1)
        if not page["statements"]:
            return None
        return page["statements"][0]

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _exists(self, statement_id: str) -> bool:
        result = await self.db.execute(
            select(XAPIStatementRecord.id).where(XAPIStatementRecord.id == statement_id)
        )
        return result.scalar_one_or_none() is not None

    @staticmethod
    def _to_record(statement: Mapping[str, Any], user_id: str | None) -> XAPIStatementRecord:
        actor = statement["actor"]
        account = actor.get("account") or {}
        return XAPIStatementRecord(
            id=statement["id"],
            actor=dict(actor),
            verb=dict(statement["verb"]),
            object=dict(statement["object"]),
            result=statement.get("result"),
            context=statement.get("context"),
            authority=statement.get("authority"),
            timestamp=parse_iso(str(statement["timestamp"])),
            stored=utc_now(),
            version=statement.get("version") or "1.0.3",
            actor_mbox=actor.get("mbox"),
            actor_account_name=account.get("name"),
            verb_id=statement["verb"]["id"],
            object_id=statement["object"]["id"],
            user_id=user_id,
        )


def _batch_item(result: BatchItemResult) -> dict[str, Any]:
    return {
        "index": result.index,
        "valid": result.valid,
        "errors": [issue.to_dict() for issue in result.errors],
    }

