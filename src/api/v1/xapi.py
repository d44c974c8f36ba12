# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""xAPI Learning Record Store endpoints.

This module provides a minimal LRS:
- POST /statements - Store one statement or a batch (max 50)
- GET /statements - Query statements, newest first
- GET /activities/state - Latest statement of an agent on an activity

Storing is idempotent by statement id. A single duplicate, or a batch
made only of duplicates, is answered with 409. Any invalid statement
rejects the request with 400 and per-statement details.

Learners can only query their own statements.
"""

import logging
from datetime import datetime
from typing import Any
from urllib.parse import urlencode

from fastapi import APIRouter, Body, HTTPException, Query, Request, status

from src.api.dependencies import DB, AuthenticatedUser
from src.domains.xapi import XAPIDuplicateError, XAPIService, XAPIValidationError
from src.domains.xapi.service import DEFAULT_QUERY_LIMIT, MAX_QUERY_LIMIT
from src.models.xapi import (
    ActivityStateResponse,
    BatchStoredResponse,
    StatementQueryResponse,
    StatementStoredResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/statements",
    response_model=StatementStoredResponse | BatchStoredResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Store statements",
)
async def store_statements(
    db: DB,
    current_user: AuthenticatedUser,
    payload: dict[str, Any] | list[Any] = Body(...),
) -> StatementStoredResponse | BatchStoredResponse:
    """Store a statement object or a list of statements.

    Raises:
        HTTPException: 400 on validation failure, 409 on duplicates.
    """
    service = XAPIService(db)
    try:
        if isinstance(payload, list):
            batch = await service.store_statements(payload, user_id=current_user.id)
            return BatchStoredResponse(
                created=len(batch.created),
                duplicates=len(batch.duplicates),
                statement_ids=batch.created,
            )

        result = await service.store_statement(payload, user_id=current_user.id)
    except XAPIValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": str(e), "details": e.details},
        )
    except XAPIDuplicateError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"error": str(e), "statement_ids": e.statement_ids},
        )

    if result.duplicate:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"error": "Statement already exists", "statement_id": result.statement_id},
        )
    return StatementStoredResponse(statement_id=result.statement_id)


@router.get("/statements", response_model=StatementQueryResponse, summary="Query statements")
async def query_statements(
    request: Request,
    db: DB,
    current_user: AuthenticatedUser,
    actor: str | None = None,
    verb: str | None = None,
    activity: str | None = None,
    since: datetime | None = None,
    until: datetime | None = None,
    limit: int = Query(default=DEFAULT_QUERY_LIMIT, ge=1, le=MAX_QUERY_LIMIT),
    offset: int = Query(default=0, ge=0),
) -> StatementQueryResponse:
    """Filter by actor (email or account name), verb, activity and time."""
    if not current_user.is_admin:
        actor = current_user.email

    page = await XAPIService(db).query_statements(
        actor=actor,
        verb=verb,
        activity=activity,
        since=since,
        until=until,
        limit=limit,
        offset=offset,
    )

    more = None
    if page["has_more"]:
        params = {k: v for k, v in request.query_params.items() if k != "offset"}
        params["offset"] = str(offset + page["limit"])
        more = f"{request.url.path}?{urlencode(params)}"

    return StatementQueryResponse(statements=page["statements"], total=page["total"], more=more)


@router.get("/activities/state", response_model=ActivityStateResponse, summary="Get activity state")
async def get_activity_state(
    db: DB,
    current_user: AuthenticatedUser,
    activity_id: str = Query(alias="activityId"),
    agent: str | None = None,
) -> ActivityStateResponse:
    """Latest statement of an agent about an activity.

    Raises:
        HTTPException: 404 when the agent has no statement for it.
    """
    if agent is None or not current_user.is_admin:
        agent = current_user.email

    statement = await XAPIService(db).get_activity_state(activity_id, agent)
    if statement is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No state for this activity")

    return ActivityStateResponse(
        activity_id=activity_id,
        agent=agent,
        state_id=statement.get("id"),
        state=statement.get("result") or {},
        last_statement=statement,
    )
