# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""xAPI statement store API models.

Statements themselves travel as raw JSON objects; only the store's
responses are modelled here.
"""

from typing import Any

from pydantic import BaseModel, Field


class StatementStoredResponse(BaseModel):
    message: str = "Statement stored successfully"
    statement_id: str


class BatchStoredResponse(BaseModel):
    message: str = "Batch stored successfully"
    created: int
    duplicates: int
    statement_ids: list[str]


class StatementQueryResponse(BaseModel):
    """A page of statements, newest first."""

    statements: list[dict[str, Any]]
    total: int
    more: str | None = Field(default=None, description="URL of the next page")


class ActivityStateResponse(BaseModel):
    activity_id: str
    agent: str
    state_id: str | None = None
    state: dict[str, Any] = Field(default_factory=dict)
    last_statement: dict[str, Any] | None = None
