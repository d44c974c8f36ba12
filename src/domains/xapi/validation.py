# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""xAPI 1.0.3 statement validation.

Statements are checked as plain JSON dictionaries and every problem is
reported with a dotted path, so clients can fix a whole statement in
one round trip.
"""

import re
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlparse

from src.domains.xapi.vocabulary import LANGUAGES, PLATFORMS, XAPI_EXTENSIONS, XAPI_VERSION
from src.utils.datetime import parse_iso

MAX_BATCH_SIZE = 50

_UUID_V4 = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


@dataclass
class ValidationIssue:
    path: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"path": self.path, "message": self.message}


@dataclass
class BatchItemResult:
    index: int
    valid: bool
    errors: list[ValidationIssue] = field(default_factory=list)


@dataclass
class BatchValidation:
    valid: bool
    results: list[BatchItemResult] = field(default_factory=list)

    @property
    def invalid(self) -> list[BatchItemResult]:
        return [r for r in self.results if not r.valid]


def is_iri(value: Any) -> bool:
    """True for an absolute IRI with a scheme and a location or path."""
    if not isinstance(value, str) or not value:
        return False
    parsed = urlparse(value)
    return bool(parsed.scheme) and bool(parsed.netloc or parsed.path)


def is_uuid_v4(value: Any) -> bool:
    return isinstance(value, str) and bool(_UUID_V4.match(value))


def normalize_statement(statement: Mapping[str, Any]) -> dict[str, Any]:
    """Copy a statement, generating its id and version when missing."""
    normalized = dict(statement)
    if not normalized.get("id"):
        normalized["id"] = str(uuid.uuid4())
    normalized.setdefault("version", XAPI_VERSION)
    return normalized


def _validate_actor(actor: Any) -> list[ValidationIssue]:
    if not isinstance(actor, Mapping):
        return [ValidationIssue("actor", "Actor is required")]

    mbox = actor.get("mbox")
    account = actor.get("account")
    has_mbox = isinstance(mbox, str) and bool(mbox)
    has_account = isinstance(account, Mapping) and bool(account.get("homePage")) and bool(account.get("name"))

    if not has_mbox and not has_account:
        return [ValidationIssue("actor", 'Actor must have either "mbox" or "account" property')]
    if has_mbox and not mbox.startswith("mailto:"):
        return [
            ValidationIssue(
                "actor.mbox", "mbox must be a mailto: URI (e.g., mailto:user@example.com)"
            )
        ]
    return []


def _validate_iri_field(part: Any, path: str, label: str) -> list[ValidationIssue]:
    value = part.get("id") if isinstance(part, Mapping) else None
    if not value:
        return [ValidationIssue(path, f"{label} ID is required")]
    if not is_iri(value):
        return [ValidationIssue(path, f"{label} ID must be a valid IRI/URL")]
    return []


def _validate_timestamp(timestamp: Any) -> list[ValidationIssue]:
    if not timestamp:
        return [ValidationIssue("timestamp", "Timestamp is required")]
    try:
        parse_iso(str(timestamp))
    except ValueError:
        return [ValidationIssue("timestamp", "Timestamp must be a valid ISO 8601 datetime")]
    return []


def _validate_extensions(context: Any) -> list[ValidationIssue]:
    extensions = context.get("extensions") if isinstance(context, Mapping) else None
    if not isinstance(extensions, Mapping) or not extensions:
        return [
            ValidationIssue("context.extensions", "Extensions are required (platform, language)")
        ]

    issues = []
    platform = extensions.get(XAPI_EXTENSIONS["platform"])
    if not platform:
        issues.append(
            ValidationIssue(
                "context.extensions.platform",
                f"Required extension missing: {XAPI_EXTENSIONS['platform']}",
            )
        )
    elif platform not in PLATFORMS:
        issues.append(
            ValidationIssue("context.extensions.platform", "Platform must be one of: web, ios, android")
        )

    language = extensions.get(XAPI_EXTENSIONS["language"])
    if not language:
        issues.append(
            ValidationIssue(
                "context.extensions.language",
                f"Required extension missing: {XAPI_EXTENSIONS['language']}",
            )
        )
    elif language not in LANGUAGES:
        issues.append(
            ValidationIssue("context.extensions.language", "Language must be one of: th, en")
        )
    return issues


def validate_statement(statement: Any) -> list[ValidationIssue]:
    """Validate one statement.

    Args:
        statement: Statement JSON, normally already normalised.

    Returns:
        Problems found; empty when the statement is valid.
    """
    if not isinstance(statement, Mapping):
        return [ValidationIssue("root", "Statement must be a JSON object")]

    issues: list[ValidationIssue] = []
    statement_id = statement.get("id")
    if statement_id is not None and not is_uuid_v4(statement_id):
        issues.append(ValidationIssue("id", "Statement ID must be a valid UUID v4"))

    issues.extend(_validate_actor(statement.get("actor")))
    issues.extend(_validate_iri_field(statement.get("verb"), "verb.id", "Verb"))
    issues.extend(_validate_iri_field(statement.get("object"), "object.id", "Object"))
    issues.extend(_validate_timestamp(statement.get("timestamp")))
    issues.extend(_validate_extensions(statement.get("context")))
    return issues


def validate_batch(statements: Any) -> BatchValidation:
    """Validate a batch, reporting results per index."""
    if not isinstance(statements, Sequence) or isinstance(statements, (str, bytes)):
        return _batch_error("Request body must be an array of statements")
    if not statements:
        return _batch_error("Batch cannot be empty")
    if len(statements) > MAX_BATCH_SIZE:
        return _batch_error(f"Batch size cannot exceed {MAX_BATCH_SIZE} statements")

    results = []
    for index, statement in enumerate(statements):
        issues = validate_statement(statement)
        results.append(BatchItemResult(index=index, valid=not issues, errors=issues))
    return BatchValidation(valid=all(r.valid for r in results), results=results)


def _batch_error(message: str) -> BatchValidation:
    return BatchValidation(
        valid=False,
        results=[BatchItemResult(index=0, valid=False, errors=[ValidationIssue("root", message)])],
    )
