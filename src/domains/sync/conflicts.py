# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Conflict rules for offline sync.

Each resource type settles a pushed change against the server copy:

- lesson progress: a change older than the server's last access loses
  (server_wins); otherwise it is merged.
- quiz attempts are immutable: pushing an attempt number the server
  already has is a conflict (server_wins).
- mastery: the newer timestamp wins; an older client value is a
  conflict (latest_wins).
- conversations merge by appending messages with unseen ids.
"""

import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from src.utils.datetime import ensure_utc, format_iso, utc_now

RESOURCE_TYPES = ("lesson_progress", "quiz_attempt", "xapi_statement", "conversation", "mastery")
OPERATIONS = ("create", "update", "delete")


class ConflictResolution(str, Enum):
    SERVER_WINS = "server_wins"
    CLIENT_WINS = "client_wins"
    LATEST_WINS = "latest_wins"
    MERGE = "merge"
    MANUAL = "manual_required"


class QueueStatus(str, Enum):
    PENDING = "pending"
    SYNCED = "synced"
    FAILED = "failed"
    CONFLICT = "conflict"


@dataclass
class SyncOutcome:
    """Result of applying one pushed change."""

    conflict: bool = False
    server_data: dict[str, Any] | None = None
    resolution: ConflictResolution | None = None

    @classmethod
    def synced(cls) -> "SyncOutcome":
        return cls()

    @classmethod
    def conflicted(cls, server_data: dict[str, Any], resolution: ConflictResolution) -> "SyncOutcome":
        return cls(conflict=True, server_data=server_data, resolution=resolution)


def is_stale(client_timestamp: datetime, server_timestamp: datetime | None) -> bool:
    """True when the client change predates the server copy."""
    if server_timestamp is None:
        return False
    return ensure_utc(client_timestamp) < ensure_utc(server_timestamp)


def progress_resolution(client_timestamp: datetime, last_accessed_at: datetime | None) -> ConflictResolution:
    """MERGE for a current change, SERVER_WINS for a stale one."""
    if is_stale(client_timestamp, last_accessed_at):
        return ConflictResolution.SERVER_WINS
    return ConflictResolution.MERGE


def mastery_resolution(client_timestamp: datetime, last_assessed: datetime | None) -> ConflictResolution:
    """CLIENT_WINS when the client value is at least as new, else LATEST_WINS."""
    if is_stale(client_timestamp, last_assessed):
        return ConflictResolution.LATEST_WINS
    return ConflictResolution.CLIENT_WINS


def new_messages(
    existing: Sequence[Mapping[str, Any]],
    incoming: Sequence[Mapping[str, Any]],
) -> list[dict[str, Any]]:
    """Incoming messages whose ids the conversation does not hold yet.

    Messages without an id are given one and always appended.
    """
    known = {m.get("id") for m in existing if m.get("id")}
    appended = []
    for message in incoming:
        message_id = message.get("id")
        if message_id and message_id in known:
            continue
        entry = dict(message)
        entry["id"] = message_id or str(uuid.uuid4())
        entry.setdefault("timestamp", format_iso(utc_now()))
        known.add(entry["id"])
        appended.append(entry)
    return appended
