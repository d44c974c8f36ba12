# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Offline sync domain package.

This package provides:
- Per-resource conflict rules
- SyncService for push, pull, device state and conflict resolution
"""

from src.domains.sync.conflicts import (
    OPERATIONS,
    RESOURCE_TYPES,
    ConflictResolution,
    QueueStatus,
    SyncOutcome,
    mastery_resolution,
    new_messages,
    progress_resolution,
)
from src.domains.sync.service import (
    SyncConflictNotFoundError,
    SyncDeviceNotFoundError,
    SyncItemError,
    SyncResolutionError,
    SyncService,
    SyncServiceError,
)

__all__ = [
    "OPERATIONS",
    "RESOURCE_TYPES",
    "ConflictResolution",
    "QueueStatus",
    "SyncOutcome",
    "mastery_resolution",
    "new_messages",
    "progress_resolution",
    "SyncService",
    "SyncServiceError",
    "SyncItemError",
    "SyncConflictNotFoundError",
    "SyncDeviceNotFoundError",
    "SyncResolutionError",
]
