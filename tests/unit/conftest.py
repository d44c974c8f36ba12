# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Fixtures shared by service unit tests."""

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest


@pytest.fixture
def mock_db():
    """Create mock database session."""
    db = AsyncMock()
    db.add = MagicMock()
    db.add_all = MagicMock()
    db.delete = AsyncMock()
    db.flush = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.refresh = AsyncMock()
    db.execute = AsyncMock()
    db.begin_nested = MagicMock()
    return db


def _make_result(
    scalar: Any = None,
    scalars: list[Any] | None = None,
    rows: list[Any] | None = None,
    rowcount: int = 0,
) -> MagicMock:
    result = MagicMock()
    result.scalar_one_or_none.return_value = scalar
    result.scalar_one.return_value = scalar
    result.scalar.return_value = scalar
    result.scalars.return_value.all.return_value = scalars or []
    result.all.return_value = rows or []
    result.rowcount = rowcount
    return result


@pytest.fixture
def make_result():
    """Factory for mocks of an execute() result.

    Keyword arguments:
        scalar: Value for scalar_one_or_none(), scalar_one() and scalar().
        scalars: Values for scalars().all().
        rows: Values for all().
        rowcount: Rows affected by an update or delete.
    """
    return _make_result
