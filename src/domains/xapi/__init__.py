# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""xAPI domain package.

This package provides:
- The platform's xAPI vocabulary
- Statement validation and builders
- XAPIService, the Learning Record Store
"""

from src.domains.xapi import statements
from src.domains.xapi.service import (
    BatchStoreResult,
    StoreResult,
    XAPIDuplicateError,
    XAPIService,
    XAPIServiceError,
    XAPIValidationError,
)
from src.domains.xapi.validation import (
    MAX_BATCH_SIZE,
    BatchValidation,
    ValidationIssue,
    is_iri,
    normalize_statement,
    validate_batch,
    validate_statement,
)
from src.domains.xapi.vocabulary import (
    XAPI_ACTIVITY_TYPES,
    XAPI_EXTENSIONS,
    XAPI_VERBS,
    XAPI_VERSION,
)

__all__ = [
    "statements",
    "XAPIService",
    "XAPIServiceError",
    "XAPIValidationError",
    "XAPIDuplicateError",
    "StoreResult",
    "BatchStoreResult",
    "MAX_BATCH_SIZE",
    "BatchValidation",
    "ValidationIssue",
    "is_iri",
    "normalize_statement",
    "validate_batch",
    "validate_statement",
    "XAPI_ACTIVITY_TYPES",
    "XAPI_EXTENSIONS",
    "XAPI_VERBS",
    "XAPI_VERSION",
]
