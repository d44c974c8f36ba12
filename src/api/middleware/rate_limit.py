# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Rate limiting using slowapi.

Rate limits are applied per client: the user ID when authenticated,
otherwise the IP address.

Example:
    # Limit login attempts
    @limiter.limit(RATE_LIMIT_AUTH, key_func=get_ip_only)
    async def login(request: Request, ...):
        ...
"""

import logging

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from src.core.config import get_settings

logger = logging.getLogger(__name__)


def get_client_identifier(request: Request) -> str:
    """User ID if authenticated, otherwise IP address."""
    user = getattr(request.state, "user", None)
    if user:
        return f"user:{user.id}"
    return f"ip:{get_remote_address(request)}"


def get_ip_only(request: Request) -> str:
    """Client IP address, for endpoints used before login."""
    return get_remote_address(request)


settings = get_settings()
limiter = Limiter(
    key_func=get_client_identifier,
    default_limits=[f"{settings.rate_limit.requests_per_minute}/minute"],
    storage_uri=settings.rate_limit.storage_uri,
)


async def rate_limit_exceeded_handler(
    request: Request,
    exc: RateLimitExceeded,
) -> Response:
    """Return 429 Too Many Requests with retry information."""
    logger.warning(
        "Rate limit exceeded: %s for %s",
        exc.detail,
        get_client_identifier(request),
    )

    return Response(
        content='{"detail": "Too many requests. Please try again later."}',
        status_code=429,
        media_type="application/json",
        headers={
            "Retry-After": "60",
            "X-RateLimit-Limit": str(settings.rate_limit.requests_per_minute),
        },
    )


RATE_LIMIT_AUTH = "10/minute"
RATE_LIMIT_TUTOR = "20/minute"
RATE_LIMIT_SYNC = "30/minute"
