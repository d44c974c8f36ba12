# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Bearer token authentication.

Every request leaves this middleware with ``request.state.user`` set: a
``CurrentUser`` for a valid access token, ``None`` otherwise. Whether an
anonymous caller may proceed is decided by the route dependencies in
``src.api.dependencies`` (401 / 403), not here.

Refresh tokens are rejected at this layer; they are only accepted by the
``/api/v1/auth/refresh`` endpoint.
"""

import logging
from dataclasses import dataclass
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from src.core.config import get_settings
from src.domains.auth.jwt import JWTError, JWTManager, TokenPayload

logger = logging.getLogger(__name__)

# Token decoding is skipped for these
ANONYMOUS_PATHS = frozenset({
    "/",
    "/health",
    "/health/ready",
    "/health/live",
    "/docs",
    "/redoc",
    "/openapi.json",
    "/api/v1/auth/register",
    "/api/v1/auth/login",
    "/api/v1/auth/refresh",
    "/api/v1/auth/verify-otp",
    "/api/v1/auth/resend-otp",
})

CONTENT_ROLES = ("author", "admin")


@dataclass(frozen=True)
class CurrentUser:
    """Caller identity carried by an access token."""

    id: str
    role: str = "learner"
    email: str | None = None
    language: str = "th"
    device_id: str | None = None

    @classmethod
    def from_payload(cls, payload: TokenPayload) -> "CurrentUser":
        return cls(
            id=payload.sub,
            role=payload.role or "learner",
            email=payload.email,
            language=payload.language or "th",
            device_id=payload.device_id,
        )

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def is_author(self) -> bool:
        """Authors and admins manage courses, quizzes and achievements."""
        return self.role in CONTENT_ROLES

    def can_act_for(self, user_id: str) -> bool:
        """Learners may read and write only their own records."""
        return self.is_admin or self.id == user_id


def bearer_token(request: Request) -> str | None:
    """Token from ``Authorization: Bearer <token>``, if well formed."""
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


class AuthMiddleware(BaseHTTPMiddleware):
    """Resolve the caller from the access token."""

    def __init__(self, app: ASGIApp, jwt_manager: JWTManager | None = None) -> None:
        super().__init__(app)
        self._jwt = jwt_manager or JWTManager(get_settings().jwt)

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Response],
    ) -> Response:
        request.state.user = None
        if request.url.path not in ANONYMOUS_PATHS:
            request.state.user = self._resolve(request)
        return await call_next(request)

    def _resolve(self, request: Request) -> CurrentUser | None:
        token = bearer_token(request)
        if token is None:
            return None
        try:
            payload = self._jwt.decode_token(token, expected_type="access")
        except JWTError as e:
            logger.debug("Rejected access token on %s: %s", request.url.path, e)
            return None
        return CurrentUser.from_payload(payload)


def get_current_user(request: Request) -> CurrentUser | None:
    """Caller resolved by AuthMiddleware, or None when anonymous."""
    return getattr(request.state, "user", None)
