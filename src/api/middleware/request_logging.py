# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Request logging middleware.

Each request gets a request id (taken from ``X-Request-ID`` when the
client sends one) that is bound to the structlog context, echoed in the
response headers and logged with the status and duration. The caller's
user id is bound too when AuthMiddleware (the outer layer) resolved one.

API calls are also recorded as ``api.request`` system events so the
hourly system aggregates can be computed from them.
"""

import logging
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from src.domains.analytics import API_REQUEST_EVENT, AnalyticsService
from src.infrastructure.database.connection import DatabaseError, get_session
from src.utils.logging import bind_context, clear_context

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
TRACKED_PREFIX = "/api/"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Bind a request id to the logging context and log every request."""

    def __init__(self, app, track_requests: bool = True) -> None:
        super().__init__(app)
        self._track_requests = track_requests

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Response],
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        clear_context()
        bind_context(request_id=request_id, path=request.url.path, method=request.method)
        user = getattr(request.state, "user", None)
        if user is not None:
            bind_context(user_id=user.id)

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("Unhandled error on %s %s", request.method, request.url.path)
            raise

        duration_ms = (time.perf_counter() - started) * 1000
        response.headers[REQUEST_ID_HEADER] = request_id
        logger.info(
            "%s %s -> %d (%.1f ms)",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )

        if self._track_requests and request.url.path.startswith(TRACKED_PREFIX):
            await self._record(request, response.status_code, duration_ms)

        clear_context()
        return response

    async def _record(self, request: Request, status_code: int, duration_ms: float) -> None:
        user = getattr(request.state, "user", None)
        try:
            async with get_session() as session:
                await AnalyticsService(session).track_event(
                    API_REQUEST_EVENT,
                    "system",
                    {
                        "method": request.method,
                        "path": request.url.path,
                        "status_code": status_code,
                        "duration_ms": round(duration_ms, 2),
                    },
                    user_id=user.id if user else None,
                )
        except DatabaseError as e:
            logger.debug("Request not recorded: %s", e)
