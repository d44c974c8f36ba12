# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Structured logging configuration using structlog.

Services log through the standard library (``logging.getLogger(__name__)``
with %-style arguments). Those records are handed to structlog's
``ProcessorFormatter`` so they carry the same fields as structlog loggers:
timestamp, level, logger name and whatever request context the request
logging middleware bound (request id, path, method).

Output is JSON outside development and colored console text in
development.

Example:
    >>> from src.utils.logging import setup_logging, bind_context
    >>> from src.core.config import get_settings
    >>> setup_logging(get_settings())
    >>> bind_context(request_id="4f1c")
    >>> logging.getLogger("src.domains.quiz").info("Quiz graded: %s", "quiz-1")
"""

import logging
import sys
from typing import TYPE_CHECKING

import structlog
from structlog.types import Processor

if TYPE_CHECKING:
    from src.core.config.settings import Settings

# Library loggers that flood the output at INFO
QUIET_LOGGERS = (
    "uvicorn.access",
    "httpx",
    "httpcore",
    "sqlalchemy.engine",
    "asyncio",
    "LiteLLM",
)


def _renderer(settings: "Settings") -> Processor:
    if settings.is_development or settings.debug:
        return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    return structlog.processors.JSONRenderer(ensure_ascii=False)


def setup_logging(settings: "Settings") -> None:
    """Configure structlog and route standard library logging through it.

    Safe to call more than once; the root handler is replaced each time.

    Args:
        settings: Application settings (log_level, environment, debug).
    """
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    pre_chain: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.ExtraAdder(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    structlog.configure(
        processors=[
            *pre_chain,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=pre_chain,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            _renderer(settings),
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(log_level)

    for logger_name in QUIET_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Structlog logger for code that logs key-value events."""
    return structlog.get_logger(name)


def bind_context(**kwargs: object) -> None:
    """Attach fields to every log line emitted in the current context.

    The request logging middleware binds request_id, path and method.
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Drop all bound fields at the end of a request."""
    structlog.contextvars.clear_contextvars()
