"""Structured logging for gatekeep.

structlog renders console output in development and one JSON object per line
elsewhere. Every entry logged while handling a request carries that request's
correlation ID, which is also stored on the audit entries the request writes.

Credentials never reach the log: values under secret-looking keys are masked
before rendering.
"""

import logging
import re
import sys
import uuid
from contextlib import contextmanager
from typing import Any, Iterator

import structlog
from structlog.types import EventDict, Processor

from gatekeep.core.config import Settings, get_settings

CORRELATION_KEY = "correlation_id"
REDACTED = "[redacted]"

_SECRET_KEYS = frozenset(
    {
        "password",
        "new_password",
        "password_hash",
        "token",
        "access_token",
        "refresh_token",
        "authorization",
        "smtp_password",
        "resend_api_key",
    }
)
_CORRELATION_ID_PATTERN = re.compile(r"^[A-Za-z0-9_.\-]{1,64}$")


def new_correlation_id() -> str:
    return f"cid_{uuid.uuid4().hex[:12]}"


def accept_correlation_id(candidate: str | None) -> str:
    """Return a caller-supplied correlation ID if it is safe to log, else a new one."""
    if candidate and _CORRELATION_ID_PATTERN.match(candidate):
        return candidate
    return new_correlation_id()


def redact_credentials(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Mask values logged under secret-looking keys."""
    for key in _SECRET_KEYS.intersection(event_dict):
        if event_dict[key] is not None:
            event_dict[key] = REDACTED
    return event_dict


def rename_message_field(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Rename 'event' field to 'message' for compatibility."""
    if "event" in event_dict:
        event_dict["message"] = event_dict.pop("event")
    return event_dict


def _renderer(settings: Settings) -> list[Processor]:
    if settings.is_development or settings.log_format == "console":
        return [structlog.dev.ConsoleRenderer(exception_formatter=structlog.dev.plain_traceback)]
    return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]


def configure_logging(settings: Settings | None = None) -> None:
    """Configure structlog and the standard library root logger.

    Args:
        settings: Settings to use. Defaults to the cached application settings.
    """
    settings = settings or get_settings()
    level = getattr(logging, settings.log_level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            redact_credentials,
            rename_message_field,
            *_renderer(settings),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=not settings.is_development,
    )

    # uvicorn and SQLAlchemy log through the standard library
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level, force=True)
    for logger_name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
        logging.getLogger(logger_name).setLevel(level)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name or "gatekeep")


def bind_correlation_id(correlation_id: str) -> None:
    structlog.contextvars.bind_contextvars(**{CORRELATION_KEY: correlation_id})


def get_correlation_id() -> str | None:
    """Return the correlation ID bound to the current context, if any."""
    return structlog.contextvars.get_contextvars().get(CORRELATION_KEY)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


@contextmanager
def correlation_scope(candidate: str | None = None) -> Iterator[str]:
    """Bind a correlation ID for the duration of one request.

    Yields:
        The correlation ID in effect, either the accepted candidate or a new one.
    """
    correlation_id = accept_correlation_id(candidate)
    bind_correlation_id(correlation_id)
    try:
        yield correlation_id
    finally:
        clear_context()
