"""
Structured Logging

structlog renders every record once, for both our own loggers and the
stdlib ones (uvicorn, celery, sqlalchemy) through ``ProcessorFormatter``:
colored console output in development, one JSON object per line elsewhere.

Request scoped values (``request_id``, ``path``, ``user_id``) are bound with
``bind_context`` by the HTTP middleware and the auth dependency and appear on
every line logged while the request is handled.
"""
import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from notevault.core.config import settings

REDACTED = "***"

# Keys whose values never reach the log output
SENSITIVE_KEYS = frozenset({
    "password",
    "new_password",
    "token",
    "access_token",
    "refresh_token",
    "reset_token",
    "signature",
    "razorpay_signature",
    "key_secret",
    "authorization",
})

QUIET_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "botocore": logging.WARNING,
    "boto3": logging.WARNING,
    "passlib": logging.ERROR,
    "httpx": logging.WARNING,
}


def add_service_info(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("service", "notevault-backend")
    event_dict.setdefault("env", settings.environment)
    return event_dict


def redact_secrets(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Mask credentials and payment signatures passed as log fields."""
    for key in SENSITIVE_KEYS.intersection(event_dict):
        event_dict[key] = REDACTED
    return event_dict


def _renderer() -> Processor:
    if settings.environment == "development":
        return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    return structlog.processors.JSONRenderer()


def configure_logging() -> None:
    """Configure structlog and route stdlib logging through the same renderer."""
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_service_info,
        redact_secrets,
    ]

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            _renderer(),
        ],
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(logging.DEBUG if settings.debug else logging.INFO)

    for name, level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(level)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.db_echo else logging.WARNING
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Attach values to every log line of the current request or task."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
