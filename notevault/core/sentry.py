"""
Sentry Integration - Error Tracking & Monitoring

Sentry captures:
- Unhandled exceptions
- 5xx errors
- Performance traces
"""
import sentry_sdk
from sentry_sdk.integrations.celery import CeleryIntegration
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

from notevault.core.config import settings
from notevault.core.logging import get_logger

logger = get_logger(__name__)


def init_sentry() -> None:
    """
    Initialize Sentry SDK.

    Call this in application and worker startup.
    """
    if not settings.sentry_dsn:
        logger.info("Sentry DSN not configured, skipping initialization")
        return

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        release=f"notevault-backend@{settings.app_version}",
        traces_sample_rate=settings.sentry_traces_sample_rate if settings.is_production else 1.0,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
            CeleryIntegration(),
        ],
        send_default_pii=False,
        before_send=_before_send,
    )

    logger.info("Sentry initialized", environment=settings.environment)


def _before_send(event, hint):
    """
    Filter events before sending to Sentry.

    - Drop client (4xx) errors
    - Mask credentials in request headers
    """
    exc_info = hint.get("exc_info")
    if "exception" in event and exc_info:
        _, exc_value, _ = exc_info
        status_code = getattr(exc_value, "status_code", None)
        if status_code is not None and 400 <= status_code < 500:
            return None

    if "request" in event and "headers" in event["request"]:
        headers = event["request"]["headers"]
        for header in ("authorization", "cookie", "x-razorpay-signature"):
            if header in headers:
                headers[header] = "[FILTERED]"

    return event


def set_user(user_id: str, email: str | None = None) -> None:
    """Set user context for Sentry."""
    sentry_sdk.set_user({
        "id": user_id,
        "email": email,
    })
