"""
Prometheus Metrics - Application Monitoring

Exposes metrics at /metrics endpoint for Prometheus scraping.
"""
import time

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, Info, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response as StarletteResponse

from notevault.core.config import settings

# === Application Info ===
APP_INFO = Info("notevault_app", "NoteVault application info")
APP_INFO.info({
    "version": settings.app_version,
    "environment": settings.environment,
})

# === Request Metrics ===
REQUEST_COUNT = Counter(
    "notevault_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

REQUEST_LATENCY = Histogram(
    "notevault_http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

# === Business Metrics ===
ORDERS_CREATED = Counter(
    "notevault_orders_created_total",
    "Payment orders created",
    ["idempotent"],
)

PAYMENTS_VERIFIED = Counter(
    "notevault_payments_verified_total",
    "Payment verification outcomes",
    ["outcome"],
)

DOWNLOADS_ISSUED = Counter(
    "notevault_downloads_issued_total",
    "Signed download links issued",
)

REFUNDS_SETTLED = Counter(
    "notevault_refunds_settled_total",
    "Refund decisions",
    ["outcome"],
)

LOGIN_ATTEMPTS = Counter(
    "notevault_login_attempts_total",
    "Login attempts",
    ["outcome"],
)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware to collect request metrics."""

    async def dispatch(self, request: Request, call_next) -> StarletteResponse:
        if request.url.path == "/metrics":
            return await call_next(request)

        method = request.method

        start_time = time.time()
        response = await call_next(request)
        duration = time.time() - start_time

        # Route template keeps label cardinality bounded (/notes/{note_id})
        route = request.scope.get("route")
        endpoint = getattr(route, "path", request.url.path)

        REQUEST_COUNT.labels(
            method=method,
            endpoint=endpoint,
            status_code=response.status_code,
        ).inc()

        REQUEST_LATENCY.labels(
            method=method,
            endpoint=endpoint,
        ).observe(duration)

        return response


# === Metrics Router ===
router = APIRouter(tags=["Health"])


@router.get("/metrics", include_in_schema=False)
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )


# === Helper Functions ===

def record_order(idempotent: bool) -> None:
    ORDERS_CREATED.labels(idempotent=str(idempotent).lower()).inc()


def record_payment(outcome: str) -> None:
    """Record a payment verification outcome (success / failed)."""
    PAYMENTS_VERIFIED.labels(outcome=outcome).inc()


def record_download() -> None:
    DOWNLOADS_ISSUED.inc()


def record_login(outcome: str) -> None:
    LOGIN_ATTEMPTS.labels(outcome=outcome).inc()


def record_refund(outcome: str) -> None:
    """Record a refund outcome (completed / rejected / failed)."""
    REFUNDS_SETTLED.labels(outcome=outcome).inc()
