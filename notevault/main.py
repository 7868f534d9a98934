"""
NoteVault Backend - Main Application Entry Point
Application Factory Pattern with ORJSONResponse.
"""
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from notevault.core.config import settings
from notevault.core.database import AsyncSessionDep, close_db, init_db, ping_db
from notevault.core.exceptions import (
    NoteVaultException,
    ServiceUnavailableError,
    generic_exception_handler,
    http_exception_handler,
    notevault_exception_handler,
    validation_exception_handler,
)
from notevault.core.logging import bind_context, clear_context, configure_logging, get_logger
from notevault.core.metrics import MetricsMiddleware
from notevault.core.sentry import init_sentry

# Configure logging on module load
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    logger.info(
        "Starting NoteVault Backend",
        environment=settings.environment,
        debug=settings.debug,
    )

    # Create tables on boot (local/dev only, production uses Alembic)
    if settings.run_db_init:
        await init_db()
        logger.info("Database initialized")

    yield

    logger.info("Shutting down NoteVault Backend")
    await close_db()


TAGS_METADATA = [
    {
        "name": "Auth",
        "description": """
**Accounts and sessions**

Email + password login with JWT access tokens and refresh tokens bound to a
login session. Five wrong passwords lock the account for 15 minutes.

| Role | Description |
|------|-------------|
| `buyer` | Every account can buy notes |
| `seller` | Unlocked via `/auth/become-seller` |
| `admin` | Platform operator |
        """,
    },
    {
        "name": "Notes",
        "description": "Catalog, seller listings, file upload and signed downloads.",
    },
    {
        "name": "Payments",
        "description": """
**Checkout**

1. `POST /payments/create-order` with the cart's note ids
2. Open the gateway checkout widget with `order_id` and `key`
3. `POST /payments/verify` with the gateway's signed response

Seller earnings are held in escrow for 24 hours before they become withdrawable.
        """,
    },
    {"name": "Wallet", "description": "Seller balances and withdrawals."},
    {"name": "Messages", "description": "Direct messages between users."},
    {"name": "Notifications", "description": "In-app notification inbox."},
    {"name": "Reviews", "description": "Verified-purchase ratings."},
    {"name": "Wishlist", "description": "Saved notes."},
    {"name": "Content", "description": "Categories, universities and the XML sitemap."},
    {"name": "Health", "description": "Liveness, readiness and metrics."},
]

API_DESCRIPTION = """
# NoteVault API

Marketplace for academic notes: students sell their notes, other students buy
and download them.

All API endpoints are versioned under `/api/v1`. Errors share one envelope:

```json
{"error": {"code": "NOT_FOUND", "message": "...", "details": {}, "request_id": "..."}}
```
"""


def create_application() -> FastAPI:
    """
    Application factory function.
    Creates and configures the FastAPI application.
    """
    app = FastAPI(
        title="NoteVault API",
        summary="Academic notes marketplace",
        description=API_DESCRIPTION,
        version=settings.app_version,
        openapi_url="/openapi.json",
        openapi_tags=TAGS_METADATA,
        docs_url="/docs",
        redoc_url="/redoc",
        swagger_ui_parameters={
            "defaultModelsExpandDepth": -1,
            "docExpansion": "list",
            "filter": True,
            "persistAuthorization": True,
        },
        default_response_class=ORJSONResponse,
        debug=settings.debug,
        lifespan=lifespan,
    )

    def custom_openapi():
        if app.openapi_schema:
            return app.openapi_schema

        openapi_schema = get_openapi(
            title=app.title,
            version=app.version,
            summary=app.summary,
            description=app.description,
            routes=app.routes,
            tags=TAGS_METADATA,
        )
        openapi_schema.setdefault("components", {})["securitySchemes"] = {
            "BearerAuth": {
                "type": "http",
                "scheme": "bearer",
                "bearerFormat": "JWT",
                "description": "Access token from `/api/v1/auth/login`",
            },
        }
        openapi_schema["security"] = [{"BearerAuth": []}]

        app.openapi_schema = openapi_schema
        return app.openapi_schema

    app.openapi = custom_openapi

    init_sentry()

    if settings.prometheus_enabled:
        app.add_middleware(MetricsMiddleware)

    # Register exception handlers
    app.add_exception_handler(NoteVaultException, notevault_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        clear_context()
        bind_context(request_id=request_id, path=request.url.path)
        try:
            response = await call_next(request)
        finally:
            clear_context()
        response.headers["X-Request-ID"] = request_id
        return response

    default_origins = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
    ]
    all_origins = list(set(settings.cors_origins_list + default_origins))
    if settings.frontend_url:
        all_origins.append(settings.frontend_url.rstrip("/"))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=sorted(set(all_origins)),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    logger.info("CORS configured", origins=sorted(set(all_origins)))

    _include_routers(app)

    @app.get("/health", tags=["Health"])
    async def health_check() -> dict[str, str]:
        """Liveness check."""
        return {"status": "healthy", "service": "notevault-backend"}

    @app.get("/health/ready", tags=["Health"])
    async def readiness_check(db: AsyncSessionDep) -> dict[str, str]:
        """Readiness check against the database connection."""
        if not await ping_db(db):
            raise ServiceUnavailableError("Database")
        return {"status": "ready", "database": "ok"}

    @app.get("/", tags=["Health"])
    async def root() -> dict[str, str]:
        return {
            "service": "NoteVault Backend",
            "version": settings.app_version,
            "docs": "/docs" if settings.debug else "disabled",
        }

    return app


def _include_routers(app: FastAPI) -> None:
    """
    Include all module routers.
    Each module has its own router with its own prefix.
    """
    from notevault.core.metrics import router as metrics_router
    from notevault.modules.auth.router import router as auth_router
    from notevault.modules.content.router import router as content_router
    from notevault.modules.content.router import sitemap_router
    from notevault.modules.coupons.router import router as coupons_router
    from notevault.modules.messages.router import router as messages_router
    from notevault.modules.notes.router import router as notes_router
    from notevault.modules.notifications.router import router as notifications_router
    from notevault.modules.payments.router import router as payments_router
    from notevault.modules.refunds.router import router as refunds_router
    from notevault.modules.reviews.router import router as reviews_router
    from notevault.modules.wallet.router import router as wallet_router
    from notevault.modules.wishlist.router import router as wishlist_router

    api_v1_prefix = settings.api_v1_str

    routers = [
        (auth_router, "auth"),
        (notes_router, "notes"),
        (reviews_router, "reviews"),
        (payments_router, "payments"),
        (coupons_router, "coupons"),
        (refunds_router, "refunds"),
        (wallet_router, "wallet"),
        (messages_router, "messages"),
        (notifications_router, "notifications"),
        (wishlist_router, "wishlist"),
        (content_router, "content"),
    ]

    for router, _ in routers:
        app.include_router(router, prefix=api_v1_prefix)

    # Served at the site root for crawlers
    app.include_router(sitemap_router)

    if settings.prometheus_enabled:
        app.include_router(metrics_router)

    logger.info(
        "Routers registered",
        modules=[name for _, name in routers],
        api_prefix=api_v1_prefix,
    )


app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "notevault.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info",
    )
