"""
Global Exception Handling
Custom exceptions and FastAPI exception handlers.

Error Response Format (RFC 7807 inspired):
{
    "error": {
        "code": "ERROR_CODE",
        "message": "Human readable message",
        "details": {},
        "request_id": "uuid",
        "timestamp": "ISO8601"
    }
}
"""
import uuid
from datetime import datetime, timezone
from typing import Any

import sentry_sdk
from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse
from pydantic import ValidationError as PydanticValidationError
from starlette.exceptions import HTTPException

from notevault.core.logging import get_logger

logger = get_logger(__name__)


def _get_request_id(request: Request) -> str:
    """Get or generate request ID for tracing."""
    return request.headers.get("X-Request-ID") or getattr(
        request.state, "request_id", str(uuid.uuid4())
    )


class NoteVaultException(Exception):
    """Base exception for NoteVault application."""

    def __init__(
        self,
        message: str = "An error occurred",
        code: str = "INTERNAL_ERROR",
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(NoteVaultException):
    """Resource not found."""

    def __init__(self, resource: str, identifier: Any, code: str = "NOT_FOUND"):
        super().__init__(
            message=f"{resource} not found",
            code=code,
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "identifier": str(identifier)},
        )


class BadRequestError(NoteVaultException):
    """Request is well-formed but not acceptable."""

    def __init__(
        self,
        message: str,
        code: str = "BAD_REQUEST",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            code=code,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details,
        )


class UnauthorizedError(NoteVaultException):
    """Authentication required."""

    def __init__(self, message: str = "Authentication required", code: str = "UNAUTHORIZED"):
        super().__init__(
            message=message,
            code=code,
            status_code=status.HTTP_401_UNAUTHORIZED,
        )


class ForbiddenError(NoteVaultException):
    """Permission denied."""

    def __init__(self, message: str = "Permission denied", code: str = "FORBIDDEN"):
        super().__init__(
            message=message,
            code=code,
            status_code=status.HTTP_403_FORBIDDEN,
        )


class ConflictError(NoteVaultException):
    """Resource conflict."""

    def __init__(self, message: str = "Resource conflict", code: str = "CONFLICT"):
        super().__init__(
            message=message,
            code=code,
            status_code=status.HTTP_409_CONFLICT,
        )


class ValidationError(NoteVaultException):
    """Input passed schema checks but breaks a rule spanning several fields."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=details,
        )


class RateLimitError(NoteVaultException):
    """Too many attempts; retry after ``retry_after`` seconds."""

    def __init__(
        self,
        message: str | None = None,
        retry_after: int = 60,
        code: str = "RATE_LIMIT_EXCEEDED",
    ):
        super().__init__(
            message=message or f"Rate limit exceeded. Retry after {retry_after} seconds",
            code=code,
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            details={"retry_after": retry_after},
        )


class AccountLockedError(RateLimitError):
    """Too many failed logins; the account is temporarily locked."""

    def __init__(self, message: str, retry_after: int):
        super().__init__(message=message, retry_after=retry_after, code="ACCOUNT_LOCKED")


class ServiceUnavailableError(NoteVaultException):
    """External service unavailable."""

    def __init__(
        self,
        service: str,
        message: str = "Service temporarily unavailable",
        code: str = "SERVICE_UNAVAILABLE",
    ):
        super().__init__(
            message=f"{service}: {message}",
            code=code,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details={"service": service},
        )


def _build_error_response(
    code: str,
    message: str,
    status_code: int,
    request: Request,
    details: dict | None = None,
) -> ORJSONResponse:
    """Build standardized error response."""
    request_id = _get_request_id(request)
    timestamp = datetime.now(timezone.utc).isoformat()

    return ORJSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": code,
                "message": message,
                "details": details or {},
                "request_id": request_id,
                "timestamp": timestamp,
                "path": str(request.url.path),
                "method": request.method,
            }
        },
        headers={"X-Request-ID": request_id},
    )


async def notevault_exception_handler(request: Request, exc: NoteVaultException) -> ORJSONResponse:
    """Handler for NoteVaultException."""
    logger.warning(
        "Application error",
        error_code=exc.code,
        message=exc.message,
        status_code=exc.status_code,
        request_id=_get_request_id(request),
        path=str(request.url.path),
        method=request.method,
    )

    # Report to Sentry (5xx errors only)
    if exc.status_code >= 500:
        sentry_sdk.capture_exception(exc)

    response = _build_error_response(
        code=exc.code,
        message=exc.message,
        status_code=exc.status_code,
        request=request,
        details=exc.details,
    )
    if isinstance(exc, RateLimitError):
        response.headers["Retry-After"] = str(exc.details["retry_after"])
    return response


async def http_exception_handler(request: Request, exc: HTTPException) -> ORJSONResponse:
    """Handler for HTTPException."""
    code_map = {
        400: "BAD_REQUEST",
        401: "UNAUTHORIZED",
        403: "FORBIDDEN",
        404: "NOT_FOUND",
        405: "METHOD_NOT_ALLOWED",
        409: "CONFLICT",
        422: "VALIDATION_ERROR",
        429: "RATE_LIMIT_EXCEEDED",
        500: "INTERNAL_ERROR",
        502: "BAD_GATEWAY",
        503: "SERVICE_UNAVAILABLE",
    }

    error_code = code_map.get(exc.status_code, "HTTP_ERROR")

    logger.warning(
        "HTTP error",
        error_code=error_code,
        status_code=exc.status_code,
        detail=exc.detail,
        request_id=_get_request_id(request),
        path=str(request.url.path),
    )

    return _build_error_response(
        code=error_code,
        message=str(exc.detail),
        status_code=exc.status_code,
        request=request,
    )


async def validation_exception_handler(request: Request, exc: Exception) -> ORJSONResponse:
    """Handler for request body / query validation errors."""
    if isinstance(exc, (RequestValidationError, PydanticValidationError)):
        errors = exc.errors()
        details = {
            "validation_errors": [
                {
                    "field": ".".join(str(loc) for loc in err.get("loc", [])),
                    "message": err.get("msg", "Invalid value"),
                    "type": err.get("type", "value_error"),
                }
                for err in errors
            ]
        }
        message = f"Validation failed: {len(errors)} error(s)"
    else:
        details = {}
        message = "Request validation failed"

    logger.warning(
        "Validation error",
        request_id=_get_request_id(request),
        path=str(request.url.path),
        errors=details,
    )

    return _build_error_response(
        code="VALIDATION_ERROR",
        message=message,
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        request=request,
        details=details,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> ORJSONResponse:
    """Handler for unhandled exceptions."""
    request_id = _get_request_id(request)

    logger.exception(
        "Unhandled exception",
        request_id=request_id,
        path=str(request.url.path),
        method=request.method,
        error_type=type(exc).__name__,
        error_message=str(exc),
    )

    sentry_sdk.capture_exception(exc)

    return _build_error_response(
        code="INTERNAL_ERROR",
        message="An unexpected error occurred. Please try again later.",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        request=request,
        details={"error_id": request_id},
    )
