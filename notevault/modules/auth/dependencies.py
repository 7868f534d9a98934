"""
Auth Module - FastAPI Dependencies

Bearer access tokens are issued by this service (python-jose, HS256).
The ``sub`` claim is the user id and ``sid`` the login session.
"""
import uuid
from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from notevault.core.database import get_db
from notevault.core.exceptions import ForbiddenError, UnauthorizedError
from notevault.core.logging import bind_context, get_logger
from notevault.core.security import verify_token
from notevault.modules.auth.models import User
from notevault.modules.auth.service import AuthService

logger = get_logger(__name__)

# Security scheme
security = HTTPBearer(auto_error=False)


async def get_auth_service(db: Annotated[AsyncSession, Depends(get_db)]) -> AuthService:
    """Get AuthService instance with injected database session."""
    return AuthService(db)


async def _resolve_user(token: str, auth_service: AuthService) -> User:
    payload = verify_token(token)
    if not payload:
        raise UnauthorizedError("Invalid or expired token", code="INVALID_TOKEN")

    try:
        user_id = uuid.UUID(payload["sub"])
    except (KeyError, ValueError):
        raise UnauthorizedError("Invalid or expired token", code="INVALID_TOKEN")

    sid = payload.get("sid")
    if sid:
        try:
            session = await auth_service.get_session(uuid.UUID(sid))
        except ValueError:
            session = None
        if not session or session.is_revoked:
            raise UnauthorizedError("Session has been revoked", code="SESSION_REVOKED")

    user = await auth_service.get_user_by_id(user_id)
    if not user:
        raise UnauthorizedError("User not found", code="INVALID_TOKEN")
    if not user.is_active:
        raise ForbiddenError("Your account has been suspended", code="ACCOUNT_SUSPENDED")

    bind_context(user_id=str(user.id))
    return user


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> User:
    """
    Get the authenticated user from the Bearer access token.

    Raises:
        UnauthorizedError: Missing, invalid or expired token, or revoked session
        ForbiddenError: Suspended account
    """
    if not credentials:
        raise UnauthorizedError("Authentication required")
    return await _resolve_user(credentials.credentials, auth_service)


async def get_optional_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> User | None:
    """Like get_current_user, but anonymous requests (or bad tokens) yield None."""
    if not credentials:
        return None
    try:
        return await _resolve_user(credentials.credentials, auth_service)
    except (UnauthorizedError, ForbiddenError):
        return None


def get_session_id(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> uuid.UUID | None:
    """Session id (``sid`` claim) of the current access token."""
    if not credentials:
        return None
    payload = verify_token(credentials.credentials) or {}
    try:
        return uuid.UUID(payload["sid"])
    except (KeyError, ValueError):
        return None


async def require_seller(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    if not (current_user.is_seller or current_user.is_admin):
        raise ForbiddenError("Seller account required. Become a seller first.", code="SELLER_REQUIRED")
    return current_user


async def require_admin(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    if not current_user.is_admin:
        raise ForbiddenError("Admin access required")
    return current_user


# Type aliases for dependency injection
CurrentUser = Annotated[User, Depends(get_current_user)]
OptionalUser = Annotated[User | None, Depends(get_optional_user)]
CurrentSeller = Annotated[User, Depends(require_seller)]
CurrentAdmin = Annotated[User, Depends(require_admin)]
SessionId = Annotated[uuid.UUID | None, Depends(get_session_id)]
AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
