"""
Security Module
JWT token management and password hashing.
"""
import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

import bleach
from jose import JWTError, jwt
from passlib.context import CryptContext

from notevault.core.config import settings

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Verified against when the email is unknown so both paths cost one bcrypt check
_DUMMY_HASH = pwd_context.hash("notevault-dummy-password")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def verify_dummy_password(plain_password: str) -> None:
    pwd_context.verify(plain_password, _DUMMY_HASH)


def get_password_hash(password: str) -> str:
    """Hash a password."""
    return pwd_context.hash(password)


def create_access_token(
    subject: str | int,
    expires_delta: timedelta | None = None,
    extra_claims: dict[str, Any] | None = None,
) -> str:
    """
    Create a JWT access token.

    Args:
        subject: The subject of the token (user ID)
        expires_delta: Optional custom expiration time
        extra_claims: Additional claims to include in the token (e.g. ``sid``)

    Returns:
        Encoded JWT token string
    """
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.access_token_expire_minutes
        )

    to_encode: dict[str, Any] = {
        "exp": expire,
        "sub": str(subject),
        "iat": datetime.now(timezone.utc),
        "type": ACCESS_TOKEN_TYPE,
    }

    if extra_claims:
        to_encode.update(extra_claims)

    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def create_refresh_token(subject: str | int, session_id: str) -> str:
    """Create a long-lived refresh token bound to a login session."""
    return create_access_token(
        subject,
        expires_delta=timedelta(days=settings.refresh_token_expire_days),
        extra_claims={"sid": session_id, "type": REFRESH_TOKEN_TYPE},
    )


def verify_token(token: str, token_type: str = ACCESS_TOKEN_TYPE) -> dict[str, Any] | None:
    """
    Verify and decode a JWT token.

    Args:
        token: The JWT token string
        token_type: Expected ``type`` claim

    Returns:
        Decoded token payload or None if invalid
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
        )
    except JWTError:
        return None
    if payload.get("type") != token_type:
        return None
    return payload


def generate_reset_token() -> str:
    return secrets.token_urlsafe(32)


def hash_token(token: str) -> str:
    """SHA-256 hex digest used to store one-time tokens."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def sanitize_text(value: str | None) -> str | None:
    """
    Strip HTML tags from user supplied free text.

    The result stays entity-escaped (``&amp;``, ``&lt;``) so encoded markup
    can never turn back into tags when rendered.
    """
    if value is None:
        return None
    return bleach.clean(value, tags=set(), attributes={}, strip=True).strip()
