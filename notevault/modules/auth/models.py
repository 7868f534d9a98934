"""
Auth Module - Database Models
User accounts and login sessions.
"""
import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from notevault.core.models import Base


class User(Base):
    """
    Marketplace account.
    Every user can buy; ``is_seller`` unlocks listing notes and a seller wallet.
    """
    __tablename__ = "user"

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
        comment="Stored lower-cased and trimmed",
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Academic profile
    degree: Mapped[str | None] = mapped_column(String(100), nullable=True)
    university_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("university.id", ondelete="SET NULL"),
        nullable=True,
    )
    college_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    current_semester: Mapped[int | None] = mapped_column(Integer, nullable=True)

    profile_picture_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    referral_code: Mapped[str | None] = mapped_column(String(20), unique=True, nullable=True)
    preferred_language: Mapped[str] = mapped_column(String(10), default="en", nullable=False)

    # Roles & status
    is_seller: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Brute-force protection
    failed_login_attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    lockout_until: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_login: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Password reset (only the SHA-256 of the token is stored)
    reset_token_hash: Mapped[str | None] = mapped_column(String(64), index=True, nullable=True)
    reset_token_expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def role(self) -> str:
        if self.is_admin:
            return "admin"
        if self.is_seller:
            return "seller"
        return "buyer"

    def __repr__(self) -> str:
        return f"<User {self.email}>"


class UserSession(Base):
    """A login session; refresh tokens are bound to one through the ``sid`` claim."""
    __tablename__ = "user_session"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("user.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_agent: Mapped[str | None] = mapped_column(String(500), nullable=True)
    ip: Mapped[str | None] = mapped_column(String(64), nullable=True)
    last_seen: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_revoked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
