"""
Auth Module - Business Logic Service
NEVER put business logic in Routers. Routers only parse requests and call Services.
"""
import math
import secrets
import uuid
from datetime import timedelta

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from notevault.core.config import settings
from notevault.core.exceptions import (
    AccountLockedError,
    BadRequestError,
    ConflictError,
    ForbiddenError,
    UnauthorizedError,
)
from notevault.core.logging import get_logger
from notevault.core.metrics import record_login
from notevault.core.models import as_utc, utc_now
from notevault.core.security import (
    REFRESH_TOKEN_TYPE,
    create_access_token,
    create_refresh_token,
    generate_reset_token,
    get_password_hash,
    hash_token,
    verify_dummy_password,
    verify_password,
    verify_token,
)
from notevault.modules.auth.models import User, UserSession
from notevault.modules.auth.schemas import (
    LoginRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    TokenPair,
)
from notevault.modules.content.models import University
from notevault.modules.wallet.models import SellerWallet
from notevault.tasks import enqueue
from notevault.tasks.notifications import send_password_reset_email, send_welcome_email

logger = get_logger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def generate_referral_code() -> str:
    return f"REF{secrets.token_hex(4).upper()}"


class AuthService:
    """Authentication, sessions and profile management."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ============== Lookups ==============

    async def get_user_by_id(self, user_id: uuid.UUID) -> User | None:
        return await self.db.get(User, user_id)

    async def get_user_by_email(self, email: str) -> User | None:
        result = await self.db.execute(select(User).where(User.email == normalize_email(email)))
        return result.scalar_one_or_none()

    async def get_session(self, session_id: uuid.UUID) -> UserSession | None:
        return await self.db.get(UserSession, session_id)

    # ============== Tokens ==============

    async def _open_session(
        self,
        user: User,
        user_agent: str | None,
        ip: str | None,
    ) -> UserSession:
        session = UserSession(
            user_id=user.id,
            user_agent=(user_agent or "Unknown")[:500],
            ip=ip or "Unknown",
            last_seen=utc_now(),
            is_revoked=False,
        )
        self.db.add(session)
        await self.db.flush()
        return session

    @staticmethod
    def _issue_tokens(user: User, session: UserSession) -> TokenPair:
        access_token = create_access_token(
            subject=str(user.id),
            extra_claims={"sid": str(session.id)},
        )
        refresh_token = create_refresh_token(str(user.id), str(session.id))
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=settings.access_token_expire_minutes * 60,
        )

    # ============== Registration & Login ==============

    async def register(
        self,
        request: RegisterRequest,
        user_agent: str | None = None,
        ip: str | None = None,
    ) -> tuple[User, TokenPair]:
        """Create an account and log it in."""
        email = normalize_email(request.email)

        if request.university_id and not await self.db.get(University, request.university_id):
            raise BadRequestError("Unknown university", code="INVALID_UNIVERSITY")

        user = User(
            email=email,
            password_hash=get_password_hash(request.password),
            full_name=request.name,
            degree=request.degree,
            university_id=request.university_id,
            college_name=request.college_name,
            current_semester=request.current_semester,
            referral_code=generate_referral_code(),
            is_active=True,
            is_verified=False,
        )
        self.db.add(user)
        try:
            # The unique index on email settles concurrent registrations
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            logger.warning("Duplicate registration blocked", email=email)
            raise ConflictError("An account with this email already exists", code="EMAIL_EXISTS")

        session = await self._open_session(user, user_agent, ip)
        tokens = self._issue_tokens(user, session)
        await self.db.commit()
        await self.db.refresh(user)

        enqueue(send_welcome_email, user.email, user.full_name)

        logger.info("User registered", user_id=str(user.id), email=user.email)
        return user, tokens

    async def login(
        self,
        request: LoginRequest,
        user_agent: str | None = None,
        ip: str | None = None,
    ) -> tuple[User, TokenPair]:
        """
        Verify credentials and open a session.

        Each wrong password increments ``failed_login_attempts``; reaching
        ``max_failed_logins`` locks the account for ``lockout_minutes``.
        """
        email = normalize_email(request.email)
        user = await self.get_user_by_email(email)

        if not user:
            verify_dummy_password(request.password)
            record_login("failed")
            raise UnauthorizedError("Invalid credentials", code="INVALID_CREDENTIALS")

        now = utc_now()
        lockout_until = as_utc(user.lockout_until)
        if lockout_until and lockout_until > now:
            remaining_seconds = int((lockout_until - now).total_seconds())
            remaining_minutes = max(1, math.ceil(remaining_seconds / 60))
            logger.warning("Login blocked, account locked", email=email, remaining_minutes=remaining_minutes)
            record_login("locked")
            raise AccountLockedError(
                f"Account is locked. Try again in {remaining_minutes} minutes.",
                retry_after=remaining_minutes * 60,
            )

        if not verify_password(request.password, user.password_hash):
            user.failed_login_attempts += 1
            locked = user.failed_login_attempts >= settings.max_failed_logins
            if locked:
                user.lockout_until = now + timedelta(minutes=settings.lockout_minutes)
            # Persist the counter before the error response rolls the request back
            await self.db.commit()

            logger.warning(
                "Failed login",
                email=email,
                attempt=user.failed_login_attempts,
                max_attempts=settings.max_failed_logins,
            )
            if locked:
                record_login("locked")
                raise AccountLockedError(
                    f"Too many failed attempts. Account locked for {settings.lockout_minutes} minutes.",
                    retry_after=settings.lockout_minutes * 60,
                )
            record_login("failed")
            raise UnauthorizedError("Invalid credentials", code="INVALID_CREDENTIALS")

        if not user.is_active:
            raise ForbiddenError(
                "Your account has been suspended. Please contact support.",
                code="ACCOUNT_SUSPENDED",
            )

        user.failed_login_attempts = 0
        user.lockout_until = None
        user.last_login = now

        session = await self._open_session(user, user_agent, ip)
        tokens = self._issue_tokens(user, session)
        await self.db.commit()
        await self.db.refresh(user)

        record_login("success")
        logger.info("User logged in", user_id=str(user.id), session_id=str(session.id))
        return user, tokens

    async def refresh(self, refresh_token: str) -> TokenPair:
        """Exchange a refresh token for a new token pair on the same session."""
        payload = verify_token(refresh_token, token_type=REFRESH_TOKEN_TYPE)
        if not payload or not payload.get("sid"):
            raise UnauthorizedError("Invalid or expired refresh token", code="INVALID_TOKEN")

        try:
            user_id = uuid.UUID(payload["sub"])
            session_id = uuid.UUID(payload["sid"])
        except (KeyError, ValueError):
            raise UnauthorizedError("Invalid or expired refresh token", code="INVALID_TOKEN")

        session = await self.get_session(session_id)
        if not session or session.user_id != user_id or session.is_revoked:
            logger.warning("Refresh on revoked session", session_id=str(session_id))
            raise ForbiddenError("Session has been revoked", code="SESSION_REVOKED")

        user = await self.get_user_by_id(user_id)
        if not user or not user.is_active:
            raise UnauthorizedError("User account is disabled", code="ACCOUNT_DISABLED")

        session.last_seen = utc_now()
        tokens = self._issue_tokens(user, session)
        await self.db.commit()
        return tokens

    async def logout(self, session_id: uuid.UUID | None) -> None:
        if session_id is None:
            return
        session = await self.get_session(session_id)
        if session and not session.is_revoked:
            session.is_revoked = True
            await self.db.commit()
            logger.info("Session revoked", session_id=str(session_id))

    async def revoke_all_sessions(self, user_id: uuid.UUID) -> int:
        """Revoke every active login of a user in the current transaction. Returns the count."""
        result = await self.db.execute(
            update(UserSession)
            .where(UserSession.user_id == user_id, UserSession.is_revoked.is_(False))
            .values(is_revoked=True)
        )
        return result.rowcount

    # ============== Password Reset ==============

    async def forgot_password(self, email: str) -> None:
        """Start a password reset; silent when the account does not exist."""
        user = await self.get_user_by_email(email)
        if not user or not user.is_active:
            logger.info("Password reset requested for unknown account")
            return

        token = generate_reset_token()
        user.reset_token_hash = hash_token(token)
        user.reset_token_expires_at = utc_now() + timedelta(minutes=settings.password_reset_expire_minutes)
        await self.db.commit()

        enqueue(send_password_reset_email, user.email, token)
        logger.info("Password reset issued", user_id=str(user.id))

    async def reset_password(self, token: str, new_password: str) -> None:
        result = await self.db.execute(select(User).where(User.reset_token_hash == hash_token(token)))
        user = result.scalar_one_or_none()

        expires_at = as_utc(user.reset_token_expires_at) if user else None
        if not user or not expires_at or expires_at < utc_now():
            raise BadRequestError("Reset link is invalid or has expired", code="INVALID_RESET_TOKEN")

        user.password_hash = get_password_hash(new_password)
        user.reset_token_hash = None
        user.reset_token_expires_at = None
        user.failed_login_attempts = 0
        user.lockout_until = None
        revoked = await self.revoke_all_sessions(user.id)
        await self.db.commit()

        logger.info("Password reset completed", user_id=str(user.id), sessions_revoked=revoked)

    # ============== Profile ==============

    async def update_profile(self, user: User, request: ProfileUpdateRequest) -> User:
        update_data = request.model_dump(exclude_unset=True)
        for field, value in update_data.items():
            if isinstance(value, str):
                value = value.strip()
            setattr(user, field, value)

        await self.db.commit()
        await self.db.refresh(user)

        logger.info("Profile updated", user_id=str(user.id), fields=list(update_data))
        return user

    async def become_seller(self, user: User) -> User:
        """Enable selling and open the seller wallet."""
        if user.is_seller:
            raise BadRequestError("You are already a seller", code="ALREADY_SELLER")

        user.is_seller = True
        existing = await self.db.execute(select(SellerWallet).where(SellerWallet.seller_id == user.id))
        if not existing.scalar_one_or_none():
            self.db.add(SellerWallet(
                seller_id=user.id,
                minimum_withdrawal_amount=settings.minimum_withdrawal_inr,
            ))

        await self.db.commit()
        await self.db.refresh(user)

        logger.info("User became seller", user_id=str(user.id))
        return user
