"""
Set a user's password from the command line and clear any lockout.

Usage:
    python scripts/reset_password.py user@example.com 'new-password'
"""
import argparse
import asyncio
import sys

from sqlalchemy import select

from notevault.core.database import async_session_maker, close_db
from notevault.core.logging import configure_logging, get_logger
from notevault.core.security import get_password_hash
from notevault.modules.auth.models import User
from notevault.modules.auth.service import AuthService, normalize_email

logger = get_logger("scripts.reset_password")

MIN_PASSWORD_LENGTH = 8


async def reset_password(email: str, new_password: str, revoke_sessions: bool = True) -> bool:
    async with async_session_maker() as session:
        result = await session.execute(select(User).where(User.email == normalize_email(email)))
        user = result.scalar_one_or_none()
        if user is None:
            logger.error("User not found", email=email)
            return False

        user.password_hash = get_password_hash(new_password)
        user.failed_login_attempts = 0
        user.lockout_until = None
        user.reset_token_hash = None
        user.reset_token_expires_at = None

        revoked = 0
        if revoke_sessions:
            revoked = await AuthService(session).revoke_all_sessions(user.id)

        await session.commit()
        logger.info("Password reset", user_id=str(user.id), sessions_revoked=revoked)
        return True


async def _run(args: argparse.Namespace) -> bool:
    try:
        return await reset_password(args.email, args.password, revoke_sessions=not args.keep_sessions)
    finally:
        await close_db()


def main() -> int:
    parser = argparse.ArgumentParser(description="Reset a user's password")
    parser.add_argument("email")
    parser.add_argument("password")
    parser.add_argument("--keep-sessions", action="store_true", help="Do not revoke existing logins")
    args = parser.parse_args()

    configure_logging()
    if len(args.password) < MIN_PASSWORD_LENGTH:
        logger.error("Password too short", min_length=MIN_PASSWORD_LENGTH)
        return 1

    return 0 if asyncio.run(_run(args)) else 1


if __name__ == "__main__":
    sys.exit(main())
