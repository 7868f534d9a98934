"""
Block until the database accepts connections.

Usage:
    python scripts/wait_for_db.py [--timeout 60]
"""
import argparse
import asyncio
import sys

from sqlalchemy import text
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine

from notevault.core.config import settings
from notevault.core.logging import configure_logging, get_logger

logger = get_logger("scripts.wait_for_db")


async def wait_for_db(timeout: int) -> bool:
    engine = create_async_engine(settings.async_database_url)
    attempt = 0
    try:
        while attempt < timeout:
            attempt += 1
            try:
                async with engine.connect() as conn:
                    await conn.execute(text("SELECT 1"))
            except (OperationalError, OSError) as e:
                logger.info("Database not ready", attempt=attempt, error=str(e))
                await asyncio.sleep(1)
            else:
                logger.info("Database ready", attempts=attempt)
                return True
    finally:
        await engine.dispose()
    return False


def main() -> int:
    parser = argparse.ArgumentParser(description="Wait for the database to come up")
    parser.add_argument("--timeout", type=int, default=60, help="Seconds to wait")
    args = parser.parse_args()

    configure_logging()
    try:
        ready = asyncio.run(wait_for_db(args.timeout))
    except SQLAlchemyError as e:
        logger.error("Database check failed", error=str(e))
        return 1
    if not ready:
        logger.error("Database did not become ready", timeout=args.timeout)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
