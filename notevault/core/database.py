"""
Async Database Session Management
SQLAlchemy 2.0 Async with connection pooling.
"""
from collections.abc import AsyncGenerator
from typing import Annotated, Any

from fastapi import Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from notevault.core.config import settings


def _engine_options() -> dict[str, Any]:
    options: dict[str, Any] = {"echo": settings.db_echo}
    # SQLite (local runs, tests) does not take pool sizing arguments
    if not settings.async_database_url.startswith("sqlite"):
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=True,
            pool_recycle=3600,
        )
    return options


engine: AsyncEngine = create_async_engine(settings.async_database_url, **_engine_options())

# Session factory
async_session_maker = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency that yields an async database session.
    Use with FastAPI's Depends() for dependency injection.
    """
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# Type alias for dependency injection
AsyncSessionDep = Annotated[AsyncSession, Depends(get_db)]


async def init_db() -> None:
    """Create database tables from the model metadata."""
    from notevault.core.models import Base
    import notevault.modules  # noqa: F401  (registers every model)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def ping_db(session: AsyncSession) -> bool:
    """Return True when the database answers a trivial query."""
    result = await session.execute(text("SELECT 1"))
    return result.scalar() == 1


async def close_db() -> None:
    """Close database connections."""
    await engine.dispose()
