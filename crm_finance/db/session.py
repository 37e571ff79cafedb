"""
Database session management.

WHY: One AsyncSession per request; get_db commits when the route returns
and rolls back on any exception, so invoice + items inserts and the status
reconciliation that follows them land in a single transaction.
"""

from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from crm_finance.core.config import settings


def _engine_options() -> dict:
    options = {"echo": settings.DEBUG, "pool_pre_ping": True}
    # SQLite uses a static/singleton pool that rejects sizing arguments
    if not settings.is_sqlite:
        options["pool_size"] = settings.DB_POOL_SIZE
        options["max_overflow"] = settings.DB_MAX_OVERFLOW
    return options


# Engine creation does not connect; the first session does.
engine = create_async_engine(settings.async_database_url, **_engine_options())

# expire_on_commit=False keeps loaded attributes readable after commit,
# which async sessions cannot lazy-load.
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency to get database session.

    Yields:
        AsyncSession: Database session for the request
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
