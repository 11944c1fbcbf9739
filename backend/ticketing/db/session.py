"""
Async engine, session factory and the unit-of-work helper.

Request handlers get a session from `get_db`, which commits when the handler
returns and rolls back if it raises. Code that needs an explicit atomic unit
inside a request (ticket purchase) wraps it in `unit_of_work`.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from ticketing.core.config import get_settings
from ticketing.core.logging import get_logger
from ticketing.core.metrics import record_db_operation

logger = get_logger(__name__)
settings = get_settings()


def build_engine(url: str):
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=settings.DEBUG)

    return create_async_engine(
        url,
        echo=settings.DEBUG,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=True,
    )


engine = build_engine(settings.DATABASE_URL)
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def unit_of_work(db: AsyncSession) -> AsyncGenerator[AsyncSession, None]:
    """
    Scope a group of writes as one all-or-nothing unit.

    Commits on normal exit. Any exception, including domain errors raised from
    inside the block, rolls back everything done in the unit and re-raises.
    """
    try:
        yield db
        await db.commit()
        record_db_operation("write")
    except BaseException:
        await db.rollback()
        record_db_operation("rollback")
        raise
