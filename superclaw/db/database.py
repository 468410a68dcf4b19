"""Database connection and session management"""

from typing import Optional

from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool
from superclaw.config import settings
from superclaw.db.models import Base


def create_engine_for(database_url: str, echo: bool = False) -> AsyncEngine:
    """Build an async engine with pool settings suited to the backend."""
    if database_url.startswith("sqlite") and ":memory:" in database_url:
        # In-memory SQLite must share one connection or every session sees an empty DB
        return create_async_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=echo,
        )
    if database_url.startswith("sqlite"):
        # File SQLite: one connection per session so writers serialize on the
        # database lock instead of sharing a transaction. `timeout` is the busy wait.
        return create_async_engine(
            database_url,
            connect_args={"check_same_thread": False, "timeout": 30},
            echo=echo,
        )
    # PostgreSQL
    return create_async_engine(
        database_url,
        echo=echo,
        pool_size=10,
        max_overflow=20,
        pool_pre_ping=True,
    )


def create_session_maker(bind: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


# Create async engine
engine = create_engine_for(settings.database_url, echo=settings.debug)

# Session factory
async_session_maker = create_session_maker(engine)


async def get_db() -> AsyncSession:
    """Dependency for getting database sessions"""
    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db(bind: Optional[AsyncEngine] = None):
    """Initialize database tables"""
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_db(bind: Optional[AsyncEngine] = None):
    """Drop all database tables (for testing)"""
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
