"""Engine and session factories.

Engines are built once per process (API lifespan, Celery task run) and
handed to the components that need them; nothing here holds a global
connection.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from searchhub.settings import Settings
from searchhub.utils import logger


def create_engine_from_settings(s: Settings, *, pooled: bool = True) -> AsyncEngine:
    """
    Build the async engine.

    Celery tasks run each job inside a fresh event loop, so they ask for an
    unpooled engine; asyncpg connections cannot be shared across loops.
    """
    if not pooled:
        return create_async_engine(
            str(s.DATABASE_URL), poolclass=NullPool, echo=s.DEBUG
        )
    return create_async_engine(
        str(s.DATABASE_URL),
        pool_pre_ping=True,
        pool_recycle=3600,
        pool_size=s.DB_POOL_SIZE,
        max_overflow=s.DB_MAX_OVERFLOW,
        echo=s.DEBUG,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine, class_=AsyncSession, autocommit=False, autoflush=False,
        expire_on_commit=False,
    )


@asynccontextmanager
async def tenant_session(
    session_factory: async_sessionmaker[AsyncSession], tenant_id: str
) -> AsyncIterator[AsyncSession]:
    """
    Open a session with the RLS tenant context set.
    """
    async with session_factory() as session:
        try:
            # Enforce RLS by setting the transaction-local 'app.current_tenant' variable.
            await session.execute(
                text("SELECT set_config('app.current_tenant', :tenant_id, true)"),
                {"tenant_id": tenant_id},
            )
            yield session
        except SQLAlchemyError:
            await session.rollback()
            raise


async def check_db_connection(engine: AsyncEngine) -> None:
    try:
        async with engine.connect() as connection:
            await connection.execute(text("SELECT 1"))
            logger.info("Database connection successful")
    except Exception as e:
        logger.error(f"Database connection error: {e}")
        raise
