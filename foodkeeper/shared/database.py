"""
Database configuration and utilities for FoodKeeper
Includes async engine setup, session management, and helper functions
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import Request
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from foodkeeper.shared.models import Base

logger = logging.getLogger(__name__)


# ============================================================================
# ENGINE CONFIGURATION
# ============================================================================

def _enable_sqlite_foreign_keys(dbapi_conn, connection_record):
    """
    SQLite ignores foreign keys unless asked on every new connection
    """
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_database_engine(url: str, echo: bool = False) -> AsyncEngine:
    """
    Create async SQLite engine with foreign key enforcement

    Args:
        url: Database URL (sqlite+aiosqlite://...)
        echo: Log all SQL queries

    Returns:
        AsyncEngine
    """
    engine = create_async_engine(
        url,
        echo=echo,
        connect_args={"timeout": 30},
    )
    event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return engine


# ============================================================================
# DATABASE HANDLE
# ============================================================================

class Database:
    """
    Explicitly constructed database handle.

    Created once at process start (application lifespan or CLI), passed to
    whatever needs sessions, and disposed on shutdown.

    Usage:
        database = Database(settings.DATABASE_URL)
        await database.create_all()
        async with database.session() as session:
            ...
        await database.dispose()
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.engine: AsyncEngine = create_database_engine(url, echo=echo)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Session context for non-request code; rolls back on error.
        Callers commit explicitly.
        """
        async with self.session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    async def create_all(self) -> None:
        """Create all tables from ORM metadata"""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema initialized")

    async def drop_all(self) -> None:
        """
        Drop all tables

        WARNING: This will DELETE ALL DATA!
        """
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        logger.warning("Database schema dropped")

    async def dispose(self) -> None:
        """Close database connections (call on shutdown)"""
        await self.engine.dispose()
        logger.info("Database connections closed")

    async def health(self) -> dict:
        """
        Check database connectivity

        Returns:
            {"status": "healthy", "sqlite_version": "3.45.1", "response_time_ms": 1.2}
            or {"status": "unhealthy", "error": "..."}
        """
        start_time = time.time()
        try:
            async with self.session_factory() as session:
                result = await session.execute(text("SELECT sqlite_version()"))
                version = result.scalar()
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return {"status": "unhealthy", "error": str(e)}

        return {
            "status": "healthy",
            "sqlite_version": version,
            "response_time_ms": round((time.time() - start_time) * 1000, 2),
        }


# ============================================================================
# SESSION MANAGEMENT
# ============================================================================

def get_database(request: Request) -> Database:
    """FastAPI dependency returning the handle stored on app.state"""
    return request.app.state.database


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency to get database session

    Usage:
        @router.get("/items")
        async def get_items(session: AsyncSession = Depends(get_session)):
            result = await session.execute(select(Item))
            return result.scalars().all()
    """
    database = get_database(request)
    async with database.session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def get_table_count(session: AsyncSession, table_name: str) -> Optional[int]:
    """
    Get row count for a table

    Usage:
        count = await get_table_count(session, "foods")
    """
    if table_name not in Base.metadata.tables:
        raise ValueError(f"Unknown table: {table_name}")
    result = await session.execute(text(f"SELECT COUNT(*) FROM {table_name}"))
    return result.scalar()
