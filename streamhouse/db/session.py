"""
Database Session Management

This module handles async database connections using SQLAlchemy's async engine.
Uses a database abstraction layer to support different database backends.

Key Features:
- Database abstraction: Easy to switch between SQLite, PostgreSQL, etc.
- Async session management: Proper async context management
- Error handling: Automatic rollback on exceptions
"""

import logging
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession as SQLModelAsyncSession

from streamhouse.core.setting import settings
from streamhouse.db import models  # noqa: F401  (registers tables on SQLModel.metadata)
from streamhouse.db.sqlite_adapter import get_database_adapter

logger = logging.getLogger(__name__)

# The adapter handles all database-specific configuration
db_adapter = get_database_adapter()

engine = db_adapter.create_engine(
    settings.DATABASE_URL
)

async_session_maker = async_sessionmaker(
    engine,
    class_=SQLModelAsyncSession,
    expire_on_commit=False,  # Prevents SQLAlchemy from expiring objects after commit
    autoflush=False,
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency function for FastAPI to get database session.
    
    This function:
    - Creates a new async session
    - Yields it to the endpoint
    - Automatically commits on success
    - Rolls back on exception
    
    Usage in FastAPI:
        @router.get("/endpoint")
        async def endpoint(session: AsyncSession = Depends(get_session)):
            ...
    """
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db(bind: AsyncEngine = engine) -> None:
    """Create any missing tables."""
    async with bind.begin() as connection:
        await connection.run_sync(SQLModel.metadata.create_all)
    logger.info("Database tables ensured")
