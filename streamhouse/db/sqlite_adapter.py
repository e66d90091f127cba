"""
SQLite Database Adapter

This module implements the DatabaseAdapter interface for SQLite.
All SQLite-specific configuration and behavior is encapsulated here.

Key characteristics:
- File-based (single .db file)
- Single writer at a time (file locking)
- A writer that cannot get the lock within `timeout` seconds fails with
  OperationalError, which the services surface as a retryable error
"""

from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool

from streamhouse.core.setting import settings
from streamhouse.db.interface import DatabaseAdapter
from streamhouse.db.models import User


class SQLiteAdapter(DatabaseAdapter):
    """
    SQLite database adapter implementation.
    
    SQLite uses file-based storage and has different characteristics than
    server-based databases like PostgreSQL.
    """
    
    def __init__(self, timeout_seconds: Optional[float] = None):
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None else settings.DATABASE_TIMEOUT_SECONDS
        )
    
    def create_engine(self, database_url: str, **kwargs) -> AsyncEngine:
        """
        Create SQLite async engine with appropriate configuration.
        
        SQLite-specific configuration:
        - NullPool: one connection per session (file-based, no pooling needed)
        - check_same_thread=False: Required for async SQLite operations
        - timeout: busy timeout before a locked database raises
        
        Args:
            database_url: SQLite connection string (sqlite+aiosqlite:///...)
            **kwargs: Additional engine options (merged with SQLite defaults)
        
        Returns:
            Configured AsyncEngine for SQLite
        """
        connect_args = self.get_connect_args()
        engine_kwargs = self.get_engine_kwargs()
        engine_kwargs.update(kwargs)
        
        return create_async_engine(
            database_url,
            poolclass=engine_kwargs.pop("poolclass", self.get_pool_class()),
            connect_args=connect_args,
            **engine_kwargs
        )
    
    def get_pool_class(self) -> type[NullPool]:
        return NullPool
    
    def get_connect_args(self) -> dict[str, Any]:
        return {
            "check_same_thread": False,
            "timeout": self.timeout_seconds,
        }
    
    def get_engine_kwargs(self) -> dict[str, Any]:
        return {
            "echo": False  # Set to True only for SQL debugging in development
        }
    
    async def lock_user_for_ledger_write(
        self,
        session: AsyncSession,
        user_id: str
    ) -> Optional[User]:
        """
        Lock the actor's row with SELECT ... FOR UPDATE.
        
        SQLite ignores FOR UPDATE (its writes are already serialized at the
        file level); the clause keeps the statement correct if the same code
        runs against a server database.
        """
        statement = select(User).where(User.id == user_id).with_for_update()
        result = await session.execute(statement)
        return result.scalar_one_or_none()


def get_database_adapter() -> DatabaseAdapter:
    """
    Factory function to get the database adapter.
    
    Returns SQLiteAdapter by default. To switch to PostgreSQL, create a
    PostgreSQLAdapter class and update this function.
    
    Returns:
        DatabaseAdapter instance
    """
    return SQLiteAdapter()
