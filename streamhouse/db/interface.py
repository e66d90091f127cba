"""
Database Abstraction Interface

This module defines the database abstraction layer that allows switching between
different database backends (SQLite, PostgreSQL, etc.) without changing the
rest of the codebase.

Besides engine configuration, the adapter owns the one storage-specific
concurrency primitive the engagement ledger needs: locking the actor's row
for the duration of a check-and-record transaction.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession
from sqlalchemy.pool import Pool

from streamhouse.db.models import User


class DatabaseAdapter(ABC):
    """
    Abstract base class for database adapters.
    
    To add a new database backend:
    1. Create a new class inheriting from DatabaseAdapter
    2. Implement all abstract methods
    3. Update the factory function to return the new adapter
    """
    
    @abstractmethod
    def create_engine(self, database_url: str, **kwargs) -> AsyncEngine:
        """
        Create and configure the async database engine.
        
        Args:
            database_url: Connection string for the database
            **kwargs: Additional engine configuration options
        
        Returns:
            Configured AsyncEngine instance
        """
        pass
    
    @abstractmethod
    def get_pool_class(self) -> Optional[type[Pool]]:
        """Pool class for this database type, or None to use the default."""
        pass
    
    @abstractmethod
    def get_connect_args(self) -> dict[str, Any]:
        """Driver connection arguments specific to this database type."""
        pass
    
    @abstractmethod
    def get_engine_kwargs(self) -> dict[str, Any]:
        """Additional engine configuration specific to this database type."""
        pass
    
    @abstractmethod
    async def lock_user_for_ledger_write(
        self,
        session: AsyncSession,
        user_id: str
    ) -> Optional[User]:
        """
        Load and lock a user's row for a ledger check-and-record transaction.
        
        The lock must be held until the session commits or rolls back, so that
        a concurrent transaction for the same user observes the first one's
        insert before running its own dedup checks.
        
        Args:
            session: The database session
            user_id: Actor whose ledger is about to be written
        
        Returns:
            The locked User, or None if the user does not exist
        """
        pass
