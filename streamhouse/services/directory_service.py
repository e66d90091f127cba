"""
Directory Service

Minimal create/read operations for users and houses. Account management,
membership and invitations live in their own services; the engagement
ledger only needs these records to exist.
"""

import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from streamhouse.core.exceptions import ConflictError, DatabaseError, NotFoundError
from streamhouse.db.models import House, User

logger = logging.getLogger(__name__)


class DirectoryService:
    """Users and houses."""
    
    def __init__(self, session: AsyncSession):
        self.session = session
    
    async def create_user(self, username: str, display_name: str) -> User:
        """
        Create a user with zero points.
        
        Raises:
            ConflictError: If the username is taken (case-insensitive)
        """
        username = username.strip()
        if await self.get_user_by_username(username) is not None:
            raise ConflictError(f"Username '{username}' is already taken")
        
        user = User(username=username, display_name=display_name.strip() or username)
        try:
            self.session.add(user)
            await self.session.flush()
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            raise ConflictError(f"Username '{username}' is already taken") from e
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise DatabaseError(f"Failed to create user: {str(e)}", original_error=e)
        
        logger.info(f"User created: id={user.id} username={user.username}")
        return user
    
    async def get_user(self, user_id: str) -> Optional[User]:
        return await self.session.get(User, user_id)
    
    async def require_user(self, user_id: str) -> User:
        user = await self.get_user(user_id)
        if user is None:
            raise NotFoundError("user", user_id)
        return user
    
    async def get_user_by_username(self, username: str) -> Optional[User]:
        """Case-insensitive username lookup."""
        statement = select(User).where(func.lower(User.username) == username.strip().lower())
        result = await self.session.execute(statement)
        return result.scalars().first()
    
    async def create_house(self, owner_user_id: str, name: str) -> House:
        """
        Create a house owned by an existing user.
        
        Raises:
            NotFoundError: If the owner does not exist
        """
        await self.require_user(owner_user_id)
        
        house = House(name=name.strip(), owner_user_id=owner_user_id)
        try:
            self.session.add(house)
            await self.session.flush()
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise DatabaseError(f"Failed to create house: {str(e)}", original_error=e)
        
        logger.info(f"House created: id={house.id} owner={owner_user_id}")
        return house
    
    async def get_house(self, house_id: str) -> Optional[House]:
        return await self.session.get(House, house_id)
