"""
Profile Service

This service assembles a user's public profile.
Aggregates data from multiple sources:
- Directory: the user record and running point total
- Post service: posts still inside the profile TTL
- Clips: clips the user has made
- Points service: points breakdown by engagement type
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from streamhouse.core.exceptions import NotFoundError
from streamhouse.db.models import Clip
from streamhouse.services.directory_service import DirectoryService
from streamhouse.services.points_service import PointsService
from streamhouse.services.post_service import PostService


class ProfileService:
    """
    Service for retrieving profiles.
    
    Read-only; never writes to the session.
    """
    
    def __init__(self, session: AsyncSession):
        self.session = session
        self.directory = DirectoryService(session)
        self.post_service = PostService(session)
        self.points_service = PointsService(session)
    
    async def list_clips_by_creator(self, user_id: str, page: int = 1, page_size: int = 12) -> dict:
        """Clips made by a user, newest first, paginated."""
        count_statement = select(func.count(Clip.id)).where(Clip.creator_user_id == user_id)
        total = (await self.session.execute(count_statement)).scalar() or 0
        
        statement = (
            select(Clip)
            .where(Clip.creator_user_id == user_id)
            .order_by(Clip.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        result = await self.session.execute(statement)
        return {
            "items": list(result.scalars().all()),
            "page": page,
            "pageSize": page_size,
            "total": total,
        }
    
    async def get_profile(
        self,
        username: str,
        page: int = 1,
        page_size: int = 12,
        now: Optional[datetime] = None
    ) -> dict:
        """
        Get a user's public profile.
        
        Returns:
            Dictionary with:
            - user: the user record
            - posts: page of posts within the profile TTL
            - clips_made: page of clips the user created
            - points_breakdown: points per engagement type
        
        Raises:
            NotFoundError: If no user has this username
        """
        user = await self.directory.get_user_by_username(username)
        if user is None:
            raise NotFoundError("user", username)
        
        return {
            "user": user,
            "posts": await self.post_service.list_profile_posts(user.id, page, page_size, now),
            "clips_made": await self.list_clips_by_creator(user.id, page, page_size),
            "points_breakdown": await self.points_service.breakdown(user.id),
        }
