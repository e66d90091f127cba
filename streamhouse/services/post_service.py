"""
Post Service

This service handles the post lifecycle the engagement ledger depends on:
- Creating posts: URL validation, provider detection and canonicalization
- Looking posts up (soft-deleted posts are treated as missing)
- Soft-deleting posts (owner only)
- TTL-filtered reads for the house feed and the owner's profile

Design Decisions:
- The canonical URL is computed once at creation and stored; it is both the
  redirect target and the cross-post dedup key
- Visibility is filtered at read time with the TTL policy; nothing is expired
  in storage
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from streamhouse.core.canonical import canonicalize, detect_provider
from streamhouse.core.exceptions import DatabaseError, ForbiddenError, InvalidURLError, NotFoundError
from streamhouse.core.setting import settings
from streamhouse.core.validators import is_valid_url
from streamhouse.core.visibility import is_feed_visible, is_profile_visible
from streamhouse.db.models import House, Post, User

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Content Post"


class PostService:
    """
    Business logic for posts.
    
    Separated from API layer for testability and maintainability.
    """
    
    def __init__(self, session: AsyncSession):
        self.session = session
    
    async def create_post(
        self,
        owner_user_id: str,
        house_id: str,
        url: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
        thumbnail_url: Optional[str] = None
    ) -> Post:
        """
        Create a new post from a shared link.
        
        Args:
            owner_user_id: Creator of the post
            house_id: House the post is shared into
            url: The submitted link
            title: Optional title (defaults to "Content Post")
            description: Optional description
            thumbnail_url: Optional thumbnail link
        
        Returns:
            The stored Post with canonical_url and provider populated
        
        Raises:
            InvalidURLError: If URL format is invalid
            NotFoundError: If the owner or house does not exist
            DatabaseError: If database operation fails
        """
        url = url.strip() if isinstance(url, str) else url
        if not is_valid_url(url):
            raise InvalidURLError(
                url,
                reason="Invalid URL format. URL must use http:// or https:// and have a valid domain"
            )
        
        if await self.session.get(User, owner_user_id) is None:
            raise NotFoundError("user", owner_user_id)
        if await self.session.get(House, house_id) is None:
            raise NotFoundError("house", house_id)
        
        provider = detect_provider(url)
        post = Post(
            owner_user_id=owner_user_id,
            house_id=house_id,
            original_url=url,
            canonical_url=canonicalize(url, provider),
            title=(title or DEFAULT_TITLE)[:200],
            description=description,
            thumbnail_url=thumbnail_url,
            provider=provider.value,
        )
        
        try:
            self.session.add(post)
            await self.session.flush()
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise DatabaseError(f"Failed to create post: {str(e)}", original_error=e)
        
        logger.info(f"Post created: id={post.id} provider={post.provider} canonical={post.canonical_url}")
        return post
    
    async def get_post(self, post_id: str) -> Optional[Post]:
        """
        Retrieve a live post.
        
        Returns:
            Post if found and not soft-deleted, None otherwise
        """
        statement = select(Post).where(Post.id == post_id, Post.deleted == False)  # noqa: E712
        result = await self.session.execute(statement)
        return result.scalar_one_or_none()
    
    async def soft_delete(self, post_id: str, actor_user_id: str) -> Post:
        """
        Hide a post from every view. Idempotent for the owner.
        
        Raises:
            NotFoundError: If the post does not exist
            ForbiddenError: If the caller is not the owner
        """
        post = await self.session.get(Post, post_id)
        if post is None:
            raise NotFoundError("post", post_id)
        if post.owner_user_id != actor_user_id:
            raise ForbiddenError("Only the post owner can delete a post")
        
        if not post.deleted:
            post.deleted = True
            try:
                await self.session.commit()
            except SQLAlchemyError as e:
                await self.session.rollback()
                raise DatabaseError(f"Failed to delete post: {str(e)}", original_error=e)
            logger.info(f"Post soft-deleted: id={post_id}")
        
        return post
    
    async def list_house_feed(self, house_id: str, now: Optional[datetime] = None) -> list[Post]:
        """
        Posts in a house that are still inside the feed TTL, newest first.
        
        Raises:
            NotFoundError: If the house does not exist
        """
        if await self.session.get(House, house_id) is None:
            raise NotFoundError("house", house_id)
        
        statement = (
            select(Post)
            .where(Post.house_id == house_id, Post.deleted == False)  # noqa: E712
            .order_by(Post.created_at.desc())
        )
        result = await self.session.execute(statement)
        visible = [post for post in result.scalars().all() if is_feed_visible(post.created_at, now)]
        return visible[:settings.FEED_PAGE_LIMIT]
    
    async def list_profile_posts(
        self,
        user_id: str,
        page: int = 1,
        page_size: int = 12,
        now: Optional[datetime] = None
    ) -> dict:
        """
        A user's posts still inside the profile TTL, newest first, paginated.
        
        Returns:
            Dictionary with items, page, pageSize and total
        """
        statement = (
            select(Post)
            .where(Post.owner_user_id == user_id, Post.deleted == False)  # noqa: E712
            .order_by(Post.created_at.desc())
        )
        result = await self.session.execute(statement)
        visible = [post for post in result.scalars().all() if is_profile_visible(post.created_at, now)]
        
        start = (page - 1) * page_size
        return {
            "items": visible[start:start + page_size],
            "page": page,
            "pageSize": page_size,
            "total": len(visible),
        }
