"""
Redirect Service

This service handles the click-through path for a shared post.

Order of operations (each step may short-circuit with an error):
1. Rate limit by (client IP, viewer)          -> RateLimitedError
2. Post lookup, missing or deleted            -> NotFoundError
3. Allowlist check on the canonical URL       -> ForbiddenError
4. Engagement ledger (owner / dedup guards)
5. Return the canonical URL to redirect to

Design Decisions:
- The allowlist is checked against the canonical URL, the value actually used
  for the redirect, never the submitted one
- The redirect target is returned whether or not points were awarded, so the
  response does not reveal the viewer's engagement history
- Ledger storage failures propagate; they are never turned into a skip
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from streamhouse.core.exceptions import ForbiddenError, NotFoundError, RateLimitedError
from streamhouse.core.rate_limit import RateLimiter, redirect_limiter
from streamhouse.core.setting import settings
from streamhouse.core.validators import is_allowed, sanitize_identifier
from streamhouse.services.engagement_ledger import EngagementLedger
from streamhouse.services.post_service import PostService

logger = logging.getLogger(__name__)


class RedirectService:
    """
    Service for handling post redirections.
    
    This service encapsulates the redirect guard sequence so the endpoint
    only has to translate errors into HTTP responses.
    """
    
    def __init__(
        self,
        session: AsyncSession,
        limiter: Optional[RateLimiter] = None,
        allowlist: Optional[frozenset[str]] = None
    ):
        """
        Initialize the redirect service with a database session.
        
        Args:
            session: Async database session for database operations
            limiter: Redirect rate limiter (default: the process-wide one)
            allowlist: Allowed redirect hosts (default: settings.redirect_allowlist)
        """
        self.session = session
        self.limiter = limiter or redirect_limiter
        self.allowlist = allowlist if allowlist is not None else settings.redirect_allowlist
        self.post_service = PostService(session)
        self.ledger = EngagementLedger(session)
    
    async def resolve(
        self,
        post_id: str,
        viewer_user_id: Optional[str],
        client_ip: str,
        now: Optional[datetime] = None
    ) -> str:
        """
        Run the redirect guards and return the URL to redirect to.
        
        Args:
            post_id: Post being opened
            viewer_user_id: Viewer from the `u` query parameter, if any
            client_ip: Caller address for rate limiting
            now: Evaluation time for the ledger (default: current UTC time)
        
        Returns:
            The post's canonical URL
        """
        viewer = sanitize_identifier(viewer_user_id) if viewer_user_id else None
        rate_key = f"redirect:{client_ip}:{viewer or 'anon'}"
        if not self.limiter.admit(rate_key, settings.RATE_LIMIT_R_PER_MIN, settings.RATE_LIMIT_WINDOW_MS):
            logger.warning(f"Redirect rate limited: key={rate_key}")
            raise RateLimitedError(rate_key)
        
        clean_id = sanitize_identifier(post_id)
        post = await self.post_service.get_post(clean_id) if clean_id else None
        if post is None:
            raise NotFoundError("post", post_id)
        
        target = post.canonical_url
        if not is_allowed(target, self.allowlist):
            logger.warning(f"Redirect blocked: post={post.id} target={target}")
            raise ForbiddenError("Redirect target domain is not allowed")
        
        if viewer:
            await self.ledger.record_engage_or_skip(viewer, post, now=now)
        
        return target
