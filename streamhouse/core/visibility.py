"""
TTL Visibility Policy

Read-time visibility rules for posts. Nothing is ever deleted by these
checks: a post that drops out of a view is still stored and reappears if the
TTL is widened.

Two independent clocks apply to the same post:
- feed TTL (FEED_TTL_HOURS): house activity feed
- profile TTL (PROFILE_TTL_DAYS): owner's public profile
"""

from datetime import datetime, timedelta
from typing import Optional

from streamhouse.core.setting import settings
from streamhouse.db.time import as_utc, utcnow


def is_within_ttl(created_at: datetime, ttl_hours: float, now: Optional[datetime] = None) -> bool:
    """
    True if (now - created_at) <= ttl_hours, inclusive at the boundary.
    
    Args:
        created_at: When the content was created
        ttl_hours: Visibility window in hours
        now: Evaluation time; defaults to the wall clock at call time
    """
    now = as_utc(now) if now is not None else utcnow()
    return now - as_utc(created_at) <= timedelta(hours=ttl_hours)


def is_feed_visible(created_at: datetime, now: Optional[datetime] = None) -> bool:
    return is_within_ttl(created_at, settings.FEED_TTL_HOURS, now)


def is_profile_visible(created_at: datetime, now: Optional[datetime] = None) -> bool:
    return is_within_ttl(created_at, settings.profile_ttl_hours, now)
