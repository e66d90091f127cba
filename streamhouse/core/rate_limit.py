"""
Rate Limiting Configuration

This module provides rate limiting for API endpoints. Rate limiting is a
coarse abuse guard, not a correctness mechanism: state lives in memory and
resets on process restart.

Design Decisions:
- Route-level limits use slowapi decorators, keyed by client IP
- The redirect endpoint uses RateLimiter, keyed by (client IP, user), with
  its limit taken from settings at call time
- Both sit on the `limits` library's in-memory moving window: admission is
  checked and recorded under the storage lock, and expired keys are evicted
  by the storage's expiry timer, so the key table stays bounded
"""

import math

from limits import RateLimitItemPerSecond
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter
from slowapi import Limiter
from slowapi.util import get_remote_address

from streamhouse.core.setting import settings

# Route-level limiter, uses IP address as key
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)

# Rate limit configurations per endpoint
# Format: "count/period" (e.g., "10/minute" means 10 requests per minute)
RATE_LIMITS = {
    "posts": "10/minute",  # Post creation: 10 per minute per IP
    "clips": "10/minute",  # Clip submission: 10 per minute per IP
    "reads": "60/minute",  # Feed and profile reads: 60 per minute per IP
}


class RateLimiter:
    """
    Trailing-window admission counter keyed by an arbitrary string.
    
    Each key keeps the timestamps of its admissions within the window. A call
    is admitted (and its timestamp recorded) only if fewer than `limit`
    admissions remain in the window; rejected calls are not recorded.
    """
    
    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self._storage = MemoryStorage()
        self._strategy = MovingWindowRateLimiter(self._storage)
    
    def admit(self, key: str, limit: int, window_ms: int) -> bool:
        """
        Admit or reject one call for `key`.
        
        Args:
            key: Limiter key (e.g. "redirect:<ip>:<user>")
            limit: Maximum admissions within the window
            window_ms: Window length in milliseconds, rounded up to whole seconds
        
        Returns:
            True if admitted, False if the key is over its limit
        """
        if not self.enabled:
            return True
        if limit <= 0:
            return False
        
        window_seconds = max(1, math.ceil(window_ms / 1000))
        item = RateLimitItemPerSecond(limit, window_seconds)
        return self._strategy.hit(item, key)
    
    def reset(self) -> None:
        """Forget all recorded admissions."""
        self._storage.reset()


# Redirect limiter, keyed by (client IP, user)
redirect_limiter = RateLimiter(enabled=settings.RATE_LIMIT_ENABLED)
