"""
Custom Exceptions

This module defines the service's error taxonomy. Services raise these;
endpoints translate them into HTTP responses.

Mapping:
- NotFoundError           -> 404
- ForbiddenError          -> 403
- SelfActionError         -> 400
- RateLimitedError        -> 429
- InvalidURLError         -> 400
- DatabaseError           -> 500
- StorageUnavailableError -> 503 (retryable)
"""

from typing import Optional


class StreamHouseError(Exception):
    """Base exception for the StreamHouse service."""
    pass


class NotFoundError(StreamHouseError):
    """Raised when a user, house or post does not exist (or is soft-deleted)."""
    
    def __init__(self, resource: str, identifier: str):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource.capitalize()} '{identifier}' not found")


class ForbiddenError(StreamHouseError):
    """Raised when the caller may not perform an action."""
    
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class SelfActionError(ForbiddenError):
    """Raised when a user tries to earn points from their own post."""
    
    def __init__(self, action: str):
        self.action = action
        super().__init__(f"Cannot {action} your own post")


class RateLimitedError(StreamHouseError):
    """Raised when a caller exceeds its admission budget."""
    
    def __init__(self, key: str):
        self.key = key
        super().__init__("Rate limit exceeded, retry after the window resets")


class InvalidURLError(StreamHouseError):
    """Raised when URL validation fails."""
    
    def __init__(self, url: str, reason: str = "Invalid URL format"):
        self.url = url
        self.reason = reason
        super().__init__(f"{reason}: {url}")


class ConflictError(StreamHouseError):
    """Raised when creating something that already exists."""
    
    def __init__(self, message: str):
        super().__init__(message)


class DatabaseError(StreamHouseError):
    """Raised when database operations fail."""
    
    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.original_error = original_error
        super().__init__(f"Database error: {message}")


class StorageUnavailableError(DatabaseError):
    """Raised when storage is locked, unreachable or timed out. Safe to retry."""
    pass
