"""
Input Validators and Redirect Guard

This module provides validation functions for user inputs and the domain
allowlist check that runs before every redirect.

Security Considerations:
- Only http/https links are accepted for posts and clips
- Redirect targets are re-validated at redirect time against the allowlist,
  using the canonical URL that is actually sent in the Location header
- Length limits prevent DoS attacks
"""

import re
from typing import Iterable, Optional
from urllib.parse import urlsplit

MAX_URL_LENGTH = 2048

_IDENTIFIER_RE = re.compile(r"^[0-9a-zA-Z-]{1,64}$")


def sanitize_identifier(identifier: str) -> Optional[str]:
    """
    Sanitize and validate a resource identifier (uuid-style).
    
    Args:
        identifier: The id taken from a path, query or header
    
    Returns:
        Stripped identifier if valid, None otherwise
    
    Security:
    - Only allows alphanumerics and dashes
    - Prevents path traversal and oversized keys in the rate limiter
    """
    if not identifier or not isinstance(identifier, str):
        return None
    
    identifier = identifier.strip()
    if not _IDENTIFIER_RE.match(identifier):
        return None
    
    return identifier


def validate_url_length(url: str, max_length: int = MAX_URL_LENGTH) -> bool:
    """
    Validate URL length to prevent DoS attacks.
    
    Args:
        url: The URL to validate
        max_length: Maximum allowed length (default: 2048 per RFC 7230)
    
    Returns:
        True if URL length is valid, False otherwise
    """
    return bool(url) and len(url) <= max_length


def is_valid_url(url: str) -> bool:
    """
    Validate URL format and security.
    
    Checks that URL uses http/https and has a hostname. Rejects javascript:,
    data:, file: and other schemes.
    
    Args:
        url: The URL string to validate
    
    Returns:
        True if valid and safe, False otherwise
    """
    if not isinstance(url, str) or not validate_url_length(url):
        return False
    
    try:
        result = urlsplit(url)
        hostname = result.hostname
    except ValueError:
        return False
    
    if result.scheme.lower() not in {"http", "https"}:
        return False
    
    if not hostname:
        return False
    
    return hostname == "localhost" or "." in hostname


def is_allowed(url: str, allowlist: Iterable[str]) -> bool:
    """
    Check that a URL's host is sanctioned as a redirect target.
    
    The hostname is lower-cased and must equal an allowlist entry or be a
    subdomain of one ("vm.tiktok.com" matches "tiktok.com", "nottiktok.com"
    does not).
    
    Args:
        url: URL about to be used as a redirect target
        allowlist: Allowed hostnames
    
    Returns:
        True if the host is allowed, False otherwise (including malformed URLs)
    """
    try:
        hostname = urlsplit(url).hostname
    except (TypeError, ValueError, AttributeError):
        return False
    
    if not hostname:
        return False
    
    hostname = hostname.lower()
    for entry in allowlist:
        entry = entry.strip().lower()
        if entry and (hostname == entry or hostname.endswith("." + entry)):
            return True
    return False
