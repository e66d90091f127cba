"""
URL Canonicalization

Normalizes a submitted link into a stable canonical form per source platform.
The canonical form is the dedup key for the cross-post engagement window: two
posts whose links canonicalize to the same string are the same content.

Design Decisions:
- Provider is a closed enum, detected from the parsed hostname (exact or
  subdomain match), never from substring search over the whole URL
- canonicalize() is total: any parse failure returns the input unchanged
- Every rule is idempotent, so canonicalizing a canonical URL is a no-op
"""

from enum import Enum
from typing import Optional
from urllib.parse import parse_qs, parse_qsl, unquote, urlencode, urlsplit, urlunsplit


class Provider(str, Enum):
    """Source platforms a post link can come from."""
    YOUTUBE = "youtube"
    TIKTOK = "tiktok"
    INSTAGRAM = "instagram"
    TWITCH = "twitch"
    TWITTER = "twitter"
    OTHER = "other"


PROVIDER_HOSTS: dict[str, Provider] = {
    "youtube.com": Provider.YOUTUBE,
    "youtu.be": Provider.YOUTUBE,
    "tiktok.com": Provider.TIKTOK,
    "instagram.com": Provider.INSTAGRAM,
    "twitch.tv": Provider.TWITCH,
    "twitter.com": Provider.TWITTER,
    "x.com": Provider.TWITTER,
}

TRACKING_PARAMS = frozenset({
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "utm_content",
    "utm_term",
    "fbclid",
    "gclid",
})

YOUTUBE_WATCH_URL = "https://www.youtube.com/watch?{query}"


def host_matches(hostname: str, domain: str) -> bool:
    """True if hostname is domain itself or one of its subdomains."""
    return hostname == domain or hostname.endswith("." + domain)


def detect_provider(url: str) -> Provider:
    """
    Detect the source platform of a URL from its hostname.
    
    Args:
        url: The submitted URL
    
    Returns:
        Matching Provider, or Provider.OTHER for unknown or unparsable URLs
    """
    try:
        hostname = (urlsplit(url).hostname or "").lower()
    except (TypeError, ValueError, AttributeError):
        return Provider.OTHER
    
    for domain, provider in PROVIDER_HOSTS.items():
        if host_matches(hostname, domain):
            return provider
    return Provider.OTHER


def _youtube_video_id(url: str) -> Optional[str]:
    """Decoded video id from a youtu.be path or a youtube.com `v` parameter."""
    parts = urlsplit(url)
    hostname = (parts.hostname or "").lower()
    
    if host_matches(hostname, "youtu.be"):
        video_id = unquote(parts.path.lstrip("/").split("/")[0])
        return video_id or None
    
    if host_matches(hostname, "youtube.com"):
        values = parse_qs(parts.query).get("v")
        if values and values[0]:
            return values[0]
    
    return None


def _canonicalize_youtube(url: str) -> str:
    video_id = _youtube_video_id(url)
    if not video_id:
        return url
    return YOUTUBE_WATCH_URL.format(query=urlencode({"v": video_id}))


def _canonicalize_tiktok(url: str) -> str:
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


def _strip_tracking_params(url: str) -> str:
    parts = urlsplit(url)
    if not parts.query:
        return url
    
    pairs = parse_qsl(parts.query, keep_blank_values=True)
    kept = [(key, value) for key, value in pairs if key not in TRACKING_PARAMS]
    if len(kept) == len(pairs):
        # Nothing to strip: keep the original encoding byte-for-byte
        return url
    
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(kept), parts.fragment))


_RULES = {
    Provider.YOUTUBE: _canonicalize_youtube,
    Provider.TIKTOK: _canonicalize_tiktok,
}


def canonicalize(url: str, provider: "Provider | str") -> str:
    """
    Normalize a URL into its canonical form for the given provider.
    
    Rules:
    - youtube: https://www.youtube.com/watch?v=<id> from youtu.be/<id> or the
      `v` query parameter; unchanged if no id can be extracted
    - tiktok: scheme, host and path only (all query parameters dropped)
    - everything else: tracking parameters removed, other parameters kept
    
    Never raises: on any parse failure the original URL is returned.
    
    Args:
        url: The URL to normalize
        provider: Provider enum or its string value; unknown values use the default rule
    
    Returns:
        Canonical URL string
    """
    try:
        provider = Provider(provider.lower() if isinstance(provider, str) else provider)
    except (TypeError, ValueError):
        provider = Provider.OTHER
    
    rule = _RULES.get(provider, _strip_tracking_params)
    try:
        return rule(url)
    except (TypeError, ValueError, AttributeError):
        return url
