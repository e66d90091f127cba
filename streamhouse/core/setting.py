"""
Configuration Settings

This module defines application configuration using Pydantic Settings.
All configuration is loaded from environment variables or .env file.

Design Decisions:
- Uses pydantic-settings for type-safe configuration
- Supports multiple environments (production, staging, dev)
- Defaults to SQLite (file-based) for easy local development
- Engagement windows, point values and TTLs are plain environment knobs so
  product can widen or narrow them without a deploy of new code
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = ["Settings", "settings"]

BASE_DIR = Path(__file__).resolve().parent.parent.parent


class EnvSettingsOptions(Enum):
    """Environment options for deployment."""
    production = "production"
    staging = "staging"
    development = "dev"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    
    All settings can be overridden via environment variables or .env file.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Project Configuration
    ENV_SETTING: EnvSettingsOptions = Field(
        default=EnvSettingsOptions.development,
        description="Environment setting (production, staging, dev)"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Root log level (DEBUG, INFO, WARNING, ERROR)"
    )
    
    # Database Configuration
    # For SQLite: sqlite+aiosqlite:///./streamhouse.db (default)
    DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./streamhouse.db",
        description="Database connection string"
    )
    DATABASE_TIMEOUT_SECONDS: float = Field(
        default=5.0,
        description="How long a storage call may wait on a lock before failing as retryable"
    )
    AUTO_CREATE_TABLES: bool = Field(
        default=True,
        description="Create missing tables on startup (use Alembic migrations in production)"
    )
    
    # Engagement Ledger
    ENGAGE_DEDUP_HOURS: float = Field(
        default=24,
        description="Window in which a repeat engage on the same post does not score"
    )
    CANONICAL_DEDUP_DAYS: float = Field(
        default=7,
        description="Window in which a repeat engage on the same canonical URL does not score"
    )
    ENGAGE_POINTS: int = Field(default=1, ge=0, description="Points for a scoring engage")
    CLIP_POINTS: int = Field(default=2, ge=0, description="Points for a clip")
    COLLAB_POINTS: int = Field(default=3, ge=0, description="Points for joining a post as collaborator")
    
    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = Field(
        default=True,
        description="Master switch for all rate limiters"
    )
    RATE_LIMIT_R_PER_MIN: int = Field(
        default=20,
        description="Redirects admitted per (client IP, user) within the redirect window"
    )
    RATE_LIMIT_WINDOW_MS: int = Field(
        default=60_000,
        description="Redirect rate limit window in milliseconds"
    )
    
    # Redirect Security
    REDIRECT_ALLOWLIST: str = Field(
        default="youtube.com,youtu.be,tiktok.com,instagram.com,twitch.tv,twitter.com,x.com",
        description="Comma-separated hostnames a redirect may target (subdomains included)"
    )
    
    # Visibility
    FEED_TTL_HOURS: float = Field(
        default=24,
        description="How long a post stays in its house activity feed"
    )
    PROFILE_TTL_DAYS: float = Field(
        default=7,
        description="How long a post stays on its owner's public profile"
    )
    FEED_PAGE_LIMIT: int = Field(
        default=50,
        description="Maximum number of posts returned by a house feed"
    )

    @property
    def redirect_allowlist(self) -> frozenset[str]:
        """Parsed, lower-cased REDIRECT_ALLOWLIST."""
        return frozenset(
            host.strip().lower()
            for host in self.REDIRECT_ALLOWLIST.split(",")
            if host.strip()
        )

    @property
    def profile_ttl_hours(self) -> float:
        return self.PROFILE_TTL_DAYS * 24


settings = Settings()
