"""
Database Models for the StreamHouse Service

This module defines the SQLModel database schemas for:
- User: creator accounts and their running point total
- House: creator groups that posts are shared into
- Post: a shared link, with its canonical form for engagement dedup
- PostCollaborator: users credited as collaborators on a post
- Clip: a clip made from someone else's post
- EngagementEvent: append-only point ledger

Design Decisions:
- EngagementEvent is never updated or deleted; dedup is a query-time check
  before insert, backed by the composite indexes below
- total_points is denormalized on User and only ever changed with an atomic
  UPDATE in the same transaction as the ledger insert
- Posts are soft-deleted; TTL visibility is a read-time filter
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text, UniqueConstraint
from sqlmodel import Column, Field, SQLModel

from streamhouse.db.time import utcnow


def new_id() -> str:
    return str(uuid.uuid4())


class EngagementType(str, Enum):
    """Kinds of scored actions recorded in the ledger."""
    ENGAGE = "engage"
    CLIP = "clip"
    COLLAB = "collab"


class User(SQLModel, table=True):
    """
    Creator account.
    
    Only the fields the engagement ledger needs; profile details and
    credentials belong to the account service.
    """
    __tablename__ = "users"
    
    id: str = Field(default_factory=new_id, sa_column=Column(String(36), primary_key=True))
    username: str = Field(sa_column=Column(String(50), nullable=False, unique=True, index=True))
    display_name: str = Field(sa_column=Column(String(100), nullable=False))
    total_points: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )


class House(SQLModel, table=True):
    """Creator group; posts are shared into a house feed."""
    __tablename__ = "houses"
    
    id: str = Field(default_factory=new_id, sa_column=Column(String(36), primary_key=True))
    name: str = Field(sa_column=Column(String(100), nullable=False))
    owner_user_id: str = Field(sa_column=Column(String(36), nullable=False, index=True))
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )


class Post(SQLModel, table=True):
    """
    A link shared into a house.
    
    Fields:
    - original_url: the link as submitted
    - canonical_url: normalized form, used as redirect target and as the
      cross-post dedup key
    - provider: source platform detected from the hostname
    - deleted: soft-delete flag; posts are never hard-deleted
    
    Immutable after creation except for `deleted`.
    """
    __tablename__ = "posts"
    __table_args__ = (
        Index("ix_posts_house_created", "house_id", "created_at"),
        Index("ix_posts_owner_created", "owner_user_id", "created_at"),
    )
    
    id: str = Field(default_factory=new_id, sa_column=Column(String(36), primary_key=True))
    owner_user_id: str = Field(sa_column=Column(String(36), nullable=False))
    house_id: str = Field(sa_column=Column(String(36), nullable=False))
    original_url: str = Field(sa_column=Column(Text, nullable=False))
    canonical_url: str = Field(sa_column=Column(Text, nullable=False, index=True))
    title: str = Field(sa_column=Column(String(200), nullable=False))
    description: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    thumbnail_url: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    provider: str = Field(sa_column=Column(String(20), nullable=False))
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
    deleted: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))


class PostCollaborator(SQLModel, table=True):
    """Users credited on a post by its owner. One row per (post, user)."""
    __tablename__ = "post_collaborators"
    __table_args__ = (
        UniqueConstraint("post_id", "user_id", name="uq_post_collaborators_post_user"),
    )
    
    id: Optional[int] = Field(default=None, primary_key=True)
    post_id: str = Field(sa_column=Column(String(36), nullable=False, index=True))
    user_id: str = Field(sa_column=Column(String(36), nullable=False, index=True))
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )


class Clip(SQLModel, table=True):
    """A clip made by one user from another user's post."""
    __tablename__ = "clips"
    
    id: str = Field(default_factory=new_id, sa_column=Column(String(36), primary_key=True))
    post_id: str = Field(sa_column=Column(String(36), nullable=False, index=True))
    creator_user_id: str = Field(sa_column=Column(String(36), nullable=False, index=True))
    clip_url: str = Field(sa_column=Column(Text, nullable=False))
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True)
    )


class EngagementEvent(SQLModel, table=True):
    """
    Append-only point ledger.
    
    One row per qualifying action. canonical_url is copied from the post at
    event time so the cross-post dedup query needs no join.
    
    Indexes:
    - (user_id, post_id, type, created_at): per-post dedup window
    - (user_id, canonical_url, type, created_at): per-canonical-URL dedup window
    """
    __tablename__ = "engagement_events"
    __table_args__ = (
        Index("ix_engagement_events_user_post", "user_id", "post_id", "type", "created_at"),
        Index("ix_engagement_events_user_canonical", "user_id", "canonical_url", "type", "created_at"),
    )
    
    id: str = Field(default_factory=new_id, sa_column=Column(String(36), primary_key=True))
    user_id: str = Field(sa_column=Column(String(36), nullable=False))
    post_id: str = Field(sa_column=Column(String(36), nullable=False))
    canonical_url: str = Field(sa_column=Column(Text, nullable=False))
    type: str = Field(sa_column=Column(String(16), nullable=False))
    points: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
