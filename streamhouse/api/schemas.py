"""
API Request and Response Schemas

This module defines all Pydantic models for API requests and responses.
Separated from endpoints to keep concerns separated and enable reuse.

Design Principles:
- Request models: Define input validation
- Response models: Define output structure
- Wire format is camelCase; Python attributes stay snake_case
- Response models read straight from ORM rows (from_attributes)
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel

from streamhouse.db.time import as_utc


class CamelModel(BaseModel):
    """Base model serializing to and accepting camelCase keys."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class TimestampedModel(CamelModel):
    created_at: datetime
    
    @field_serializer("created_at")
    def serialize_created_at(self, value: datetime) -> str:
        return as_utc(value).isoformat()


# Requests

class CreateUserRequest(CamelModel):
    """Request model for user creation."""
    username: str = Field(..., min_length=1, max_length=50, pattern=r"^[A-Za-z0-9_.-]+$")
    display_name: str = Field(..., min_length=1, max_length=100)


class CreateHouseRequest(CamelModel):
    """Request model for house creation."""
    name: str = Field(..., min_length=1, max_length=100)


class CreatePostRequest(CamelModel):
    """Request model for post creation. The URL is validated by the post service."""
    house_id: str = Field(..., description="House to share the post into")
    url: str = Field(..., description="The link being shared")
    title: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None


class CreateClipRequest(CamelModel):
    """Request model for clip submission."""
    post_id: str = Field(..., description="Post the clip was made from")
    clip_url: str = Field(..., description="Link to the clip")


class AddCollaboratorsRequest(CamelModel):
    collaborator_user_ids: list[str] = Field(..., min_length=1)


# Responses

class UserResponse(TimestampedModel):
    id: str
    username: str
    display_name: str
    total_points: int


class HouseResponse(TimestampedModel):
    id: str
    name: str
    owner_user_id: str


class PostResponse(TimestampedModel):
    """Response model for a post."""
    id: str
    owner_user_id: str
    house_id: str
    original_url: str
    canonical_url: str
    title: str
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    provider: str


class ClipResponse(TimestampedModel):
    """Response model for a clip."""
    id: str
    post_id: str
    creator_user_id: str
    clip_url: str


class AddCollaboratorsResponse(CamelModel):
    added: list[str]


class FeedResponse(CamelModel):
    """Posts still inside the house feed window, newest first."""
    house_id: str
    items: list[PostResponse]


class PostPage(CamelModel):
    items: list[PostResponse]
    page: int
    page_size: int
    total: int


class ClipPage(CamelModel):
    items: list[ClipResponse]
    page: int
    page_size: int
    total: int


class PointsBucket(CamelModel):
    count: int
    total: int


class PointsBreakdown(CamelModel):
    """Points per engagement type; every type is always present."""
    engage: PointsBucket
    clip: PointsBucket
    collab: PointsBucket


class PointsResponse(CamelModel):
    """Response model for the points endpoint."""
    user_id: str
    total_points: int
    breakdown: PointsBreakdown


class ProfileUser(CamelModel):
    id: str
    username: str
    display_name: str
    total_points: int


class ProfileResponse(CamelModel):
    """Response model for a public profile."""
    user: ProfileUser
    posts: PostPage
    clips_made: ClipPage
    points_breakdown: PointsBreakdown
