"""
FastAPI Endpoints for the StreamHouse Engagement Service

This module defines all REST API endpoints with minimal logic.
Endpoints only handle:
- Request validation (Pydantic models)
- Caller identity (X-User-Id header)
- Rate limiting
- Error handling and HTTP responses
- Delegating to service layer

All business logic is in services.

Design Principles:
- Thin endpoints: Only validation and rate limiting
- Service layer: All business logic, raising domain exceptions
- Error handling: domain exceptions mapped to HTTP status codes in one place
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, Response, status
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from streamhouse.api.schemas import (
    AddCollaboratorsRequest,
    AddCollaboratorsResponse,
    ClipResponse,
    CreateClipRequest,
    CreateHouseRequest,
    CreatePostRequest,
    CreateUserRequest,
    FeedResponse,
    HouseResponse,
    PointsResponse,
    PostResponse,
    ProfileResponse,
    UserResponse,
)
from streamhouse.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidURLError,
    NotFoundError,
    RateLimitedError,
    SelfActionError,
    StorageUnavailableError,
    StreamHouseError,
)
from streamhouse.core.rate_limit import RATE_LIMITS, limiter
from streamhouse.core.setting import settings
from streamhouse.core.validators import sanitize_identifier
from streamhouse.db.session import get_session
from streamhouse.services.directory_service import DirectoryService
from streamhouse.services.engagement_ledger import EngagementLedger
from streamhouse.services.points_service import PointsService
from streamhouse.services.post_service import PostService
from streamhouse.services.profile_service import ProfileService
from streamhouse.services.redirect_service import RedirectService

router = APIRouter()


def get_client_ip(request: Request) -> str:
    """
    Extract client IP address from request.
    
    Handles proxies and load balancers by checking X-Forwarded-For header.
    
    Args:
        request: FastAPI Request object
    
    Returns:
        IP address as string
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # X-Forwarded-For can contain multiple IPs, take the first one
        return forwarded_for.split(",")[0].strip()
    
    return request.client.host if request.client else "unknown"


async def get_current_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    """
    Identify the caller from the X-User-Id header.
    
    Raises:
        HTTPException 401: If the header is missing or malformed
    """
    user_id = sanitize_identifier(x_user_id) if x_user_id else None
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid X-User-Id header"
        )
    return user_id


def to_http_exception(error: StreamHouseError) -> HTTPException:
    """
    Translate a domain exception into an HTTPException.
    
    Subclasses are checked before their parents (SelfActionError before
    ForbiddenError, StorageUnavailableError before DatabaseError).
    """
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    if isinstance(error, SelfActionError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
    if isinstance(error, ForbiddenError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(error))
    if isinstance(error, RateLimitedError):
        return HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=str(error))
    if isinstance(error, InvalidURLError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
    if isinstance(error, ConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(error))
    if isinstance(error, StorageUnavailableError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(error),
            headers={"Retry-After": str(max(1, int(settings.DATABASE_TIMEOUT_SECONDS)))}
        )
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(error))


async def _require_post(session: AsyncSession, post_id: str):
    clean_id = sanitize_identifier(post_id)
    post = await PostService(session).get_post(clean_id) if clean_id else None
    if post is None:
        raise NotFoundError("post", post_id)
    return post


@router.get(
    "/r/{post_id}",
    status_code=status.HTTP_302_FOUND,
    summary="Open a post's link",
    description="Records the click-through for engagement points and redirects to the canonical URL"
)
async def redirect_to_post(
    post_id: str,
    request: Request,
    u: Optional[str] = Query(default=None, description="Viewer user id"),
    session: AsyncSession = Depends(get_session)
) -> RedirectResponse:
    """
    Redirect to a post's canonical URL.
    
    The redirect is issued whether or not points were awarded.
    
    Raises:
        HTTPException 404: If the post is missing or deleted
        HTTPException 403: If the target domain is not allowed
        HTTPException 429: If rate limit exceeded
        HTTPException 503: If storage is unavailable
    """
    try:
        target = await RedirectService(session).resolve(post_id, u, get_client_ip(request))
    except StreamHouseError as e:
        raise to_http_exception(e)
    
    return RedirectResponse(url=target, status_code=status.HTTP_302_FOUND)


@router.post(
    "/clips",
    response_model=ClipResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a clip",
    description="Stores a clip of someone else's post and awards clip points"
)
@limiter.limit(RATE_LIMITS["clips"])
async def create_clip(
    request: Request,  # Required for rate limiting (slowapi expects parameter named 'request')
    body: CreateClipRequest,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session)
) -> ClipResponse:
    try:
        post = await _require_post(session, body.post_id)
        clip = await EngagementLedger(session).record_clip(user_id, post, body.clip_url.strip())
    except StreamHouseError as e:
        raise to_http_exception(e)
    
    return ClipResponse.model_validate(clip)


@router.post(
    "/posts",
    response_model=PostResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Share a link into a house"
)
@limiter.limit(RATE_LIMITS["posts"])
async def create_post(
    request: Request,
    body: CreatePostRequest,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session)
) -> PostResponse:
    try:
        post = await PostService(session).create_post(
            owner_user_id=user_id,
            house_id=body.house_id,
            url=body.url,
            title=body.title,
            description=body.description,
            thumbnail_url=body.thumbnail_url,
        )
    except StreamHouseError as e:
        raise to_http_exception(e)
    
    return PostResponse.model_validate(post)


@router.delete(
    "/posts/{post_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Soft-delete a post (owner only)"
)
async def delete_post(
    post_id: str,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session)
) -> Response:
    try:
        await PostService(session).soft_delete(post_id, user_id)
    except StreamHouseError as e:
        raise to_http_exception(e)
    
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/posts/{post_id}/collaborators",
    response_model=AddCollaboratorsResponse,
    summary="Credit collaborators on a post (owner only)"
)
async def add_collaborators(
    post_id: str,
    body: AddCollaboratorsRequest,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session)
) -> AddCollaboratorsResponse:
    try:
        post = await _require_post(session, post_id)
        added = await EngagementLedger(session).record_collab(user_id, post, body.collaborator_user_ids)
    except StreamHouseError as e:
        raise to_http_exception(e)
    
    return AddCollaboratorsResponse(added=added)


@router.get(
    "/houses/{house_id}/feed",
    response_model=FeedResponse,
    summary="House activity feed",
    description="Posts in the house that are still inside the feed window"
)
@limiter.limit(RATE_LIMITS["reads"])
async def get_house_feed(
    house_id: str,
    request: Request,
    session: AsyncSession = Depends(get_session)
) -> FeedResponse:
    try:
        posts = await PostService(session).list_house_feed(house_id)
    except StreamHouseError as e:
        raise to_http_exception(e)
    
    return FeedResponse.model_validate({"house_id": house_id, "items": posts}, from_attributes=True)


@router.get(
    "/users/{username}",
    response_model=ProfileResponse,
    summary="Public profile",
    description="User, posts still inside the profile window, clips made and points breakdown"
)
@limiter.limit(RATE_LIMITS["reads"])
async def get_profile(
    username: str,
    request: Request,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=12, ge=1, le=100, alias="pageSize"),
    session: AsyncSession = Depends(get_session)
) -> ProfileResponse:
    try:
        profile = await ProfileService(session).get_profile(username, page=page, page_size=page_size)
    except StreamHouseError as e:
        raise to_http_exception(e)
    
    return ProfileResponse.model_validate(profile, from_attributes=True)


@router.get(
    "/users/{user_id}/points",
    response_model=PointsResponse,
    summary="Points total and breakdown"
)
@limiter.limit(RATE_LIMITS["reads"])
async def get_points(
    user_id: str,
    request: Request,
    session: AsyncSession = Depends(get_session)
) -> PointsResponse:
    try:
        points = await PointsService(session).get_points(user_id)
    except StreamHouseError as e:
        raise to_http_exception(e)
    
    return PointsResponse.model_validate(points)


@router.post(
    "/users",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a user"
)
async def create_user(
    body: CreateUserRequest,
    session: AsyncSession = Depends(get_session)
) -> UserResponse:
    try:
        user = await DirectoryService(session).create_user(body.username, body.display_name)
    except StreamHouseError as e:
        raise to_http_exception(e)
    
    return UserResponse.model_validate(user)


@router.post(
    "/houses",
    response_model=HouseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a house owned by the caller"
)
async def create_house(
    body: CreateHouseRequest,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session)
) -> HouseResponse:
    try:
        house = await DirectoryService(session).create_house(user_id, body.name)
    except StreamHouseError as e:
        raise to_http_exception(e)
    
    return HouseResponse.model_validate(house)
