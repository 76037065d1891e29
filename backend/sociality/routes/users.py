"""
Sociality Backend — User Route Handlers
========================================

What:  Public profiles, user search, a user's posts and liked posts, and
       follower/following lists. Authentication is optional everywhere;
       it only changes the viewer-relative flags (isMe, isFollowing,
       isFollowedByMe, liked, saved).

Route order matters: /search is declared before /{username}.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from sociality.database import get_db_session
from sociality.dependencies import Viewer, optional_auth, pagination
from sociality.routes import compat
from sociality.schemas.common import ErrorResponse, PageParams
from sociality.schemas.user import PublicUser
from sociality.services.post_service import post_service
from sociality.services.user_service import user_service

router = APIRouter(prefix="/api/users", tags=["Users"])

_NOT_FOUND = {404: {"description": "User not found", "model": ErrorResponse}}


def _viewer_id(viewer: Optional[Viewer]):
    return viewer.user_id if viewer else None


def _wants_envelope(request: Request) -> bool:
    return "page" in request.query_params or "limit" in request.query_params


@router.get("/search", summary="Search users by username, name or email")
async def search_users(
    q: Optional[str] = Query(default=None, max_length=100, description="Case-insensitive substring"),
    params: PageParams = Depends(pagination()),
    viewer: Optional[Viewer] = Depends(optional_auth),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> dict:
    page = await user_service.search_users(db, q, params, _viewer_id(viewer))
    return compat.search_view(page)


@router.get("/{username}", response_model=PublicUser, responses=_NOT_FOUND, summary="Public profile")
async def get_profile(
    username: str,
    viewer: Optional[Viewer] = Depends(optional_auth),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> PublicUser:
    return await user_service.get_public_profile(db, username, _viewer_id(viewer))


@router.get("/{username}/posts", responses=_NOT_FOUND, summary="All posts by a user, newest first")
async def get_user_posts(
    username: str,
    viewer: Optional[Viewer] = Depends(optional_auth),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> dict:
    user = await user_service.find_by_username(db, username)
    posts = await post_service.list_by_author(db, user.id, _viewer_id(viewer))
    return compat.user_posts_view(posts)


@router.get("/{username}/likes", responses=_NOT_FOUND, summary="Posts a user liked, newest like first")
async def get_user_likes(
    username: str,
    viewer: Optional[Viewer] = Depends(optional_auth),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> dict:
    user = await user_service.find_by_username(db, username)
    posts = await post_service.list_liked_by(db, user.id, _viewer_id(viewer))
    return compat.user_posts_view(posts)


@router.get(
    "/{username}/followers",
    response_model=None,
    responses=_NOT_FOUND,
    summary="A user's followers",
    description="Bare array unless `page` or `limit` is given, then a paginated envelope.",
)
async def get_followers(
    username: str,
    request: Request,
    params: PageParams = Depends(pagination()),
    viewer: Optional[Viewer] = Depends(optional_auth),
    db: AsyncSession = Depends(get_db_session, scope="function"),
):
    user = await user_service.find_by_username(db, username)
    page = await user_service.list_followers(db, user.id, params, _viewer_id(viewer))
    return compat.follow_list_view(page, "followers", _wants_envelope(request))


@router.get(
    "/{username}/following",
    response_model=None,
    responses=_NOT_FOUND,
    summary="Users a user follows",
    description="Bare array unless `page` or `limit` is given, then a paginated envelope.",
)
async def get_following(
    username: str,
    request: Request,
    params: PageParams = Depends(pagination()),
    viewer: Optional[Viewer] = Depends(optional_auth),
    db: AsyncSession = Depends(get_db_session, scope="function"),
):
    user = await user_service.find_by_username(db, username)
    page = await user_service.list_following(db, user.id, params, _viewer_id(viewer))
    return compat.follow_list_view(page, "following", _wants_envelope(request))
