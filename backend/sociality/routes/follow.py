"""
Sociality Backend — Follow Route Handlers
==========================================

POST /api/follow/{username} and DELETE /api/follow/{username}.
Both are idempotent and return the target's fresh counts.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sociality.database import get_db_session
from sociality.dependencies import Viewer, require_auth
from sociality.schemas.common import ErrorResponse
from sociality.schemas.user import FollowResult
from sociality.services.follow_service import follow_service

router = APIRouter(prefix="/api/follow", tags=["Follow"])

_RESPONSES = {
    400: {"description": "Caller targeted themselves", "model": ErrorResponse},
    401: {"description": "Missing or invalid token", "model": ErrorResponse},
    404: {"description": "User not found", "model": ErrorResponse},
}


@router.post("/{username}", response_model=FollowResult, responses=_RESPONSES, summary="Follow a user")
async def follow(
    username: str,
    viewer: Viewer = Depends(require_auth),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> FollowResult:
    return await follow_service.follow(db, viewer.user_id, username)


@router.delete("/{username}", response_model=FollowResult, responses=_RESPONSES, summary="Unfollow a user")
async def unfollow(
    username: str,
    viewer: Viewer = Depends(require_auth),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> FollowResult:
    return await follow_service.unfollow(db, viewer.user_id, username)
