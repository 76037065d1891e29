"""
Sociality Backend — Comment Route Handlers
===========================================

DELETE /api/comments/{id}: allowed for the comment's author and for the
author of the post it was left on.
"""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sociality.database import get_db_session
from sociality.dependencies import Viewer, require_auth
from sociality.schemas.common import ErrorResponse
from sociality.schemas.post import OkResponse
from sociality.services.post_service import post_service

router = APIRouter(prefix="/api/comments", tags=["Comments"])


@router.delete(
    "/{comment_id}",
    response_model=OkResponse,
    responses={
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
        403: {"description": "Not the comment or post author", "model": ErrorResponse},
        404: {"description": "Comment not found", "model": ErrorResponse},
    },
    summary="Delete a comment",
)
async def delete_comment(
    comment_id: uuid.UUID,
    viewer: Viewer = Depends(require_auth),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> OkResponse:
    await post_service.delete_comment(db, comment_id, viewer.user_id)
    return OkResponse()
