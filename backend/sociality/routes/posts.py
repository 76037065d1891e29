"""
Sociality Backend — Post Route Handlers
========================================

What:  Post creation/deletion, likes, saves, a post's comments and likers.

Request Flow (POST /api/posts):
    1. require_auth resolves the caller (401 otherwise)
    2. The multipart `image` part is validated, resized and stored
    3. PostService inserts the row pointing at the stored file's URL
    4. If step 3 or the commit fails, upload_batch removes the stored file
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from sociality.database import get_db_session
from sociality.dependencies import Viewer, optional_auth, pagination, require_auth, upload_batch
from sociality.exceptions import ValidationError
from sociality.routes import compat
from sociality.schemas.common import ErrorResponse, PageParams
from sociality.schemas.post import (
    MAX_CAPTION_LENGTH,
    CommentCreateRequest,
    CommentView,
    LikeResult,
    OkResponse,
    PostView,
    SaveResult,
)
from sociality.services.post_service import post_service
from sociality.services.upload_service import UploadBatch

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/posts", tags=["Posts"])

COMMENTS_DEFAULT_LIMIT = 10
LIKERS_DEFAULT_LIMIT = 20

_NOT_FOUND = {404: {"description": "Post not found", "model": ErrorResponse}}
_UNAUTHORIZED = {401: {"description": "Missing or invalid token", "model": ErrorResponse}}


@router.post(
    "",
    status_code=201,
    response_model=PostView,
    responses={
        400: {"description": "Missing or unsupported image, caption too long", "model": ErrorResponse},
        **_UNAUTHORIZED,
    },
    summary="Publish a photo",
    description="Multipart form with an `image` file (JPEG, PNG or AVIF, max 10MB) and an optional `caption`.",
)
async def create_post(
    image: Optional[UploadFile] = File(default=None, description="Photo to publish"),
    caption: Optional[str] = Form(default=None, max_length=MAX_CAPTION_LENGTH),
    viewer: Viewer = Depends(require_auth),
    uploads: UploadBatch = Depends(upload_batch, scope="function"),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> PostView:
    if image is None:
        raise ValidationError("Image upload is required", field="image")

    content = await image.read()
    stored = await uploads.save_image(image.filename, image.content_type, content)
    return await post_service.create_post(db, viewer.user_id, stored.url, caption)


@router.get(
    "/{post_id}",
    response_model=PostView,
    responses=_NOT_FOUND,
    summary="Get a single post",
)
async def get_post(
    post_id: uuid.UUID,
    viewer: Optional[Viewer] = Depends(optional_auth),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> PostView:
    return await post_service.get_post(db, post_id, viewer.user_id if viewer else None)


@router.delete(
    "/{post_id}",
    response_model=OkResponse,
    responses={
        **_UNAUTHORIZED,
        403: {"description": "Caller is not the author", "model": ErrorResponse},
        **_NOT_FOUND,
    },
    summary="Delete a post with its comments, likes and saves",
)
async def delete_post(
    post_id: uuid.UUID,
    viewer: Viewer = Depends(require_auth),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> OkResponse:
    await post_service.delete_post(db, post_id, viewer.user_id)
    return OkResponse()


# ── Likes ─────────────────────────────────────────────────────────────────

@router.post(
    "/{post_id}/like",
    response_model=LikeResult,
    responses={**_UNAUTHORIZED, **_NOT_FOUND},
    summary="Like a post (idempotent)",
)
async def like_post(
    post_id: uuid.UUID,
    viewer: Viewer = Depends(require_auth),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> LikeResult:
    return await post_service.like(db, post_id, viewer.user_id)


@router.delete(
    "/{post_id}/like",
    response_model=LikeResult,
    responses=_UNAUTHORIZED,
    summary="Remove a like (idempotent)",
)
async def unlike_post(
    post_id: uuid.UUID,
    viewer: Viewer = Depends(require_auth),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> LikeResult:
    return await post_service.unlike(db, post_id, viewer.user_id)


@router.get(
    "/{post_id}/likes",
    responses=_NOT_FOUND,
    summary="Users who liked a post, newest like first",
)
async def list_post_likes(
    post_id: uuid.UUID,
    params: PageParams = Depends(pagination(LIKERS_DEFAULT_LIMIT)),
    viewer: Optional[Viewer] = Depends(optional_auth),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> dict:
    page = await post_service.list_likers(db, post_id, params, viewer.user_id if viewer else None)
    return compat.likers_view(page)


# ── Saves ─────────────────────────────────────────────────────────────────

@router.post(
    "/{post_id}/save",
    response_model=SaveResult,
    responses={**_UNAUTHORIZED, **_NOT_FOUND},
    summary="Save a post (idempotent)",
)
async def save_post(
    post_id: uuid.UUID,
    viewer: Viewer = Depends(require_auth),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> SaveResult:
    return await post_service.save(db, post_id, viewer.user_id)


@router.delete(
    "/{post_id}/save",
    response_model=SaveResult,
    responses=_UNAUTHORIZED,
    summary="Remove a save (idempotent)",
)
async def unsave_post(
    post_id: uuid.UUID,
    viewer: Viewer = Depends(require_auth),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> SaveResult:
    return await post_service.unsave(db, post_id, viewer.user_id)


# ── Comments ──────────────────────────────────────────────────────────────

@router.get(
    "/{post_id}/comments",
    responses=_NOT_FOUND,
    summary="A post's comments, oldest first",
)
async def list_comments(
    post_id: uuid.UUID,
    params: PageParams = Depends(pagination(COMMENTS_DEFAULT_LIMIT)),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> dict:
    page = await post_service.list_comments(db, post_id, params)
    return compat.comments_view(page)


@router.post(
    "/{post_id}/comments",
    status_code=201,
    response_model=CommentView,
    responses={
        400: {"description": "Empty or too long comment", "model": ErrorResponse},
        **_UNAUTHORIZED,
        **_NOT_FOUND,
    },
    summary="Comment on a post",
    description="The text may be sent as `body`, `text` or `comment`; the first present wins.",
)
async def add_comment(
    post_id: uuid.UUID,
    payload: CommentCreateRequest,
    viewer: Viewer = Depends(require_auth),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> CommentView:
    return await post_service.create_comment(db, post_id, viewer.user_id, payload)
