"""
Sociality Backend — Me Route Handlers
======================================

What:  The authenticated caller's own profile and personal listings.

PATCH /api/me accepts either:
    - application/json:     {"name": ..., "username": ..., "avatarUrl": ...}
    - multipart/form-data:  the same fields as form fields, plus an optional
                            `avatar` image file that overrides avatarUrl
Only fields present in the request are changed.
"""

import logging
from typing import Any, Dict, Optional, Tuple

from fastapi import APIRouter, Depends, Request
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile

from sociality.database import get_db_session
from sociality.dependencies import Viewer, pagination, require_auth, upload_batch
from sociality.exceptions import ValidationError
from sociality.routes import compat
from sociality.schemas.common import ErrorResponse, PageParams
from sociality.schemas.user import MeResponse, UpdateMeRequest
from sociality.services.me_service import me_service
from sociality.services.upload_service import StoredImage, UploadBatch

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/me", tags=["Me"])

_UNAUTHORIZED = {401: {"description": "Missing or invalid token", "model": ErrorResponse}}

_FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


async def _read_update_body(request: Request) -> Tuple[Dict[str, Any], Optional[UploadFile]]:
    """Split a PATCH body into plain fields and the optional avatar upload."""
    content_type = request.headers.get("content-type", "").lower()

    if content_type.startswith(_FORM_CONTENT_TYPES):
        form = await request.form()
        fields = {key: value for key, value in form.items() if isinstance(value, str)}
        avatar = form.get("avatar")
        if isinstance(avatar, UploadFile) and avatar.filename:
            return fields, avatar
        return fields, None

    raw = await request.body()
    if not raw.strip():
        return {}, None
    try:
        payload = await request.json()
    except ValueError:
        raise ValidationError("Request body must be valid JSON") from None
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload, None


@router.get("", response_model=MeResponse, responses=_UNAUTHORIZED, summary="Own profile and stats")
async def get_me(
    viewer: Viewer = Depends(require_auth),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> MeResponse:
    return await me_service.get_me(db, viewer.user_id)


@router.patch(
    "",
    response_model=MeResponse,
    responses={
        400: {"description": "Invalid field, empty or taken username", "model": ErrorResponse},
        **_UNAUTHORIZED,
    },
    summary="Update own profile",
    description="JSON or multipart form. A multipart `avatar` image replaces avatarUrl.",
)
async def update_me(
    request: Request,
    viewer: Viewer = Depends(require_auth),
    uploads: UploadBatch = Depends(upload_batch, scope="function"),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> MeResponse:
    fields, avatar = await _read_update_body(request)
    try:
        changes = UpdateMeRequest.model_validate(fields)
    except PydanticValidationError as e:
        raise RequestValidationError(e.errors(include_url=False)) from e

    stored: Optional[StoredImage] = None
    if avatar is not None:
        stored = await uploads.save_image(avatar.filename, avatar.content_type, await avatar.read())

    return await me_service.update_me(
        db,
        viewer.user_id,
        changes,
        avatar_url=stored.url if stored else None,
    )


@router.get("/saved", responses=_UNAUTHORIZED, summary="Posts I saved, newest save first")
async def get_my_saved(
    params: PageParams = Depends(pagination()),
    viewer: Viewer = Depends(require_auth),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> dict:
    page = await me_service.saved_posts(db, viewer.user_id, params)
    return compat.saved_view(page)


@router.get("/likes", responses=_UNAUTHORIZED, summary="Posts I liked, newest like first")
async def get_my_likes(
    viewer: Viewer = Depends(require_auth),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> list:
    posts = await me_service.liked_posts(db, viewer.user_id)
    return compat.post_list_view(posts)


@router.get("/followers", responses=_UNAUTHORIZED, summary="My followers")
async def get_my_followers(
    params: PageParams = Depends(pagination()),
    viewer: Viewer = Depends(require_auth),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> dict:
    page = await me_service.followers(db, viewer.user_id, params)
    return compat.me_follow_list_view(page, "followers")


@router.get("/following", responses=_UNAUTHORIZED, summary="Users I follow")
async def get_my_following(
    params: PageParams = Depends(pagination()),
    viewer: Viewer = Depends(require_auth),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> dict:
    page = await me_service.following(db, viewer.user_id, params)
    return compat.me_follow_list_view(page, "following")
