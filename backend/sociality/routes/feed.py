"""
Sociality Backend — Feed Route Handler
=======================================

What:  GET /api/feed, every post newest first. Authentication optional:
       anonymous callers get `liked`/`saved` as null.

Pagination:
    ?page=2&limit=12          offset mode; nextCursor is the next page number
    ?cursor=<post id>&limit=12 cursor mode; nextCursor is the next post id

    In cursor mode `pagination` only carries the totals (page is always 1);
    nextCursor alone says whether more posts follow.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from sociality.database import get_db_session
from sociality.dependencies import Viewer, optional_auth, pagination
from sociality.routes import compat
from sociality.schemas.common import ErrorResponse, PageParams
from sociality.services.post_service import post_service

router = APIRouter(prefix="/api", tags=["Feed"])

FEED_DEFAULT_LIMIT = 12


@router.get(
    "/feed",
    responses={400: {"description": "Invalid page, limit or cursor", "model": ErrorResponse}},
    summary="List posts, newest first",
    description=(
        "Offset mode (`page`, `limit`): nextCursor is the next page number. "
        "Cursor mode (`cursor`, `limit`): nextCursor is the id of the next post; "
        "`page` is ignored and pagination.page is always 1, so only "
        "pagination.total, limit and totalPages are meaningful."
    ),
)
async def get_feed(
    params: PageParams = Depends(pagination(FEED_DEFAULT_LIMIT)),
    cursor: Optional[str] = Query(
        default=None,
        description="Post id to start from (inclusive); switches to cursor pagination",
    ),
    viewer: Optional[Viewer] = Depends(optional_auth),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> dict:
    page = await post_service.feed(
        db,
        params,
        viewer.user_id if viewer else None,
        cursor=cursor,
    )
    return compat.feed_view(page)
