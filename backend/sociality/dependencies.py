"""
Sociality Backend — Shared FastAPI Dependencies
================================================

What:  Caller identity, pagination parameters and per-request uploads for route handlers.

Identity:
    optional_auth → Viewer | None   (anonymous callers allowed)
    require_auth  → Viewer          (401 "Unauthorized" otherwise)

    Both read `Authorization: Bearer <token>`. HTTPBearer runs with
    auto_error=False so a missing header reaches our own handler and is
    reported in the standard error shape.

Pagination:
    pagination(default_limit) builds a dependency that validates `page` and
    `limit` query parameters; out-of-range values become a 400.

Uploads:
    upload_batch yields an UploadBatch. Declare it before the database
    session (both with scope="function"): dependencies unwind in reverse, so
    the session commits first and a failed commit still reaches the batch,
    which deletes the files it stored.
"""

import uuid
from dataclasses import dataclass
from typing import AsyncGenerator, Callable, Optional

from fastapi import Depends, Query
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from sociality.exceptions import AuthenticationError
from sociality.models import Role
from sociality.schemas.common import MAX_PAGE_LIMIT, PageParams
from sociality.services.auth_service import auth_service
from sociality.services.upload_service import UploadBatch, upload_service

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Viewer:
    """The authenticated caller, as asserted by a verified token."""

    user_id: uuid.UUID
    role: Role = Role.USER


async def optional_auth(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[Viewer]:
    if credentials is None:
        return None
    claims = auth_service.verify_token(credentials.credentials)
    if claims is None:
        return None
    return Viewer(user_id=claims.user_id, role=claims.role)


async def require_auth(viewer: Optional[Viewer] = Depends(optional_auth)) -> Viewer:
    if viewer is None:
        raise AuthenticationError("Unauthorized")
    return viewer


def pagination(default_limit: int = 20) -> Callable[..., PageParams]:
    def dependency(
        page: int = Query(1, ge=1, description="1-based page number"),
        limit: int = Query(
            default_limit,
            ge=1,
            le=MAX_PAGE_LIMIT,
            description=f"Items per page (max {MAX_PAGE_LIMIT})",
        ),
    ) -> PageParams:
        return PageParams(page=page, limit=limit)

    return dependency


async def upload_batch() -> AsyncGenerator[UploadBatch, None]:
    batch = UploadBatch(upload_service)
    try:
        yield batch
    except Exception:
        await batch.discard()
        raise
