"""
Sociality Backend — Me Service
===============================

What:  The authenticated user's own profile, profile updates and personal
       listings (saved posts, liked posts, followers, following).
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sociality.exceptions import ConflictError, ValidationError
from sociality.models import User
from sociality.schemas.common import Page, PageParams
from sociality.schemas.post import PostView
from sociality.schemas.user import FollowUser, MeResponse, UpdateMeRequest
from sociality.services import transformers
from sociality.services.post_service import post_service
from sociality.services.user_service import user_service

logger = logging.getLogger(__name__)


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    trimmed = value.strip()
    return trimmed or None


class MeService:

    async def get_me(self, db: AsyncSession, user_id: uuid.UUID) -> MeResponse:
        user = await user_service.get_by_id(db, user_id)
        return MeResponse(
            profile=transformers.to_me_profile(user),
            stats=await user_service.get_user_stats(db, user.id),
        )

    async def update_me(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        changes: UpdateMeRequest,
        avatar_url: Optional[str] = None,
    ) -> MeResponse:
        """
        Apply the fields present in `changes`.

        For name, phone, bio and avatarUrl a blank value clears the field.
        A blank username is rejected, and a username held by another
        account is a conflict. `avatar_url` (a freshly stored upload)
        takes precedence over `changes.avatar_url`.
        """
        user = await user_service.get_by_id(db, user_id)
        provided = changes.model_fields_set

        if "name" in provided:
            user.name = _blank_to_none(changes.name)

        if "username" in provided:
            desired = (changes.username or "").strip()
            if not desired:
                raise ValidationError("Username cannot be empty", field="username")
            holder = await db.scalar(select(User.id).where(User.username == desired))
            if holder is not None and holder != user.id:
                raise ConflictError("Username already taken", field="username")
            user.username = desired

        if "phone" in provided:
            user.phone = _blank_to_none(changes.phone)

        if "bio" in provided:
            user.bio = _blank_to_none(changes.bio)

        if "avatar_url" in provided:
            user.avatar_url = _blank_to_none(changes.avatar_url)

        if avatar_url:
            user.avatar_url = avatar_url

        try:
            await db.flush()
        except IntegrityError as e:
            await db.rollback()
            raise ConflictError("Username already taken", field="username") from e
        logger.info("User %s updated profile fields %s", user.id, sorted(provided))

        return MeResponse(
            profile=transformers.to_me_profile(user),
            stats=await user_service.get_user_stats(db, user.id),
        )

    async def saved_posts(self, db: AsyncSession, user_id: uuid.UUID, params: PageParams) -> Page[PostView]:
        return await post_service.list_saved_by(db, user_id, params)

    async def liked_posts(self, db: AsyncSession, user_id: uuid.UUID) -> List[PostView]:
        return await post_service.list_liked_by(db, user_id, user_id)

    async def followers(self, db: AsyncSession, user_id: uuid.UUID, params: PageParams) -> Page[FollowUser]:
        return await user_service.list_followers(db, user_id, params, user_id)

    async def following(self, db: AsyncSession, user_id: uuid.UUID, params: PageParams) -> Page[FollowUser]:
        return await user_service.list_following(db, user_id, params, user_id)


# ── Singleton Instance ────────────────────────────────────────────────────
me_service = MeService()
