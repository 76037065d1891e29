"""
Sociality Backend — Follow Service
===================================

What:  Create and remove follow edges (follower → following) by username.

Both operations are idempotent: following twice leaves one edge, and
unfollowing someone you do not follow is not an error. Either way the
response carries the target's fresh stats.
"""

import logging
import uuid

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from sociality.database import insert_ignore_duplicate
from sociality.exceptions import ValidationError
from sociality.models import Follow
from sociality.schemas.user import FollowResult
from sociality.services.user_service import user_service

logger = logging.getLogger(__name__)


class FollowService:

    async def follow(self, db: AsyncSession, follower_id: uuid.UUID, username: str) -> FollowResult:
        target = await user_service.find_by_username(db, username)
        if target.id == follower_id:
            raise ValidationError("You cannot follow yourself", field="username")

        await insert_ignore_duplicate(
            db,
            Follow,
            ["follower_id", "following_id"],
            id=uuid.uuid4(),
            follower_id=follower_id,
            following_id=target.id,
        )
        logger.info("User %s followed @%s", follower_id, target.username)

        return FollowResult(
            message=f"You are now following @{target.username}",
            following=True,
            counts=await user_service.get_user_stats(db, target.id),
        )

    async def unfollow(self, db: AsyncSession, follower_id: uuid.UUID, username: str) -> FollowResult:
        target = await user_service.find_by_username(db, username)
        if target.id == follower_id:
            raise ValidationError("You cannot unfollow yourself", field="username")

        await db.execute(
            delete(Follow).where(
                Follow.follower_id == follower_id,
                Follow.following_id == target.id,
            )
        )
        logger.info("User %s unfollowed @%s", follower_id, target.username)

        return FollowResult(
            message=f"You unfollowed @{target.username}",
            following=False,
            counts=await user_service.get_user_stats(db, target.id),
        )


# ── Singleton Instance ────────────────────────────────────────────────────
follow_service = FollowService()
