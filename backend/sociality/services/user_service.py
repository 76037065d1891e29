"""
Sociality Backend — User Service
=================================

What:  User lookup, aggregate stats, viewer-relative follow state, search
       and follower/following listings.

Batching:
    Listing endpoints render many users at once. Stats for any number of
    users cost four grouped aggregate queries (posts, followers, following,
    likes received), and the viewer's follow state against a whole page
    costs one query. Nothing here issues a query per row.
"""

import logging
import uuid
from typing import Dict, Iterable, List, Optional, Set

from sqlalchemy import Select, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from sociality.exceptions import NotFoundError
from sociality.models import Follow, Like, Post, User
from sociality.schemas.common import Page, PageMeta, PageParams
from sociality.schemas.user import FollowUser, PublicUser, SearchUser, UserStats
from sociality.services import transformers

logger = logging.getLogger(__name__)


class UserService:

    # ── Lookup ────────────────────────────────────────────────────────────

    async def find_by_username(self, db: AsyncSession, username: str) -> User:
        user = await db.scalar(select(User).where(User.username == username))
        if user is None:
            raise NotFoundError("user", username)
        return user

    async def get_by_id(self, db: AsyncSession, user_id: uuid.UUID) -> User:
        user = await db.get(User, user_id)
        if user is None:
            raise NotFoundError("user", str(user_id))
        return user

    # ── Stats ─────────────────────────────────────────────────────────────

    async def stats_for_users(
        self, db: AsyncSession, user_ids: Iterable[uuid.UUID]
    ) -> Dict[uuid.UUID, UserStats]:
        """
        Compute {posts, followers, following, likes} for every id in `user_ids`.

        Users missing from a grouped result simply keep 0 for that counter.
        """
        ids = list(dict.fromkeys(user_ids))
        if not ids:
            return {}

        stats = {user_id: UserStats() for user_id in ids}

        post_counts = await db.execute(
            select(Post.author_id, func.count(Post.id))
            .where(Post.author_id.in_(ids))
            .group_by(Post.author_id)
        )
        for user_id, count in post_counts:
            stats[user_id].posts = count

        follower_counts = await db.execute(
            select(Follow.following_id, func.count(Follow.id))
            .where(Follow.following_id.in_(ids))
            .group_by(Follow.following_id)
        )
        for user_id, count in follower_counts:
            stats[user_id].followers = count

        following_counts = await db.execute(
            select(Follow.follower_id, func.count(Follow.id))
            .where(Follow.follower_id.in_(ids))
            .group_by(Follow.follower_id)
        )
        for user_id, count in following_counts:
            stats[user_id].following = count

        likes_received = await db.execute(
            select(Post.author_id, func.count(Like.id))
            .join(Like, Like.post_id == Post.id)
            .where(Post.author_id.in_(ids))
            .group_by(Post.author_id)
        )
        for user_id, count in likes_received:
            stats[user_id].likes = count

        return stats

    async def get_user_stats(self, db: AsyncSession, user_id: uuid.UUID) -> UserStats:
        stats = await self.stats_for_users(db, [user_id])
        return stats.get(user_id, UserStats())

    # ── Follow state ──────────────────────────────────────────────────────

    async def is_following(
        self,
        db: AsyncSession,
        follower_id: Optional[uuid.UUID],
        following_id: uuid.UUID,
    ) -> bool:
        if follower_id is None or follower_id == following_id:
            return False
        edge = await db.scalar(
            select(Follow.id).where(
                Follow.follower_id == follower_id,
                Follow.following_id == following_id,
            )
        )
        return edge is not None

    async def resolve_following_set(
        self,
        db: AsyncSession,
        viewer_id: Optional[uuid.UUID],
        user_ids: Iterable[uuid.UUID],
    ) -> Set[uuid.UUID]:
        """Subset of `user_ids` the viewer follows, in one query. Empty for anonymous viewers."""
        ids = list(user_ids)
        if viewer_id is None or not ids:
            return set()
        rows = await db.scalars(
            select(Follow.following_id).where(
                Follow.follower_id == viewer_id,
                Follow.following_id.in_(ids),
            )
        )
        return set(rows)

    async def follow_user_views(
        self,
        db: AsyncSession,
        users: List[User],
        viewer_id: Optional[uuid.UUID],
    ) -> List[FollowUser]:
        ids = [user.id for user in users]
        stats = await self.stats_for_users(db, ids)
        following = await self.resolve_following_set(db, viewer_id, ids)
        return [
            transformers.to_follow_user(
                user,
                stats.get(user.id, UserStats()),
                viewer_id,
                user.id in following,
            )
            for user in users
        ]

    # ── Profile ───────────────────────────────────────────────────────────

    async def get_public_profile(
        self,
        db: AsyncSession,
        username: str,
        viewer_id: Optional[uuid.UUID],
    ) -> PublicUser:
        user = await self.find_by_username(db, username)
        stats = await self.get_user_stats(db, user.id)
        follows = await self.is_following(db, viewer_id, user.id)
        return transformers.to_public_user(user, stats, viewer_id, follows)

    # ── Search ────────────────────────────────────────────────────────────

    async def search_users(
        self,
        db: AsyncSession,
        query: Optional[str],
        params: PageParams,
        viewer_id: Optional[uuid.UUID],
    ) -> Page[SearchUser]:
        """
        Case-insensitive substring match on username, name or email.

        An empty query lists every user. Results are ordered by name, then
        username, both ascending.
        """
        needle = (query or "").strip()
        condition = None
        if needle:
            condition = or_(
                User.username.icontains(needle, autoescape=True),
                User.name.icontains(needle, autoescape=True),
                User.email.icontains(needle, autoescape=True),
            )

        count_stmt = select(func.count(User.id))
        stmt = select(User).order_by(User.name.asc(), User.username.asc())
        if condition is not None:
            count_stmt = count_stmt.where(condition)
            stmt = stmt.where(condition)

        total = await db.scalar(count_stmt) or 0
        users = list(await db.scalars(stmt.offset(params.offset).limit(params.limit)))
        following = await self.resolve_following_set(db, viewer_id, [u.id for u in users])

        return Page[SearchUser](
            items=[transformers.to_search_user(u, viewer_id, u.id in following) for u in users],
            meta=PageMeta.build(params.page, params.limit, total),
        )

    # ── Follow lists ──────────────────────────────────────────────────────

    async def list_followers(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        params: PageParams,
        viewer_id: Optional[uuid.UUID],
    ) -> Page[FollowUser]:
        """Users following `user_id`, most recent follow first."""
        return await self._follow_page(
            db,
            select(User).join(Follow, Follow.follower_id == User.id).where(
                Follow.following_id == user_id
            ),
            select(func.count(Follow.id)).where(Follow.following_id == user_id),
            params,
            viewer_id,
        )

    async def list_following(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        params: PageParams,
        viewer_id: Optional[uuid.UUID],
    ) -> Page[FollowUser]:
        """Users `user_id` follows, most recent follow first."""
        return await self._follow_page(
            db,
            select(User).join(Follow, Follow.following_id == User.id).where(
                Follow.follower_id == user_id
            ),
            select(func.count(Follow.id)).where(Follow.follower_id == user_id),
            params,
            viewer_id,
        )

    async def _follow_page(
        self,
        db: AsyncSession,
        stmt: Select,
        count_stmt: Select,
        params: PageParams,
        viewer_id: Optional[uuid.UUID],
    ) -> Page[FollowUser]:
        total = await db.scalar(count_stmt) or 0
        users = list(
            await db.scalars(
                stmt.order_by(Follow.created_at.desc(), Follow.id.desc())
                .offset(params.offset)
                .limit(params.limit)
            )
        )
        return Page[FollowUser](
            items=await self.follow_user_views(db, users, viewer_id),
            meta=PageMeta.build(params.page, params.limit, total),
        )


# ── Singleton Instance ────────────────────────────────────────────────────
user_service = UserService()
