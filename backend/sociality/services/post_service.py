"""
Sociality Backend — Post Service
=================================

What:  Posts, the feed, likes, saves and comments.
How:   Every method takes the request's AsyncSession and only flushes; the
       session dependency commits once per request, so multi-statement
       writes (deleting a post with its comments, likes and saves) are atomic.

Rendering:
    `hydrate()` turns a list of Post rows into PostViews with two grouped
    count queries (likes, comments) plus, for an authenticated viewer, one
    liked-by-viewer and one saved-by-viewer lookup, whatever the list size.

Idempotent toggles:
    like/save insert with ON CONFLICT DO NOTHING against the (post, user)
    unique constraint; unlike/unsave delete whatever is there. Repeating any
    of them is harmless and concurrent duplicates cannot produce two rows.

Feed pagination:
    Offset mode (page/limit): nextCursor = str(page + 1) while more pages exist.
    Cursor mode (cursor=<post id>): rows from the cursor post onwards
    (inclusive) in (created_at DESC, id DESC) order; limit + 1 rows are read
    and the extra row's id becomes nextCursor.
"""

import logging
import uuid
from typing import Dict, List, Optional, Set

from sqlalchemy import and_, delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from sociality.database import insert_ignore_duplicate
from sociality.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from sociality.models import Comment, Like, Post, Save, User
from sociality.schemas.common import Page, PageMeta, PageParams
from sociality.schemas.post import (
    CommentCreateRequest,
    CommentView,
    LikeResult,
    PostView,
    SaveResult,
)
from sociality.schemas.user import FollowUser
from sociality.services import transformers
from sociality.services.user_service import user_service

logger = logging.getLogger(__name__)

_NEWEST_FIRST = (Post.created_at.desc(), Post.id.desc())


class PostService:

    # ── Rendering ─────────────────────────────────────────────────────────

    async def hydrate(
        self,
        db: AsyncSession,
        posts: List[Post],
        viewer_id: Optional[uuid.UUID],
    ) -> List[PostView]:
        ids = [post.id for post in posts]
        if not ids:
            return []

        like_counts: Dict[uuid.UUID, int] = dict(
            (
                await db.execute(
                    select(Like.post_id, func.count(Like.id))
                    .where(Like.post_id.in_(ids))
                    .group_by(Like.post_id)
                )
            ).all()
        )
        comment_counts: Dict[uuid.UUID, int] = dict(
            (
                await db.execute(
                    select(Comment.post_id, func.count(Comment.id))
                    .where(Comment.post_id.in_(ids))
                    .group_by(Comment.post_id)
                )
            ).all()
        )

        liked: Optional[Set[uuid.UUID]] = None
        saved: Optional[Set[uuid.UUID]] = None
        if viewer_id is not None:
            liked = set(
                await db.scalars(
                    select(Like.post_id).where(Like.user_id == viewer_id, Like.post_id.in_(ids))
                )
            )
            saved = set(
                await db.scalars(
                    select(Save.post_id).where(Save.user_id == viewer_id, Save.post_id.in_(ids))
                )
            )

        return [
            transformers.to_post_view(
                post,
                like_count=like_counts.get(post.id, 0),
                comment_count=comment_counts.get(post.id, 0),
                liked=None if liked is None else post.id in liked,
                saved=None if saved is None else post.id in saved,
            )
            for post in posts
        ]

    # ── Lookup ────────────────────────────────────────────────────────────

    async def get_post_or_404(self, db: AsyncSession, post_id: uuid.UUID) -> Post:
        post = await db.get(Post, post_id)
        if post is None:
            raise NotFoundError("post", str(post_id))
        return post

    async def _ensure_post_exists(self, db: AsyncSession, post_id: uuid.UUID) -> None:
        if await db.scalar(select(Post.id).where(Post.id == post_id)) is None:
            raise NotFoundError("post", str(post_id))

    async def get_post(
        self, db: AsyncSession, post_id: uuid.UUID, viewer_id: Optional[uuid.UUID]
    ) -> PostView:
        post = await self.get_post_or_404(db, post_id)
        views = await self.hydrate(db, [post], viewer_id)
        return views[0]

    # ── Feed ──────────────────────────────────────────────────────────────

    async def feed(
        self,
        db: AsyncSession,
        params: PageParams,
        viewer_id: Optional[uuid.UUID],
        cursor: Optional[str] = None,
    ) -> Page[PostView]:
        total = await db.scalar(select(func.count(Post.id))) or 0

        if cursor:
            # Cursor pages have no number; `page` is ignored and reported as 1
            meta = PageMeta.build(1, params.limit, total)
            return await self._feed_from_cursor(db, cursor, params.limit, meta, viewer_id)

        meta = PageMeta.build(params.page, params.limit, total)

        posts = list(
            await db.scalars(
                select(Post).order_by(*_NEWEST_FIRST).offset(params.offset).limit(params.limit)
            )
        )
        return Page[PostView](
            items=await self.hydrate(db, posts, viewer_id),
            meta=meta,
            next_cursor=str(params.page + 1) if meta.has_next else None,
        )

    async def _feed_from_cursor(
        self,
        db: AsyncSession,
        cursor: str,
        limit: int,
        meta: PageMeta,
        viewer_id: Optional[uuid.UUID],
    ) -> Page[PostView]:
        try:
            cursor_id = uuid.UUID(cursor)
        except ValueError:
            raise ValidationError("Invalid cursor", field="cursor") from None

        anchor = await db.get(Post, cursor_id)
        if anchor is None:
            raise ValidationError("Invalid cursor", field="cursor")

        rows = list(
            await db.scalars(
                select(Post)
                .where(
                    or_(
                        Post.created_at < anchor.created_at,
                        and_(Post.created_at == anchor.created_at, Post.id <= anchor.id),
                    )
                )
                .order_by(*_NEWEST_FIRST)
                .limit(limit + 1)
            )
        )
        next_cursor = None
        if len(rows) > limit:
            next_cursor = str(rows[limit].id)
            rows = rows[:limit]

        return Page[PostView](
            items=await self.hydrate(db, rows, viewer_id),
            meta=meta,
            next_cursor=next_cursor,
        )

    # ── Create / delete ───────────────────────────────────────────────────

    async def create_post(
        self,
        db: AsyncSession,
        author_id: uuid.UUID,
        image_url: str,
        caption: Optional[str] = None,
    ) -> PostView:
        author = await user_service.get_by_id(db, author_id)
        post = Post(author=author, caption=(caption or "").strip(), image_url=image_url)
        db.add(post)
        await db.flush()
        logger.info("User %s created post %s", author_id, post.id)
        views = await self.hydrate(db, [post], author_id)
        return views[0]

    async def delete_post(self, db: AsyncSession, post_id: uuid.UUID, viewer_id: uuid.UUID) -> None:
        """Delete a post with its comments, likes and saves. Author only."""
        post = await self.get_post_or_404(db, post_id)
        if post.author_id != viewer_id:
            raise PermissionDeniedError()

        await db.execute(delete(Comment).where(Comment.post_id == post_id))
        await db.execute(delete(Like).where(Like.post_id == post_id))
        await db.execute(delete(Save).where(Save.post_id == post_id))
        await db.delete(post)
        await db.flush()
        logger.info("User %s deleted post %s", viewer_id, post_id)

    # ── Likes ─────────────────────────────────────────────────────────────

    async def _like_count(self, db: AsyncSession, post_id: uuid.UUID) -> int:
        return await db.scalar(select(func.count(Like.id)).where(Like.post_id == post_id)) or 0

    async def like(self, db: AsyncSession, post_id: uuid.UUID, user_id: uuid.UUID) -> LikeResult:
        await self._ensure_post_exists(db, post_id)
        await insert_ignore_duplicate(
            db, Like, ["post_id", "user_id"], id=uuid.uuid4(), post_id=post_id, user_id=user_id
        )
        return LikeResult(liked=True, like_count=await self._like_count(db, post_id))

    async def unlike(self, db: AsyncSession, post_id: uuid.UUID, user_id: uuid.UUID) -> LikeResult:
        await db.execute(delete(Like).where(Like.post_id == post_id, Like.user_id == user_id))
        return LikeResult(liked=False, like_count=await self._like_count(db, post_id))

    async def list_likers(
        self,
        db: AsyncSession,
        post_id: uuid.UUID,
        params: PageParams,
        viewer_id: Optional[uuid.UUID],
    ) -> Page[FollowUser]:
        """Users who liked the post, newest like first."""
        await self._ensure_post_exists(db, post_id)
        total = await self._like_count(db, post_id)
        users = list(
            await db.scalars(
                select(User)
                .join(Like, Like.user_id == User.id)
                .where(Like.post_id == post_id)
                .order_by(Like.created_at.desc(), Like.id.desc())
                .offset(params.offset)
                .limit(params.limit)
            )
        )
        return Page[FollowUser](
            items=await user_service.follow_user_views(db, users, viewer_id),
            meta=PageMeta.build(params.page, params.limit, total),
        )

    # ── Saves ─────────────────────────────────────────────────────────────

    async def _save_count(self, db: AsyncSession, post_id: uuid.UUID) -> int:
        return await db.scalar(select(func.count(Save.id)).where(Save.post_id == post_id)) or 0

    async def save(self, db: AsyncSession, post_id: uuid.UUID, user_id: uuid.UUID) -> SaveResult:
        await self._ensure_post_exists(db, post_id)
        await insert_ignore_duplicate(
            db, Save, ["post_id", "user_id"], id=uuid.uuid4(), post_id=post_id, user_id=user_id
        )
        return SaveResult(saved=True, save_count=await self._save_count(db, post_id))

    async def unsave(self, db: AsyncSession, post_id: uuid.UUID, user_id: uuid.UUID) -> SaveResult:
        await db.execute(delete(Save).where(Save.post_id == post_id, Save.user_id == user_id))
        return SaveResult(saved=False, save_count=await self._save_count(db, post_id))

    # ── Comments ──────────────────────────────────────────────────────────

    async def list_comments(
        self, db: AsyncSession, post_id: uuid.UUID, params: PageParams
    ) -> Page[CommentView]:
        """Oldest first, so a thread reads top to bottom."""
        await self._ensure_post_exists(db, post_id)
        total = await db.scalar(
            select(func.count(Comment.id)).where(Comment.post_id == post_id)
        ) or 0
        comments = await db.scalars(
            select(Comment)
            .where(Comment.post_id == post_id)
            .order_by(Comment.created_at.asc(), Comment.id.asc())
            .offset(params.offset)
            .limit(params.limit)
        )
        meta = PageMeta.build(params.page, params.limit, total)
        return Page[CommentView](
            items=[transformers.to_comment_view(c) for c in comments],
            meta=meta,
            next_cursor=str(params.page + 1) if meta.has_next else None,
        )

    async def create_comment(
        self,
        db: AsyncSession,
        post_id: uuid.UUID,
        user_id: uuid.UUID,
        payload: CommentCreateRequest,
    ) -> CommentView:
        text = payload.resolved_text()
        if not text:
            raise ValidationError("Comment cannot be empty", field="body")

        await self._ensure_post_exists(db, post_id)
        author = await user_service.get_by_id(db, user_id)

        comment = Comment(post_id=post_id, author=author, body=text)
        db.add(comment)
        await db.flush()
        return transformers.to_comment_view(comment)

    async def delete_comment(self, db: AsyncSession, comment_id: uuid.UUID, user_id: uuid.UUID) -> None:
        """Allowed for the comment's author and for the author of the post it is on."""
        comment = await db.get(Comment, comment_id)
        if comment is None:
            raise NotFoundError("comment", str(comment_id))

        if comment.user_id != user_id:
            post_author_id = await db.scalar(select(Post.author_id).where(Post.id == comment.post_id))
            if post_author_id != user_id:
                raise PermissionDeniedError()

        await db.delete(comment)
        await db.flush()

    # ── Per-user listings ─────────────────────────────────────────────────

    async def list_by_author(
        self, db: AsyncSession, author_id: uuid.UUID, viewer_id: Optional[uuid.UUID]
    ) -> List[PostView]:
        posts = list(
            await db.scalars(select(Post).where(Post.author_id == author_id).order_by(*_NEWEST_FIRST))
        )
        return await self.hydrate(db, posts, viewer_id)

    async def list_liked_by(
        self, db: AsyncSession, user_id: uuid.UUID, viewer_id: Optional[uuid.UUID]
    ) -> List[PostView]:
        """Posts `user_id` liked, newest like first."""
        posts = list(
            await db.scalars(
                select(Post)
                .join(Like, Like.post_id == Post.id)
                .where(Like.user_id == user_id)
                .order_by(Like.created_at.desc(), Like.id.desc())
            )
        )
        return await self.hydrate(db, posts, viewer_id)

    async def list_saved_by(
        self, db: AsyncSession, user_id: uuid.UUID, params: PageParams
    ) -> Page[PostView]:
        """Posts `user_id` saved, newest save first. Only ever shown to that user."""
        total = await db.scalar(select(func.count(Save.id)).where(Save.user_id == user_id)) or 0
        posts = list(
            await db.scalars(
                select(Post)
                .join(Save, Save.post_id == Post.id)
                .where(Save.user_id == user_id)
                .order_by(Save.created_at.desc(), Save.id.desc())
                .offset(params.offset)
                .limit(params.limit)
            )
        )
        return Page[PostView](
            items=await self.hydrate(db, posts, user_id),
            meta=PageMeta.build(params.page, params.limit, total),
        )


# ── Singleton Instance ────────────────────────────────────────────────────
post_service = PostService()
