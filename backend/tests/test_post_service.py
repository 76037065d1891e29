"""
Sociality Backend — Post Service Tests
=======================================

What:  Tests for posts, the feed, likes, saves and comments.
How:   Most tests run against the in-memory SQLite database; a few guard
       clauses are checked with a mock session to prove they run before
       any query.

What we test:
    ✅ Feed is newest first; offset mode hands out page numbers as cursors
    ✅ Cursor walk visits every post exactly once, in order
    ✅ Liking or saving twice leaves one row; unliking is idempotent
    ✅ Viewer flags: null for anonymous, true/false for a signed-in viewer
    ✅ Deleting a post removes its comments, likes and saves; author only
    ✅ Comments read oldest first; empty comments are rejected
    ✅ Comment deletion by comment author or post author only
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from sociality.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from sociality.models import Comment, Like, Post, Save
from sociality.schemas.common import PageParams
from sociality.schemas.post import CommentCreateRequest
from sociality.services.post_service import PostService


async def _count(db_session, model, **filters) -> int:
    stmt = select(func.count(model.id))
    for column, value in filters.items():
        stmt = stmt.where(getattr(model, column) == value)
    return await db_session.scalar(stmt)


class TestFeed:

    def setup_method(self):
        self.service = PostService()

    @pytest.mark.asyncio
    async def test_newest_first_with_page_cursor(self, db_session, make_user, make_post):
        author = await make_user()
        posts = [await make_post(author, caption=f"#{i}", minutes_ago=i) for i in range(5)]

        first = await self.service.feed(db_session, PageParams(page=1, limit=2), None)
        last = await self.service.feed(db_session, PageParams(page=3, limit=2), None)

        assert [p.id for p in first.items] == [posts[0].id, posts[1].id]
        assert first.next_cursor == "2"
        assert first.meta.total == 5
        assert first.meta.total_pages == 3
        assert [p.id for p in last.items] == [posts[4].id]
        assert last.next_cursor is None

    @pytest.mark.asyncio
    async def test_cursor_walk_visits_each_post_once(self, db_session, make_user, make_post):
        author = await make_user()
        posts = [await make_post(author, minutes_ago=i) for i in range(7)]

        seen = []
        cursor = str(posts[0].id)
        while cursor is not None:
            page = await self.service.feed(db_session, PageParams(limit=3), None, cursor=cursor)
            seen.extend(p.id for p in page.items)
            cursor = page.next_cursor

        assert seen == [p.id for p in posts]

    @pytest.mark.asyncio
    async def test_cursor_is_inclusive(self, db_session, make_user, make_post):
        author = await make_user()
        posts = [await make_post(author, minutes_ago=i) for i in range(4)]

        page = await self.service.feed(db_session, PageParams(limit=2), None, cursor=str(posts[1].id))

        assert [p.id for p in page.items] == [posts[1].id, posts[2].id]
        assert page.next_cursor == str(posts[3].id)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("cursor", ["not-a-uuid", str(uuid.uuid4())])
    async def test_bad_cursor_is_a_validation_error(self, db_session, cursor):
        with pytest.raises(ValidationError) as exc_info:
            await self.service.feed(db_session, PageParams(), None, cursor=cursor)
        assert exc_info.value.message == "Invalid cursor"

    @pytest.mark.asyncio
    async def test_empty_feed(self, db_session):
        page = await self.service.feed(db_session, PageParams(limit=12), None)
        assert page.items == []
        assert page.meta.total_pages == 1
        assert page.next_cursor is None


class TestLikesAndSaves:

    def setup_method(self):
        self.service = PostService()

    @pytest.mark.asyncio
    async def test_like_twice_counts_once(self, db_session, make_user, make_post):
        author = await make_user()
        fan = await make_user()
        post = await make_post(author)

        first = await self.service.like(db_session, post.id, fan.id)
        second = await self.service.like(db_session, post.id, fan.id)

        assert first.liked is True
        assert first.like_count == second.like_count == 1
        assert await _count(db_session, Like, post_id=post.id) == 1

    @pytest.mark.asyncio
    async def test_unlike_is_idempotent(self, db_session, make_user, make_post):
        author = await make_user()
        fan = await make_user()
        post = await make_post(author)
        await self.service.like(db_session, post.id, fan.id)

        await self.service.unlike(db_session, post.id, fan.id)
        result = await self.service.unlike(db_session, post.id, fan.id)

        assert result.liked is False
        assert result.like_count == 0

    @pytest.mark.asyncio
    async def test_like_missing_post(self, db_session, make_user):
        fan = await make_user()
        with pytest.raises(NotFoundError) as exc_info:
            await self.service.like(db_session, uuid.uuid4(), fan.id)
        assert exc_info.value.message == "Post not found"

    @pytest.mark.asyncio
    async def test_save_twice_counts_once(self, db_session, make_user, make_post):
        author = await make_user()
        fan = await make_user()
        post = await make_post(author)

        await self.service.save(db_session, post.id, fan.id)
        result = await self.service.save(db_session, post.id, fan.id)

        assert result.saved is True
        assert result.save_count == 1

    @pytest.mark.asyncio
    async def test_viewer_flags(self, db_session, make_user, make_post):
        author = await make_user()
        fan = await make_user()
        post = await make_post(author)
        await self.service.like(db_session, post.id, fan.id)

        anonymous = await self.service.get_post(db_session, post.id, None)
        as_fan = await self.service.get_post(db_session, post.id, fan.id)
        as_author = await self.service.get_post(db_session, post.id, author.id)

        assert (anonymous.liked, anonymous.saved) == (None, None)
        assert (as_fan.liked, as_fan.saved) == (True, False)
        assert as_author.liked is False
        assert as_fan.like_count == 1

    @pytest.mark.asyncio
    async def test_likers_newest_first(self, db_session, make_user, make_post):
        author = await make_user()
        early = await make_user(username="early")
        late = await make_user(username="late")
        post = await make_post(author)
        now = datetime.now(timezone.utc)
        db_session.add_all([
            Like(post_id=post.id, user_id=early.id, created_at=now - timedelta(minutes=5)),
            Like(post_id=post.id, user_id=late.id, created_at=now),
        ])
        await db_session.commit()

        page = await self.service.list_likers(db_session, post.id, PageParams(), None)

        assert [u.username for u in page.items] == ["late", "early"]
        assert page.meta.total == 2

    @pytest.mark.asyncio
    async def test_saved_listing_newest_save_first(self, db_session, make_user, make_post):
        author = await make_user()
        reader = await make_user()
        older = await make_post(author, minutes_ago=10)
        newer = await make_post(author, minutes_ago=1)
        now = datetime.now(timezone.utc)
        db_session.add_all([
            Save(post_id=newer.id, user_id=reader.id, created_at=now - timedelta(minutes=3)),
            Save(post_id=older.id, user_id=reader.id, created_at=now),
        ])
        await db_session.commit()

        page = await self.service.list_saved_by(db_session, reader.id, PageParams())

        assert [p.id for p in page.items] == [older.id, newer.id]
        assert all(p.saved for p in page.items)


class TestDeletePost:

    def setup_method(self):
        self.service = PostService()

    @pytest.mark.asyncio
    async def test_delete_removes_engagement(self, db_session, make_user, make_post):
        author = await make_user()
        fan = await make_user()
        post = await make_post(author)
        survivor = await make_post(author)
        await self.service.like(db_session, post.id, fan.id)
        await self.service.like(db_session, survivor.id, fan.id)
        await self.service.save(db_session, post.id, fan.id)
        await self.service.create_comment(db_session, post.id, fan.id, CommentCreateRequest(body="nice"))

        await self.service.delete_post(db_session, post.id, author.id)

        assert await _count(db_session, Post, id=post.id) == 0
        assert await _count(db_session, Comment, post_id=post.id) == 0
        assert await _count(db_session, Like, post_id=post.id) == 0
        assert await _count(db_session, Save, post_id=post.id) == 0
        assert await _count(db_session, Like, post_id=survivor.id) == 1

    @pytest.mark.asyncio
    async def test_only_author_may_delete(self, db_session, make_user, make_post):
        author = await make_user()
        intruder = await make_user()
        post = await make_post(author)

        with pytest.raises(PermissionDeniedError):
            await self.service.delete_post(db_session, post.id, intruder.id)
        assert await _count(db_session, Post, id=post.id) == 1

    @pytest.mark.asyncio
    async def test_delete_missing_post(self, mock_db_session):
        mock_db_session.get.return_value = None

        with pytest.raises(NotFoundError):
            await self.service.delete_post(mock_db_session, uuid.uuid4(), uuid.uuid4())
        mock_db_session.execute.assert_not_awaited()


class TestComments:

    def setup_method(self):
        self.service = PostService()

    @pytest.mark.asyncio
    async def test_create_accepts_legacy_text_field(self, db_session, make_user, make_post):
        author = await make_user(username="poster")
        post = await make_post(author)

        comment = await self.service.create_comment(
            db_session, post.id, author.id, CommentCreateRequest(text="  hello  ")
        )

        assert comment.body == "hello"
        assert comment.post_id == post.id
        assert comment.author.username == "poster"

    @pytest.mark.asyncio
    async def test_blank_comment_rejected_before_any_query(self, mock_db_session):
        with pytest.raises(ValidationError) as exc_info:
            await self.service.create_comment(
                mock_db_session, uuid.uuid4(), uuid.uuid4(), CommentCreateRequest(body="   ")
            )
        assert exc_info.value.message == "Comment cannot be empty"
        mock_db_session.scalar.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_comment_on_missing_post(self, db_session, make_user):
        user = await make_user()
        with pytest.raises(NotFoundError):
            await self.service.create_comment(
                db_session, uuid.uuid4(), user.id, CommentCreateRequest(body="hi")
            )

    @pytest.mark.asyncio
    async def test_listing_is_oldest_first_and_paginated(self, db_session, make_user, make_post):
        author = await make_user()
        post = await make_post(author)
        start = datetime.now(timezone.utc) - timedelta(hours=1)
        db_session.add_all([
            Comment(post_id=post.id, user_id=author.id, body=f"c{i}", created_at=start + timedelta(minutes=i))
            for i in (2, 0, 1)
        ])
        await db_session.commit()

        first = await self.service.list_comments(db_session, post.id, PageParams(page=1, limit=2))
        second = await self.service.list_comments(db_session, post.id, PageParams(page=2, limit=2))

        assert [c.body for c in first.items] == ["c0", "c1"]
        assert first.next_cursor == "2"
        assert [c.body for c in second.items] == ["c2"]
        assert second.next_cursor is None

    @pytest.mark.asyncio
    async def test_post_author_may_delete_others_comment(self, db_session, make_user, make_post):
        author = await make_user()
        commenter = await make_user()
        post = await make_post(author)
        comment = await self.service.create_comment(
            db_session, post.id, commenter.id, CommentCreateRequest(body="first!")
        )

        await self.service.delete_comment(db_session, comment.id, author.id)

        assert await _count(db_session, Comment, id=comment.id) == 0

    @pytest.mark.asyncio
    async def test_stranger_may_not_delete_comment(self, db_session, make_user, make_post):
        author = await make_user()
        commenter = await make_user()
        stranger = await make_user()
        post = await make_post(author)
        comment = await self.service.create_comment(
            db_session, post.id, commenter.id, CommentCreateRequest(body="first!")
        )

        with pytest.raises(PermissionDeniedError):
            await self.service.delete_comment(db_session, comment.id, stranger.id)

        await self.service.delete_comment(db_session, comment.id, commenter.id)
        assert await _count(db_session, Comment, id=comment.id) == 0
