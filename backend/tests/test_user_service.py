"""
Sociality Backend — User & Follow Service Tests
================================================

What:  Stats, viewer-relative follow flags, search, follower listings,
       the follow/unfollow toggles and profile updates.
How:   Runs against the in-memory SQLite database from conftest.

What we test:
    ✅ Stats count posts, followers, following and likes received
    ✅ Search is case-insensitive across username, name and email
    ✅ Pagination: 25 matches at limit 10 → 10/10/5, totalPages 3
    ✅ isFollowing is never true for the viewer themself
    ✅ Following yourself is rejected; follow/unfollow is idempotent
    ✅ A username clash caught only by the unique index is still a conflict
"""

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from sociality.exceptions import ConflictError, NotFoundError, ValidationError
from sociality.models import Follow, Like, User
from sociality.schemas.common import PageParams
from sociality.schemas.user import UpdateMeRequest
from sociality.services.follow_service import FollowService
from sociality.services.me_service import MeService
from sociality.services.user_service import UserService


class TestUserStats:

    def setup_method(self):
        self.service = UserService()

    @pytest.mark.asyncio
    async def test_stats_for_fresh_user_are_zero(self, db_session, make_user):
        user = await make_user()
        stats = await self.service.get_user_stats(db_session, user.id)
        assert (stats.posts, stats.followers, stats.following, stats.likes) == (0, 0, 0, 0)

    @pytest.mark.asyncio
    async def test_stats_count_every_relation(self, db_session, make_user, make_post):
        author = await make_user(username="author")
        fan = await make_user(username="fan")
        other = await make_user(username="other")
        first = await make_post(author)
        second = await make_post(author)

        db_session.add_all([
            Follow(follower_id=fan.id, following_id=author.id),
            Follow(follower_id=other.id, following_id=author.id),
            Follow(follower_id=author.id, following_id=fan.id),
            Like(post_id=first.id, user_id=fan.id),
            Like(post_id=first.id, user_id=other.id),
            Like(post_id=second.id, user_id=fan.id),
        ])
        await db_session.commit()

        stats = await self.service.stats_for_users(db_session, [author.id, fan.id])

        assert stats[author.id].model_dump() == {"posts": 2, "followers": 2, "following": 1, "likes": 3}
        assert stats[fan.id].model_dump() == {"posts": 0, "followers": 1, "following": 1, "likes": 0}

    @pytest.mark.asyncio
    async def test_unknown_username_is_not_found(self, db_session):
        with pytest.raises(NotFoundError) as exc_info:
            await self.service.find_by_username(db_session, "ghost")
        assert exc_info.value.message == "User not found"


class TestViewerFlags:

    def setup_method(self):
        self.service = UserService()

    @pytest.mark.asyncio
    async def test_profile_of_self_is_me_and_not_following(self, db_session, make_user):
        me = await make_user(username="me")

        profile = await self.service.get_public_profile(db_session, "me", me.id)

        assert profile.is_me is True
        assert profile.is_following is False

    @pytest.mark.asyncio
    async def test_profile_reports_follow_edge(self, db_session, make_user):
        viewer = await make_user(username="viewer")
        target = await make_user(username="target")
        db_session.add(Follow(follower_id=viewer.id, following_id=target.id))
        await db_session.commit()

        seen_by_viewer = await self.service.get_public_profile(db_session, "target", viewer.id)
        seen_anonymously = await self.service.get_public_profile(db_session, "target", None)

        assert seen_by_viewer.is_following is True
        assert seen_by_viewer.counts.followers == 1
        assert seen_anonymously.is_following is False
        assert seen_anonymously.is_me is False


class TestSearch:

    def setup_method(self):
        self.service = UserService()

    @pytest.mark.asyncio
    async def test_matches_username_name_and_email_case_insensitively(self, db_session, make_user):
        await make_user(username="sunny_day", name="Zed")
        await make_user(username="zara", name="Sunita")
        await make_user(username="zoe", email="zoe@SUNmail.com")
        await make_user(username="bob", name="Bob")

        page = await self.service.search_users(db_session, "SUN", PageParams(page=1, limit=20), None)

        assert {u.username for u in page.items} == {"sunny_day", "zara", "zoe"}
        assert page.meta.total == 3

    @pytest.mark.asyncio
    async def test_wildcards_in_query_are_literal(self, db_session, make_user):
        await make_user(username="plain")
        page = await self.service.search_users(db_session, "%", PageParams(), None)
        assert page.items == []

    @pytest.mark.asyncio
    async def test_pagination_splits_25_into_10_10_5(self, db_session, make_user):
        for i in range(25):
            await make_user(username=f"match_{i:02d}", name=f"Match {i:02d}")

        sizes = []
        for page_number in (1, 2, 3):
            page = await self.service.search_users(
                db_session, "match", PageParams(page=page_number, limit=10), None
            )
            sizes.append(len(page.items))
            assert page.meta.total == 25
            assert page.meta.total_pages == 3

        assert sizes == [10, 10, 5]

    @pytest.mark.asyncio
    async def test_empty_result_still_has_one_page(self, db_session):
        page = await self.service.search_users(db_session, "nobody", PageParams(limit=10), None)
        assert page.meta.total == 0
        assert page.meta.total_pages == 1

    @pytest.mark.asyncio
    async def test_is_followed_by_me(self, db_session, make_user):
        viewer = await make_user(username="viewer_x")
        followed = await make_user(username="xfollowed")
        await make_user(username="xstranger")
        db_session.add(Follow(follower_id=viewer.id, following_id=followed.id))
        await db_session.commit()

        page = await self.service.search_users(db_session, "x", PageParams(), viewer.id)
        flags = {u.username: u.is_followed_by_me for u in page.items}

        assert flags == {"viewer_x": False, "xfollowed": True, "xstranger": False}


class TestFollow:

    def setup_method(self):
        self.service = FollowService()
        self.users = UserService()

    async def _edge_count(self, db_session) -> int:
        return await db_session.scalar(select(func.count(Follow.id)))

    @pytest.mark.asyncio
    async def test_follow_yourself_is_rejected(self, db_session, make_user):
        me = await make_user(username="narcissus")

        with pytest.raises(ValidationError) as exc_info:
            await self.service.follow(db_session, me.id, "narcissus")
        assert exc_info.value.message == "You cannot follow yourself"
        assert await self._edge_count(db_session) == 0

    @pytest.mark.asyncio
    async def test_follow_unknown_user(self, db_session, make_user):
        me = await make_user()
        with pytest.raises(NotFoundError):
            await self.service.follow(db_session, me.id, "ghost")

    @pytest.mark.asyncio
    async def test_follow_twice_leaves_one_edge(self, db_session, make_user):
        me = await make_user(username="me")
        await make_user(username="star")

        first = await self.service.follow(db_session, me.id, "star")
        second = await self.service.follow(db_session, me.id, "star")

        assert first.following is True
        assert first.message == "You are now following @star"
        assert second.counts.followers == 1
        assert await self._edge_count(db_session) == 1

    @pytest.mark.asyncio
    async def test_follow_then_unfollow_restores_counts(self, db_session, make_user):
        me = await make_user(username="me")
        star = await make_user(username="star")
        before = await self.users.get_user_stats(db_session, star.id)

        await self.service.follow(db_session, me.id, "star")
        result = await self.service.unfollow(db_session, me.id, "star")

        assert result.following is False
        assert result.message == "You unfollowed @star"
        assert result.counts == before
        assert (await self.users.get_user_stats(db_session, me.id)).following == 0

    @pytest.mark.asyncio
    async def test_unfollow_without_edge_is_not_an_error(self, db_session, make_user):
        me = await make_user(username="me")
        await make_user(username="star")

        result = await self.service.unfollow(db_session, me.id, "star")
        assert result.following is False
        assert result.counts.followers == 0

    @pytest.mark.asyncio
    async def test_followers_listing_flags(self, db_session, make_user):
        star = await make_user(username="star")
        fan = await make_user(username="fan")
        await self.service.follow(db_session, fan.id, "star")
        await self.service.follow(db_session, star.id, "fan")

        page = await self.users.list_followers(db_session, star.id, PageParams(), star.id)

        assert [u.username for u in page.items] == ["fan"]
        assert page.items[0].is_following is True
        assert page.items[0].is_me is False

        own = await self.users.list_following(db_session, fan.id, PageParams(), fan.id)
        assert [u.username for u in own.items] == ["star"]
        assert own.items[0].counts.followers == 1


class TestUpdateMe:

    def setup_method(self):
        self.service = MeService()

    @pytest.mark.asyncio
    async def test_username_taken_between_lookup_and_write(self, db_session, make_user):
        alice = await make_user(username="alice")
        await make_user(username="bob")

        # The holder lookup misses, as when bob's rename commits in between
        with patch.object(db_session, "scalar", AsyncMock(return_value=None)):
            with pytest.raises(ConflictError) as exc_info:
                await self.service.update_me(db_session, alice.id, UpdateMeRequest(username="bob"))

        assert exc_info.value.field == "username"
        assert isinstance(exc_info.value.__cause__, IntegrityError)
        usernames = set(await db_session.scalars(select(User.username)))
        assert usernames == {"alice", "bob"}
