"""
Sociality Backend — ORM → View Transformers
============================================

Pure functions turning ORM rows plus precomputed counts/flags into the
response views. They never query; callers batch everything they need first.
"""

import uuid
from typing import Optional

from sociality.models import Comment, Post, User
from sociality.schemas.post import CommentView, PostView
from sociality.schemas.user import FollowUser, MeProfile, PublicUser, SearchUser, UserMini, UserStats


def to_user_mini(user: User) -> UserMini:
    return UserMini(
        id=user.id,
        username=user.username,
        display_name=user.display_name,
        name=user.name,
        avatar_url=user.avatar_url,
    )


def to_post_view(
    post: Post,
    like_count: int = 0,
    comment_count: int = 0,
    liked: Optional[bool] = None,
    saved: Optional[bool] = None,
) -> PostView:
    return PostView(
        id=post.id,
        image_url=post.image_url,
        caption=post.caption or "",
        created_at=post.created_at,
        author=to_user_mini(post.author),
        like_count=like_count,
        comment_count=comment_count,
        liked=liked,
        saved=saved,
    )


def to_comment_view(comment: Comment) -> CommentView:
    return CommentView(
        id=comment.id,
        post_id=comment.post_id,
        body=comment.body,
        created_at=comment.created_at,
        author=to_user_mini(comment.author),
    )


def _viewer_flags(user: User, viewer_id: Optional[uuid.UUID], follows: bool) -> tuple:
    is_me = viewer_id is not None and viewer_id == user.id
    # Following yourself is impossible, so never report it
    return is_me, (not is_me) and follows


def to_public_user(
    user: User,
    stats: UserStats,
    viewer_id: Optional[uuid.UUID],
    viewer_follows: bool,
) -> PublicUser:
    is_me, is_following = _viewer_flags(user, viewer_id, viewer_follows)
    return PublicUser(
        id=user.id,
        username=user.username,
        name=user.name,
        display_name=user.display_name,
        bio=user.bio,
        avatar_url=user.avatar_url,
        email=user.email,
        phone=user.phone,
        counts=stats,
        is_following=is_following,
        is_me=is_me,
    )


def to_follow_user(
    user: User,
    stats: UserStats,
    viewer_id: Optional[uuid.UUID],
    viewer_follows: bool,
) -> FollowUser:
    is_me, is_following = _viewer_flags(user, viewer_id, viewer_follows)
    return FollowUser(
        id=user.id,
        username=user.username,
        name=user.name,
        display_name=user.display_name,
        avatar_url=user.avatar_url,
        counts=stats,
        is_following=is_following,
        is_me=is_me,
    )


def to_search_user(user: User, viewer_id: Optional[uuid.UUID], viewer_follows: bool) -> SearchUser:
    _, is_following = _viewer_flags(user, viewer_id, viewer_follows)
    return SearchUser(
        id=user.id,
        username=user.username,
        name=user.name,
        display_name=user.display_name,
        avatar_url=user.avatar_url,
        is_followed_by_me=is_following,
    )


def to_me_profile(user: User) -> MeProfile:
    return MeProfile(
        id=user.id,
        username=user.username,
        name=user.name,
        email=user.email,
        phone=user.phone,
        bio=user.bio,
        avatar_url=user.avatar_url,
    )
