"""
Sociality Backend — Response Compatibility Views
=================================================

What:  Render canonical listing results (a Page, or a plain list of views)
       into the JSON envelopes each endpoint has always returned.
Why:   Deployed web and mobile clients read different keys for the same
       data (`items` vs `posts`, top level vs `data`). Services stay unaware
       of that; these functions are the only place the aliases exist.

Every function returns plain JSON-ready dicts/lists (camelCase keys).
"""

from typing import Any, Dict, List, Sequence

from sociality.schemas.common import CamelModel, Page, PageMeta


def _dump(items: Sequence[CamelModel]) -> List[Dict[str, Any]]:
    return [item.to_wire() for item in items]


def _pagination(meta: PageMeta) -> Dict[str, Any]:
    return meta.to_wire()


def feed_view(page: Page) -> Dict[str, Any]:
    items = _dump(page.items)
    pagination = _pagination(page.meta)
    return {
        "items": items,
        "pagination": pagination,
        "nextCursor": page.next_cursor,
        "data": {"items": items, "pagination": pagination},
    }


def comments_view(page: Page) -> Dict[str, Any]:
    items = _dump(page.items)
    pagination = _pagination(page.meta)
    return {
        "items": items,
        "pagination": pagination,
        "nextCursor": page.next_cursor,
        "data": {"items": items, "pagination": pagination, "nextCursor": page.next_cursor},
    }


def likers_view(page: Page) -> Dict[str, Any]:
    users = _dump(page.items)
    pagination = _pagination(page.meta)
    return {
        "users": users,
        "pagination": pagination,
        "data": {"users": users, "pagination": pagination},
    }


def user_posts_view(posts: Sequence[CamelModel]) -> Dict[str, Any]:
    items = _dump(posts)
    return {"posts": items, "items": items, "data": {"posts": items, "items": items}}


def follow_list_view(page: Page, key: str, wants_envelope: bool) -> Any:
    """
    Followers/following of a user by username.

    Older clients expect a bare array; an explicit `page` or `limit` in the
    query string opts into the paginated envelope.
    """
    users = _dump(page.items)
    if not wants_envelope:
        return users
    return {key: users, "items": users, "pagination": _pagination(page.meta)}


def me_follow_list_view(page: Page, key: str) -> Dict[str, Any]:
    users = _dump(page.items)
    return {
        key: users,
        "items": users,
        "data": {key: users, "items": users},
        "pagination": _pagination(page.meta),
    }


def saved_view(page: Page) -> Dict[str, Any]:
    items = _dump(page.items)
    return {
        "items": items,
        "posts": items,
        "data": {"items": items, "posts": items},
        "pagination": _pagination(page.meta),
    }


def search_view(page: Page) -> Dict[str, Any]:
    return {"users": _dump(page.items), "pagination": _pagination(page.meta)}


def post_list_view(posts: Sequence[CamelModel]) -> List[Dict[str, Any]]:
    return _dump(posts)
