"""
Sociality Backend — User Schemas
=================================

What:  Public user shapes (mini author card, profile, follow-list entry,
       search hit), the authenticated profile, and the PATCH /api/me body.

Viewer-relative fields:
    isMe          — the authenticated viewer is this user
    isFollowing   — the viewer follows this user; always false when isMe
    isFollowedByMe— same meaning, legacy name used by the search endpoint
    Anonymous viewers get false for all of them.
"""

import re
import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, TypeAdapter, field_validator

from sociality.schemas.auth import PHONE_PATTERN, USERNAME_PATTERN
from sociality.schemas.common import CamelModel

_http_url = TypeAdapter(HttpUrl)


class UserStats(CamelModel):
    """Aggregate counters for one user; `likes` counts likes received on their posts."""

    posts: int = 0
    followers: int = 0
    following: int = 0
    likes: int = 0


class UserMini(CamelModel):
    id: uuid.UUID
    username: str
    display_name: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None


class PublicUser(CamelModel):
    id: uuid.UUID
    username: str
    name: Optional[str] = None
    display_name: str
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    email: str
    phone: Optional[str] = None
    counts: UserStats
    is_following: bool = False
    is_me: bool = False


class FollowUser(CamelModel):
    id: uuid.UUID
    username: str
    name: Optional[str] = None
    display_name: str
    avatar_url: Optional[str] = None
    counts: UserStats
    is_following: bool = False
    is_me: bool = False


class SearchUser(CamelModel):
    id: uuid.UUID
    username: str
    name: Optional[str] = None
    display_name: str
    avatar_url: Optional[str] = None
    is_followed_by_me: bool = False


class MeProfile(CamelModel):
    id: uuid.UUID
    username: str
    name: Optional[str] = None
    email: str
    phone: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None


class MeResponse(CamelModel):
    profile: MeProfile
    stats: UserStats


class FollowResult(CamelModel):
    success: bool = True
    message: str
    following: bool
    counts: UserStats


class UpdateMeRequest(BaseModel):
    """
    Partial profile update. Only fields present in the request are applied
    (see `model_fields_set`). For name, phone, bio and avatarUrl an empty
    string clears the value; an empty username is rejected by MeService.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = Field(default=None, max_length=120)
    username: Optional[str] = Field(default=None, max_length=30)
    phone: Optional[str] = Field(default=None, max_length=25, pattern=PHONE_PATTERN)
    bio: Optional[str] = Field(default=None, max_length=280)
    avatar_url: Optional[str] = Field(default=None, alias="avatarUrl", max_length=1024)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v.strip() and len(v.strip()) < 2:
            raise ValueError("Name must be at least 2 characters")
        return v

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return v
        candidate = v.strip()
        if len(candidate) < 3:
            raise ValueError("Username must be at least 3 characters")
        if re.fullmatch(USERNAME_PATTERN, candidate) is None:
            raise ValueError("Username can contain letters, numbers, and underscores only")
        return v

    @field_validator("avatar_url")
    @classmethod
    def validate_avatar_url(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return v
        _http_url.validate_python(v.strip())
        return v
