"""
Sociality Backend — Post & Comment Schemas
===========================================

What:  The post and comment views returned by every endpoint that renders
       them, plus the comment-creation body and engagement toggle results.

Viewer-relative fields on PostView:
    liked / saved — whether the viewer liked / saved the post; null for
    anonymous callers, who have no answer to give.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from sociality.schemas.common import CamelModel
from sociality.schemas.user import UserMini

MAX_CAPTION_LENGTH = 2200
MAX_COMMENT_LENGTH = 2000


class PostView(CamelModel):
    id: uuid.UUID
    image_url: str
    caption: str = ""
    created_at: datetime
    author: UserMini
    like_count: int = 0
    comment_count: int = 0
    liked: Optional[bool] = None
    saved: Optional[bool] = None


class CommentView(CamelModel):
    id: uuid.UUID
    post_id: uuid.UUID
    body: str
    created_at: datetime
    author: UserMini


class CommentCreateRequest(BaseModel):
    """
    Accepts the comment text under `body`, `text` or `comment`; the first
    one present wins. Older mobile builds still send `text`.
    """

    body: Optional[str] = Field(default=None, min_length=1, max_length=MAX_COMMENT_LENGTH)
    text: Optional[str] = Field(default=None, min_length=1, max_length=MAX_COMMENT_LENGTH)
    comment: Optional[str] = Field(default=None, min_length=1, max_length=MAX_COMMENT_LENGTH)

    def resolved_text(self) -> str:
        for candidate in (self.body, self.text, self.comment):
            if candidate is not None:
                return candidate.strip()
        return ""


class LikeResult(CamelModel):
    liked: bool
    like_count: int


class SaveResult(CamelModel):
    saved: bool
    save_count: int


class OkResponse(BaseModel):
    ok: bool = True
