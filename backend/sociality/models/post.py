"""
Sociality Backend — Post SQLAlchemy Model
==========================================

What:  ORM model representing the `posts` table.
Why:   A post is one uploaded photo plus an optional caption.

Index on created_at DESC:
    Every post listing (feed, profile grid) is newest-first. The id column is
    the tie-breaker for rows sharing a timestamp, which keeps offset and
    cursor pagination stable.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sociality.database import Base
from sociality.models.user import User


class Post(Base):
    """
    A published photo.

    Deleting a post also removes its comments, likes and saves; PostService
    issues those deletes explicitly inside the request transaction so the
    behaviour does not depend on foreign-key enforcement being enabled.
    """

    __tablename__ = "posts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    author_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    caption: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        server_default=text("''"),
    )

    # Public URL of the stored image (/uploads/<file> or PUBLIC_API_URL/uploads/<file>)
    image_url: Mapped[str] = mapped_column(String(1024), nullable=False, default="")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    # Many-to-one, always needed to render a post; joined eagerly
    author: Mapped[User] = relationship(lazy="joined")

    __table_args__ = (
        Index("idx_posts_created_at", created_at.desc()),
        Index("idx_posts_author_id", "author_id"),
    )

    def __repr__(self) -> str:
        return f"<Post(id={self.id}, author_id={self.author_id})>"
