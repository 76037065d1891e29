"""
Sociality Backend — User SQLAlchemy Model
==========================================

What:  ORM model representing the `users` table.
Why:   Accounts own posts, comments, likes, saves and both ends of follow edges.
How:   Inherits from the shared DeclarativeBase; Alembic migrations mirror it.

Table Design Rationale:
    - UUID primary key: Non-sequential, safe to expose in URLs
    - email: Stored lower-cased; unique index enforces one account per address
    - username: Unique, used as the public handle in /api/users/{username}.
      Accounts created before usernames existed were backfilled as
      `user_<id>` by migration 002.
    - role: USER or ADMIN, carried inside every issued token
    - Foreign keys in dependent tables use ON DELETE CASCADE, so deleting a
      user removes their posts, comments, likes, saves and follow edges.
"""

import enum
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Enum, Index, String, Text, UniqueConstraint, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from sociality.database import Base


class Role(str, enum.Enum):
    USER = "USER"
    ADMIN = "ADMIN"


class User(Base):
    """
    A registered account.

    Query Patterns:
        - Login: WHERE email = :email                → uq_users_email
        - Profile: WHERE username = :username        → uq_users_username
        - Search: username/name/email ILIKE %q%       → sequential scan (small tables)
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    email: Mapped[str] = mapped_column(
        String(320),
        nullable=False,
        comment="Lower-cased login email",
    )

    username: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        comment="Public handle; legacy rows backfilled as user_<id>",
    )

    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    name: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(25), nullable=True)
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    avatar_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)

    role: Mapped[Role] = mapped_column(
        Enum(Role, name="user_role", native_enum=False, length=16),
        nullable=False,
        default=Role.USER,
        server_default=text("'USER'"),
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
        Index("uq_users_username", "username", unique=True),
    )

    @property
    def display_name(self) -> str:
        return self.name or self.username

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}', role='{self.role.value}')>"
