"""
Sociality Backend — Test Configuration (conftest.py)
=====================================================

What:  Shared pytest fixtures for the whole suite.
How:   Every test gets a fresh in-memory SQLite database (aiosqlite) built
       from the ORM metadata; HTTP tests talk to the real FastAPI app through
       httpx's ASGITransport with the session factory pointed at that database.

Fixture Hierarchy (all function-scoped):
    ├── db_engine:          in-memory engine, tables created
    ├── db_session:         AsyncSession for arranging and asserting
    ├── test_client:        httpx AsyncClient; one session per request
    ├── make_user:          factory for committed users
    ├── make_post:          factory for committed posts
    ├── auth_headers:       factory for "Authorization: Bearer ..." headers
    ├── mock_db_session:    AsyncMock session for pure unit tests
    └── sample_image_bytes: a real 2000x1000 JPEG generated with Pillow
"""

import io
import os
import tempfile

# ══════════════════════════════════════════════════════════════════════════
# Environment Setup (must precede every sociality import)
# ══════════════════════════════════════════════════════════════════════════
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["JWT_SECRET"] = "test-secret-not-for-production"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="sociality_test_")
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RATE_LIMIT_REQUESTS"] = "100000"
os.environ["PUBLIC_API_URL"] = ""

from datetime import datetime, timedelta, timezone
from itertools import count
from typing import AsyncGenerator, Dict, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from sociality import database
from sociality.database import Base
from sociality.models import Post, User
from sociality.services.auth_service import auth_service

_sequence = count(1)


@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def test_client(session_factory, monkeypatch):
    """
    HTTP client bound to the app, with a session per request like production.

    The real get_db_session runs; only the factory it opens sessions from is
    swapped for one bound to the test database.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    from sociality.main import app

    monkeypatch.setattr(database, "async_session_factory", session_factory)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def make_user(db_session):
    """
    Factory for committed users.

    Usage:
        alice = await make_user(username="alice", name="Alice")
    """

    async def _make_user(
        username: Optional[str] = None,
        email: Optional[str] = None,
        name: Optional[str] = None,
        password: str = "password123",
        **extra,
    ) -> User:
        n = next(_sequence)
        username = username or f"user{n}"
        user = User(
            username=username,
            email=email or f"{username}@example.com",
            name=name,
            password_hash=auth_service.hash_password(password),
            **extra,
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return _make_user


@pytest_asyncio.fixture
async def make_post(db_session):
    """
    Factory for committed posts.

    `minutes_ago` pins created_at so ordering assertions never depend on
    how fast the test ran.
    """

    async def _make_post(author: User, caption: str = "", minutes_ago: int = 0) -> Post:
        post = Post(
            author_id=author.id,
            author=author,
            caption=caption,
            image_url=f"/uploads/{next(_sequence)}.jpg",
            created_at=datetime.now(timezone.utc) - timedelta(minutes=minutes_ago),
        )
        db_session.add(post)
        await db_session.commit()
        return post

    return _make_post


@pytest.fixture
def auth_headers():
    def _auth_headers(user: User) -> Dict[str, str]:
        return {"Authorization": f"Bearer {auth_service.sign_token(user.id, user.role)}"}

    return _auth_headers


@pytest.fixture
def mock_db_session():
    """
    AsyncMock standing in for AsyncSession in tests that must not touch a database.

    Usage:
        mock_db_session.scalar.return_value = None
        with pytest.raises(NotFoundError): ...
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.scalar = AsyncMock()
    session.scalars = AsyncMock()
    session.get = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.add = MagicMock()
    return session


def _image_bytes(fmt: str, size=(2000, 1000), mode: str = "RGB") -> bytes:
    buffer = io.BytesIO()
    Image.new(mode, size, color=(200, 40, 90) if mode == "RGB" else (200, 40, 90, 255)).save(
        buffer, format=fmt
    )
    return buffer.getvalue()


@pytest.fixture
def sample_image_bytes() -> bytes:
    """A real 2000x1000 JPEG; large enough to exercise the downscale."""
    return _image_bytes("JPEG")


@pytest.fixture
def sample_png_bytes() -> bytes:
    return _image_bytes("PNG", size=(300, 200), mode="RGBA")
