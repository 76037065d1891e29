"""
Sociality Backend — Database Session Management
================================================

What:  Async SQLAlchemy engine, session factory, declarative base and FastAPI dependency.
Why:   Centralizes all database connection logic in one place.
How:   Creates an async engine with connection pooling, provides a session
       dependency that commits on success and rolls back on error.
Who:   Used by route handlers via FastAPI's dependency injection system.
When:  Engine is created at module import; sessions are created per request.

Transaction Boundary:
    One request = one session = one transaction. Services only flush; the
    dependency below commits once the handler returns. Multi-statement writes
    (e.g. deleting a post together with its comments, likes and saves) are
    therefore atomic: either every statement commits or none does.

Connection Pooling Strategy:
    pool_size=20:      Persistent connections for normal load
    max_overflow=10:   Temporary connections for traffic spikes (total max = 30)
    pool_pre_ping:     Validates connections before use (catches stale connections)
    pool_recycle=3600: Recycles connections every hour
    SQLite (tests, local tinkering) uses SQLAlchemy's default pool untouched.
"""

import logging
from typing import Any, AsyncGenerator, Dict, List

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from sociality.config import settings
from sociality.exceptions import DatabaseError

logger = logging.getLogger(__name__)


def _engine_options() -> Dict[str, Any]:
    options: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
    if not settings.is_sqlite:
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return options


# ── Engine Configuration ──────────────────────────────────────────────────
engine = create_async_engine(settings.database_url, **_engine_options())

# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: attributes stay readable after commit, which the
# transformers rely on when they run after the service has flushed.
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Every model registers with this metadata; Alembic's env.py reads it for
    --autogenerate and the test suite calls create_all() on it.
    """
    pass


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler
        3. On success: commits the transaction
        4. On error: rolls back the transaction
        5. Always: closes the session (returns connection to pool)

    A failing COMMIT surfaces as DatabaseError (500, generic message); the
    driver error is logged here and never reaches the client. Routes declare
    it with scope="function" so the commit finishes before the response is
    sent; under the default scope a failed commit would follow a 2xx.

    Example usage in a route:
        @router.get("/feed")
        async def feed(db: AsyncSession = Depends(get_db_session, scope="function")):
            ...
    """
    async with async_session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        else:
            try:
                await session.commit()
            except SQLAlchemyError as e:
                logger.error("Commit failed, rolling back: %s", e)
                await session.rollback()
                raise DatabaseError(context={"stage": "commit", "error": type(e).__name__}) from e
        finally:
            await session.close()


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def dispose_engine() -> None:
    """Closes all pooled connections. Called from the application lifespan on shutdown."""
    await engine.dispose()


# ── Idempotent Inserts ────────────────────────────────────────────────────
_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


async def insert_ignore_duplicate(
    db: AsyncSession, model: type, index_elements: List[str], **values: Any
) -> None:
    """
    INSERT ... ON CONFLICT (index_elements) DO NOTHING for the session's dialect.

    Used for like, save and follow edges: the unique constraint decides, so
    concurrent duplicates end with one row and no error.
    """
    dialect = db.get_bind().dialect.name
    try:
        insert = _INSERT_BY_DIALECT[dialect]
    except KeyError:
        raise NotImplementedError(f"Idempotent insert not supported for dialect {dialect!r}") from None
    stmt = insert(model).values(**values).on_conflict_do_nothing(index_elements=index_elements)
    await db.execute(stmt)
