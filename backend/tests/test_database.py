"""
Sociality Backend — Session Dependency Tests
=============================================

What:  Tests for get_db_session's transaction handling and for how a
       DatabaseError is rendered.
How:   The session factory is patched to hand out conftest's AsyncMock
       session; the dependency generator is driven by hand.

What we test:
    ✅ A clean request commits once and never rolls back
    ✅ An error raised by the handler rolls back and propagates unchanged
    ✅ A failing COMMIT rolls back and surfaces as DatabaseError
    ✅ DatabaseError renders as a 500 with a generic message and no driver details
"""

from unittest.mock import MagicMock, patch

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError

from sociality.database import get_db_session
from sociality.exceptions import DatabaseError, NotFoundError
from sociality.main import register_exception_handlers


class TestGetDbSession:

    @pytest.fixture(autouse=True)
    def patch_factory(self, mock_db_session):
        mock_db_session.__aenter__.return_value = mock_db_session
        with patch("sociality.database.async_session_factory", MagicMock(return_value=mock_db_session)):
            yield

    @pytest.mark.asyncio
    async def test_commits_on_success(self, mock_db_session):
        dependency = get_db_session()
        session = await dependency.__anext__()

        with pytest.raises(StopAsyncIteration):
            await dependency.__anext__()

        assert session is mock_db_session
        mock_db_session.commit.assert_awaited_once()
        mock_db_session.rollback.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_handler_error_rolls_back(self, mock_db_session):
        dependency = get_db_session()
        await dependency.__anext__()

        with pytest.raises(NotFoundError):
            await dependency.athrow(NotFoundError("post"))

        mock_db_session.rollback.assert_awaited_once()
        mock_db_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_commit_failure_becomes_database_error(self, mock_db_session):
        mock_db_session.commit.side_effect = OperationalError("COMMIT", {}, Exception("disk I/O error"))
        dependency = get_db_session()
        await dependency.__anext__()

        with pytest.raises(DatabaseError) as exc_info:
            await dependency.__anext__()

        mock_db_session.rollback.assert_awaited_once()
        mock_db_session.close.assert_awaited()
        assert exc_info.value.context == {"stage": "commit", "error": "OperationalError"}
        assert isinstance(exc_info.value.__cause__, OperationalError)


class TestDatabaseErrorResponse:

    @pytest.mark.asyncio
    async def test_generic_500(self):
        app = FastAPI()
        register_exception_handlers(app)

        @app.post("/write")
        async def write():
            raise DatabaseError(context={"stage": "commit", "error": "OperationalError"})

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post("/write")

        body = response.json()
        assert response.status_code == 500
        assert body["error"] == "server_error"
        assert body["message"] == "An internal error occurred. Please try again later."
        assert "details" not in body
        assert "OperationalError" not in response.text
