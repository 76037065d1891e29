"""
Sociality Backend — Auth Route Handlers
========================================

What:  POST /api/auth/register and POST /api/auth/login.
Both return `{"token": "<jwt>"}`; register answers 201, login 200.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sociality.database import get_db_session
from sociality.schemas.auth import LoginRequest, RegisterRequest, TokenResponse
from sociality.schemas.common import ErrorResponse
from sociality.services.auth_service import auth_service

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/register",
    status_code=201,
    response_model=TokenResponse,
    responses={
        400: {"description": "Invalid input, or email/username already in use", "model": ErrorResponse},
    },
    summary="Create an account",
)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> TokenResponse:
    token = await auth_service.register(db, body)
    return TokenResponse(token=token)


@router.post(
    "/login",
    response_model=TokenResponse,
    responses={
        400: {"description": "Invalid input", "model": ErrorResponse},
        401: {"description": "Invalid credentials", "model": ErrorResponse},
    },
    summary="Exchange email and password for a token",
)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> TokenResponse:
    token = await auth_service.login(db, body)
    return TokenResponse(token=token)
