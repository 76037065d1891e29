"""
Sociality Backend — Authentication Service
===========================================

What:  Password hashing, token signing/verification, registration and login.
How:   bcrypt through passlib's CryptContext; HS256 JWTs through PyJWT.

Token Payload:
    {
        "sub":  "<user uuid>",
        "role": "USER" | "ADMIN",
        "iat":  <issued at, unix seconds>,
        "exp":  <iat + TOKEN_TTL_DAYS>
    }

Verification never raises: a missing, malformed, badly signed or expired
token, or an unset JWT_SECRET, simply yields no identity. Whether that is
an error is decided by the `require_auth` / `optional_auth` dependencies.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sociality.config import settings
from sociality.exceptions import AuthenticationError, ConflictError, SocialityError
from sociality.models import Role, User
from sociality.schemas.auth import LoginRequest, RegisterRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenClaims:
    user_id: uuid.UUID
    role: Role


class AuthService:
    """Stateless apart from the CryptContext; shared as the `auth_service` singleton."""

    def __init__(self, bcrypt_rounds: Optional[int] = None):
        self.pwd_context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=bcrypt_rounds or settings.bcrypt_rounds,
        )

    # ── Passwords ─────────────────────────────────────────────────────────

    def hash_password(self, password: str) -> str:
        return self.pwd_context.hash(password)

    def verify_password(self, password: str, password_hash: str) -> bool:
        try:
            return self.pwd_context.verify(password, password_hash)
        except ValueError:
            # Stored value is not a recognisable hash
            logger.warning("Unrecognised password hash format")
            return False

    # ── Tokens ────────────────────────────────────────────────────────────

    def sign_token(self, user_id: uuid.UUID, role: Role) -> str:
        """
        Issue a bearer token for `user_id`.

        Raises:
            SocialityError (500) when JWT_SECRET is not configured.
        """
        if not settings.jwt_secret:
            logger.error("Cannot sign token: JWT_SECRET is not set")
            raise SocialityError("Server authentication is not configured")

        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "role": role.value,
            "iat": now,
            "exp": now + timedelta(days=settings.token_ttl_days),
        }
        return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)

    def verify_token(self, token: Optional[str]) -> Optional[TokenClaims]:
        if not token or not settings.jwt_secret:
            return None
        try:
            payload = jwt.decode(
                token,
                settings.jwt_secret,
                algorithms=[settings.jwt_algorithm],
                options={"require": ["sub", "exp"]},
            )
            return TokenClaims(
                user_id=uuid.UUID(str(payload["sub"])),
                role=Role(payload.get("role", Role.USER.value)),
            )
        except jwt.PyJWTError as e:
            logger.debug("Rejected bearer token: %s", e)
            return None
        except ValueError:
            # sub is not a UUID or role is unknown
            return None

    # ── Accounts ──────────────────────────────────────────────────────────

    async def register(self, db: AsyncSession, data: RegisterRequest) -> str:
        """
        Create an account and return a token for it.

        Normalisation: email trimmed and lower-cased; name, username and
        phone trimmed; a blank phone is stored as null.

        Raises:
            ConflictError: email or username already in use, including when a
                concurrent registration wins the race at insert time.
        """
        email = data.email.strip().lower()
        username = data.username.strip()
        phone = data.phone.strip() if data.phone else None

        if await db.scalar(select(User.id).where(User.email == email)) is not None:
            raise ConflictError("Email already registered", field="email")
        if await db.scalar(select(User.id).where(User.username == username)) is not None:
            raise ConflictError("Username already taken", field="username")

        user = User(
            name=data.name.strip(),
            username=username,
            email=email,
            phone=phone or None,
            password_hash=self.hash_password(data.password),
            role=Role.USER,
        )
        db.add(user)
        try:
            await db.flush()
        except IntegrityError as e:
            await db.rollback()
            raise self._conflict_from_integrity_error(e) from e

        logger.info("Registered user %s (@%s)", user.id, user.username)
        return self.sign_token(user.id, user.role)

    async def login(self, db: AsyncSession, data: LoginRequest) -> str:
        email = data.email.strip().lower()
        user = await db.scalar(select(User).where(User.email == email))
        if user is None or not self.verify_password(data.password, user.password_hash):
            raise AuthenticationError("Invalid credentials")
        return self.sign_token(user.id, user.role)

    @staticmethod
    def _conflict_from_integrity_error(exc: IntegrityError) -> ConflictError:
        detail = str(exc.orig).lower()
        if "username" in detail:
            return ConflictError("Username already taken", field="username")
        return ConflictError("Email already registered", field="email")


# ── Singleton Instance ────────────────────────────────────────────────────
auth_service = AuthService()
