"""
Sociality Backend — Auth Request/Response Schemas
==================================================

What:  Bodies accepted by POST /api/auth/register and POST /api/auth/login.
Why:   Both bodies are strict: unknown fields are rejected with a 400 so a
       client typo ("passwrod") fails loudly instead of being ignored.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

USERNAME_PATTERN = r"^[A-Za-z0-9_]+$"
PHONE_PATTERN = r"^[+0-9()\[\]\-\s]*$"


class RegisterRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=2, max_length=120)
    username: str = Field(
        min_length=3,
        max_length=30,
        pattern=USERNAME_PATTERN,
        description="Letters, numbers and underscores only",
    )
    email: EmailStr
    phone: Optional[str] = Field(
        default=None,
        min_length=6,
        max_length=20,
        pattern=PHONE_PATTERN,
        description="Digits, spaces and +()-",
    )
    password: str = Field(min_length=8, max_length=100)

    @field_validator("phone", mode="before")
    @classmethod
    def blank_phone_is_missing(cls, v):
        """An empty phone field means "not provided"."""
        if isinstance(v, str) and v == "":
            return None
        return v


class LoginRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str = Field(min_length=8, max_length=100)


class TokenResponse(BaseModel):
    token: str = Field(description="Signed bearer token (HS256 JWT)")
