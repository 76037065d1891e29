"""
Sociality Backend — Custom Exception Hierarchy
===============================================

What:  Application-specific exceptions for every error scenario the API reports.
Why:   Services raise domain errors without knowing about HTTP; one set of
       handlers (registered in main.py) translates them to status codes.
How:   Each exception carries a user-facing message and an optional context
       dict. The context is returned as `details` only for client errors.
Who:   Raised by services, dependencies and middleware; caught by global handlers.

Exception Hierarchy:
    SocialityError (base)             → 500
    ├── ValidationError               → 400 Bad Request (client can fix)
    ├── ConflictError                 → 400 Bad Request (email/username taken)
    ├── AuthenticationError           → 401 Unauthorized
    ├── PermissionDeniedError         → 403 Forbidden (not the owner)
    ├── NotFoundError                 → 404 Not Found
    ├── FileStorageError              → 500 Internal Server Error
    ├── DatabaseError                 → 500 Internal Server Error
    └── RateLimitExceededError        → 429 Too Many Requests

Why ConflictError maps to 400 (not 409):
    Existing clients of the API branch on 400 for "Email already registered"
    and "Username already taken". The distinct class keeps the error code
    (`conflict`) machine-readable without changing the status clients expect.
"""

from typing import Any, Dict, Optional


class SocialityError(Exception):
    """
    Base exception for all Sociality application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(SocialityError):
    """
    Raised when client input fails a business-level validation rule.

    Schema-level problems (wrong types, lengths, patterns) are reported by
    FastAPI's RequestValidationError, which main.py renders in the same shape.

    Example response:
        {
            "error": "validation_error",
            "message": "Comment cannot be empty",
            "details": {"field": "body"}
        }
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class ConflictError(SocialityError):
    """Raised when a unique value (email, username) is already in use."""

    def __init__(
        self,
        message: str = "Resource already exists",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthenticationError(SocialityError):
    """
    Raised for a missing, malformed or expired bearer token, and for bad credentials.

    HTTP: 401 Unauthorized, with a `WWW-Authenticate: Bearer` header.
    """

    def __init__(
        self,
        message: str = "Unauthorized",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PermissionDeniedError(SocialityError):
    """Raised when an authenticated caller does not own the resource it tries to change."""

    def __init__(
        self,
        message: str = "Forbidden",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(SocialityError):
    """
    Raised when a requested resource does not exist.

    The message is "<Resource> not found" (e.g. "Post not found"), matching
    what the web client displays verbatim.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"{resource.capitalize()} not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)
        self.resource = resource


class FileStorageError(SocialityError):
    """
    Raised when writing or reading an uploaded file fails.

    The client gets a generic message; the OS error is logged server-side.
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(SocialityError):
    """
    Raised when a database operation fails unexpectedly.

    Security Note:
        The message returned to the client is always generic. Constraint
        names and SQL are logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(SocialityError):
    """Raised when a client exceeds the per-IP request rate limit."""

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
