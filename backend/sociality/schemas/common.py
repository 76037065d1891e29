"""
Sociality Backend — Shared Schemas
===================================

What:  Base model configuration, pagination types, error and health responses.
Why:   Every listing endpoint paginates the same way; keeping the arithmetic
       in one place guarantees `totalPages` is computed identically everywhere.

Pagination Contract:
    page:       1-based page number (>= 1, default 1)
    limit:      items per page (1..MAX_PAGE_LIMIT, default varies per endpoint)
    total:      number of rows matching the listing, ignoring page/limit
    totalPages: max(1, ceil(total / limit)), so an empty listing still has one page

    Example: total=25, limit=10 → pages 1 and 2 hold 10 items, page 3 holds 5,
    totalPages=3.
"""

import math
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Upper bound on `limit` for every paginated endpoint
MAX_PAGE_LIMIT = 50

T = TypeVar("T")


class CamelModel(BaseModel):
    """Response base: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class PageParams(BaseModel):
    """Validated page/limit pair produced by the pagination dependency."""

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=MAX_PAGE_LIMIT)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class PageMeta(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "PageMeta":
        return cls(
            page=page,
            limit=limit,
            total=total,
            total_pages=max(1, math.ceil(total / limit)),
        )

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


class Page(BaseModel, Generic[T]):
    """
    Canonical internal listing result.

    Services return a Page; routes/compat.py renders it into whichever legacy
    envelope a given endpoint has always used.

    next_cursor:
        Only set by cursor-paginated listings: the id of the first row of the
        next page (the extra row fetched with limit + 1).
    """

    items: List[T]
    meta: PageMeta
    next_cursor: Optional[str] = None


class ErrorResponse(BaseModel):
    """
    Standardized error body for all API errors.

    Example:
        {
            "error": "not_found",
            "message": "Post not found",
            "details": {"resource": "post"},
            "request_id": "3f2a9c1d"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy or unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
