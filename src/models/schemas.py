"""Request/response Pydantic models for the HTTP surface.

Query option models carry field-level constraints; free-text filters are
stripped of null bytes and NFC-normalized before use.
"""

import unicodedata

from pydantic import BaseModel, Field, field_validator


class HealthResponse(BaseModel):
    """Response model for GET /health."""

    service: str
    version: str
    status: str
    uptime_seconds: float
    content_configured: bool
    breakers: dict[str, str] = Field(default_factory=dict)


# ── Shared sanitization validator ───────────────────────────────────────


def _clean_text(v):
    if isinstance(v, str):
        return unicodedata.normalize("NFC", v.replace("\x00", "")).strip()
    return v


def _clean_tags(v):
    if v is None:
        return []
    if isinstance(v, str):
        v = v.split(",")
    return [tag for tag in (_clean_text(t) for t in v) if tag]


# ── Query options ───────────────────────────────────────────────────────


class PortfolioQueryOptions(BaseModel):
    """Filters for the gallery fetch."""

    category: str | None = Field(default=None, max_length=100)
    tags: list[str] = Field(default_factory=list, max_length=20)
    featured_only: bool = False
    limit: int | None = Field(default=None, ge=1, le=1000)

    @field_validator("category", mode="before")
    @classmethod
    def sanitize_category(cls, v):
        return _clean_text(v) or None

    @field_validator("tags", mode="before")
    @classmethod
    def sanitize_tags(cls, v):
        return _clean_tags(v)


class BlogQueryOptions(BaseModel):
    """Filters, sort and pagination for the article listing."""

    category: str | None = Field(default=None, max_length=100)
    tags: list[str] = Field(default_factory=list, max_length=20)
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    sort_by: str = Field(default="publishedDate", pattern=r"^(publishedDate|title|updatedDate)$")
    sort_order: str = Field(default="desc", pattern=r"^(asc|desc)$")
    published_only: bool = True

    @field_validator("category", mode="before")
    @classmethod
    def sanitize_category(cls, v):
        return _clean_text(v) or None

    @field_validator("tags", mode="before")
    @classmethod
    def sanitize_tags(cls, v):
        return _clean_tags(v)


# ── Operational requests ────────────────────────────────────────────────


class AbortRequest(BaseModel):
    reason: str = Field(default="Aborted by operator", max_length=200)

    @field_validator("reason", mode="before")
    @classmethod
    def sanitize_reason(cls, v):
        return _clean_text(v)


class AbortResponse(BaseModel):
    aborted: int
    reason: str


class PublishResponse(BaseModel):
    published: bool
    endpoint_configured: bool
    events: int
