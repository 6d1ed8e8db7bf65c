"""Telemetry models: fetch events, derived metrics and dashboard snapshots."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field


class ContentSource(str, Enum):
    """Where the data handed to a caller came from."""

    LIVE = "live"
    STATIC = "static"
    CACHE = "cache"
    PREVIEW = "preview"


class ContentType(str, Enum):
    """Content shapes served by the gateway (upstream content type ids)."""

    BLOG_POST = "blogPost"
    PORTFOLIO_ENTRY = "portfolioEntry"
    ABOUT_PAGE = "aboutPage"
    HOMEPAGE = "homepage"
    ASSET = "asset"


HealthStatus = Literal["excellent", "good", "fair", "poor"]


class AnalyticsEvent(BaseModel):
    """One recorded fact about a content fetch attempt."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    content_type: ContentType
    source: ContentSource
    success: bool = True
    response_time_ms: float | None = None
    error: str | None = None
    metadata: dict[str, Any] | None = None


class AnalyticsMetrics(BaseModel):
    """Metrics derived from the current event buffer.

    Rates are percentages rounded to two decimals.
    """

    total_requests: int
    successful_requests: int
    failed_requests: int
    by_source: dict[ContentSource, int]
    by_content_type: dict[ContentType, int]
    average_response_time_ms: int
    cache_hit_rate: float
    static_fallback_rate: float
    preview_mode_usage: int


class DashboardSnapshot(BaseModel):
    """Metrics plus a health classification and recommendations."""

    metrics: AnalyticsMetrics
    live_usage_percentage: int
    static_usage_percentage: float
    health: HealthStatus
    recommendations: list[str]


class SessionSummary(BaseModel):
    duration_seconds: float
    metrics: AnalyticsMetrics
    recent_events: list[AnalyticsEvent]


class TelemetrySnapshot(BaseModel):
    """Exportable snapshot: buffered events plus derived metrics."""

    session_start: datetime
    session_duration_seconds: float
    metrics: AnalyticsMetrics
    events: list[AnalyticsEvent]
