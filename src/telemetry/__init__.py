"""Usage telemetry for content fetches."""

from src.telemetry.models import (
    AnalyticsEvent,
    AnalyticsMetrics,
    ContentSource,
    ContentType,
    DashboardSnapshot,
    TelemetrySnapshot,
)
from src.telemetry.publisher import TelemetryPublisher
from src.telemetry.usage import UsageTelemetry

__all__ = [
    "AnalyticsEvent",
    "AnalyticsMetrics",
    "ContentSource",
    "ContentType",
    "DashboardSnapshot",
    "TelemetryPublisher",
    "TelemetrySnapshot",
    "UsageTelemetry",
]
