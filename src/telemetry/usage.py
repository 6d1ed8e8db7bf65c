"""Usage telemetry: which source served each content request.

``UsageTelemetry`` keeps an in-memory buffer of ``AnalyticsEvent`` records
(oldest dropped first once ``max_events`` is reached).  Every metric is
recomputed from the buffer on demand; there are no running counters, so a
metrics call is a pure function of the buffered events.
"""

from __future__ import annotations

import logging
import time
from datetime import UTC, datetime
from typing import Any

from src.telemetry.models import (
    AnalyticsEvent,
    AnalyticsMetrics,
    ContentSource,
    ContentType,
    DashboardSnapshot,
    HealthStatus,
    SessionSummary,
    TelemetrySnapshot,
)

logger = logging.getLogger(__name__)

# Static fallback rate (percent) above which health degrades
_HEALTH_THRESHOLDS: list[tuple[float, HealthStatus]] = [
    (50.0, "poor"),
    (25.0, "fair"),
    (10.0, "good"),
]

_SLOW_RESPONSE_MS = 2000
_OPTIMAL_MESSAGE = "Content integration performing optimally!"


class UsageTelemetry:
    """Bounded in-memory event buffer with derived health metrics.

    Args:
        max_events: Buffer capacity; the oldest events are dropped first.
        verbose:    Log a one-line summary per tracked event.
    """

    def __init__(self, max_events: int = 1000, verbose: bool = False) -> None:
        self.max_events = max_events
        self.verbose = verbose
        self._events: list[AnalyticsEvent] = []
        self._session_start = datetime.now(UTC)
        self._session_clock = time.monotonic()

    # ── Recording ───────────────────────────────────────────────────

    def track(
        self,
        content_type: ContentType,
        source: ContentSource,
        *,
        success: bool = True,
        response_time_ms: float | None = None,
        error: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> AnalyticsEvent:
        """Append a normalized event and trim the buffer."""
        event = AnalyticsEvent(
            content_type=content_type,
            source=source,
            success=success,
            response_time_ms=round(response_time_ms, 2) if response_time_ms is not None else None,
            error=error,
            metadata=metadata,
        )
        self._events.append(event)
        if len(self._events) > self.max_events:
            del self._events[: len(self._events) - self.max_events]

        if self.verbose:
            logger.debug(
                "%s [%s] from %s%s",
                "ok" if event.success else "failed",
                event.content_type.value,
                event.source.value,
                f" ({event.response_time_ms:.0f}ms)" if event.response_time_ms is not None else "",
            )
        return event

    def track_fetch(
        self,
        content_type: ContentType,
        started: float,
        success: bool,
        error: str | None = None,
        *,
        source: ContentSource = ContentSource.LIVE,
    ) -> AnalyticsEvent:
        """Record an upstream fetch; *started* is a ``time.monotonic()`` value."""
        return self.track(
            content_type,
            source,
            success=success,
            response_time_ms=(time.monotonic() - started) * 1000,
            error=error,
        )

    def track_static_fallback(
        self,
        content_type: ContentType,
        reason: str,
        *,
        error: str | None = None,
    ) -> AnalyticsEvent:
        """Record that bundled static data served a request.

        A fallback caused by an error is recorded as unsuccessful; the
        expected "not configured" path is a success.
        """
        return self.track(
            content_type,
            ContentSource.STATIC,
            success=error is None,
            error=error,
            metadata={"reason": reason},
        )

    def track_preview(self, content_type: ContentType, started: float) -> AnalyticsEvent:
        return self.track_fetch(content_type, started, True, source=ContentSource.PREVIEW)

    # ── Derived metrics ─────────────────────────────────────────────

    def get_metrics(self) -> AnalyticsMetrics:
        """Compute every metric from the current buffer."""
        events = self._events
        total = len(events)
        successful = sum(1 for e in events if e.success)

        by_source = {source: sum(1 for e in events if e.source == source) for source in ContentSource}
        by_content_type = {ct: sum(1 for e in events if e.content_type == ct) for ct in ContentType}

        response_times = [e.response_time_ms for e in events if e.response_time_ms is not None]
        average = sum(response_times) / len(response_times) if response_times else 0.0

        return AnalyticsMetrics(
            total_requests=total,
            successful_requests=successful,
            failed_requests=total - successful,
            by_source=by_source,
            by_content_type=by_content_type,
            average_response_time_ms=round(average),
            cache_hit_rate=_percentage(by_source[ContentSource.CACHE], total),
            static_fallback_rate=_percentage(by_source[ContentSource.STATIC], total),
            preview_mode_usage=by_source[ContentSource.PREVIEW],
        )

    def get_dashboard(self) -> DashboardSnapshot:
        """Layer a health classification and recommendations over the metrics."""
        metrics = self.get_metrics()
        total = metrics.total_requests
        live = metrics.by_source[ContentSource.LIVE]
        static_rate = metrics.static_fallback_rate

        health: HealthStatus = "excellent"
        for threshold, status in _HEALTH_THRESHOLDS:
            if static_rate > threshold:
                health = status
                break

        recommendations: list[str] = []
        if static_rate > 25:
            recommendations.append("High static fallback rate detected. Check content service connectivity.")
        if metrics.average_response_time_ms > _SLOW_RESPONSE_MS:
            recommendations.append("High response times detected. Consider implementing caching.")
        if metrics.failed_requests > metrics.successful_requests * 0.1:
            recommendations.append("High error rate detected. Review API configuration and rate limits.")
        if not recommendations:
            recommendations.append(_OPTIMAL_MESSAGE)

        return DashboardSnapshot(
            metrics=metrics,
            live_usage_percentage=round((live / total) * 100) if total else 0,
            static_usage_percentage=static_rate,
            health=health,
            recommendations=recommendations,
        )

    # ── Inspection / export ─────────────────────────────────────────

    @property
    def events(self) -> list[AnalyticsEvent]:
        return list(self._events)

    def recent_events(self, count: int = 10) -> list[AnalyticsEvent]:
        if count <= 0:
            return []
        return self._events[-count:]

    def session_duration(self) -> float:
        """Seconds since the buffer was created or last cleared."""
        return time.monotonic() - self._session_clock

    def session_summary(self) -> SessionSummary:
        return SessionSummary(
            duration_seconds=round(self.session_duration(), 3),
            metrics=self.get_metrics(),
            recent_events=self.recent_events(5),
        )

    def clear(self) -> None:
        self._events = []
        self._session_start = datetime.now(UTC)
        self._session_clock = time.monotonic()

    def export_snapshot(self) -> TelemetrySnapshot:
        return TelemetrySnapshot(
            session_start=self._session_start,
            session_duration_seconds=round(self.session_duration(), 3),
            metrics=self.get_metrics(),
            events=list(self._events),
        )

    def export_json(self) -> str:
        """Serialize the snapshot for console inspection or forwarding."""
        return self.export_snapshot().model_dump_json(indent=2)

    def log_summary(self) -> None:
        dashboard = self.get_dashboard()
        logger.info(
            "Telemetry: %d requests, live %d%%, static fallback %.2f%%, avg %dms, health=%s",
            dashboard.metrics.total_requests,
            dashboard.live_usage_percentage,
            dashboard.static_usage_percentage,
            dashboard.metrics.average_response_time_ms,
            dashboard.health,
        )


def _percentage(part: int, total: int) -> float:
    if total == 0:
        return 0.0
    return round((part / total) * 100, 2)
