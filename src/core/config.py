"""Settings for the portfolio content gateway.

Centralized configuration for the content-delivery layer.
All settings are loaded from environment variables with the
``CONTENT_GATEWAY_`` prefix.  A missing space id or access token is not an
error: the gateway simply serves the bundled static datasets.
"""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Content gateway configuration.

    All fields can be overridden by environment variables prefixed with
    ``CONTENT_GATEWAY_``.  For example, ``CONTENT_GATEWAY_SPACE_ID=abc123``
    sets the upstream space.
    """

    # ── Service identity ────────────────────────────────────────────
    SERVICE_NAME: str = "portfolio-content-gateway"
    SERVICE_VERSION: str = "0.1.0"
    HOST: str = "0.0.0.0"
    PORT: int = 8090

    # ── Upstream headless content service ───────────────────────────
    SPACE_ID: str = ""
    ACCESS_TOKEN: str = ""
    ENVIRONMENT: str = "master"
    DELIVERY_HOST: str = "cdn.contentful.com"

    # ── Draft preview ───────────────────────────────────────────────
    PREVIEW_ENABLED: bool = False
    PREVIEW_ACCESS_TOKEN: str = ""
    PREVIEW_HOST: str = "preview.contentful.com"

    # ── Request governor (deadline + retry) ─────────────────────────
    REQUEST_TIMEOUT_MS: int = 5000
    REQUEST_MAX_RETRIES: int = 1
    RETRY_BACKOFF_MULTIPLIER: float = 1.5
    RETRY_BASE_DELAY_MS: float = 1000.0
    RETRY_MAX_DELAY_MS: float = 5000.0
    REQUEST_METRICS_LIMIT: int = 100

    # ── Circuit breakers, one per dependency ────────────────────────
    CONTENT_BREAKER_THRESHOLD: int = 3
    CONTENT_BREAKER_RECOVERY_SECONDS: float = 30.0
    IMAGE_BREAKER_THRESHOLD: int = 2  # auxiliary service, trips sooner
    IMAGE_BREAKER_RECOVERY_SECONDS: float = 15.0
    EMAIL_BREAKER_THRESHOLD: int = 3
    EMAIL_BREAKER_RECOVERY_SECONDS: float = 20.0

    # ── Telemetry ───────────────────────────────────────────────────
    VERBOSE_LOGGING: bool = False  # dev flag: validation warnings + per-event lines
    TELEMETRY_MAX_EVENTS: int = 1000
    ANALYTICS_ENDPOINT: str = ""  # optional external collector (single POST)
    TELEMETRY_FALLBACK_PATH: str = "logs/telemetry_fallback.jsonl"

    # ── Static fallback data ────────────────────────────────────────
    STATIC_DATA_DIR: str = ""  # empty = bundled src/data

    model_config = {
        "env_prefix": "CONTENT_GATEWAY_",
    }

    @property
    def is_configured(self) -> bool:
        """True when the delivery client can be constructed."""
        return bool(self.SPACE_ID and self.ACCESS_TOKEN)

    @property
    def preview_configured(self) -> bool:
        return bool(self.SPACE_ID and self.PREVIEW_ENABLED and self.PREVIEW_ACCESS_TOKEN)
