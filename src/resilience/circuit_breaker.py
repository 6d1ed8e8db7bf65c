"""Async circuit breaker for upstream dependencies.

Implements the standard three-state circuit breaker:

    CLOSED  →  (failure_threshold reached)  →  OPEN
    OPEN    →  (recovery_timeout elapsed)   →  HALF_OPEN
    HALF_OPEN → (probe succeeds)            →  CLOSED
    HALF_OPEN → (probe fails)               →  OPEN

Each dependency (the content service, the auxiliary image service, the
email function) gets its own ``CircuitBreaker`` via
``CircuitBreakerRegistry`` so that one failing dependency never trips the
others.  Thresholds and recovery windows are registry configuration, not
call-site constants.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import TypeVar

from src.core.config import Settings
from src.core.errors import CircuitOpenError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """Async-safe circuit breaker for a single dependency.

    Args:
        name:               Human-readable dependency name (for logging/errors).
        failure_threshold:  Consecutive failures before opening the circuit.
        recovery_timeout:   Seconds the circuit stays OPEN before probing.
        half_open_max:      Max concurrent probes in HALF_OPEN state.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
        half_open_max: int = 1,
    ) -> None:
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.half_open_max = half_open_max

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: float = 0.0
        self._half_open_calls = 0
        self._lock = asyncio.Lock()

        # Metrics
        self.total_calls = 0
        self.total_failures = 0
        self.total_rejections = 0
        self.total_successes = 0
        self.total_fallbacks = 0

    # ── Public properties ────────────────────────────────────────────

    @property
    def state(self) -> CircuitState:
        """Return the current state, auto-transitioning OPEN → HALF_OPEN."""
        if self._state == CircuitState.OPEN:
            elapsed = time.monotonic() - self._last_failure_time
            if elapsed >= self.recovery_timeout:
                return CircuitState.HALF_OPEN
        return self._state

    @property
    def failure_count(self) -> int:
        return self._failure_count

    @property
    def last_failure_time(self) -> float:
        return self._last_failure_time

    # ── Core call wrapper ────────────────────────────────────────────

    async def execute(
        self,
        fn: Callable[[], Awaitable[T]],
        fallback: Callable[[], T] | None = None,
    ) -> T:
        """Run *fn* under the breaker.

        When the circuit rejects the call, or *fn* fails, the *fallback*
        result is returned if one is given; otherwise ``CircuitOpenError``
        (rejection) or the original exception (failure) propagates.
        """
        try:
            await self.pre_check()
        except CircuitOpenError:
            if fallback is None:
                raise
            logger.warning("Circuit '%s' open, using fallback", self.name)
            self.total_fallbacks += 1
            return fallback()

        try:
            result = await fn()
        except asyncio.CancelledError:
            self._release_probe()
            raise
        except Exception as exc:
            await self.on_failure()
            if fallback is None:
                raise
            logger.warning("Call through '%s' failed (%s), using fallback", self.name, exc)
            self.total_fallbacks += 1
            return fallback()

        await self.on_success()
        return result

    async def pre_check(self) -> None:
        """Check whether a call is allowed; raise if circuit is open.

        Must be called **before** the actual upstream call.
        """
        async with self._lock:
            current = self.state

            if current == CircuitState.OPEN:
                retry_after = self.recovery_timeout - (time.monotonic() - self._last_failure_time)
                self.total_rejections += 1
                raise CircuitOpenError(self.name, retry_after)

            if current == CircuitState.HALF_OPEN:
                if self._half_open_calls >= self.half_open_max:
                    self.total_rejections += 1
                    raise CircuitOpenError(self.name, 1.0)
                if self._state != CircuitState.HALF_OPEN:
                    logger.info("Circuit '%s' moving to HALF_OPEN", self.name)
                self._state = CircuitState.HALF_OPEN
                self._half_open_calls += 1

            self.total_calls += 1

    async def on_success(self) -> None:
        """Record a successful call, closing the circuit if probing."""
        async with self._lock:
            self.total_successes += 1
            if self._state in (CircuitState.HALF_OPEN, CircuitState.OPEN):
                # Probe succeeded, back to CLOSED
                logger.info("Circuit '%s' reset to CLOSED", self.name)
                self._state = CircuitState.CLOSED
                self._failure_count = 0
                self._half_open_calls = 0
            else:
                self._failure_count = 0

    async def on_failure(self) -> None:
        """Record a failed call, potentially opening the circuit."""
        async with self._lock:
            self._failure_count += 1
            self.total_failures += 1
            self._last_failure_time = time.monotonic()

            if self._state == CircuitState.HALF_OPEN:
                # Probe failed, reopen and restart the recovery window
                self._state = CircuitState.OPEN
                self._half_open_calls = 0
                logger.warning("Circuit '%s' probe failed, reopening", self.name)
            elif self._failure_count >= self.failure_threshold:
                if self._state != CircuitState.OPEN:
                    logger.warning(
                        "Circuit '%s' OPEN after %d failures",
                        self.name,
                        self._failure_count,
                    )
                self._state = CircuitState.OPEN

    def _release_probe(self) -> None:
        if self._state == CircuitState.HALF_OPEN and self._half_open_calls > 0:
            self._half_open_calls -= 1

    async def reset(self) -> None:
        """Force-reset the circuit breaker to CLOSED state."""
        async with self._lock:
            self._state = CircuitState.CLOSED
            self._failure_count = 0
            self._half_open_calls = 0

    def snapshot(self) -> dict:
        """Return a JSON-serializable snapshot for health/metrics."""
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self._failure_count,
            "failure_threshold": self.failure_threshold,
            "recovery_timeout": self.recovery_timeout,
            "total_calls": self.total_calls,
            "total_failures": self.total_failures,
            "total_rejections": self.total_rejections,
            "total_successes": self.total_successes,
            "total_fallbacks": self.total_fallbacks,
        }


class CircuitBreakerRegistry:
    """Manages per-dependency ``CircuitBreaker`` instances.

    Usage::

        registry = CircuitBreakerRegistry()
        registry.register("content", failure_threshold=3, recovery_timeout=30.0)
        cb = registry.get("content")
        entries = await cb.execute(fetch, fallback=lambda: [])
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
        half_open_max: int = 1,
    ) -> None:
        self._threshold = failure_threshold
        self._recovery = recovery_timeout
        self._half_open_max = half_open_max
        self._breakers: dict[str, CircuitBreaker] = {}

    def register(
        self,
        name: str,
        failure_threshold: int | None = None,
        recovery_timeout: float | None = None,
    ) -> CircuitBreaker:
        """Create (or replace) the breaker for *name* with its own thresholds."""
        breaker = CircuitBreaker(
            name=name,
            failure_threshold=failure_threshold if failure_threshold is not None else self._threshold,
            recovery_timeout=recovery_timeout if recovery_timeout is not None else self._recovery,
            half_open_max=self._half_open_max,
        )
        self._breakers[name] = breaker
        return breaker

    def get(self, name: str) -> CircuitBreaker:
        """Return (or create with registry defaults) the breaker for *name*."""
        if name not in self._breakers:
            return self.register(name)
        return self._breakers[name]

    def names(self) -> list[str]:
        return list(self._breakers)

    def all_snapshots(self) -> list[dict]:
        """Return snapshots for every registered breaker."""
        return [cb.snapshot() for cb in self._breakers.values()]

    async def reset_all(self) -> None:
        """Reset every circuit breaker to CLOSED."""
        for cb in self._breakers.values():
            await cb.reset()


# Dependency names.  Only "content" guards calls made by this service
CONTENT_DEPENDENCY = "content"
IMAGE_DEPENDENCY = "images"
EMAIL_DEPENDENCY = "email"


def build_default_registry(settings: Settings) -> CircuitBreakerRegistry:
    """Register one breaker per dependency from *settings*.

    The primary content service gets the looser breaker; the auxiliary
    image service trips after fewer failures and recovers sooner.  The
    image and email breakers are configuration only: ``optimized_image_url``
    builds URLs without any I/O, so nothing here calls through them.
    """
    registry = CircuitBreakerRegistry()
    registry.register(
        CONTENT_DEPENDENCY,
        failure_threshold=settings.CONTENT_BREAKER_THRESHOLD,
        recovery_timeout=settings.CONTENT_BREAKER_RECOVERY_SECONDS,
    )
    registry.register(
        IMAGE_DEPENDENCY,
        failure_threshold=settings.IMAGE_BREAKER_THRESHOLD,
        recovery_timeout=settings.IMAGE_BREAKER_RECOVERY_SECONDS,
    )
    registry.register(
        EMAIL_DEPENDENCY,
        failure_threshold=settings.EMAIL_BREAKER_THRESHOLD,
        recovery_timeout=settings.EMAIL_BREAKER_RECOVERY_SECONDS,
    )
    return registry
