"""Resilience patterns: request governor and circuit breakers.

Provides a deadline/retry governor for single upstream calls and
per-dependency circuit breakers that stop hammering a dependency that keeps
failing.
"""

from src.resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerRegistry,
    CircuitState,
    build_default_registry,
)
from src.resilience.governor import RequestGovernor, RequestMetric

__all__ = [
    "CircuitBreaker",
    "CircuitBreakerRegistry",
    "CircuitState",
    "RequestGovernor",
    "RequestMetric",
    "build_default_registry",
]
