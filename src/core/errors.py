"""Structured errors for the content-delivery layer.

Custom exception hierarchy for the portfolio content gateway.  These are
raised inside the resilience and upstream layers and absorbed at the
``ContentGateway`` boundary; only the HTTP surface ever turns one into a
``StructuredErrorResponse``.
"""

from pydantic import BaseModel


class ContentGatewayError(Exception):
    """Base exception for all content gateway errors."""


class RequestTimeoutError(ContentGatewayError):
    """Raised when a governed operation misses its deadline.

    The message carries the attempt number so retried timeouts can be told
    apart in logs.
    """

    def __init__(self, label: str, timeout_ms: float, attempt: int) -> None:
        self.label = label
        self.timeout_ms = timeout_ms
        self.attempt = attempt
        super().__init__(f"{label} after {timeout_ms:g}ms (attempt {attempt})")


class RequestAbortedError(ContentGatewayError):
    """Raised when an in-flight request is cancelled by an abort-all sweep."""

    def __init__(self, request_id: str, reason: str = "") -> None:
        self.request_id = request_id
        self.reason = reason
        msg = f"Request {request_id} aborted"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class CircuitOpenError(ContentGatewayError):
    """Raised when a circuit breaker is open and no fallback was supplied."""

    def __init__(self, dependency: str, retry_after: float) -> None:
        self.dependency = dependency
        self.retry_after = max(0.0, retry_after)
        super().__init__(f"Circuit open for '{dependency}', retry after {self.retry_after:.1f}s")


class UpstreamUnavailableError(ContentGatewayError):
    """Raised when the upstream content service cannot serve a request."""

    def __init__(self, dependency: str, detail: str = "") -> None:
        self.dependency = dependency
        self.detail = detail
        msg = f"Upstream unavailable: {dependency}"
        if detail:
            msg += f" ({detail})"
        super().__init__(msg)


class ContentNotFoundError(ContentGatewayError):
    """Raised when a single-record content shape has no live entry."""

    def __init__(self, content_type: str, detail: str = "") -> None:
        self.content_type = content_type
        self.detail = detail
        msg = f"Content not found: {content_type}"
        if detail:
            msg += f" ({detail})"
        super().__init__(msg)


class ContentValidationError(ContentGatewayError):
    """Raised only when validation is run with ``throw_on_error=True``."""

    def __init__(self, content_type: str, errors: list[str]) -> None:
        self.content_type = content_type
        self.errors = list(errors)
        super().__init__(f"{content_type} validation failed: {', '.join(self.errors)}")


class StructuredErrorResponse(BaseModel):
    """Structured error body: ``{"error", "code", "request_id"}``, no stack traces."""

    error: str
    code: str
    request_id: str

    @classmethod
    def from_exception(cls, exc: Exception, request_id: str) -> "StructuredErrorResponse":
        """Create from an exception, mapping to machine-readable codes.

        Never leaks internal details for unhandled exceptions.
        """
        codes: list[tuple[type[Exception], str]] = [
            (CircuitOpenError, "CIRCUIT_OPEN"),
            (RequestTimeoutError, "REQUEST_TIMEOUT"),
            (RequestAbortedError, "REQUEST_ABORTED"),
            (UpstreamUnavailableError, "UPSTREAM_UNAVAILABLE"),
            (ContentNotFoundError, "CONTENT_NOT_FOUND"),
            (ContentValidationError, "CONTENT_INVALID"),
            (ContentGatewayError, "GATEWAY_ERROR"),
        ]
        for exc_type, code in codes:
            if isinstance(exc, exc_type):
                return cls(error=str(exc), code=code, request_id=request_id)
        return cls(
            error="An internal error occurred",
            code="INTERNAL_ERROR",
            request_id=request_id,
        )
