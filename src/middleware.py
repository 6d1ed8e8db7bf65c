"""Request context middleware: request IDs and access logging."""

from __future__ import annotations

import logging
import time
import uuid
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Paths excluded from access logging
_QUIET_PATHS: set[str] = {"/health", "/health/"}


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assign or preserve a request ID and log one line per request.

    The ID is stored on ``request.state.request_id`` and echoed back in the
    ``X-Request-ID`` response header.
    """

    def __init__(self, app: Any, access_log: bool = True) -> None:
        super().__init__(app)
        self.access_log = access_log

    async def dispatch(self, request: Request, call_next: Any) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id

        start = time.monotonic()
        response = await call_next(request)
        latency_ms = (time.monotonic() - start) * 1000
        response.headers[REQUEST_ID_HEADER] = request_id

        if self.access_log and request.url.path not in _QUIET_PATHS:
            logger.info(
                "%s %s -> %d (%.1fms) request_id=%s",
                request.method,
                request.url.path,
                response.status_code,
                latency_ms,
                request_id,
            )
        return response
