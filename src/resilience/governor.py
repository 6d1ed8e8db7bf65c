"""Request governor: deadline, bounded retry and cancellation for one call.

``RequestGovernor.with_deadline()`` runs an operation factory as an
``asyncio.Task`` and waits for it against a deadline.  When the deadline
elapses first the task is cancelled *and awaited*, so the underlying
operation is released rather than left running in the background.  Failed
attempts are retried sequentially with exponential backoff:

    delay(n) = min(base_delay_ms * backoff_multiplier ** (n - 1), max_delay_ms)

Every attempt is recorded as one ``RequestMetric``.  In-flight tasks are
tracked so ``abort_all()`` can cancel everything outstanding (service
shutdown, client disconnect).
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from src.core.errors import RequestAbortedError, RequestTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RequestMetric:
    """Timing record for a single attempt of a governed request.

    Attributes:
        id:          Unique id of this attempt (``<request_id>#<retry_count>``).
        request_id:  Id shared by every attempt of one logical request.
        start_time:  Wall-clock start (epoch seconds).
        end_time:    Wall-clock end, ``None`` while in flight.
        duration_ms: Elapsed milliseconds, ``None`` while in flight.
        success:     Whether the attempt produced a result.
        retry_count: 0 for the first attempt, 1 for the first retry, ...
        error:       Error message of a failed attempt.
    """

    id: str
    request_id: str
    start_time: float
    success: bool = False
    retry_count: int = 0
    end_time: float | None = None
    duration_ms: float | None = None
    error: str | None = None


@dataclass
class _InFlight:
    request_id: str
    task: asyncio.Task
    abort_reason: str | None = None


def generate_request_id() -> str:
    return f"req_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


class RequestGovernor:
    """Deadline and retry policy around awaitable operations.

    Args:
        metrics_limit: Number of most recent attempt metrics retained.
        base_delay_ms: Delay before the first retry.
        max_delay_ms:  Upper bound on any single backoff delay.
    """

    def __init__(
        self,
        metrics_limit: int = 100,
        base_delay_ms: float = 1000.0,
        max_delay_ms: float = 5000.0,
    ) -> None:
        self.metrics_limit = metrics_limit
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms
        self._active: dict[str, _InFlight] = {}
        self._metrics: OrderedDict[str, RequestMetric] = OrderedDict()

    # ── Public API ──────────────────────────────────────────────────

    async def with_deadline(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        timeout_ms: float = 5000,
        max_retries: int = 1,
        backoff_multiplier: float = 1.5,
        error_message: str = "Request timed out",
        request_id: str | None = None,
    ) -> T:
        """Run *operation* with a deadline and bounded retries.

        Args:
            operation: Zero-arg factory returning a fresh awaitable per
                attempt.  The caller guarantees the operation is retryable.
            timeout_ms: Deadline for each attempt.
            max_retries: Retries after the first attempt.
            backoff_multiplier: Exponential backoff base.
            error_message: Prefix of the timeout error message.
            request_id: Id for the logical request (generated when omitted).

        Returns:
            The operation's result.

        Raises:
            RequestTimeoutError: If the last attempt missed its deadline.
            RequestAbortedError: If ``abort_all()`` cancelled the request.
            Exception: The last attempt's own error after retries run out.
        """
        request_id = request_id or generate_request_id()
        retry_count = 0

        while True:
            try:
                return await self._attempt(
                    operation,
                    request_id=request_id,
                    retry_count=retry_count,
                    timeout_ms=timeout_ms,
                    error_message=error_message,
                )
            except RequestAbortedError:
                raise
            except Exception as exc:
                if retry_count >= max_retries:
                    raise
                retry_count += 1
                delay_ms = self.backoff_delay_ms(retry_count, backoff_multiplier)
                logger.warning(
                    "Request %s failed (%s), retrying in %.0fms (attempt %d/%d)",
                    request_id,
                    exc,
                    delay_ms,
                    retry_count + 1,
                    max_retries + 1,
                )
                await asyncio.sleep(delay_ms / 1000)

    def backoff_delay_ms(self, retry_count: int, backoff_multiplier: float) -> float:
        """Delay before retry number *retry_count* (1-based)."""
        return min(self.base_delay_ms * backoff_multiplier ** (retry_count - 1), self.max_delay_ms)

    def abort_all(self, reason: str = "Manual abort") -> int:
        """Cancel every in-flight request; return how many were cancelled."""
        count = len(self._active)
        if count:
            logger.warning("Aborting %d active requests: %s", count, reason)
        for handle in list(self._active.values()):
            handle.abort_reason = reason
            handle.task.cancel()
        self._active.clear()
        return count

    @property
    def active_count(self) -> int:
        return len(self._active)

    def metrics_for(self, request_id: str) -> list[RequestMetric]:
        """Return every recorded attempt of one logical request."""
        return [m for m in self._metrics.values() if m.request_id == request_id]

    def recent_metrics(self) -> list[RequestMetric]:
        return list(self._metrics.values())

    def get_metrics_summary(self) -> dict[str, Any]:
        """Aggregate the retained attempt metrics."""
        metrics = list(self._metrics.values())
        successful = [m for m in metrics if m.success]
        total = len(metrics)
        return {
            "total": total,
            "successful": len(successful),
            "failed": total - len(successful),
            "success_rate": (len(successful) / total) * 100 if total else 0.0,
            "average_duration_ms": (
                sum(m.duration_ms or 0.0 for m in successful) / len(successful) if successful else 0.0
            ),
            "active_requests": len(self._active),
        }

    # ── Internals ───────────────────────────────────────────────────

    async def _attempt(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        request_id: str,
        retry_count: int,
        timeout_ms: float,
        error_message: str,
    ) -> T:
        metric = RequestMetric(
            id=f"{request_id}#{retry_count}",
            request_id=request_id,
            start_time=time.time(),
            retry_count=retry_count,
        )
        started = time.monotonic()

        async def _run() -> T:
            return await operation()

        task = asyncio.ensure_future(_run())
        handle = _InFlight(request_id=request_id, task=task)
        self._active[request_id] = handle

        try:
            done, _ = await asyncio.wait({task}, timeout=timeout_ms / 1000)
            if not done:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    # Only the operation's own cancellation is absorbed here
                    if asyncio.current_task().cancelling():
                        raise
                except Exception:
                    logger.debug("Request %s failed while being cancelled", request_id, exc_info=True)
                raise RequestTimeoutError(error_message, timeout_ms, retry_count + 1)
            if task.cancelled():
                raise RequestAbortedError(request_id, handle.abort_reason or "")
            result = task.result()
            metric.success = True
            logger.debug("Request %s completed in %.0fms", request_id, (time.monotonic() - started) * 1000)
            return result
        except Exception as exc:
            metric.error = str(exc)
            raise
        finally:
            if not task.done():
                task.cancel()
            metric.end_time = time.time()
            metric.duration_ms = round((time.monotonic() - started) * 1000, 2)
            if self._active.get(request_id) is handle:
                del self._active[request_id]
            self._record(metric)

    def _record(self, metric: RequestMetric) -> None:
        self._metrics[metric.id] = metric
        while len(self._metrics) > self.metrics_limit:
            self._metrics.popitem(last=False)
