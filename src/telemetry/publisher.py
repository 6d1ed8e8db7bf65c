"""Forward telemetry snapshots to an external collector.

One snapshot is sent as a single JSON ``POST``.  When the collector is
unreachable the snapshot is appended to a local JSONL file instead, so a
publish never raises.
"""

from __future__ import annotations

import logging
from pathlib import Path

import aiofiles
import httpx

from src.telemetry.models import TelemetrySnapshot

logger = logging.getLogger(__name__)


class TelemetryPublisher:
    """POST snapshots to *endpoint*; fall back to JSONL on failure.

    Args:
        endpoint:      Collector URL.  Empty disables publishing.
        fallback_path: JSONL file used when the collector is unavailable.
        timeout:       Seconds for the POST.
    """

    def __init__(
        self,
        endpoint: str = "",
        fallback_path: str = "logs/telemetry_fallback.jsonl",
        timeout: float = 5.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.fallback_path = fallback_path
        self.timeout = timeout
        self._client = client

    @property
    def enabled(self) -> bool:
        return bool(self.endpoint)

    async def publish(self, snapshot: TelemetrySnapshot) -> bool:
        """Send *snapshot*; return ``True`` when the collector accepted it."""
        if not self.enabled:
            return False

        body = snapshot.model_dump_json()
        try:
            if self._client is not None:
                response = await self._post(self._client, body)
            else:
                async with httpx.AsyncClient() as client:
                    response = await self._post(client, body)
            response.raise_for_status()
            return True
        except httpx.HTTPError as exc:
            logger.warning("Telemetry collector unavailable (%s), writing to fallback JSONL", exc)
            try:
                await self._write_fallback(body)
            except OSError:
                logger.exception("Could not write telemetry fallback to %s", self.fallback_path)
            return False

    async def _post(self, client: httpx.AsyncClient, body: str) -> httpx.Response:
        return await client.post(
            self.endpoint,
            content=body,
            headers={"Content-Type": "application/json"},
            timeout=self.timeout,
        )

    async def _write_fallback(self, body: str) -> None:
        path = Path(self.fallback_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(path, "a") as f:
            await f.write(body + "\n")
