"""Tests for TelemetryPublisher: single POST, JSONL fallback on failure."""

from __future__ import annotations

import json

import httpx
import pytest

from src.telemetry.models import ContentSource, ContentType
from src.telemetry.publisher import TelemetryPublisher
from src.telemetry.usage import UsageTelemetry


@pytest.fixture
def snapshot():
    telemetry = UsageTelemetry()
    telemetry.track(ContentType.BLOG_POST, ContentSource.LIVE, response_time_ms=42)
    return telemetry.export_snapshot()


class TestPublish:
    async def test_disabled_without_endpoint(self, snapshot, tmp_path):
        publisher = TelemetryPublisher("", fallback_path=str(tmp_path / "fallback.jsonl"))
        assert publisher.enabled is False
        assert await publisher.publish(snapshot) is False
        assert not (tmp_path / "fallback.jsonl").exists()

    async def test_posts_snapshot_once(self, snapshot, tmp_path):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(202)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            publisher = TelemetryPublisher(
                "https://collector.example/events",
                fallback_path=str(tmp_path / "fallback.jsonl"),
                client=client,
            )
            assert await publisher.publish(snapshot) is True

        assert len(seen) == 1
        assert seen[0].method == "POST"
        assert seen[0].headers["content-type"] == "application/json"
        body = json.loads(seen[0].content)
        assert body["metrics"]["total_requests"] == 1
        assert not (tmp_path / "fallback.jsonl").exists()

    async def test_server_error_writes_fallback(self, snapshot, tmp_path):
        fallback = tmp_path / "logs" / "fallback.jsonl"

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            publisher = TelemetryPublisher("https://collector.example/events", str(fallback), client=client)
            assert await publisher.publish(snapshot) is False

        lines = fallback.read_text().splitlines()
        assert len(lines) == 1
        assert json.loads(lines[0])["events"][0]["content_type"] == "blogPost"

    async def test_connection_error_appends(self, snapshot, tmp_path):
        fallback = tmp_path / "fallback.jsonl"

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            publisher = TelemetryPublisher("https://collector.example/events", str(fallback), client=client)
            await publisher.publish(snapshot)
            await publisher.publish(snapshot)

        assert len(fallback.read_text().splitlines()) == 2

    async def test_unwritable_fallback_returns_false(self, snapshot, tmp_path, caplog):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            publisher = TelemetryPublisher(
                "https://collector.example/events", str(blocker / "fallback.jsonl"), client=client
            )
            assert await publisher.publish(snapshot) is False

        assert "Could not write telemetry fallback" in caplog.text
        assert blocker.read_text() == "not a directory"
