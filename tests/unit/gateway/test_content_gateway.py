"""Tests for ContentGateway: live, preview and static fallback paths.

Covers:
- Missing configuration serves static data and records a successful static event
- Any upstream failure (HTTP error, connection error, timeout, open breaker)
  serves exactly the static dataset and records a failed static event
- Live records are link-resolved, validated and transformed
- Preview client tags results and events as ``preview``
- Blog pagination, facets, slug lookup and related posts
"""

from __future__ import annotations

import asyncio

import httpx
import pytest

from src.core.config import Settings
from src.gateway.content_gateway import ContentGateway, GatewayResult
from src.gateway.static_content import StaticContent
from src.gateway.upstream import ContentDeliveryClient
from src.models.schemas import BlogQueryOptions, PortfolioQueryOptions
from src.resilience.circuit_breaker import CONTENT_DEPENDENCY, CircuitState, build_default_registry
from src.resilience.governor import RequestGovernor
from src.telemetry.models import ContentSource, ContentType
from src.telemetry.usage import UsageTelemetry


@pytest.fixture(scope="module")
def static() -> StaticContent:
    return StaticContent()


def _settings(**overrides) -> Settings:
    values = {
        "SPACE_ID": "space1",
        "ACCESS_TOKEN": "token",
        "REQUEST_TIMEOUT_MS": 200,
        "REQUEST_MAX_RETRIES": 0,
    }
    values.update(overrides)
    return Settings(**values)


def _gateway(handler, settings: Settings | None = None, *, preview: bool = False, static=None) -> ContentGateway:
    settings = settings or _settings()
    client = ContentDeliveryClient(
        "space1",
        "token",
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    kwargs = {"preview_client": client} if preview else {"client": client}
    return ContentGateway(
        settings,
        UsageTelemetry(),
        build_default_registry(settings),
        RequestGovernor(base_delay_ms=1, max_delay_ms=2),
        static=static,
        **kwargs,
    )


def _asset(asset_id: str) -> dict:
    return {
        "sys": {"id": asset_id, "type": "Asset"},
        "fields": {
            "title": f"Look {asset_id}",
            "description": "Festival face paint",
            "file": {
                "url": f"//images.ctfassets.net/space1/{asset_id}.jpg",
                "contentType": "image/jpeg",
                "details": {"size": 2048, "image": {"width": 1200, "height": 800}},
            },
        },
    }


def _link(asset_id: str) -> dict:
    return {"sys": {"type": "Link", "linkType": "Asset", "id": asset_id}}


def _portfolio_record(entry_id: str, order: int, featured: bool = False) -> dict:
    return {
        "sys": {"id": entry_id, "type": "Entry", "createdAt": "2024-07-01T00:00:00Z"},
        "fields": {
            "title": f"Entry {entry_id}",
            "description": "A festival look with neon details.",
            "category": "Festival Makeup",
            "images": [_link(f"img-{entry_id}")],
            "tags": ["festival"],
            "featured": featured,
            "displayOrder": order,
        },
    }


def _portfolio_payload(*records: dict) -> dict:
    assets = [_asset(record["fields"]["images"][0]["sys"]["id"]) for record in records]
    return {"total": len(records), "skip": 0, "limit": 100, "items": list(records), "includes": {"Asset": assets}}


def _blog_record(post_id: str, slug: str, category: str = "tutorials") -> dict:
    return {
        "sys": {"id": post_id, "type": "Entry", "createdAt": "2025-01-01T00:00:00Z"},
        "fields": {
            "title": f"Post {post_id}",
            "slug": slug,
            "excerpt": "Short intro",
            "content": {
                "nodeType": "document",
                "data": {},
                "content": [
                    {
                        "nodeType": "paragraph",
                        "data": {},
                        "content": [{"nodeType": "text", "value": "Prep your skin first.", "marks": [], "data": {}}],
                    }
                ],
            },
            "category": category,
            "tags": ["prep"],
            "publishedDate": "2025-01-01T00:00:00Z",
            "published": True,
        },
    }


def _json(payload: dict, status: int = 200) -> httpx.Response:
    return httpx.Response(status, json=payload)


class TestNotConfigured:
    """No credentials: bundled content, recorded as an expected static serve."""

    async def test_serves_static(self, static):
        settings = Settings()
        telemetry = UsageTelemetry()
        gateway = ContentGateway(settings, telemetry, build_default_registry(settings), RequestGovernor())

        result = await gateway.get_portfolio_entries()

        assert gateway.configured is False
        assert result.source is ContentSource.STATIC
        assert result.error is None
        assert result.data == static.portfolio_entries()
        [event] = telemetry.events
        assert event.source is ContentSource.STATIC
        assert event.success is True
        assert event.metadata == {"reason": "not configured"}

    async def test_every_shape_has_a_fallback(self, static):
        settings = Settings()
        gateway = ContentGateway(settings, UsageTelemetry(), build_default_registry(settings), RequestGovernor())

        assert (await gateway.get_about_page()).data == static.about_page()
        assert (await gateway.get_homepage()).data == static.homepage()
        assert (await gateway.get_blog_posts()).data == static.blog_listing()
        assert (await gateway.get_blog_post_by_slug("festival-makeup-guide-2024")).data.id == "static-blog-1"


class TestUpstreamFailure:
    """Every failure mode ends in the static dataset."""

    async def test_http_error_serves_static(self, static):
        gateway = _gateway(lambda request: httpx.Response(500, text="boom"))

        result = await gateway.get_portfolio_entries(PortfolioQueryOptions(category="Festival Makeup"))

        assert result.is_fallback
        assert result.error
        assert result.data == static.portfolio_entries(PortfolioQueryOptions(category="Festival Makeup"))
        [event] = gateway.telemetry.events
        assert event.source is ContentSource.STATIC
        assert event.success is False
        assert event.error == result.error

    async def test_connection_error_serves_static(self, static):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        gateway = _gateway(refuse)
        result = await gateway.get_about_page()

        assert result.source is ContentSource.STATIC
        assert result.data == static.about_page()

    async def test_fallback_is_idempotent(self):
        gateway = _gateway(lambda request: httpx.Response(503))

        first = await gateway.get_blog_posts(BlogQueryOptions(page=1, limit=2))
        second = await gateway.get_blog_posts(BlogQueryOptions(page=1, limit=2))

        assert first.data == second.data
        assert len(gateway.telemetry.events) == 2

    async def test_timeout_serves_static(self, static):
        async def slow(request):
            await asyncio.sleep(1)
            return _json({"items": []})

        gateway = _gateway(slow, _settings(REQUEST_TIMEOUT_MS=30))
        result = await gateway.get_homepage()

        assert result.is_fallback
        assert result.data == static.homepage()

    async def test_retries_before_falling_back(self):
        calls = 0

        def flaky(request):
            nonlocal calls
            calls += 1
            return httpx.Response(502)

        gateway = _gateway(flaky, _settings(REQUEST_MAX_RETRIES=2))
        result = await gateway.get_portfolio_entries()

        assert result.is_fallback
        assert calls == 3

    async def test_open_breaker_skips_upstream(self, static):
        calls = 0

        def failing(request):
            nonlocal calls
            calls += 1
            return httpx.Response(500)

        gateway = _gateway(failing, _settings(CONTENT_BREAKER_THRESHOLD=1))

        await gateway.get_portfolio_entries()
        assert gateway.breakers.get(CONTENT_DEPENDENCY).state == CircuitState.OPEN

        result = await gateway.get_portfolio_entries()
        assert calls == 1
        assert result.is_fallback
        assert "breaker fallback" in result.error
        assert result.data == static.portfolio_entries()

    async def test_missing_live_page_serves_static(self, static):
        gateway = _gateway(lambda request: _json({"total": 0, "items": []}))

        result = await gateway.get_about_page()

        assert result.is_fallback
        assert result.data == static.about_page()


class TestLivePortfolio:
    async def test_transforms_resolved_records(self):
        seen: list[httpx.QueryParams] = []

        def handler(request):
            seen.append(request.url.params)
            return _json(_portfolio_payload(_portfolio_record("p1", 1, featured=True), _portfolio_record("p2", 2)))

        gateway = _gateway(handler)
        result = await gateway.get_portfolio_entries(PortfolioQueryOptions(category="Festival Makeup", limit=5))

        assert result.source is ContentSource.LIVE
        assert result.error is None
        assert [e.id for e in result.data] == ["p1", "p2"]
        assert result.data[0].images[0].url == "https://images.ctfassets.net/space1/img-p1.jpg"
        assert result.data[0].featured_image == result.data[0].images[0]
        assert seen[0]["content_type"] == "portfolioEntry"
        assert seen[0]["fields.category"] == "Festival Makeup"
        assert seen[0]["order"] == "fields.displayOrder"
        assert seen[0]["limit"] == "5"

        [event] = gateway.telemetry.events
        assert event.source is ContentSource.LIVE
        assert event.success is True
        assert event.content_type is ContentType.PORTFOLIO_ENTRY
        assert event.response_time_ms is not None

    async def test_invalid_records_still_served(self, caplog):
        record = _portfolio_record("p1", 1)
        record["fields"].pop("title")
        gateway = _gateway(lambda request: _json(_portfolio_payload(record)))

        result = await gateway.get_portfolio_entries()

        assert result.source is ContentSource.LIVE
        assert result.data[0].title == ""
        assert "failed validation" in caplog.text

    async def test_preview_client_tags_source(self):
        gateway = _gateway(
            lambda request: _json(_portfolio_payload(_portfolio_record("draft", 1))),
            preview=True,
        )

        result = await gateway.get_portfolio_entries()

        assert result.source is ContentSource.PREVIEW
        assert gateway.telemetry.events[0].source is ContentSource.PREVIEW

    async def test_preview_fetch_recorded_as_preview(self, monkeypatch):
        gateway = _gateway(
            lambda request: _json(_portfolio_payload(_portfolio_record("draft", 1))),
            preview=True,
        )
        recorded: list[ContentType] = []
        track_preview = gateway.telemetry.track_preview

        def spy(content_type, started):
            recorded.append(content_type)
            return track_preview(content_type, started)

        monkeypatch.setattr(gateway.telemetry, "track_preview", spy)

        await gateway.get_portfolio_entries()

        assert recorded == [ContentType.PORTFOLIO_ENTRY]
        [event] = gateway.telemetry.events
        assert event.success is True
        assert event.response_time_ms is not None

    async def test_homepage_embeds_featured_entries(self):
        def handler(request):
            if request.url.params["content_type"] == "homepage":
                return _json({"total": 1, "items": [{"sys": {"id": "home"}, "fields": {"heroTitle": "Hello"}}]})
            assert request.url.params["fields.featured"] == "true"
            return _json(_portfolio_payload(_portfolio_record("p1", 1, featured=True)))

        result = await _gateway(handler).get_homepage()

        assert result.source is ContentSource.LIVE
        assert result.data.hero.title == "Hello"
        assert [e.id for e in result.data.featured.entries] == ["p1"]


class TestLiveBlog:
    async def test_pagination_and_facets(self):
        seen: list[httpx.QueryParams] = []

        def handler(request):
            params = request.url.params
            seen.append(params)
            if "select" in params:
                return _json(
                    {
                        "total": 3,
                        "items": [
                            {"fields": {"category": "tutorials", "tags": ["prep", "uv"]}},
                            {"fields": {"category": "personal", "tags": ["uv"]}},
                            {"fields": {"category": "tutorials", "tags": []}},
                        ],
                    }
                )
            return _json({"total": 25, "skip": 10, "limit": 10, "items": [_blog_record("b11", "post-11")]})

        result = await _gateway(handler).get_blog_posts(BlogQueryOptions(page=2, limit=10))

        listing = result.data
        assert result.source is ContentSource.LIVE
        assert [p.slug for p in listing.posts] == ["post-11"]
        assert listing.pagination.total == 25
        assert listing.pagination.has_next is True
        assert listing.pagination.has_previous is True
        assert listing.categories == ["tutorials", "personal"]
        assert listing.tags == ["prep", "uv"]
        assert seen[0]["skip"] == "10"
        assert seen[0]["order"] == "-fields.publishedDate"
        assert seen[0]["fields.published"] == "true"

    async def test_last_page_has_no_next(self):
        def handler(request):
            if "select" in request.url.params:
                return _json({"items": []})
            return _json({"total": 12, "items": [_blog_record("b11", "post-11"), _blog_record("b12", "post-12")]})

        result = await _gateway(handler).get_blog_posts(BlogQueryOptions(page=2, limit=10))

        assert result.data.pagination.has_next is False

    async def test_slug_with_related_posts(self):
        seen: list[httpx.QueryParams] = []

        def handler(request):
            params = request.url.params
            seen.append(params)
            if "sys.id[ne]" in params:
                return _json({"total": 1, "items": [_blog_record("b2", "second")]})
            return _json({"total": 1, "items": [_blog_record("b1", "first")]})

        result = await _gateway(handler).get_blog_post_by_slug("first")

        assert result.source is ContentSource.LIVE
        assert result.data.id == "b1"
        assert result.data.content.startswith("<p")
        assert [p.id for p in result.data.related_posts] == ["b2"]
        assert seen[0]["fields.slug"] == "first"
        assert seen[1]["sys.id[ne]"] == "b1"
        assert seen[1]["fields.category"] == "tutorials"

    async def test_related_failure_leaves_list_empty(self):
        def handler(request):
            if "sys.id[ne]" in request.url.params:
                return httpx.Response(500)
            return _json({"total": 1, "items": [_blog_record("b1", "first")]})

        result = await _gateway(handler).get_blog_post_by_slug("first")

        assert result.source is ContentSource.LIVE
        assert result.data.related_posts == []

    async def test_unknown_live_slug_falls_back(self, static):
        gateway = _gateway(lambda request: _json({"total": 0, "items": []}))

        known = await gateway.get_blog_post_by_slug("festival-makeup-guide-2024")
        unknown = await gateway.get_blog_post_by_slug("nowhere")

        assert known.is_fallback
        assert known.data == static.blog_post_by_slug("festival-makeup-guide-2024")
        assert unknown.is_fallback
        assert unknown.data is None


class TestLifecycle:
    async def test_preload_runs_both_fetches(self):
        settings = Settings()
        gateway = ContentGateway(settings, UsageTelemetry(), build_default_registry(settings), RequestGovernor())

        homepage, featured = await gateway.preload_critical_content()

        assert homepage.source is ContentSource.STATIC
        assert all(entry.featured for entry in featured.data)
        assert len(gateway.telemetry.events) == 2

    async def test_close_closes_transport(self):
        gateway = _gateway(lambda request: _json({"items": []}))
        await gateway.close()
        assert gateway.client._client.is_closed


def test_gateway_result_is_fallback():
    assert GatewayResult([], ContentSource.STATIC).is_fallback
    assert not GatewayResult([], ContentSource.LIVE).is_fallback


class TestPartialLiveRecords:
    async def test_broken_embed_keeps_live_list(self):
        broken = _portfolio_record("p3", 3)
        broken["fields"]["detailedDescription"] = {
            "nodeType": "document",
            "data": {},
            "content": [
                {
                    "nodeType": "embedded-asset-block",
                    "data": {"target": {"sys": {"id": "bad", "type": "Asset"}, "fields": {"file": {"url": None}}}},
                    "content": [],
                }
            ],
        }
        payload = _portfolio_payload(_portfolio_record("p1", 1), _portfolio_record("p2", 2), broken)

        result = await _gateway(lambda request: _json(payload)).get_portfolio_entries()

        assert result.source is ContentSource.LIVE
        assert result.error is None
        assert [e.id for e in result.data] == ["p1", "p2", "p3"]


class TestValidationWarningLogging:
    def _low_res_payload(self) -> dict:
        payload = _portfolio_payload(_portfolio_record("p1", 1))
        payload["includes"]["Asset"][0]["fields"]["file"]["details"]["image"] = {"width": 100, "height": 100}
        return payload

    async def test_verbose_logs_warnings(self, caplog):
        gateway = _gateway(lambda request: _json(self._low_res_payload()), _settings(VERBOSE_LOGGING=True))

        result = await gateway.get_portfolio_entries()

        assert result.source is ContentSource.LIVE
        assert "portfolioEntry validation warnings" in caplog.text
        assert "low resolution (100x100)" in caplog.text

    async def test_quiet_by_default(self, caplog):
        gateway = _gateway(lambda request: _json(self._low_res_payload()), _settings(VERBOSE_LOGGING=False))

        result = await gateway.get_portfolio_entries()

        assert result.source is ContentSource.LIVE
        assert "low resolution" not in caplog.text
