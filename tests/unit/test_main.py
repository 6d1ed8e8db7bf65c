"""Tests for the FastAPI application.

Verifies that:
- GET /health reports service metadata, breaker states and a request ID
- /content routes always answer with a ``{"source", "error", "data"}`` envelope
- /portfolio routes query the unified catalogue; unknown ids return a
  structured 404
- Telemetry, resilience and webhook routes are wired to the shared services

No credentials are configured in tests, so content is served from the
bundled datasets.
"""

import pytest
from httpx import ASGITransport, AsyncClient


@pytest.fixture
def app():
    """Import and return the FastAPI app."""
    from src.main import app

    return app


@pytest.fixture
async def client(app):
    """Create an async test client."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://testserver",
    ) as ac:
        yield ac


class TestHealthEndpoint:
    async def test_health_metadata(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/json"
        data = response.json()
        assert data["service"] == "portfolio-content-gateway"
        assert data["version"] == "0.1.0"
        assert data["status"] in {"healthy", "degraded"}
        assert data["uptime_seconds"] >= 0
        assert data["content_configured"] is False
        assert set(data["breakers"]) == {"content", "images", "email"}

    async def test_request_id_generated(self, client):
        response = await client.get("/health")
        assert response.headers["X-Request-ID"]

    async def test_request_id_preserved(self, client):
        response = await client.get("/health", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"


class TestContentEndpoints:
    """Unconfigured gateway: every route serves static data."""

    async def test_portfolio(self, client):
        response = await client.get("/content/portfolio", params={"category": "Festival Makeup"})
        body = response.json()
        assert response.status_code == 200
        assert body["source"] == "static"
        assert body["error"] is None
        assert [e["id"] for e in body["data"]] == ["static-3", "static-1"]

    async def test_portfolio_tags_from_query_string(self, client):
        response = await client.get("/content/portfolio", params={"tags": "nightclub", "limit": 5})
        assert [e["id"] for e in response.json()["data"]] == ["static-2"]

    async def test_blog_listing(self, client):
        response = await client.get("/content/blog", params={"page": 2, "limit": 4})
        data = response.json()["data"]
        assert len(data["posts"]) == 2
        assert data["pagination"]["has_previous"] is True
        assert data["pagination"]["has_next"] is False

    async def test_blog_rejects_bad_sort(self, client):
        response = await client.get("/content/blog", params={"sort_by": "views"})
        assert response.status_code == 422

    async def test_blog_post(self, client):
        response = await client.get("/content/blog/festival-makeup-guide-2024")
        data = response.json()["data"]
        assert data["id"] == "static-blog-1"
        assert [p["id"] for p in data["related_posts"]] == ["static-blog-6"]

    async def test_unknown_blog_post_is_null(self, client):
        response = await client.get("/content/blog/no-such-post")
        assert response.status_code == 200
        assert response.json()["data"] is None

    async def test_about_and_homepage(self, client):
        about = await client.get("/content/about")
        homepage = await client.get("/content/homepage")
        assert about.json()["source"] == "static"
        assert about.json()["data"]["hero"]["title"]
        assert homepage.json()["data"]["featured"]["entries"]


class TestPortfolioEndpoints:
    async def test_by_category(self, client):
        response = await client.get("/portfolio", params={"category": "Fusion Nails", "featured_only": True})
        assert [e["id"] for e in response.json()] == ["galaxy-nails-fusion", "nails-neon-pop", "nails-gradient-dreams"]

    async def test_unknown_category_empty(self, client):
        response = await client.get("/portfolio", params={"category": "Body Paint"})
        assert response.json() == []

    async def test_featured(self, client):
        response = await client.get("/portfolio/featured", params={"limit": 2})
        assert [e["id"] for e in response.json()] == ["modem-festival-post-event", "nation-of-gondwana-festival"]

    async def test_categories(self, client):
        response = await client.get("/portfolio/categories")
        assert response.json()[0]["id"] == "all"

    async def test_stats(self, client):
        response = await client.get("/portfolio/stats")
        assert response.json()["total_entries"] == 15

    async def test_entry_by_id(self, client):
        response = await client.get("/portfolio/forest-warrior")
        assert response.status_code == 200
        assert response.json()["featured"] is True

    async def test_unknown_entry_is_structured_404(self, client):
        response = await client.get("/portfolio/missing-entry", headers={"X-Request-ID": "req-404"})
        assert response.status_code == 404
        assert response.json() == {
            "error": "Content not found: portfolioEntry (missing-entry)",
            "code": "CONTENT_NOT_FOUND",
            "request_id": "req-404",
        }


class TestTelemetryEndpoints:
    async def test_dashboard_counts_static_serves(self, client):
        await client.get("/content/about")
        response = await client.get("/telemetry/dashboard")
        body = response.json()
        assert body["dashboard"]["metrics"]["total_requests"] >= 1
        assert "success_rate" in body["requests"]

    async def test_export(self, client):
        response = await client.get("/telemetry/export")
        assert "events" in response.json()

    async def test_publish_without_endpoint(self, client):
        response = await client.post("/telemetry/publish")
        body = response.json()
        assert body["published"] is False
        assert body["endpoint_configured"] is False


class TestResilienceEndpoints:
    async def test_breakers(self, client):
        response = await client.get("/resilience/breakers")
        assert {b["name"] for b in response.json()} == {"content", "images", "email"}

    async def test_abort_default_reason(self, client):
        response = await client.post("/resilience/abort")
        assert response.json() == {"aborted": 0, "reason": "Aborted by operator"}

    async def test_abort_with_reason(self, client):
        response = await client.post("/resilience/abort", json={"reason": "deploy"})
        assert response.json()["reason"] == "deploy"


class TestWebhookEndpoint:
    async def test_publish_triggers_refresh(self, client):
        response = await client.post(
            "/webhooks/content",
            json={"sys": {"type": "Entry", "id": "entry-1"}},
            headers={"X-Contentful-Topic": "ContentManagement.Entry.publish"},
        )
        assert response.status_code == 200
        assert response.json() == {
            "accepted": True,
            "event_type": "Entry.publish",
            "id": "entry-1",
            "listeners": 1,
        }

    async def test_unhandled_event_accepted(self, client):
        response = await client.post("/webhooks/content", json={"sys": {"type": "Entry.auto_save", "id": "e2"}})
        assert response.json()["listeners"] == 0
