"""FastAPI application entrypoint.

Thin HTTP surface over the content gateway: every ``/content`` route
returns ``{"source", "error", "data"}`` and never fails because of the
upstream content service.  The unified catalogue, telemetry dashboard,
breaker states and the webhook receiver are exposed alongside, behind a
request-ID middleware.
"""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import Body, FastAPI, Header, Query, Request
from fastapi.responses import JSONResponse

from src.core.config import Settings
from src.core.errors import ContentNotFoundError, StructuredErrorResponse
from src.gateway.content_gateway import ContentGateway, GatewayResult
from src.middleware import RequestContextMiddleware
from src.models.schemas import (
    AbortRequest,
    AbortResponse,
    BlogQueryOptions,
    HealthResponse,
    PortfolioQueryOptions,
    PublishResponse,
)
from src.portfolio.aggregator import PortfolioAggregator, load_default_aggregator
from src.resilience.circuit_breaker import CONTENT_DEPENDENCY, build_default_registry
from src.resilience.governor import RequestGovernor
from src.telemetry.publisher import TelemetryPublisher
from src.telemetry.usage import UsageTelemetry
from src.webhooks import WebhookEvent, WebhookManager, setup_content_refresh_listeners

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

settings = Settings()

_start_time = time.monotonic()

# ── Service graph ───────────────────────────────────────────────────────

telemetry = UsageTelemetry(max_events=settings.TELEMETRY_MAX_EVENTS, verbose=settings.VERBOSE_LOGGING)
breakers = build_default_registry(settings)
governor = RequestGovernor(
    metrics_limit=settings.REQUEST_METRICS_LIMIT,
    base_delay_ms=settings.RETRY_BASE_DELAY_MS,
    max_delay_ms=settings.RETRY_MAX_DELAY_MS,
)
gateway = ContentGateway(settings, telemetry, breakers, governor)
publisher = TelemetryPublisher(settings.ANALYTICS_ENDPOINT, settings.TELEMETRY_FALLBACK_PATH)
webhooks = WebhookManager()

_data_dir = settings.STATIC_DATA_DIR or None


async def refresh_portfolio() -> None:
    """Rebuild the catalogue, merging live gallery entries when reachable."""
    app.state.aggregator = await PortfolioAggregator.from_gateway(gateway, _data_dir)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if gateway.configured:
        await refresh_portfolio()
    else:
        logger.info("Content service not configured, serving bundled content only")
    yield
    telemetry.log_summary()
    await gateway.close()


app = FastAPI(
    title=settings.SERVICE_NAME,
    version=settings.SERVICE_VERSION,
    lifespan=lifespan,
)
app.state.aggregator = load_default_aggregator(_data_dir)
app.add_middleware(RequestContextMiddleware, access_log=settings.VERBOSE_LOGGING)

setup_content_refresh_listeners(refresh_portfolio, webhooks)


def _envelope(result: GatewayResult) -> dict:
    return {"source": result.source.value, "error": result.error, "data": result.data}


def _aggregator(request: Request) -> PortfolioAggregator:
    return request.app.state.aggregator


@app.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Return service health; ``degraded`` while the content breaker is not closed."""
    states = {snap["name"]: snap["state"] for snap in breakers.all_snapshots()}
    return HealthResponse(
        service=settings.SERVICE_NAME,
        version=settings.SERVICE_VERSION,
        status="healthy" if states.get(CONTENT_DEPENDENCY) == "closed" else "degraded",
        uptime_seconds=round(time.monotonic() - _start_time, 2),
        content_configured=gateway.configured,
        breakers=states,
    )


# ── Content (never fails on upstream errors) ────────────────────────────


@app.get("/content/portfolio")
async def content_portfolio(
    category: str | None = Query(default=None, max_length=100),
    tags: str | None = None,
    featured_only: bool = False,
    limit: int | None = Query(default=None, ge=1, le=1000),
) -> dict:
    options = PortfolioQueryOptions(category=category, tags=tags, featured_only=featured_only, limit=limit)
    return _envelope(await gateway.get_portfolio_entries(options))


@app.get("/content/blog")
async def content_blog(
    category: str | None = Query(default=None, max_length=100),
    tags: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    sort_by: str = Query(default="publishedDate", pattern=r"^(publishedDate|title|updatedDate)$"),
    sort_order: str = Query(default="desc", pattern=r"^(asc|desc)$"),
) -> dict:
    options = BlogQueryOptions(
        category=category,
        tags=tags,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return _envelope(await gateway.get_blog_posts(options))


@app.get("/content/blog/{slug}")
async def content_blog_post(slug: str) -> dict:
    """A missing slug is still a 200 with ``data: null``."""
    return _envelope(await gateway.get_blog_post_by_slug(slug))


@app.get("/content/about")
async def content_about() -> dict:
    return _envelope(await gateway.get_about_page())


@app.get("/content/homepage")
async def content_homepage() -> dict:
    return _envelope(await gateway.get_homepage())


# ── Unified catalogue ───────────────────────────────────────────────────


@app.get("/portfolio")
async def portfolio(
    request: Request,
    category: str = "all",
    featured_only: bool = False,
    limit: int | None = Query(default=None, ge=1),
) -> list[dict]:
    entries = _aggregator(request).get_by_category(category, featured_only=featured_only, limit=limit)
    return [entry.model_dump() for entry in entries]


@app.get("/portfolio/featured")
async def portfolio_featured(request: Request, limit: int = Query(default=6, ge=1)) -> list[dict]:
    return [entry.model_dump() for entry in _aggregator(request).get_featured(limit)]


@app.get("/portfolio/categories")
async def portfolio_categories(request: Request) -> list[dict]:
    return [category.model_dump() for category in _aggregator(request).get_categories()]


@app.get("/portfolio/stats")
async def portfolio_stats(request: Request) -> dict:
    return _aggregator(request).get_stats().model_dump()


@app.get("/portfolio/{entry_id}")
async def portfolio_entry(request: Request, entry_id: str):
    entry = _aggregator(request).get_by_id(entry_id)
    if entry is None:
        error = StructuredErrorResponse.from_exception(
            ContentNotFoundError("portfolioEntry", entry_id),
            request_id=request.state.request_id,
        )
        return JSONResponse(status_code=404, content=error.model_dump())
    return entry.model_dump()


# ── Telemetry ───────────────────────────────────────────────────────────


@app.get("/telemetry/dashboard")
async def telemetry_dashboard() -> dict:
    return {
        "dashboard": telemetry.get_dashboard().model_dump(mode="json"),
        "requests": governor.get_metrics_summary(),
    }


@app.get("/telemetry/export")
async def telemetry_export() -> dict:
    return telemetry.export_snapshot().model_dump(mode="json")


@app.post("/telemetry/publish", response_model=PublishResponse)
async def telemetry_publish() -> PublishResponse:
    snapshot = telemetry.export_snapshot()
    published = await publisher.publish(snapshot)
    return PublishResponse(
        published=published,
        endpoint_configured=publisher.enabled,
        events=len(snapshot.events),
    )


# ── Resilience ──────────────────────────────────────────────────────────


@app.get("/resilience/breakers")
async def resilience_breakers() -> list[dict]:
    return breakers.all_snapshots()


@app.post("/resilience/abort", response_model=AbortResponse)
async def resilience_abort(body: AbortRequest | None = None) -> AbortResponse:
    body = body or AbortRequest()
    return AbortResponse(aborted=governor.abort_all(body.reason), reason=body.reason)


# ── Webhooks ────────────────────────────────────────────────────────────


@app.post("/webhooks/content")
async def content_webhook(
    payload: dict = Body(...),
    x_contentful_topic: str | None = Header(default=None),
) -> dict:
    event = WebhookEvent.from_payload(payload, topic=x_contentful_topic)
    listeners = webhooks.listener_count(event.event_type)
    await webhooks.process_event(event)
    return {"accepted": True, "event_type": event.event_type, "id": event.sys.id, "listeners": listeners}
