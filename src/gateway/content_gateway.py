"""ContentGateway: the never-failing entry point for every content shape.

Each public ``get_*`` method follows the same pipeline:

1. No delivery client (missing configuration): record a ``static`` event
   with reason "not configured" and return the bundled dataset.
2. Run the query through the content circuit breaker, around a
   ``RequestGovernor`` deadline with bounded retries.  The breaker fallback
   is a *degraded* empty collection, which counts as a failure here.
3. Validate the raw records (errors are logged, never fatal) and transform
   them into the public models.
4. Record a ``live`` (or ``preview``) telemetry event and return.
5. Any exception in 2-4 is caught here: a ``static`` event carrying the
   error is recorded and the bundled dataset is returned.

Callers therefore always receive a ``GatewayResult`` with usable data; the
``source`` tag is the only way to tell live content from the fallback.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from src.core.config import Settings
from src.core.errors import ContentNotFoundError, UpstreamUnavailableError
from src.gateway.static_content import StaticContent
from src.gateway.transforms import (
    transform_about_page,
    transform_blog_post,
    transform_homepage,
    transform_portfolio_entry,
)
from src.gateway.upstream import ContentDeliveryClient, EntryCollection, EntryQuery, create_delivery_client
from src.models.content import (
    AboutPageContent,
    BlogListing,
    BlogPost,
    HomepageContent,
    Pagination,
    PortfolioEntry,
)
from src.models.schemas import BlogQueryOptions, PortfolioQueryOptions
from src.resilience.circuit_breaker import CONTENT_DEPENDENCY, CircuitBreakerRegistry
from src.resilience.governor import RequestGovernor
from src.telemetry.models import ContentSource, ContentType
from src.telemetry.usage import UsageTelemetry
from src.validation.content import (
    ValidationOptions,
    batch_validate,
    validate_about_page,
    validate_blog_post,
    validate_homepage,
    validate_portfolio_entry,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

NOT_CONFIGURED = "not configured"
FEATURED_LIMIT = 6
RELATED_POSTS_LIMIT = 3
FACET_QUERY_LIMIT = 1000

_BLOG_ORDER_FIELDS = {"publishedDate", "title", "updatedDate"}


@dataclass(frozen=True)
class GatewayResult(Generic[T]):
    """Data plus the source that served it.

    Attributes:
        data:   The content; always usable (``None`` only for an unknown slug).
        source: ``live``, ``preview`` or ``static``.
        error:  Failure that forced the static fallback, if any.
    """

    data: T
    source: ContentSource
    error: str | None = None

    @property
    def is_fallback(self) -> bool:
        return self.source is ContentSource.STATIC


class ContentGateway:
    """Resilient fetch → validate → transform → record pipeline per content shape.

    Args:
        settings:       Gateway settings (deadline, retries, verbosity).
        telemetry:      Event buffer that records which source served each call.
        breakers:       Registry holding the ``content`` breaker.
        governor:       Deadline / retry policy for upstream calls.
        client:         Delivery client; built from *settings* when omitted.
        preview_client: Draft-content client; when present it serves every
                        request and events are tagged ``preview``.
        static:         Bundled fallback datasets.
    """

    def __init__(
        self,
        settings: Settings,
        telemetry: UsageTelemetry,
        breakers: CircuitBreakerRegistry,
        governor: RequestGovernor,
        client: ContentDeliveryClient | None = None,
        preview_client: ContentDeliveryClient | None = None,
        static: StaticContent | None = None,
    ) -> None:
        self.settings = settings
        self.telemetry = telemetry
        self.breakers = breakers
        self.governor = governor
        self.client = client if client is not None else create_delivery_client(settings)
        self.preview_client = (
            preview_client if preview_client is not None else create_delivery_client(settings, preview=True)
        )
        self.static = static or StaticContent(settings.STATIC_DATA_DIR or None)

    @property
    def configured(self) -> bool:
        return self._active_client()[0] is not None

    def _active_client(self) -> tuple[ContentDeliveryClient | None, ContentSource]:
        if self.preview_client is not None:
            return self.preview_client, ContentSource.PREVIEW
        return self.client, ContentSource.LIVE

    # ── Pipeline ────────────────────────────────────────────────────

    async def _serve(
        self,
        content_type: ContentType,
        label: str,
        fetch: Callable[[ContentDeliveryClient], Awaitable[T]],
        fallback: Callable[[], T],
    ) -> GatewayResult[T]:
        client, source = self._active_client()
        if client is None:
            self.telemetry.track_static_fallback(content_type, NOT_CONFIGURED)
            return GatewayResult(fallback(), ContentSource.STATIC)

        started = time.monotonic()
        try:
            data = await fetch(client)
        except Exception as exc:
            message = str(exc) or type(exc).__name__
            logger.warning("%s: live fetch failed, serving static content (%s)", label, message)
            self.telemetry.track_static_fallback(content_type, f"API error: {message}", error=message)
            return GatewayResult(fallback(), ContentSource.STATIC, error=message)

        if source is ContentSource.PREVIEW:
            self.telemetry.track_preview(content_type, started)
        else:
            self.telemetry.track_fetch(content_type, started, True)
        return GatewayResult(data, source)

    async def _fetch(self, client: ContentDeliveryClient, query: EntryQuery, label: str) -> EntryCollection:
        """One breaker-guarded, deadline-bound query."""
        breaker = self.breakers.get(CONTENT_DEPENDENCY)
        collection = await breaker.execute(
            lambda: self.governor.with_deadline(
                lambda: client.get_entries(query),
                timeout_ms=self.settings.REQUEST_TIMEOUT_MS,
                max_retries=self.settings.REQUEST_MAX_RETRIES,
                backoff_multiplier=self.settings.RETRY_BACKOFF_MULTIPLIER,
                error_message=f"{label} request timed out",
            ),
            fallback=lambda: EntryCollection.empty(degraded=True),
        )
        if collection.degraded:
            raise UpstreamUnavailableError(CONTENT_DEPENDENCY, f"{label} served by breaker fallback")
        return collection

    def _validation_options(self, content_type: ContentType) -> ValidationOptions:
        return ValidationOptions(log_warnings=self.settings.VERBOSE_LOGGING, content_type=content_type.value)

    def _check_batch(self, items: list[dict], validator, content_type: ContentType, label: str) -> None:
        if not items:
            return
        batch = batch_validate(items, validator, self._validation_options(content_type))
        if batch.invalid:
            errors = [r.errors for r in batch.results if not r.is_valid]
            logger.warning("%s: %d of %d records failed validation: %s", label, len(batch.invalid), len(items), errors)

    def _check_one(self, record: dict, validator, content_type: ContentType) -> None:
        result = validator(record, self._validation_options(content_type))
        if not result.is_valid:
            logger.warning("Invalid %s content: %s", content_type.value, result.errors)

    # ── Gallery ─────────────────────────────────────────────────────

    async def get_portfolio_entries(self, options: PortfolioQueryOptions | None = None) -> GatewayResult[list[PortfolioEntry]]:
        """Gallery items ordered by display order."""
        options = options or PortfolioQueryOptions()

        async def fetch(client: ContentDeliveryClient) -> list[PortfolioEntry]:
            query = EntryQuery(
                content_type=ContentType.PORTFOLIO_ENTRY.value,
                category=options.category,
                tags=options.tags,
                featured_only=options.featured_only,
                limit=options.limit,
                order="fields.displayOrder",
            )
            collection = await self._fetch(client, query, "Portfolio entries")
            self._check_batch(
                collection.items, validate_portfolio_entry, ContentType.PORTFOLIO_ENTRY, "Portfolio entries"
            )
            return [transform_portfolio_entry(item) for item in collection.items]

        return await self._serve(
            ContentType.PORTFOLIO_ENTRY,
            "Portfolio entries",
            fetch,
            lambda: self.static.portfolio_entries(options),
        )

    # ── Pages ───────────────────────────────────────────────────────

    async def get_about_page(self) -> GatewayResult[AboutPageContent]:
        async def fetch(client: ContentDeliveryClient) -> AboutPageContent:
            query = EntryQuery(content_type=ContentType.ABOUT_PAGE.value, limit=1)
            collection = await self._fetch(client, query, "About page")
            if not collection.items:
                raise ContentNotFoundError(ContentType.ABOUT_PAGE.value, "no live entry")
            record = collection.items[0]
            self._check_one(record, validate_about_page, ContentType.ABOUT_PAGE)
            return transform_about_page(record)

        return await self._serve(ContentType.ABOUT_PAGE, "About page", fetch, self.static.about_page)

    async def get_homepage(self) -> GatewayResult[HomepageContent]:
        """Landing content; featured entries come from the gallery fetch."""

        async def fetch(client: ContentDeliveryClient) -> HomepageContent:
            query = EntryQuery(content_type=ContentType.HOMEPAGE.value, limit=1)
            collection = await self._fetch(client, query, "Homepage")
            if not collection.items:
                raise ContentNotFoundError(ContentType.HOMEPAGE.value, "no live entry")
            record = collection.items[0]
            self._check_one(record, validate_homepage, ContentType.HOMEPAGE)
            featured = await self.get_portfolio_entries(
                PortfolioQueryOptions(featured_only=True, limit=FEATURED_LIMIT)
            )
            return transform_homepage(record, featured.data)

        return await self._serve(ContentType.HOMEPAGE, "Homepage", fetch, self.static.homepage)

    # ── Articles ────────────────────────────────────────────────────

    async def get_blog_posts(self, options: BlogQueryOptions | None = None) -> GatewayResult[BlogListing]:
        """One page of articles with pagination metadata and facets."""
        options = options or BlogQueryOptions()

        async def fetch(client: ContentDeliveryClient) -> BlogListing:
            sort_field = options.sort_by if options.sort_by in _BLOG_ORDER_FIELDS else "publishedDate"
            query = EntryQuery(
                content_type=ContentType.BLOG_POST.value,
                category=options.category,
                tags=options.tags,
                published_only=options.published_only,
                limit=options.limit,
                skip=(options.page - 1) * options.limit,
                order=f"-fields.{sort_field}" if options.sort_order == "desc" else f"fields.{sort_field}",
            )
            collection = await self._fetch(client, query, "Blog posts")
            self._check_batch(collection.items, validate_blog_post, ContentType.BLOG_POST, "Blog posts")
            posts = [transform_blog_post(item) for item in collection.items]

            facets = await self._fetch(
                client,
                EntryQuery(
                    content_type=ContentType.BLOG_POST.value,
                    published_only=True,
                    select="fields.category,fields.tags",
                    limit=FACET_QUERY_LIMIT,
                    include=0,
                ),
                "Blog facets",
            )
            categories, tags = _facets(facets.items)

            return BlogListing(
                posts=posts,
                pagination=Pagination(
                    total=collection.total,
                    page=options.page,
                    limit=options.limit,
                    has_next=options.page * options.limit < collection.total,
                    has_previous=options.page > 1,
                ),
                categories=categories,
                tags=tags,
            )

        return await self._serve(
            ContentType.BLOG_POST,
            "Blog posts",
            fetch,
            lambda: self.static.blog_listing(options),
        )

    async def get_blog_post_by_slug(self, slug: str) -> GatewayResult[BlogPost | None]:
        """A single published article plus up to three related posts.

        ``data`` is ``None`` only when neither the live service nor the
        bundled dataset knows *slug*.
        """

        async def fetch(client: ContentDeliveryClient) -> BlogPost:
            query = EntryQuery(
                content_type=ContentType.BLOG_POST.value,
                slug=slug,
                published_only=True,
                limit=1,
            )
            collection = await self._fetch(client, query, "Blog post")
            if not collection.items:
                raise ContentNotFoundError(ContentType.BLOG_POST.value, f"slug '{slug}'")
            record = collection.items[0]
            self._check_one(record, validate_blog_post, ContentType.BLOG_POST)
            post = transform_blog_post(record)
            post.related_posts = await self._related_posts(client, post)
            return post

        return await self._serve(
            ContentType.BLOG_POST,
            "Blog post",
            fetch,
            lambda: self.static.blog_post_by_slug(slug),
        )

    async def _related_posts(self, client: ContentDeliveryClient, post: BlogPost) -> list[BlogPost]:
        """Same-category posts; a failure here leaves the list empty."""
        if not post.category:
            return []
        query = EntryQuery(
            content_type=ContentType.BLOG_POST.value,
            category=post.category,
            published_only=True,
            exclude_id=post.id,
            limit=RELATED_POSTS_LIMIT,
        )
        try:
            collection = await self._fetch(client, query, "Related posts")
        except Exception as exc:
            logger.warning("Related posts for '%s' unavailable: %s", post.slug, exc)
            return []
        return [transform_blog_post(item) for item in collection.items[:RELATED_POSTS_LIMIT]]

    # ── Warm-up / lifecycle ─────────────────────────────────────────

    async def preload_critical_content(self) -> tuple[GatewayResult[HomepageContent], GatewayResult[list[PortfolioEntry]]]:
        """Fetch the landing content and featured gallery concurrently."""
        homepage, featured = await asyncio.gather(
            self.get_homepage(),
            self.get_portfolio_entries(PortfolioQueryOptions(featured_only=True, limit=FEATURED_LIMIT)),
        )
        logger.info(
            "Critical content preloaded (homepage: %s, featured: %s)",
            homepage.source.value,
            featured.source.value,
        )
        return homepage, featured

    async def close(self) -> None:
        for client in {id(c): c for c in (self.client, self.preview_client) if c is not None}.values():
            await client.close()


def _facets(items: list[dict]) -> tuple[list[str], list[str]]:
    categories: dict[str, None] = {}
    tags: dict[str, None] = {}
    for item in items:
        fields: dict[str, Any] = item.get("fields") or {}
        category = fields.get("category")
        if isinstance(category, str) and category:
            categories.setdefault(category, None)
        for tag in fields.get("tags") or []:
            if isinstance(tag, str) and tag:
                tags.setdefault(tag, None)
    return list(categories), list(tags)
