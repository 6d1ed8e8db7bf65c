"""HTTP client for the upstream content delivery API.

``ContentDeliveryClient.get_entries`` issues one ``GET .../entries`` and
returns an ``EntryCollection`` whose items have their ``Link`` stubs
replaced by the matching records from ``includes``.  Unresolvable links are
left as stubs so partially populated records survive the transform.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from src.core.config import Settings

logger = logging.getLogger(__name__)


# ── Query / result types ────────────────────────────────────────────────


@dataclass
class EntryQuery:
    """One delivery API entries query.

    Attributes:
        content_type:   Upstream content type id (``portfolioEntry`` ...).
        category:       Exact ``fields.category`` match.
        tags:           Any-of match on ``fields.tags``.
        featured_only:  Only records with ``fields.featured = true``.
        published_only: Only records with ``fields.published = true``.
        slug:           Exact ``fields.slug`` match.
        exclude_id:     Skip the record with this ``sys.id``.
        limit / skip:   Page window; ``limit=0`` returns only the total.
        order:          Sort expression (``fields.displayOrder``, ``-fields.publishedDate``).
        include:        Link resolution depth.
        select:         Comma separated projection.
    """

    content_type: str
    category: str | None = None
    tags: list[str] = field(default_factory=list)
    featured_only: bool = False
    published_only: bool = False
    slug: str | None = None
    exclude_id: str | None = None
    limit: int | None = None
    skip: int | None = None
    order: str | None = None
    include: int = 2
    select: str | None = None

    def to_params(self) -> dict[str, str | int]:
        params: dict[str, str | int] = {"content_type": self.content_type, "include": self.include}
        if self.category:
            params["fields.category"] = self.category
        if self.tags:
            params["fields.tags[in]"] = ",".join(self.tags)
        if self.featured_only:
            params["fields.featured"] = "true"
        if self.published_only:
            params["fields.published"] = "true"
        if self.slug:
            params["fields.slug"] = self.slug
        if self.exclude_id:
            params["sys.id[ne]"] = self.exclude_id
        if self.limit is not None:
            params["limit"] = self.limit
        if self.skip:
            params["skip"] = self.skip
        if self.order:
            params["order"] = self.order
        if self.select:
            params["select"] = self.select
        return params


@dataclass
class EntryCollection:
    """Raw records from one query.

    ``degraded`` marks a placeholder produced by a circuit breaker fallback
    rather than by the upstream service.
    """

    items: list[dict] = field(default_factory=list)
    total: int = 0
    skip: int = 0
    limit: int = 0
    degraded: bool = False

    @classmethod
    def empty(cls, degraded: bool = False) -> EntryCollection:
        return cls(degraded=degraded)


# ── Link resolution ─────────────────────────────────────────────────────


def _link_key(value: Any) -> tuple[str, str] | None:
    if not isinstance(value, dict):
        return None
    sys = value.get("sys")
    if isinstance(sys, dict) and sys.get("type") == "Link":
        return sys.get("linkType", ""), sys.get("id", "")
    return None


def _record_key(record: dict) -> tuple[str, str]:
    sys = record.get("sys") or {}
    link_type = "Asset" if sys.get("type") == "Asset" else "Entry"
    return link_type, sys.get("id", "")


def resolve_links(payload: dict, depth: int = 2) -> list[dict]:
    """Return ``payload["items"]`` with links embedded up to *depth* levels.

    A link that points back at a record already on the current path is
    left as a stub.
    """
    index: dict[tuple[str, str], dict] = {}
    includes = payload.get("includes") or {}
    for link_type in ("Entry", "Asset"):
        for record in includes.get(link_type) or []:
            index[(link_type, (record.get("sys") or {}).get("id", ""))] = record
    items = [item for item in payload.get("items") or [] if isinstance(item, dict)]
    for item in items:
        index.setdefault(_record_key(item), item)

    def resolve(value: Any, level: int, path: frozenset) -> Any:
        key = _link_key(value)
        if key is not None:
            target = index.get(key)
            if target is None or key in path or level >= depth:
                return value
            return resolve_record(target, level + 1, path | {key})
        if isinstance(value, dict):
            return {k: resolve(v, level, path) for k, v in value.items()}
        if isinstance(value, list):
            return [resolve(v, level, path) for v in value]
        return value

    def resolve_record(record: dict, level: int, path: frozenset) -> dict:
        resolved = dict(record)
        if isinstance(record.get("fields"), dict):
            resolved["fields"] = resolve(record["fields"], level, path)
        return resolved

    return [resolve_record(item, 0, frozenset({_record_key(item)})) for item in items]


# ── Client ──────────────────────────────────────────────────────────────


class ContentDeliveryClient:
    """Thin async wrapper over the delivery API.

    Args:
        space_id:     Upstream space identifier.
        access_token: Delivery (or preview) API token.
        environment:  Upstream environment name.
        host:         API host, e.g. ``cdn.contentful.com``.
        timeout:      Per-request transport timeout in seconds.
        client:       Pre-built ``httpx.AsyncClient`` (tests inject a mock transport).
    """

    def __init__(
        self,
        space_id: str,
        access_token: str,
        *,
        environment: str = "master",
        host: str = "cdn.contentful.com",
        timeout: float = 8.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = f"https://{host}/spaces/{space_id}/environments/{environment}"
        self.host = host
        self._headers = {"Authorization": f"Bearer {access_token}"}
        self._timeout = timeout
        self._client = client or httpx.AsyncClient()

    async def get_entries(self, query: EntryQuery) -> EntryCollection:
        """Fetch one page of records; raises ``httpx.HTTPError`` on failure."""
        response = await self._client.get(
            f"{self.base_url}/entries",
            params=query.to_params(),
            headers=self._headers,
            timeout=self._timeout,
        )
        response.raise_for_status()
        payload = response.json()
        return EntryCollection(
            items=resolve_links(payload, depth=query.include),
            total=int(payload.get("total", 0)),
            skip=int(payload.get("skip", 0)),
            limit=int(payload.get("limit", 0)),
        )

    async def close(self) -> None:
        await self._client.aclose()


def create_delivery_client(
    settings: Settings,
    preview: bool = False,
    client: httpx.AsyncClient | None = None,
) -> ContentDeliveryClient | None:
    """Build a client from *settings*, or ``None`` when credentials are absent."""
    if preview:
        if not settings.preview_configured:
            return None
        token, host = settings.PREVIEW_ACCESS_TOKEN, settings.PREVIEW_HOST
    else:
        if not settings.is_configured:
            logger.info("Content service not configured; serving bundled static content")
            return None
        token, host = settings.ACCESS_TOKEN, settings.DELIVERY_HOST

    return ContentDeliveryClient(
        settings.SPACE_ID,
        token,
        environment=settings.ENVIRONMENT,
        host=host,
        # Transport timeout sits above the governor deadline
        timeout=settings.REQUEST_TIMEOUT_MS / 1000 + 3,
        client=client,
    )
