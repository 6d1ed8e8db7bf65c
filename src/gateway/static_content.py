"""Bundled static datasets used when the live content service is unavailable.

Datasets are loaded once from YAML into the same models as transformed live
data.  Every accessor returns deep copies, so callers can never alter the
fallback for later requests.  Nothing here performs I/O after construction.
"""

from __future__ import annotations

import logging
from pathlib import Path

from src.core.datasets import load_dataset
from src.models.content import (
    AboutPageContent,
    BlogListing,
    BlogPost,
    HomepageContent,
    Pagination,
    PortfolioEntry,
)
from src.models.schemas import BlogQueryOptions, PortfolioQueryOptions

logger = logging.getLogger(__name__)

RELATED_POSTS_LIMIT = 3
UNORDERED = 999

_SORT_FIELDS = {
    "publishedDate": "published_date",
    "title": "title",
    "updatedDate": "updated_date",
}


def order_key(entry: PortfolioEntry) -> int:
    return entry.display_order if entry.display_order is not None else UNORDERED


def filter_portfolio(entries: list[PortfolioEntry], options: PortfolioQueryOptions) -> list[PortfolioEntry]:
    """Apply category / tag / featured / limit filters in display order."""
    selected = [
        entry
        for entry in entries
        if (not options.category or entry.category == options.category)
        and (not options.tags or any(tag in entry.tags for tag in options.tags))
        and (not options.featured_only or entry.featured)
    ]
    selected.sort(key=order_key)
    if options.limit is not None:
        selected = selected[: options.limit]
    return selected


def unique_in_order(values) -> list[str]:
    seen: dict[str, None] = {}
    for value in values:
        if value:
            seen.setdefault(value, None)
    return list(seen)


class StaticContent:
    """In-memory fallback for every content shape.

    Args:
        data_dir: Directory holding the YAML datasets; ``None`` uses the
                  datasets bundled with the package.
    """

    def __init__(self, data_dir: str | Path | None = None) -> None:
        self._portfolio = [
            PortfolioEntry.model_validate(item) for item in load_dataset("portfolio_entries.yaml", "entries", data_dir)
        ]
        self._about = AboutPageContent.model_validate(load_dataset("about.yaml", "about", data_dir))

        homepage = load_dataset("homepage.yaml", "homepage", data_dir)
        homepage.setdefault("featured", {})["entries"] = [
            entry.model_dump() for entry in filter_portfolio(self._portfolio, PortfolioQueryOptions(featured_only=True))
        ]
        self._homepage = HomepageContent.model_validate(homepage)

        self._posts = [BlogPost.model_validate(item) for item in load_dataset("blog_posts.yaml", "posts", data_dir)]
        logger.debug(
            "Loaded static content: %d portfolio entries, %d blog posts",
            len(self._portfolio),
            len(self._posts),
        )

    # ── Gallery / pages ─────────────────────────────────────────────

    def portfolio_entries(self, options: PortfolioQueryOptions | None = None) -> list[PortfolioEntry]:
        selected = filter_portfolio(self._portfolio, options or PortfolioQueryOptions())
        return [entry.model_copy(deep=True) for entry in selected]

    def about_page(self) -> AboutPageContent:
        return self._about.model_copy(deep=True)

    def homepage(self) -> HomepageContent:
        return self._homepage.model_copy(deep=True)

    # ── Articles ────────────────────────────────────────────────────

    def blog_listing(self, options: BlogQueryOptions | None = None) -> BlogListing:
        """Filter, sort and paginate the bundled articles."""
        options = options or BlogQueryOptions()
        pool = [post for post in self._posts if post.published or not options.published_only]

        matching = [
            post
            for post in pool
            if (not options.category or post.category == options.category)
            and (not options.tags or any(tag in post.tags for tag in options.tags))
        ]
        attr = _SORT_FIELDS[options.sort_by]
        matching.sort(key=lambda post: getattr(post, attr) or "", reverse=options.sort_order == "desc")

        start = (options.page - 1) * options.limit
        page = matching[start : start + options.limit]

        return BlogListing(
            posts=[post.model_copy(deep=True) for post in page],
            pagination=Pagination(
                total=len(matching),
                page=options.page,
                limit=options.limit,
                has_next=start + options.limit < len(matching),
                has_previous=options.page > 1,
            ),
            categories=unique_in_order(post.category for post in pool),
            tags=unique_in_order(tag for post in pool for tag in post.tags),
        )

    def blog_post_by_slug(self, slug: str) -> BlogPost | None:
        """Return the published post for *slug* with up to three related posts."""
        post = next((p for p in self._posts if p.slug == slug and p.published), None)
        if post is None:
            return None
        result = post.model_copy(deep=True)
        result.related_posts = [
            other.model_copy(deep=True)
            for other in self._posts
            if other.id != post.id and other.published and other.category == post.category
        ][:RELATED_POSTS_LIMIT]
        return result
