"""Portfolio aggregation: many datasets in, one ordered catalogue out.

The catalogue is built once by a declarative pipeline, each stage a plain
function over lists of raw entry dicts:

    tag_source → filter_unusable_media → assign_derived_fields → freeze

Entries whose every image reference is unusable are dropped during the
build, never per query.  The frozen result is read-only; queries return new
lists sorted by ``display_order`` (missing order sorts as 999; ties keep
their build position).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from src.core.datasets import load_dataset
from src.portfolio.assets import AssetResolver
from src.portfolio.models import PortfolioCategory, PortfolioStats, UnifiedPortfolioEntry

if TYPE_CHECKING:
    from src.gateway.content_gateway import ContentGateway

logger = logging.getLogger(__name__)

ALL_CATEGORIES = "all"
UNORDERED = 999
DEFAULT_FEATURED_LIMIT = 6
COLLECTIONS_FILE = "portfolio_collections.yaml"


@dataclass(frozen=True)
class DatasetSpec:
    """Featured / ordering rule for one dataset.

    Attributes:
        name:                  Source tag stamped on every entry.
        explicit:              Keep each entry's own ``featured`` / ``display_order``.
        featured_ids:          Entry ids promoted to featured, with their order.
        featured_first:        Promote the first N usable entries.
        featured_order_offset: Order of the first promoted-by-position entry.
        order_offset:          Order of the first non-featured entry; later
                               entries follow by their position.
    """

    name: str
    explicit: bool = False
    featured_ids: dict[str, int] = field(default_factory=dict)
    featured_first: int = 0
    featured_order_offset: int = 10
    order_offset: int = 0

    @classmethod
    def from_config(cls, raw: dict[str, Any]) -> DatasetSpec:
        return cls(
            name=raw["name"],
            explicit=bool(raw.get("explicit", False)),
            featured_ids=dict(raw.get("featured_ids") or {}),
            featured_first=int(raw.get("featured_first", 0)),
            featured_order_offset=int(raw.get("featured_order_offset", 10)),
            order_offset=int(raw.get("order_offset", 0)),
        )


# ── Pipeline stages ─────────────────────────────────────────────────────


def tag_source(entries: list[dict], source: str) -> list[dict]:
    """Copy each entry, stamping the dataset it came from."""
    return [{**entry, "source": source} for entry in entries if isinstance(entry, dict)]


def filter_unusable_media(entries: list[dict], resolver: AssetResolver) -> list[dict]:
    """Resolve image references; drop unusable images and imageless entries."""
    kept = []
    for entry in entries:
        images = []
        for image in entry.get("images") or []:
            if not isinstance(image, dict):
                continue
            src = resolver.resolve(image.get("src"))
            if src is not None:
                images.append({**image, "src": src})
        if not images:
            logger.debug(
                "Dropping portfolio entry %r from %s: no usable images",
                entry.get("id"),
                entry.get("source"),
            )
            continue
        kept.append({**entry, "images": images})
    return kept


def assign_derived_fields(entries: list[dict], spec: DatasetSpec) -> list[dict]:
    """Apply the dataset's featured / ordering rule.

    Positions count usable entries only, so this runs after filtering.
    """
    if spec.explicit:
        return entries
    derived = []
    for index, entry in enumerate(entries):
        entry_id = entry.get("id")
        if entry_id in spec.featured_ids:
            featured, order = True, spec.featured_ids[entry_id]
        elif index < spec.featured_first:
            featured, order = True, spec.featured_order_offset + index
        else:
            featured, order = False, spec.order_offset + index
        derived.append({**entry, "featured": featured, "display_order": order})
    return derived


def freeze(entries: list[dict]) -> tuple[UnifiedPortfolioEntry, ...]:
    """Build immutable entries; the first occurrence of an id wins."""
    frozen: list[UnifiedPortfolioEntry] = []
    seen: set[str] = set()
    for entry in entries:
        try:
            model = UnifiedPortfolioEntry.model_validate(entry)
        except ValidationError as exc:
            logger.warning("Skipping malformed portfolio entry %r: %s", entry.get("id"), exc.errors())
            continue
        if model.id in seen:
            logger.warning("Duplicate portfolio entry id %r from %s ignored", model.id, model.source)
            continue
        seen.add(model.id)
        frozen.append(model)
    return tuple(frozen)


def build_collection(
    datasets: list[tuple[DatasetSpec, list[dict]]],
    resolver: AssetResolver,
) -> tuple[UnifiedPortfolioEntry, ...]:
    """Run every dataset through the pipeline and concatenate in order."""
    staged: list[dict] = []
    for spec, raw_entries in datasets:
        entries = tag_source(raw_entries, spec.name)
        entries = filter_unusable_media(entries, resolver)
        staged.extend(assign_derived_fields(entries, spec))
    return freeze(staged)


def _order_key(entry: UnifiedPortfolioEntry) -> int:
    return entry.display_order if entry.display_order is not None else UNORDERED


# ── Aggregator ──────────────────────────────────────────────────────────


class PortfolioAggregator:
    """Read-only queries over the unified catalogue.

    Args:
        datasets:   ``(spec, raw entries)`` pairs, concatenated in order.
        categories: Declared categories, including the ``all`` pseudo-category.
        resolver:   Image reference resolver used by the media filter.
    """

    def __init__(
        self,
        datasets: list[tuple[DatasetSpec, list[dict]]],
        categories: list[PortfolioCategory],
        resolver: AssetResolver | None = None,
    ) -> None:
        self.resolver = resolver or AssetResolver()
        self._datasets = list(datasets)
        self._categories = tuple(categories)
        self._category_ids = frozenset(c.id for c in categories if c.id != ALL_CATEGORIES)
        self._entries = build_collection(self._datasets, self.resolver)
        logger.info(
            "Portfolio catalogue built: %d entries (%d featured) from %d datasets",
            len(self._entries),
            sum(1 for e in self._entries if e.featured is True),
            len(self._datasets),
        )

    @property
    def entries(self) -> tuple[UnifiedPortfolioEntry, ...]:
        return self._entries

    def get_by_category(
        self,
        category_id: str = ALL_CATEGORIES,
        featured_only: bool = False,
        limit: int | None = None,
    ) -> list[UnifiedPortfolioEntry]:
        """Filter by category and featured flag, sort by display order, truncate.

        A category outside the declared set matches nothing.
        """
        if category_id == ALL_CATEGORIES:
            selected = list(self._entries)
        elif category_id in self._category_ids:
            selected = [e for e in self._entries if e.category == category_id]
        else:
            return []
        if featured_only:
            selected = [e for e in selected if e.featured is True]
        selected.sort(key=_order_key)
        if limit is not None and limit > 0:
            selected = selected[:limit]
        return selected

    def get_featured(self, limit: int = DEFAULT_FEATURED_LIMIT) -> list[UnifiedPortfolioEntry]:
        return self.get_by_category(ALL_CATEGORIES, featured_only=True, limit=limit)

    def get_by_id(self, entry_id: str) -> UnifiedPortfolioEntry | None:
        return next((e for e in self._entries if e.id == entry_id), None)

    def get_categories(self) -> list[PortfolioCategory]:
        return list(self._categories)

    def get_stats(self) -> PortfolioStats:
        return PortfolioStats(
            total_entries=len(self._entries),
            featured_entries=sum(1 for e in self._entries if e.featured is True),
            category_counts={
                c.id: len(self.get_by_category(c.id)) for c in self._categories if c.id != ALL_CATEGORIES
            },
            categories=len(self._category_ids),
        )

    # ── Construction ────────────────────────────────────────────────

    def with_dataset(self, spec: DatasetSpec, raw_entries: list[dict]) -> PortfolioAggregator:
        """Return a new aggregator with one more dataset appended."""
        return PortfolioAggregator(self._datasets + [(spec, raw_entries)], list(self._categories), self.resolver)

    @classmethod
    def from_config(cls, data_dir: str | Path | None = None) -> PortfolioAggregator:
        datasets = [
            (DatasetSpec.from_config(raw), raw.get("entries") or [])
            for raw in load_dataset(COLLECTIONS_FILE, "datasets", data_dir)
        ]
        categories = [
            PortfolioCategory.model_validate(raw) for raw in load_dataset(COLLECTIONS_FILE, "categories", data_dir)
        ]
        resolver = AssetResolver(load_dataset(COLLECTIONS_FILE, "assets", data_dir))
        return cls(datasets, categories, resolver)

    @classmethod
    async def from_gateway(
        cls,
        gateway: ContentGateway,
        data_dir: str | Path | None = None,
    ) -> PortfolioAggregator:
        """Bundled datasets plus live gallery entries as a ``live`` dataset.

        Live entries are appended only when the gateway actually reached the
        content service; a static fallback adds nothing.
        """
        base = cls.from_config(data_dir)
        result = await gateway.get_portfolio_entries()
        if result.is_fallback:
            return base
        live = [
            {
                "id": entry.id,
                "title": entry.title,
                "subtitle": entry.created_date,
                "description": entry.description,
                "images": [
                    {"src": image.url, "alt": image.alt, "caption": image.title or "", "description": ""}
                    for image in entry.images
                ],
                "category": entry.category,
                "featured": entry.featured,
                "display_order": entry.display_order,
                "tags": entry.tags,
            }
            for entry in result.data
        ]
        return base.with_dataset(DatasetSpec(name="live", explicit=True), live)


def load_default_aggregator(data_dir: str | Path | None = None) -> PortfolioAggregator:
    """Aggregator over the bundled datasets only."""
    return PortfolioAggregator.from_config(data_dir)
