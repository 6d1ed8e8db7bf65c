"""Immutable models for the unified portfolio catalogue."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class PortfolioImage(BaseModel):
    model_config = ConfigDict(frozen=True)

    src: str
    alt: str = ""
    caption: str = ""
    description: str = ""


class PortfolioCategory(BaseModel):
    """A gallery category; ``id`` is the value stored on entries."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    gradient: str | None = None


class UnifiedPortfolioEntry(BaseModel):
    """One catalogue entry after the aggregation pipeline.

    Attributes:
        source:        Dataset the entry came from (``curated``, ``live`` ...).
        featured:      ``True`` only for entries promoted to landing surfaces.
        display_order: ``None`` sorts after every ordered entry.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    subtitle: str = ""
    description: str = ""
    images: tuple[PortfolioImage, ...]
    category: str
    featured: bool | None = None
    display_order: int | None = None
    tags: tuple[str, ...] = ()
    source: str = ""


class PortfolioStats(BaseModel):
    total_entries: int
    featured_entries: int
    category_counts: dict[str, int] = Field(default_factory=dict)
    categories: int
