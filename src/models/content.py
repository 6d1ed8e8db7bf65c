"""Public content shapes returned by the gateway.

Live records and the bundled static datasets are transformed into these
same models, so a caller cannot tell the source apart by shape alone.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class ContentImage(BaseModel):
    """A normalized image with the dimensions needed for responsive layout."""

    url: str
    alt: str = ""
    title: str | None = None
    width: int = 800
    height: int = 600
    size: int | None = None
    format: str | None = None


class SeoMetadata(BaseModel):
    meta_title: str | None = None
    meta_description: str | None = None
    keywords: list[str] = Field(default_factory=list)
    social_image: ContentImage | None = None


# ── Gallery ─────────────────────────────────────────────────────────────


class PortfolioEntry(BaseModel):
    """One gallery item.

    ``display_order`` is ``None`` when the record carries no explicit order.
    """

    id: str
    title: str
    description: str = ""
    detailed_description: str = ""
    category: str = "general"
    images: list[ContentImage] = Field(default_factory=list)
    featured_image: ContentImage | None = None
    tags: list[str] = Field(default_factory=list)
    created_date: str = ""
    featured: bool = False
    display_order: int | None = None
    seo: SeoMetadata | None = None


# ── Articles ────────────────────────────────────────────────────────────


class BlogAuthor(BaseModel):
    name: str = "Ash Shaw"
    bio: str = ""
    avatar: ContentImage | None = None


class BlogPost(BaseModel):
    """An article; ``content`` is rendered HTML."""

    id: str
    title: str
    slug: str
    excerpt: str = ""
    content: str = ""
    featured_image: ContentImage | None = None
    category: str = "general"
    tags: list[str] = Field(default_factory=list)
    author: BlogAuthor = Field(default_factory=BlogAuthor)
    published_date: str = ""
    updated_date: str | None = None
    published: bool = False
    reading_time: int = 1
    seo: SeoMetadata | None = None
    related_posts: list[BlogPost] = Field(default_factory=list)


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    has_next: bool
    has_previous: bool


class BlogListing(BaseModel):
    """One page of articles plus the category and tag facets."""

    posts: list[BlogPost]
    pagination: Pagination
    categories: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)


# ── About page ──────────────────────────────────────────────────────────


class AboutHero(BaseModel):
    title: str = "About Ash Shaw"
    subtitle: str = "makeup artist"
    description: str = ""
    image: ContentImage | None = None


class JourneySection(BaseModel):
    year: str = ""
    title: str = ""
    description: str = ""
    image: ContentImage | None = None


class AboutJourney(BaseModel):
    title: str = "My Journey"
    sections: list[JourneySection] = Field(default_factory=list)


class ServiceItem(BaseModel):
    name: str = ""
    description: str = ""
    icon: str = ""


class AboutServices(BaseModel):
    title: str = "What I Do"
    description: str = ""
    service_list: list[ServiceItem] = Field(default_factory=list)


class AboutPhilosophy(BaseModel):
    title: str = "My Approach"
    content: str = ""
    quote: str = ""
    image: ContentImage | None = None


class AboutPageContent(BaseModel):
    id: str
    hero: AboutHero = Field(default_factory=AboutHero)
    journey: AboutJourney = Field(default_factory=AboutJourney)
    services: AboutServices = Field(default_factory=AboutServices)
    philosophy: AboutPhilosophy = Field(default_factory=AboutPhilosophy)


# ── Homepage ────────────────────────────────────────────────────────────


class HomepageHero(BaseModel):
    title: str = "Hi, I'm Ash Shaw"
    subtitle: str = "makeup artist"
    description: str = ""
    cta_text: str = "Explore My Portfolio"
    background_images: list[ContentImage] = Field(default_factory=list)


class HomepageFeatured(BaseModel):
    title: str = "Featured Work"
    description: str = ""
    entries: list[PortfolioEntry] = Field(default_factory=list)


class PhilosophyCard(BaseModel):
    title: str = ""
    description: str = ""
    icon: str = ""


class HomepagePhilosophy(BaseModel):
    title: str = "Why I Do Makeup"
    cards: list[PhilosophyCard] = Field(default_factory=list)


class HomepageContent(BaseModel):
    id: str
    hero: HomepageHero = Field(default_factory=HomepageHero)
    featured: HomepageFeatured = Field(default_factory=HomepageFeatured)
    philosophy: HomepagePhilosophy = Field(default_factory=HomepagePhilosophy)
