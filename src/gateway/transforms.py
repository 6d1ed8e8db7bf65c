"""Transform resolved upstream records into the public content models.

Every transform is best-effort: missing or wrongly typed optional fields
fall back to defaults instead of raising, so a structurally imperfect
record still yields a usable model.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import urlencode

from src.gateway.rich_text import calculate_reading_time, render_rich_text
from src.models.content import (
    AboutHero,
    AboutJourney,
    AboutPageContent,
    AboutPhilosophy,
    AboutServices,
    BlogAuthor,
    BlogPost,
    ContentImage,
    HomepageContent,
    HomepageFeatured,
    HomepageHero,
    HomepagePhilosophy,
    JourneySection,
    PhilosophyCard,
    PortfolioEntry,
    SeoMetadata,
    ServiceItem,
)
from src.validation.fields import is_number

ASSET_HOST_MARKER = "ctfassets.net"
DEFAULT_AUTHOR_BIO = "Professional makeup artist specializing in festival artistry and creative expression."


def normalize_asset_url(url: str | None) -> str:
    """Make protocol-relative asset URLs absolute (``//host/x`` -> ``https://host/x``)."""
    if not isinstance(url, str) or not url:
        return ""
    if url.startswith("//"):
        return f"https:{url}"
    return url


def optimized_image_url(
    url: str,
    width: int | None = None,
    height: int | None = None,
    fmt: str | None = None,
    quality: int | None = None,
    fit: str | None = None,
) -> str:
    """Append image API parameters to an upstream-hosted asset URL.

    URLs on any other host are returned unchanged.
    """
    if not url or ASSET_HOST_MARKER not in url:
        return url
    params = {
        key: value
        for key, value in (("w", width), ("h", height), ("fm", fmt), ("q", quality), ("fit", fit))
        if value
    }
    if not params:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{urlencode(params)}"


# ── Field helpers ───────────────────────────────────────────────────────


def _fields(record: Any) -> dict:
    if isinstance(record, dict) and isinstance(record.get("fields"), dict):
        return record["fields"]
    return {}


def _sys(record: Any) -> dict:
    if isinstance(record, dict) and isinstance(record.get("sys"), dict):
        return record["sys"]
    return {}


def _str(fields: dict, key: str, default: str = "") -> str:
    value = fields.get(key)
    return value if isinstance(value, str) and value else default


def _html(value: Any) -> str:
    if isinstance(value, dict):
        return render_rich_text(value)
    return value if isinstance(value, str) else ""


def _tags(fields: dict) -> list[str]:
    tags = fields.get("tags")
    if not isinstance(tags, list):
        return []
    return [tag for tag in tags if isinstance(tag, str) and tag.strip()]


def _linked(fields: dict, key: str) -> list[dict]:
    """Resolved linked records under *key*; stubs are dropped."""
    value = fields.get(key)
    if not isinstance(value, list):
        return []
    return [item for item in value if _fields(item)]


def transform_image(asset: Any, default_alt: str = "Portfolio image") -> ContentImage | None:
    """Flatten a resolved asset; unresolved links yield ``None``."""
    fields = _fields(asset)
    file = fields.get("file")
    if not isinstance(file, dict):
        return None
    details = file.get("details") if isinstance(file.get("details"), dict) else {}
    image = details.get("image") if isinstance(details.get("image"), dict) else {}
    content_type = file.get("contentType") if isinstance(file.get("contentType"), str) else ""

    return ContentImage(
        url=normalize_asset_url(file.get("url")),
        alt=_str(fields, "description") or _str(fields, "title") or default_alt,
        title=_str(fields, "title") or None,
        width=int(image["width"]) if is_number(image.get("width")) else 800,
        height=int(image["height"]) if is_number(image.get("height")) else 600,
        size=int(details["size"]) if is_number(details.get("size")) else None,
        format=content_type.split("/")[1] if "/" in content_type else None,
    )


def _images(fields: dict, key: str) -> list[ContentImage]:
    value = fields.get(key)
    if not isinstance(value, list):
        return []
    return [image for image in (transform_image(item) for item in value) if image is not None]


def transform_seo(value: Any) -> SeoMetadata | None:
    if not isinstance(value, dict):
        return None
    keywords = value.get("keywords")
    return SeoMetadata(
        meta_title=value.get("metaTitle") if isinstance(value.get("metaTitle"), str) else None,
        meta_description=value.get("metaDescription") if isinstance(value.get("metaDescription"), str) else None,
        keywords=[k for k in keywords if isinstance(k, str)] if isinstance(keywords, list) else [],
        social_image=transform_image(value.get("socialImage")),
    )


# ── Shape transforms ────────────────────────────────────────────────────


def transform_portfolio_entry(record: dict) -> PortfolioEntry:
    fields, sys = _fields(record), _sys(record)
    images = _images(fields, "images")
    featured_image = transform_image(fields.get("featuredImage"))
    order = fields.get("displayOrder")

    return PortfolioEntry(
        id=sys.get("id", ""),
        title=_str(fields, "title"),
        description=_str(fields, "description"),
        detailed_description=_html(fields.get("detailedDescription")),
        category=_str(fields, "category", "general"),
        images=images,
        featured_image=featured_image or (images[0] if images else None),
        tags=_tags(fields),
        created_date=_str(fields, "createdDate") or sys.get("createdAt", ""),
        featured=fields.get("featured") is True,
        display_order=int(order) if is_number(order) else None,
        seo=transform_seo(fields.get("seo")),
    )


def transform_blog_post(record: dict) -> BlogPost:
    fields, sys = _fields(record), _sys(record)
    content = fields.get("content")
    content_html = _html(content)

    author_fields = _fields(fields.get("author"))
    if author_fields:
        author = BlogAuthor(
            name=_str(author_fields, "name", "Ash Shaw"),
            bio=_str(author_fields, "bio"),
            avatar=transform_image(author_fields.get("avatar")),
        )
    else:
        author = BlogAuthor(bio=DEFAULT_AUTHOR_BIO)

    reading_time = fields.get("readingTime")
    published = fields.get("published")

    return BlogPost(
        id=sys.get("id", ""),
        title=_str(fields, "title"),
        slug=_str(fields, "slug"),
        excerpt=_str(fields, "excerpt"),
        content=content_html,
        featured_image=transform_image(fields.get("featuredImage")),
        category=_str(fields, "category", "general"),
        tags=_tags(fields),
        author=author,
        published_date=_str(fields, "publishedDate") or sys.get("createdAt", ""),
        updated_date=_str(fields, "updatedDate") or sys.get("updatedAt"),
        published=published if isinstance(published, bool) else False,
        reading_time=(
            int(reading_time)
            if is_number(reading_time) and reading_time > 0
            else calculate_reading_time(content if isinstance(content, dict) else content_html)
        ),
        seo=transform_seo(fields.get("seo")),
    )


def transform_about_page(record: dict) -> AboutPageContent:
    fields, sys = _fields(record), _sys(record)

    sections = [
        JourneySection(
            year=_str(section, "year"),
            title=_str(section, "title"),
            description=_html(section.get("description")),
            image=transform_image(section.get("image")),
        )
        for section in map(_fields, _linked(fields, "journeySections"))
    ]
    services = [
        ServiceItem(
            name=_str(service, "name"),
            description=_str(service, "description"),
            icon=_str(service, "icon"),
        )
        for service in map(_fields, _linked(fields, "serviceList"))
    ]

    return AboutPageContent(
        id=sys.get("id", ""),
        hero=AboutHero(
            title=_str(fields, "heroTitle") or _str(fields, "title", "About Ash Shaw"),
            subtitle=_str(fields, "heroSubtitle", "Makeup Artist"),
            description=_str(fields, "heroDescription") or _html(fields.get("intro")),
            image=transform_image(fields.get("heroImage")),
        ),
        journey=AboutJourney(title=_str(fields, "journeyTitle", "My Journey"), sections=sections),
        services=AboutServices(
            title=_str(fields, "servicesTitle", "What I Do"),
            description=_str(fields, "servicesDescription"),
            service_list=services,
        ),
        philosophy=AboutPhilosophy(
            title=_str(fields, "philosophyTitle", "My Approach"),
            content=_html(fields.get("philosophyContent")),
            quote=_str(fields, "philosophyQuote"),
            image=transform_image(fields.get("philosophyImage")),
        ),
    )


def transform_homepage(record: dict, featured_entries: list[PortfolioEntry]) -> HomepageContent:
    fields, sys = _fields(record), _sys(record)

    cards = [
        PhilosophyCard(
            title=_str(card, "title"),
            description=_str(card, "description"),
            icon=_str(card, "icon"),
        )
        for card in map(_fields, _linked(fields, "philosophyCards"))
    ]

    return HomepageContent(
        id=sys.get("id", ""),
        hero=HomepageHero(
            title=_str(fields, "heroTitle", "Hi, I'm Ash Shaw"),
            subtitle=_str(fields, "heroSubtitle", "makeup artist"),
            description=_str(fields, "heroDescription"),
            cta_text=_str(fields, "heroCta", "Explore My Portfolio"),
            background_images=_images(fields, "heroImages"),
        ),
        featured=HomepageFeatured(
            title=_str(fields, "featuredTitle", "Featured Work"),
            description=_str(fields, "featuredDescription"),
            entries=featured_entries,
        ),
        philosophy=HomepagePhilosophy(title=_str(fields, "philosophyTitle", "Why I Do Makeup"), cards=cards),
    )
