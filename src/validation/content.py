"""Shape validators for upstream content records.

Each validator takes a raw record (``{"sys": {...}, "fields": {...}}`` with
linked assets and entries already embedded) and returns a
``ValidationResult``.  Errors mean the record must not be used as-is;
warnings are advisory quality notes and never block usage.  Validation is
unconditional; only the logging of warnings is gated by the
``VERBOSE_LOGGING`` setting or an explicit ``log_warnings`` option.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from src.core.config import Settings
from src.core.errors import ContentValidationError
from src.telemetry.models import ContentType
from src.validation.fields import FieldChecker, is_number, type_name

logger = logging.getLogger(__name__)

# Gallery categories known to the site.  Anything else is tolerated with a
# warning so new taxonomies can be introduced upstream first.
VALID_CATEGORIES: tuple[str, ...] = (
    "Festival Makeup",
    "UV Makeup",
    "Swiss Festivals",
    "Fusion Nails",
    "Thailand Adventures",
    "Editorial",
    "Special Events",
)

MIN_IMAGE_WIDTH, MIN_IMAGE_HEIGHT = 800, 600
MAX_IMAGE_DIMENSION = 4000
MAX_IMAGE_SIZE_MB = 5
MIN_FEATURED_WIDTH, MIN_FEATURED_HEIGHT = 1200, 800
MAX_GALLERY_IMAGES = 20
MAX_TAGS = 10
MAX_TAG_LENGTH = 50
MAX_DISPLAY_ORDER = 1000
MIN_PLAUSIBLE_YEAR = 2000
SEO_TITLE_MAX = 60
SEO_DESCRIPTION_RANGE = (120, 160)
SEO_MAX_KEYWORDS = 10


@dataclass
class ValidationResult:
    """Outcome of validating one record.

    ``data`` is only populated when ``is_valid`` is true.
    """

    is_valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    data: Any = None

    def __post_init__(self) -> None:
        if not self.is_valid:
            self.data = None


@dataclass
class ValidationOptions:
    """Per-call validation switches.

    Attributes:
        throw_on_error: Raise ``ContentValidationError`` instead of returning
                        an invalid result.
        log_warnings:   Log warnings; ``None`` follows ``VERBOSE_LOGGING``.
        content_type:   Label used in log lines.
        now:            Reference time for date plausibility checks.
    """

    throw_on_error: bool = False
    log_warnings: bool | None = None
    content_type: str | None = None
    now: datetime | None = None


@dataclass
class BatchValidationResult:
    valid: list[dict] = field(default_factory=list)
    invalid: list[dict] = field(default_factory=list)
    with_warnings: list[dict] = field(default_factory=list)
    results: list[ValidationResult] = field(default_factory=list)


Validator = Callable[..., ValidationResult]


def _verbose_default() -> bool:
    return Settings().VERBOSE_LOGGING


# ── Record helpers ──────────────────────────────────────────────────────


def _fields_of(entry: Any) -> dict:
    if isinstance(entry, dict) and isinstance(entry.get("fields"), dict):
        return entry["fields"]
    return {}


def _entry_id(entry: Any) -> str:
    if isinstance(entry, dict):
        sys = entry.get("sys") or {}
        if isinstance(sys, dict) and sys.get("id"):
            return str(sys["id"])
    return "<unknown>"


def content_type_of(entry: Any) -> str | None:
    """Return the upstream content type id of *entry*, if present."""
    try:
        return entry["sys"]["contentType"]["sys"]["id"]
    except (KeyError, TypeError):
        return None


def is_content_type(entry: Any, content_type: ContentType) -> bool:
    return content_type_of(entry) == content_type.value


# ── Semantic checks ─────────────────────────────────────────────────────


def _image_dimensions(asset: dict) -> tuple[Any, Any, Any]:
    file = asset["fields"].get("file") or {}
    details = file.get("details") or {}
    image = details.get("image") or {}
    return image.get("width"), image.get("height"), details.get("size")


def check_image_asset(checker: FieldChecker, asset: dict, label: str) -> None:
    """Content type, resolution, file size and alt-text checks for one image."""
    fields = asset["fields"]
    file = fields.get("file")
    if isinstance(file, dict):
        content_type = file.get("contentType") or ""
        if not str(content_type).startswith("image/"):
            checker.error(f"{label} is not an image file (contentType: {content_type})")

        width, height, size = _image_dimensions(asset)
        if is_number(width) and is_number(height):
            if width < MIN_IMAGE_WIDTH or height < MIN_IMAGE_HEIGHT:
                checker.warn(
                    f"{label} has low resolution ({width}x{height}) - recommend at least "
                    f"{MIN_IMAGE_WIDTH}x{MIN_IMAGE_HEIGHT} for quality display"
                )
            if width > MAX_IMAGE_DIMENSION or height > MAX_IMAGE_DIMENSION:
                checker.warn(
                    f"{label} has very high resolution ({width}x{height}) - consider optimizing to improve load times"
                )
        if is_number(size):
            size_mb = size / (1024 * 1024)
            if size_mb > MAX_IMAGE_SIZE_MB:
                checker.warn(
                    f"{label} is large ({size_mb:.2f}MB) - recommend optimizing to under 2MB for better performance"
                )

    if not fields.get("title") and not fields.get("description"):
        checker.warn(f"{label} missing alt text - add title or description for accessibility")


def check_gallery_images(checker: FieldChecker, images: list, field_name: str = "images") -> None:
    count = len(images)
    if count == 0:
        checker.warn("Portfolio entry has no images - this will significantly affect display quality")
        return
    if count == 1:
        checker.warn("Portfolio entry only has 1 image - consider adding more for better showcase")
    if count > MAX_GALLERY_IMAGES:
        checker.warn(f"Portfolio entry has {count} images - large galleries may impact performance")

    for index, image in enumerate(images):
        label = f"{field_name}[{index}]"
        asset = checker.asset_reference(image, label, required=True)
        if asset is not None:
            check_image_asset(checker, asset, label)


def check_featured_image(checker: FieldChecker, asset: dict, label: str = "Featured image") -> None:
    file = asset["fields"].get("file")
    if not isinstance(file, dict):
        return
    content_type = file.get("contentType")
    if content_type and not str(content_type).startswith("image/"):
        checker.error(f"{label} must be an image file, got {content_type}")

    width, height, _ = _image_dimensions(asset)
    if is_number(width) and is_number(height) and height:
        if width / height < 1:
            checker.warn(
                f"{label} is portrait orientation ({width}x{height}) - landscape works better for card displays"
            )
        if width < MIN_FEATURED_WIDTH or height < MIN_FEATURED_HEIGHT:
            checker.warn(
                f"{label} resolution ({width}x{height}) is below recommended "
                f"{MIN_FEATURED_WIDTH}x{MIN_FEATURED_HEIGHT} for optimal display quality"
            )


def check_tags(checker: FieldChecker, tags: list) -> None:
    count = len(tags)
    if count == 0:
        checker.warn("No tags specified - tags help with content discovery and filtering")
    if count > MAX_TAGS:
        checker.warn(f"Entry has {count} tags - consider limiting to 5-10 most relevant tags")

    for index, tag in enumerate(tags):
        if not isinstance(tag, str):
            checker.error(f"tags[{index}] must be a string, got {type_name(tag)}")
        elif not tag.strip():
            checker.warn(f"tags[{index}] is empty or whitespace only")
        elif len(tag) > MAX_TAG_LENGTH:
            checker.warn(f"tags[{index}] is very long ({len(tag)} chars) - consider shortening")


def check_display_order(checker: FieldChecker, order: float) -> None:
    if order < 0:
        checker.warn(f"Display order is negative ({order}) - this may cause unexpected sorting")
    if order > MAX_DISPLAY_ORDER:
        checker.warn(f"Display order is very high ({order}) - consider using smaller values for easier management")


def parse_date(value: str) -> datetime | None:
    """Parse an ISO-8601 date or datetime; naive values are taken as UTC."""
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def check_date(checker: FieldChecker, value: Any, field_name: str, now: datetime | None = None) -> None:
    text = checker.optional_string(value, field_name, "")
    if not text:
        return
    parsed = parse_date(text)
    if parsed is None:
        checker.error(f'{field_name} "{text}" is not a valid date')
        return
    now = now or datetime.now(UTC)
    if parsed > now:
        checker.warn(f"{field_name} is in the future ({parsed.isoformat()}) - verify this is intentional")
    if parsed.year < MIN_PLAUSIBLE_YEAR:
        checker.warn(
            f"{field_name} is before year {MIN_PLAUSIBLE_YEAR} ({parsed.isoformat()}) - verify this is correct"
        )


def check_seo(checker: FieldChecker, seo: Any) -> None:
    if not isinstance(seo, dict):
        return

    title = seo.get("metaTitle")
    if title:
        if not isinstance(title, str):
            checker.error("seo.metaTitle must be a string")
        elif len(title) > SEO_TITLE_MAX:
            checker.warn(f"seo.metaTitle is {len(title)} chars - recommend under {SEO_TITLE_MAX} for optimal SEO")

    description = seo.get("metaDescription")
    if description:
        low, high = SEO_DESCRIPTION_RANGE
        if not isinstance(description, str):
            checker.error("seo.metaDescription must be a string")
        elif len(description) > high:
            checker.warn(f"seo.metaDescription is {len(description)} chars - recommend 150-{high} for optimal SEO")
        elif len(description) < low:
            checker.warn(f"seo.metaDescription is short ({len(description)} chars) - recommend 150-{high} for better SEO")

    keywords = seo.get("keywords")
    if isinstance(keywords, list):
        if not keywords:
            checker.warn("seo.keywords array is empty - add relevant keywords for SEO")
        elif len(keywords) > SEO_MAX_KEYWORDS:
            checker.warn(f"seo.keywords has {len(keywords)} keywords - recommend 5-10 most relevant")


# ── Result assembly ─────────────────────────────────────────────────────


def _finish(
    entry: Any,
    checker: FieldChecker,
    options: ValidationOptions,
    default_label: str,
) -> ValidationResult:
    label = options.content_type or default_label
    is_valid = not checker.errors
    log_warnings = options.log_warnings
    if log_warnings is None and checker.warnings:
        log_warnings = _verbose_default()

    if log_warnings and checker.warnings:
        title = _fields_of(entry).get("title") or _entry_id(entry)
        logger.warning("%s validation warnings for %r: %s", label, title, checker.warnings)

    if options.throw_on_error and not is_valid:
        raise ContentValidationError(label, checker.errors)

    return ValidationResult(
        is_valid=is_valid,
        errors=checker.errors,
        warnings=checker.warnings,
        data=entry if is_valid else None,
    )


# ── Shape validators ────────────────────────────────────────────────────


def validate_portfolio_entry(entry: Any, options: ValidationOptions | None = None) -> ValidationResult:
    """Validate a gallery item (``portfolioEntry``)."""
    options = options or ValidationOptions()
    fields = _fields_of(entry)
    checker = FieldChecker()

    checker.required_string(fields.get("title"), "title")
    checker.required_string(fields.get("description"), "description")
    category = checker.required_string(fields.get("category"), "category")
    if category and category not in VALID_CATEGORIES:
        checker.warn(
            f'Category "{category}" is not in the standard list. Valid categories: {", ".join(VALID_CATEGORIES)}'
        )

    images = checker.optional_array(fields.get("images"), "images")
    check_gallery_images(checker, images)

    featured_image = checker.asset_reference(fields.get("featuredImage"), "featuredImage")
    if featured_image is None and images:
        checker.warn(
            "No featured image specified - will use first image from gallery. "
            "Consider setting an explicit featured image for better control."
        )
    elif featured_image is not None:
        check_featured_image(checker, featured_image)

    checker.rich_text_block(fields.get("detailedDescription"), "detailedDescription")
    check_tags(checker, checker.optional_array(fields.get("tags"), "tags"))
    checker.optional_boolean(fields.get("featured"), "featured")
    check_display_order(checker, checker.optional_number(fields.get("displayOrder"), "displayOrder", 0))
    if fields.get("createdDate"):
        check_date(checker, fields["createdDate"], "createdDate", options.now)
    check_seo(checker, fields.get("seo"))

    return _finish(entry, checker, options, ContentType.PORTFOLIO_ENTRY.value)


def validate_blog_post(entry: Any, options: ValidationOptions | None = None) -> ValidationResult:
    """Validate an article (``blogPost``)."""
    options = options or ValidationOptions()
    fields = _fields_of(entry)
    checker = FieldChecker()

    checker.required_string(fields.get("title"), "title")
    checker.required_string(fields.get("slug"), "slug")
    checker.required_string(fields.get("excerpt"), "excerpt")
    checker.rich_text_block(fields.get("content"), "content", required=True)

    checker.optional_string(fields.get("category"), "category", "general")
    tags = checker.optional_array(fields.get("tags"), "tags")
    if tags:
        check_tags(checker, tags)
    checker.optional_boolean(fields.get("published"), "published")
    checker.optional_number(fields.get("readingTime"), "readingTime", 5)

    featured_image = checker.asset_reference(fields.get("featuredImage"), "featuredImage")
    if featured_image is not None:
        check_featured_image(checker, featured_image)

    author = fields.get("author")
    if isinstance(author, dict) and isinstance(author.get("fields"), dict):
        # Author problems never block the post
        author_checker = FieldChecker()
        author_checker.required_string(author["fields"].get("name"), "author.name")
        checker.warnings.extend(author_checker.errors + author_checker.warnings)

    if fields.get("publishedDate"):
        check_date(checker, fields["publishedDate"], "publishedDate", options.now)
    check_seo(checker, fields.get("seo"))

    return _finish(entry, checker, options, ContentType.BLOG_POST.value)


def validate_about_page(entry: Any, options: ValidationOptions | None = None) -> ValidationResult:
    """Validate the about page sections (``aboutPage``)."""
    options = options or ValidationOptions()
    fields = _fields_of(entry)
    checker = FieldChecker()

    checker.required_string(fields.get("title"), "title")
    checker.rich_text_block(fields.get("intro"), "intro", required=True)

    for name in ("heroTitle", "heroSubtitle", "heroDescription", "journeyTitle", "servicesTitle", "philosophyTitle"):
        checker.optional_string(fields.get(name), name)
    hero_image = checker.asset_reference(fields.get("heroImage"), "heroImage")
    if hero_image is not None:
        check_image_asset(checker, hero_image, "heroImage")

    for index, section in enumerate(checker.optional_array(fields.get("journeySections"), "journeySections")):
        if not isinstance(section, dict) or not isinstance(section.get("fields"), dict):
            checker.warn(f"journeySections[{index}] is not a resolved entry")
    for index, service in enumerate(checker.optional_array(fields.get("serviceList"), "serviceList")):
        if not isinstance(service, dict) or not isinstance(service.get("fields"), dict):
            checker.warn(f"serviceList[{index}] is not a resolved entry")

    return _finish(entry, checker, options, ContentType.ABOUT_PAGE.value)


def validate_homepage(entry: Any, options: ValidationOptions | None = None) -> ValidationResult:
    """Validate the landing content (``homepage``)."""
    options = options or ValidationOptions()
    fields = _fields_of(entry)
    checker = FieldChecker()

    checker.required_string(fields.get("heroTitle"), "heroTitle")
    checker.optional_string(fields.get("heroSubtitle"), "heroSubtitle")
    checker.optional_string(fields.get("heroCta"), "heroCta", "Explore My Portfolio")

    hero_images = checker.optional_array(fields.get("heroImages"), "heroImages")
    if not hero_images:
        checker.warn("Homepage has no hero background images")
    for index, image in enumerate(hero_images):
        label = f"heroImages[{index}]"
        asset = checker.asset_reference(image, label)
        if asset is not None:
            check_image_asset(checker, asset, label)

    for index, card in enumerate(checker.optional_array(fields.get("philosophyCards"), "philosophyCards")):
        if not isinstance(card, dict) or not isinstance(card.get("fields"), dict):
            checker.warn(f"philosophyCards[{index}] is not a resolved entry")

    return _finish(entry, checker, options, ContentType.HOMEPAGE.value)


VALIDATORS: dict[ContentType, Validator] = {
    ContentType.PORTFOLIO_ENTRY: validate_portfolio_entry,
    ContentType.BLOG_POST: validate_blog_post,
    ContentType.ABOUT_PAGE: validate_about_page,
    ContentType.HOMEPAGE: validate_homepage,
}


def batch_validate(
    entries: list[Any],
    validator: Validator,
    options: ValidationOptions | None = None,
) -> BatchValidationResult:
    """Partition *entries* into valid / invalid without stopping on a bad one.

    A validator that raises marks only that entry invalid.  Warnings are
    not logged unless *options* asks for it.
    """
    options = options or ValidationOptions(log_warnings=False)
    batch = BatchValidationResult()
    for entry in entries:
        try:
            result = validator(entry, options)
        except Exception as exc:
            result = ValidationResult(is_valid=False, errors=[f"Validator raised: {exc}"])
        batch.results.append(result)

        if result.is_valid:
            batch.valid.append(entry)
            if result.warnings:
                batch.with_warnings.append(entry)
        else:
            batch.invalid.append(entry)
    return batch
