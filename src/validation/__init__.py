"""Structural and semantic validation of upstream content records."""

from src.validation.content import (
    VALID_CATEGORIES,
    VALIDATORS,
    BatchValidationResult,
    ValidationOptions,
    ValidationResult,
    batch_validate,
    content_type_of,
    is_content_type,
    validate_about_page,
    validate_blog_post,
    validate_homepage,
    validate_portfolio_entry,
)
from src.validation.fields import FieldChecker

__all__ = [
    "VALID_CATEGORIES",
    "VALIDATORS",
    "BatchValidationResult",
    "FieldChecker",
    "ValidationOptions",
    "ValidationResult",
    "batch_validate",
    "content_type_of",
    "is_content_type",
    "validate_about_page",
    "validate_blog_post",
    "validate_homepage",
    "validate_portfolio_entry",
]
