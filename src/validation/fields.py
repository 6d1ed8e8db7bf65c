"""Field-level validators for raw upstream content records.

``FieldChecker`` accumulates errors and warnings while each method returns
the (possibly defaulted) field value.  Nothing here raises: a missing
required field is an error, a wrong type is an error for required fields
and a warning for optional ones, and a present-but-blank required string is
only a warning.
"""

from __future__ import annotations

from typing import Any


def type_name(value: Any) -> str:
    """JSON-flavoured type name used in messages."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class FieldChecker:
    """Collects validation messages for one record."""

    def __init__(self) -> None:
        self.errors: list[str] = []
        self.warnings: list[str] = []

    def error(self, message: str) -> None:
        self.errors.append(message)

    def warn(self, message: str) -> None:
        self.warnings.append(message)

    # ── Scalars ─────────────────────────────────────────────────────

    def required_string(self, value: Any, field: str) -> str | None:
        if value is None:
            self.error(f'Required field "{field}" is missing')
            return None
        if not isinstance(value, str):
            self.error(f'Field "{field}" must be a string, got {type_name(value)}')
            return None
        if not value.strip():
            self.warn(f'Field "{field}" is empty')
        return value

    def optional_string(self, value: Any, field: str, default: str = "") -> str:
        if value is None:
            return default
        if not isinstance(value, str):
            self.warn(f'Field "{field}" should be a string, got {type_name(value)}')
            return default
        return value

    def optional_boolean(self, value: Any, field: str, default: bool = False) -> bool:
        if value is None:
            return default
        if not isinstance(value, bool):
            self.warn(f'Field "{field}" should be a boolean, got {type_name(value)}')
            return default
        return value

    def optional_number(self, value: Any, field: str, default: float = 0) -> float:
        if value is None:
            return default
        if not is_number(value):
            self.warn(f'Field "{field}" should be a number, got {type_name(value)}')
            return default
        return value

    # ── Collections ─────────────────────────────────────────────────

    def required_array(self, value: Any, field: str) -> list | None:
        if value is None:
            self.error(f'Required field "{field}" is missing')
            return None
        if not isinstance(value, list):
            self.error(f'Field "{field}" must be an array, got {type_name(value)}')
            return None
        return value

    def optional_array(self, value: Any, field: str, default: list | None = None) -> list:
        fallback = list(default) if default is not None else []
        if value is None:
            return fallback
        if not isinstance(value, list):
            self.warn(f'Field "{field}" should be an array, got {type_name(value)}')
            return fallback
        return value

    # ── Linked records ──────────────────────────────────────────────

    def asset_reference(self, value: Any, field: str, required: bool = False) -> dict | None:
        """Validate a resolved asset (a record carrying a ``fields`` map).

        Unresolved links and other shapes are invalid structure: an error
        when the asset is required, a warning otherwise.
        """
        if value is None:
            if required:
                self.error(f'Required asset field "{field}" is missing')
            return None
        if not isinstance(value, dict) or not isinstance(value.get("fields"), dict):
            message = f'Asset field "{field}" has invalid structure'
            if required:
                self.error(message)
            else:
                self.warn(message)
            return None
        return value

    def rich_text_block(self, value: Any, field: str, required: bool = False) -> dict | str:
        if value is None:
            if required:
                self.error(f'Required rich text field "{field}" is missing')
            return ""
        if isinstance(value, dict) and value.get("nodeType") == "document":
            if not isinstance(value.get("content"), list):
                self.warn(f'Rich text field "{field}" is missing content array')
            return value
        # Legacy plain-string bodies still render, so this is never an error
        self.warn(f'Rich text field "{field}" has unexpected type: {type_name(value)}')
        return value if isinstance(value, str) else ""
