"""
Validation utilities for API endpoints.

Query-string and form values arrive as strings; these helpers turn them
into the types the services expect, raising ValidationError on garbage.
"""

from typing import Any

from core.errors import ValidationError


def parse_page(value: Any) -> int:
    """
    Page number from a query string. Missing or unparseable values mean
    page 1, anything below 1 is clamped to 1.
    """
    if value in (None, ''):
        return 1
    try:
        return max(1, int(value))
    except (ValueError, TypeError):
        return 1


def validate_category(value: Any, default: str) -> str:
    """Tag category from a form: trimmed, lowercased, default when blank."""
    if value is None:
        return default
    if not isinstance(value, str):
        raise ValidationError("category must be a string")
    value = value.strip().lower()
    if any(ch.isspace() for ch in value):
        raise ValidationError("category cannot contain spaces")
    return value or default
