"""Shared utilities used across the appointment bot."""

import re

PREVIEW_LENGTH = 120


def only_digits(value: str) -> str:
    """Strip everything except digits.

    Examples:
        >>> only_digits("5215512345678@c.us")
        '5215512345678'
        >>> only_digits("+52 (55) 1234-5678")
        '525512345678'
    """
    return re.sub(r"\D", "", value or "")


def normalize_text(value: str) -> str:
    """Lowercase, trim and collapse internal whitespace.

    Examples:
        >>> normalize_text("  Próximo   Jueves ")
        'próximo jueves'
    """
    return re.sub(r"\s+", " ", (value or "").strip().lower())


def preview(value: str, limit: int = PREVIEW_LENGTH) -> str:
    """Shorten message bodies for log lines."""
    value = value or ""
    return value if len(value) <= limit else value[:limit] + "..."
