"""Slug derivation for post titles and category names."""

from __future__ import annotations

import re
import unicodedata

_STRIP_PATTERN = re.compile(r"[^\w\s-]")
_SEPARATOR_PATTERN = re.compile(r"[\s_-]+")


def slugify(value: str) -> str:
    """
    Normalize a human-readable name into a URL-safe slug.

    Lowercases, drops punctuation, and joins words with single hyphens.

    Example:
        slugify("Hello World!")  # "hello-world"
        slugify("Tech News")     # "tech-news"
    """
    if not value:
        return ""

    # Fold accented characters to their ASCII base where possible
    normalized = unicodedata.normalize("NFKD", value)
    normalized = normalized.encode("ascii", "ignore").decode("ascii")

    normalized = _STRIP_PATTERN.sub("", normalized.lower())
    return _SEPARATOR_PATTERN.sub("-", normalized).strip("-")
