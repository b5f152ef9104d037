"""Request input normalization for posts and comments.

Every function here either returns the normalized value or raises
ValueError with a user-facing message; routers translate that into a 400.
"""

from __future__ import annotations

import json
from typing import Any

from .settings import MAX_COMMENT_LENGTH


def _clean_tags(values: list[Any]) -> list[str]:
    tags = []
    for value in values:
        if not isinstance(value, str):
            raise ValueError("Tags must be strings")
        value = value.strip()
        if value:
            tags.append(value)
    return tags


def parse_tags(bracketed: list[str] | None = None, raw: list[str] | None = None) -> list[str]:
    """
    Normalize the accepted shapes of tag input into a list of strings.

    Priority order:
    1. ``tags[]`` form values (one or many)
    2. ``tags`` sent as several form values
    3. ``tags`` as a single JSON array string, e.g. '["a", "b"]'
    4. ``tags`` as a single JSON string, e.g. '"a"'
    5. ``tags`` as a single plain string, split on commas

    Args:
        bracketed: Values of the ``tags[]`` field, if present
        raw: Values of the ``tags`` field, if present

    Returns:
        List of stripped, non-empty tags (empty list when nothing was sent)

    Raises:
        ValueError: If the JSON form decodes to an object, or to an array
            holding non-string items
    """
    if bracketed:
        return _clean_tags(list(bracketed))

    if not raw:
        return []

    if len(raw) > 1:
        return _clean_tags(list(raw))

    single = raw[0]
    if not isinstance(single, str):
        return _clean_tags([single])

    try:
        decoded = json.loads(single)
    except (json.JSONDecodeError, TypeError):
        return _clean_tags(single.split(","))

    if isinstance(decoded, list):
        return _clean_tags(decoded)
    if isinstance(decoded, str):
        return _clean_tags([decoded])
    if isinstance(decoded, dict):
        raise ValueError("Invalid tags format")

    # Bare JSON scalars such as 2024 or true are plain text tags
    return _clean_tags(single.split(","))


def parse_category(raw: Any) -> str:
    """
    Extract the category name from a JSON object string or an already-decoded dict.

    Raises:
        ValueError: "Invalid category format" for malformed JSON,
            "Category is required" when no name is present
    """
    if raw is None or raw == "":
        raise ValueError("Category is required")

    data = raw
    if isinstance(raw, str):
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            raise ValueError("Invalid category format")

    if not isinstance(data, dict):
        raise ValueError("Invalid category format")

    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ValueError("Category is required")

    return name.strip()


def validate_comment_body(content: str | None) -> str:
    """Trim a comment body and enforce the non-empty / length rules."""
    if content is None or content.strip() == "":
        raise ValueError("Comment content is required")

    if len(content) > MAX_COMMENT_LENGTH:
        raise ValueError(
            f"Comment is too long. Maximum {MAX_COMMENT_LENGTH} characters allowed."
        )

    return content.strip()
