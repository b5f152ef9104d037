from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from .settings import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE


@dataclass
class Page:
    """One page of query results plus the totals needed to describe it."""

    items: list[Any]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        if self.limit <= 0:
            return 0
        return math.ceil(self.total / self.limit)


def clamp_page_params(page: int | None, limit: int | None) -> tuple[int, int]:
    """
    Normalize page/limit query parameters.

    Pages are 1-based; limit is clamped to [1, MAX_PAGE_SIZE].

    Example:
        clamp_page_params(0, 500)   # (1, 100)
        clamp_page_params(None, None)  # (1, 10)
    """
    page = page if page and page > 0 else 1
    limit = limit if limit and limit > 0 else DEFAULT_PAGE_SIZE
    return page, min(limit, MAX_PAGE_SIZE)


def paginate(query, page: int | None, limit: int | None) -> Page:
    """
    Apply offset pagination to an already-ordered SQLAlchemy query.

    Args:
        query: SQLAlchemy query object (ordering applied by the caller)
        page: 1-based page number
        limit: Page size

    Returns:
        Page with the items for the requested page and the unpaginated total
    """
    page, limit = clamp_page_params(page, limit)
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return Page(items=items, total=total, page=page, limit=limit)
