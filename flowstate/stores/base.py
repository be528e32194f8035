"""Helpers shared by the entity stores."""

from __future__ import annotations

from typing import Any, Callable, Optional, TypeVar

from ..backends.base import Item
from ..models import PaginatedResponse, PaginationOptions

T = TypeVar("T")


def page_limit(pagination: PaginationOptions, default: int) -> int:
    return pagination.limit or default


def timestamp_cursor(cursor: Optional[str]) -> Optional[int]:
    """Decode a ``createdAt`` cursor produced by an index query."""
    return int(cursor) if cursor is not None else None


def paginate(
    items: list[Item],
    limit: int,
    project: Callable[[Item], T],
    cursor_attr: str,
) -> PaginatedResponse[T]:
    """Build a page from ``limit + 1`` fetched items.

    The extra item only signals that more results exist; it is neither
    projected nor used for the cursor.
    """
    values = items[:limit]
    cursor: Any = values[-1][cursor_attr] if values else None
    return PaginatedResponse(
        data=[project(item) for item in values],
        cursor=str(cursor) if cursor is not None else None,
        has_more=len(items) > limit,
    )
