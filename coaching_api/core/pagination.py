"""
Pagination utilities for the Coaching API.
Provides consistent pagination across all list endpoints.
"""
from typing import TypeVar, Generic, List, Optional
from pydantic import BaseModel

T = TypeVar("T")


class PaginatedResponse(BaseModel, Generic[T]):
    """Generic paginated response wrapper."""
    items: List[T]
    total: int
    page: int
    limit: int
    pages: int
    has_next: bool
    has_prev: bool

    class Config:
        from_attributes = True


def create_paginated_response(
    items: List[T],
    total: int,
    page: int,
    limit: int
) -> dict:
    """
    Create a paginated response dictionary.

    Args:
        items: List of items for current page
        total: Total count of all items
        page: Current page number
        limit: Items per page

    Returns:
        Dictionary with pagination metadata
    """
    pages = (total + limit - 1) // limit if limit > 0 else 0

    return {
        "items": items,
        "total": total,
        "page": page,
        "limit": limit,
        "pages": pages,
        "has_next": page < pages,
        "has_prev": page > 1
    }


def parse_sort(model, sort: Optional[str], default: str = "-created_at") -> list:
    """
    Turn a ``sort`` query string into ORDER BY clauses.

    ``sort`` is a comma separated list of column names; a leading ``-``
    means descending. Unknown columns are ignored.
    """
    clauses = []
    for raw in (sort or default).split(","):
        name = raw.strip()
        if not name:
            continue
        desc = name.startswith("-")
        name = name.lstrip("-+")
        column = getattr(model, name, None)
        if column is None or not hasattr(column, "desc"):
            continue
        clauses.append(column.desc() if desc else column.asc())
    if not clauses and sort:
        return parse_sort(model, None, default)
    return clauses
