"""Shared list parameters: search, limit/offset paging and sort/order."""

from typing import Dict, Optional

from fastapi import Query

from config import settings
from utils.error_handling import InvalidInput


def _non_negative_int(raw: Optional[str], name: str, default: int) -> int:
    if raw is None or raw == "":
        return default
    value = raw.strip()
    if not value.isdigit():
        raise InvalidInput(f"{name.capitalize()} must be a non-negative integer", f"INVALID_{name.upper()}")
    return int(value)


class ListParams:
    """Query-string paging common to every list endpoint; ``limit`` is capped at MAX_PAGE_LIMIT."""

    def __init__(
        self,
        search: Optional[str] = Query(None, description="Substring match on text columns"),
        limit: Optional[str] = Query(None, description="Page size (max 100)"),
        offset: Optional[str] = Query(None, description="Rows to skip"),
        sort: Optional[str] = Query(None, description="Sort column"),
        order: Optional[str] = Query(None, description="asc or desc (default desc)"),
    ):
        self.search = search.strip() if search and search.strip() else None
        self.limit = min(_non_negative_int(limit, "limit", settings.DEFAULT_PAGE_LIMIT), settings.MAX_PAGE_LIMIT)
        self.offset = _non_negative_int(offset, "offset", 0)
        self.sort = sort
        self.ascending = (order or "").lower() == "asc"

    @property
    def pattern(self) -> Optional[str]:
        return f"%{self.search}%" if self.search else None

    def apply(self, query, sort_columns: Dict[str, object], default_sort: str):
        """Order by the requested column (unknown names fall back to ``default_sort``) and page."""
        column = sort_columns.get(self.sort) or sort_columns[default_sort]
        query = query.order_by(column.asc() if self.ascending else column.desc())
        return query.offset(self.offset).limit(self.limit)
