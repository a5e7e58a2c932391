"""Search tool package: native Metabase search with compact, grouped hits."""

from __future__ import annotations

from .handler import search, validate_search_request
from .mcp_tools import register_search_tool
from .models import SearchRequest, SearchResponse

__all__ = [
    "SearchRequest",
    "SearchResponse",
    "register_search_tool",
    "search",
    "validate_search_request",
]
