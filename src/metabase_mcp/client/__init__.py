"""Metabase API client package.

Provides the async REST client and its per-resource TTL cache. The
clear_cache tool registration lives in `metabase_mcp.client.mcp_tools`.
"""

from __future__ import annotations

from .api import CachedResponse, MetabaseApiClient, classify_http_error
from .cache import ResourceCache

__all__ = [
    "CachedResponse",
    "MetabaseApiClient",
    "ResourceCache",
    "classify_http_error",
]
