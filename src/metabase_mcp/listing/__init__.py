"""List tool package: paged overviews of every record of one resource type."""

from __future__ import annotations

from .handler import list_resources, validate_list_request
from .mcp_tools import register_list_tool
from .models import ListRequest, ListResponse

__all__ = [
    "ListRequest",
    "ListResponse",
    "list_resources",
    "register_list_tool",
    "validate_list_request",
]
