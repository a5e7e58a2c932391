"""metabase-mcp package exposing a Metabase catalog over MCP.

Provides Model Context Protocol (FastMCP) tools for batch retrieval of
Metabase cards, dashboards, tables, databases, collections and fields, with
responses shaped to fit an LLM context window.
"""

from metabase_mcp.exceptions import (
    ErrorDetails,
    InvalidParameterError,
    MetabaseApiError,
    MetabaseMcpError,
    ResourceNotFoundError,
    TotalFailureError,
    ValidationError,
)
from metabase_mcp.retrieve import AggregateResponse, OptimizationLevel, retrieve

__all__ = [  # noqa: RUF022
    # Retrieval
    "AggregateResponse",
    "OptimizationLevel",
    "retrieve",
    # Errors
    "ErrorDetails",
    "InvalidParameterError",
    "MetabaseApiError",
    "MetabaseMcpError",
    "ResourceNotFoundError",
    "TotalFailureError",
    "ValidationError",
]
