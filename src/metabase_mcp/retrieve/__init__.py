"""Retrieve tool package for batch entity retrieval in MCP.

Exports typed models, the retrieval runner and the FastMCP registration helper.
"""

from __future__ import annotations

from .handler import assemble_response, retrieve
from .levels import concurrency_limit, select_optimization_level
from .mcp_tools import register_retrieve_tool
from .models import (
    AggregateResponse,
    OptimizationLevel,
    PaginationMetadata,
    RetrievalRequest,
)
from .optimizers import OPTIMIZERS, extract_native_query
from .validation import validate_retrieve_request

__all__ = [
    "OPTIMIZERS",
    "AggregateResponse",
    "OptimizationLevel",
    "PaginationMetadata",
    "RetrievalRequest",
    "assemble_response",
    "concurrency_limit",
    "extract_native_query",
    "register_retrieve_tool",
    "retrieve",
    "select_optimization_level",
    "validate_retrieve_request",
]
