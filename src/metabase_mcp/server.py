"""FastMCP server implementation for metabase-mcp."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import dotenv
from fastmcp import FastMCP
from fastmcp.utilities.logging import get_logger
from starlette.requests import Request
from starlette.responses import JSONResponse

from metabase_mcp.client.mcp_tools import register_cache_tools
from metabase_mcp.listing.mcp_tools import register_list_tool
from metabase_mcp.retrieve.mcp_tools import register_retrieve_tool
from metabase_mcp.search.mcp_tools import register_search_tool
from metabase_mcp.services.client_manager import ClientManager

# Load environment variables
dotenv.load_dotenv()

# Configure a module-level logger for local server logs.
_logger = get_logger(__name__)


# -- Context Manager for Metabase client lifecycle ---------------------------
@asynccontextmanager
async def lifespan(_mcp_instance: FastMCP) -> AsyncGenerator[None]:
    """FastMCP lifespan context manager closing the shared Metabase client."""
    manager = ClientManager.get_instance()
    try:
        _logger.info("Starting Metabase MCP server")
        yield
    finally:
        _logger.info("Shutting down Metabase client during lifespan shutdown")
        await manager.shutdown()


# Create the main MCP server instance with lifespan
mcp = FastMCP(
    name="metabase-mcp",
    instructions=(
        "This provides a Model Context Protocol server over a Metabase instance. "
        "Use search to find content, list for an overview of one resource type, and "
        "retrieve to fetch cards, dashboards, tables, databases, collections and fields "
        "by ID; responses are compacted automatically for large batches."
    ),
    lifespan=lifespan,
)

# -- Tool Registration -------------------------------------------------------
register_search_tool(mcp)
register_retrieve_tool(mcp)
register_list_tool(mcp)
register_cache_tools(mcp)


# -- Health Check ----------------------------------------------------------
@mcp.custom_route("/health", methods=["GET"])
async def health_check(_request: Request) -> JSONResponse:
    return JSONResponse({"status": "healthy", "service": "metabase-mcp"})


# -- Main Entrypoint -------------------------------------------------------

# Use fastmcp command to start the server
# fastmcp run
