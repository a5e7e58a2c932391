"""MCP tool registration for the client-side result cache (clear_cache)."""

from __future__ import annotations

import json
from typing import Annotated

from fastmcp import Context, FastMCP
from fastmcp.exceptions import ToolError
from fastmcp.utilities.logging import get_logger
from mcp.types import TextContent
from pydantic import Field

from metabase_mcp.client.cache import CacheTarget
from metabase_mcp.services.client_manager import ClientManager

_logger = get_logger(__name__)


def register_cache_tools(mcp: FastMCP, manager: ClientManager | None = None) -> None:
    """Register the clear_cache tool."""

    mgr = manager or ClientManager.get_instance()

    @mcp.tool(
        annotations={
            "readOnlyHint": False,
            "destructiveHint": False,
            "idempotentHint": True,
            "openWorldHint": False,
        }
    )
    async def clear_cache(  # pyright: ignore[reportUnusedFunction]
        ctx: Context,
        cache_type: Annotated[
            CacheTarget,
            Field(
                description=(
                    "Cache to clear: 'all' (default), one kind such as 'cards' or "
                    "'cards-list', or the bulk targets 'all-lists' and 'all-individual'."
                )
            ),
        ] = "all",
    ) -> TextContent:
        """Clear cached Metabase responses so the next call reads live data."""
        try:
            client = await mgr.get_client()
        except ValueError as exc:
            await ctx.error(f"Metabase client not configured: {exc}")
            raise ToolError(str(exc)) from exc

        removed = client.clear_cache(cache_type)
        _logger.info("clear_cache: %s (%d entries)", cache_type, removed)
        payload = {
            "cleared": cache_type,
            "entries_removed": removed,
            "message": f"Cleared {cache_type} cache ({removed} entries)",
        }
        return TextContent(type="text", text=json.dumps(payload))

    _ = clear_cache
