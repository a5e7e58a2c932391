"""MCP tool registration for full resource listings (list)."""

from __future__ import annotations

from typing import Annotated, Any

from fastmcp import Context, FastMCP
from fastmcp.exceptions import ToolError
from fastmcp.utilities.logging import get_logger
from mcp.types import TextContent
from pydantic import Field

from metabase_mcp.client.api import ListModel
from metabase_mcp.exceptions import MetabaseMcpError
from metabase_mcp.listing.handler import list_resources
from metabase_mcp.listing.models import MAX_LIST_LIMIT
from metabase_mcp.retrieve.mcp_tools import new_request_id
from metabase_mcp.services.client_manager import ClientManager

_logger = get_logger(__name__)


def register_list_tool(mcp: FastMCP, manager: ClientManager | None = None) -> None:
    """Register the list tool for cards, dashboards, tables, databases and collections."""

    mgr = manager or ClientManager.get_instance()

    @mcp.tool(
        name="list",
        annotations={
            "readOnlyHint": True,
            "destructiveHint": False,
            "idempotentHint": True,
            "openWorldHint": True,
        },
    )
    async def list_tool(  # pyright: ignore[reportUnusedFunction]
        ctx: Context,
        model: Annotated[
            ListModel,
            Field(description="Resource type to list every record of. One type per request."),
        ],
        offset: Annotated[
            int | None,
            Field(ge=0, description="Starting offset for pagination."),
        ] = None,
        limit: Annotated[
            int | None,
            Field(
                ge=1,
                le=MAX_LIST_LIMIT,
                description="Maximum items per page (max 1000). Use with offset.",
            ),
        ] = None,
    ) -> TextContent:
        """List all cards, dashboards, tables, databases or collections for an overview.

        Rows carry only identifier fields; use retrieve for full details.
        """
        request_id = new_request_id()
        arguments: dict[str, Any] = {"model": model, "offset": offset, "limit": limit}
        _logger.info("list [%s]: model=%s", request_id, model)

        try:
            client = await mgr.get_client()
        except ValueError as exc:
            await ctx.error(f"Metabase client not configured: {exc}")
            raise ToolError(str(exc)) from exc

        try:
            response = await list_resources(arguments, request_id, client)
        except MetabaseMcpError as exc:
            await ctx.error(f"list failed: {exc}")
            raise ToolError(str(exc)) from exc

        return TextContent(type="text", text=response.to_json())

    _ = list_tool
