"""MCP tool registration for catalog search (search)."""

from __future__ import annotations

from typing import Annotated, Any

from fastmcp import Context, FastMCP
from fastmcp.exceptions import ToolError
from fastmcp.utilities.logging import get_logger
from mcp.types import TextContent
from pydantic import Field

from metabase_mcp.exceptions import MetabaseMcpError
from metabase_mcp.retrieve.mcp_tools import new_request_id
from metabase_mcp.retrieve.models import MAX_IDS_PER_REQUEST
from metabase_mcp.search.handler import search as run_search
from metabase_mcp.search.models import (
    DEFAULT_MAX_RESULTS,
    MAX_SEARCH_RESULTS,
    SearchModel,
)
from metabase_mcp.services.client_manager import ClientManager

_logger = get_logger(__name__)


def register_search_tool(mcp: FastMCP, manager: ClientManager | None = None) -> None:
    """Register the native-search tool."""

    mgr = manager or ClientManager.get_instance()

    @mcp.tool(
        annotations={
            "readOnlyHint": True,
            "destructiveHint": False,
            "idempotentHint": True,
            "openWorldHint": True,
        }
    )
    async def search(  # noqa: PLR0913 # pyright: ignore[reportUnusedFunction]
        ctx: Context,
        query: Annotated[
            str | None,
            Field(description="Search across names, descriptions and metadata."),
        ] = None,
        models: Annotated[
            list[SearchModel] | None,
            Field(
                min_length=1,
                description=(
                    "Model types to search (default: card, dashboard). 'database' must be "
                    "searched on its own."
                ),
            ),
        ] = None,
        max_results: Annotated[
            int,
            Field(ge=1, le=MAX_SEARCH_RESULTS, description="Maximum results (1-50)."),
        ] = DEFAULT_MAX_RESULTS,
        search_native_query: Annotated[
            bool,
            Field(description="Search inside SQL of cards. Only with models=['card']."),
        ] = False,
        include_dashboard_questions: Annotated[
            bool,
            Field(description="Include questions saved in dashboards. Needs 'dashboard'."),
        ] = False,
        ids: Annotated[
            list[int] | None,
            Field(
                max_length=MAX_IDS_PER_REQUEST,
                description="Specific IDs. Single model only, not table or database.",
            ),
        ] = None,
        archived: Annotated[
            bool | None, Field(description="Search archived items only.")
        ] = None,
        database_id: Annotated[
            int | None,
            Field(description="Only items from this database. Not with models=['database']."),
        ] = None,
        verified: Annotated[
            bool | None, Field(description="Verified items only (premium feature).")
        ] = None,
    ) -> TextContent:
        """Search Metabase content with the native search API.

        Use this first to find cards, dashboards, tables, collections or databases; results
        are grouped by model, with search metrics and follow-up retrieve suggestions.
        """
        request_id = new_request_id()
        arguments: dict[str, Any] = {
            "query": query,
            "models": models,
            "max_results": max_results,
            "search_native_query": search_native_query,
            "include_dashboard_questions": include_dashboard_questions,
            "ids": ids,
            "archived": archived,
            "database_id": database_id,
            "verified": verified,
        }
        _logger.info("search [%s]: query=%r models=%s", request_id, query, models or "default")

        try:
            client = await mgr.get_client()
        except ValueError as exc:
            await ctx.error(f"Metabase client not configured: {exc}")
            raise ToolError(str(exc)) from exc

        try:
            response = await run_search(arguments, request_id, client)
        except MetabaseMcpError as exc:
            await ctx.error(f"search failed: {exc}")
            raise ToolError(str(exc)) from exc

        return TextContent(type="text", text=response.to_json())

    _ = search
