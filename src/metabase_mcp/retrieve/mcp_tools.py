"""MCP tool registration for batch entity retrieval (retrieve).

Provides a single tool `retrieve(model, ids, table_offset?, table_limit?)` that
fetches up to 50 Metabase entities concurrently, shapes each one for the LLM
context window, and returns one JSON text block with results, failures,
cache/API tallies and pagination guidance.
"""

from __future__ import annotations

from typing import Annotated, Any
import uuid

from fastmcp import Context, FastMCP
from fastmcp.exceptions import ToolError
from fastmcp.utilities.logging import get_logger
from mcp.types import TextContent
from pydantic import Field

from metabase_mcp.exceptions import MetabaseMcpError
from metabase_mcp.retrieve.handler import retrieve as run_retrieve
from metabase_mcp.retrieve.models import MAX_IDS_PER_REQUEST, MAX_TABLE_LIMIT, ModelType
from metabase_mcp.services.client_manager import ClientManager

_logger = get_logger(__name__)


def new_request_id() -> str:
    return uuid.uuid4().hex[:12]


def register_retrieve_tool(mcp: FastMCP, manager: ClientManager | None = None) -> None:
    """Register the batch retrieval tool.

    Supports cards, dashboards, tables, databases, collections and fields with
    bounded concurrency, partial-failure tolerance, size-driven response
    shaping and table pagination for large databases.
    """

    mgr = manager or ClientManager.get_instance()

    @mcp.tool(
        annotations={
            "readOnlyHint": True,
            "destructiveHint": False,
            "idempotentHint": True,
            "openWorldHint": True,
        }
    )
    async def retrieve(  # pyright: ignore[reportUnusedFunction]
        ctx: Context,
        model: Annotated[
            ModelType,
            Field(description="Type of model to retrieve. Only one model type per request."),
        ],
        ids: Annotated[
            list[int],
            Field(
                min_length=1,
                max_length=MAX_IDS_PER_REQUEST,
                description=(
                    "IDs to retrieve (1-50 per request, max 2 for databases). All IDs must be "
                    "positive integers. For larger sets, make multiple requests."
                ),
            ),
        ],
        table_offset: Annotated[
            int | None,
            Field(
                ge=0,
                description=(
                    "Starting offset for table pagination (database model only). Use with "
                    "table_limit to page through databases that exceed token limits."
                ),
            ),
        ] = None,
        table_limit: Annotated[
            int | None,
            Field(
                ge=1,
                le=MAX_TABLE_LIMIT,
                description=(
                    "Maximum tables per page (database model only, max 100). Use with "
                    "table_offset for pagination."
                ),
            ),
        ] = None,
    ) -> TextContent:
        """Fetch details for Metabase cards, dashboards, tables, databases, collections or fields.

        Larger batches return progressively more compact entities; native SQL, template tags,
        parameters and foreign-key/semantic fields are always kept. Failed IDs are listed in
        `errors` without failing the call unless every ID failed.
        """
        request_id = new_request_id()
        arguments: dict[str, Any] = {"model": model, "ids": ids}
        if table_offset is not None:
            arguments["table_offset"] = table_offset
        if table_limit is not None:
            arguments["table_limit"] = table_limit
        _logger.info("retrieve [%s]: model=%s ids=%d", request_id, model, len(ids))

        try:
            client = await mgr.get_client()
        except ValueError as exc:
            await ctx.error(f"Metabase client not configured: {exc}")
            raise ToolError(str(exc)) from exc

        try:
            response = await run_retrieve(arguments, request_id, client)
        except MetabaseMcpError as exc:
            await ctx.error(f"retrieve failed: {exc}")
            raise ToolError(str(exc)) from exc

        return TextContent(type="text", text=response.to_json())

    _ = retrieve
