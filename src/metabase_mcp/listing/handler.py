"""List flow for the list MCP tool.

Fetches the complete listing of one resource type (cached per type), keeps
only the identifier fields each row needs for browsing, and pages the rows
with offset/limit.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
import logging
from typing import Any, Final, Protocol, cast

from fastmcp.utilities.logging import get_logger

from metabase_mcp.client.api import ListModel
from metabase_mcp.listing.models import LIST_MODELS, MAX_LIST_LIMIT, ListRequest, ListResponse
from metabase_mcp.retrieve.fetcher import unwrap_response
from metabase_mcp.retrieve.validation import invalid_parameter, validate_whole_number

_logger = get_logger(__name__)


class ListClient(Protocol):
    async def list_cards(self) -> Any: ...
    async def list_dashboards(self) -> Any: ...
    async def list_tables(self) -> Any: ...
    async def list_databases(self) -> Any: ...
    async def list_collections(self) -> Any: ...


ListStrategy = Callable[[ListClient], Awaitable[Any]]

LIST_STRATEGIES: Final[dict[ListModel, ListStrategy]] = {
    "cards": lambda client: client.list_cards(),
    "dashboards": lambda client: client.list_dashboards(),
    "tables": lambda client: client.list_tables(),
    "databases": lambda client: client.list_databases(),
    "collections": lambda client: client.list_collections(),
}

ESSENTIAL_FIELDS: Final[dict[ListModel, tuple[str, ...]]] = {
    "cards": (
        "id",
        "name",
        "description",
        "type",
        "display",
        "database_id",
        "collection_id",
        "archived",
    ),
    "dashboards": ("id", "name", "description", "collection_id", "archived"),
    "tables": ("id", "name", "display_name", "schema", "db_id", "entity_type", "description"),
    "databases": ("id", "name", "engine", "description", "is_sample"),
    "collections": ("id", "name", "description", "location", "personal_owner_id", "archived"),
}

LIST_PAGINATION_GUIDANCE = (
    "More items are available. Call list again with offset set to next_offset "
    "(and the same limit) to fetch the next page."
)


def validate_list_request(
    arguments: Mapping[str, Any] | None,
    *,
    request_id: str,
    logger: logging.Logger,
) -> ListRequest:
    """Validate raw list arguments.

    Raises:
        InvalidParameterError: On the first rule that fails
    """
    args = arguments or {}
    model = args.get("model")
    if model not in LIST_MODELS:
        raise invalid_parameter(
            logger,
            request_id,
            "model",
            f"Invalid parameter: model. Must be one of: {', '.join(LIST_MODELS)}",
            value=model,
        )

    offset = 0
    if args.get("offset") is not None:
        offset = validate_whole_number(args["offset"], "offset", logger, request_id)
        if offset < 0:
            raise invalid_parameter(
                logger,
                request_id,
                "offset",
                "Invalid parameter: offset. offset must be non-negative",
                value=offset,
            )

    limit = MAX_LIST_LIMIT
    if args.get("limit") is not None:
        limit = validate_whole_number(args["limit"], "limit", logger, request_id)
        if not 1 <= limit <= MAX_LIST_LIMIT:
            raise invalid_parameter(
                logger,
                request_id,
                "limit",
                f"Invalid parameter: limit. limit must be between 1 and {MAX_LIST_LIMIT}",
                value=limit,
            )

    return ListRequest(model=cast("ListModel", model), offset=offset, limit=limit)


def essential_row(model: ListModel, row: Mapping[str, Any]) -> dict[str, Any]:
    """Keep the listing fields for ``model`` whose values are set."""
    return {key: row[key] for key in ESSENTIAL_FIELDS[model] if row.get(key) is not None}


async def list_resources(
    arguments: Mapping[str, Any] | None,
    request_id: str,
    client: ListClient,
    logger: logging.Logger | None = None,
) -> ListResponse:
    """List every record of one resource type, one page at a time.

    Raises:
        InvalidParameterError: If the arguments fail validation
        MetabaseApiError: If the listing call fails
    """
    log = logger or _logger
    request = validate_list_request(arguments, request_id=request_id, logger=log)

    rows, source = unwrap_response(await LIST_STRATEGIES[request.model](client))
    if not isinstance(rows, list):
        rows = []
    records = [r for r in rows if isinstance(r, Mapping)]

    total = len(records)
    end = request.offset + request.limit
    page = [essential_row(request.model, r) for r in records[request.offset : end]]
    has_more = end < total

    log.info(
        "Listed %d of %d %s (offset %d, source: %s)",
        len(page),
        total,
        request.model,
        request.offset,
        source,
        extra={"requestId": request_id},
    )
    return ListResponse(
        model=request.model,
        total_items=total,
        offset=request.offset,
        limit=request.limit,
        returned_items=len(page),
        has_more=has_more,
        next_offset=end if has_more else None,
        source=source,
        usage_guidance=LIST_PAGINATION_GUIDANCE if has_more else None,
        results=page,
    )
