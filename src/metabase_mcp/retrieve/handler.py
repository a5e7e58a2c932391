"""Retrieval flow for the retrieve MCP tool.

This module provides a small, dependency-injected runner that:
- Validates the raw tool arguments
- Picks the concurrency cap and optimization level from the batch size
- Fetches every ID in bounded windows, isolating per-ID failures
- Shapes each entity (and pages database tables) for the LLM context
- Logs the estimated response size and assembles the aggregate reply
"""

from __future__ import annotations

from collections.abc import Mapping
from functools import partial
import logging
from typing import Any, NoReturn

from fastmcp.utilities.logging import get_logger

from metabase_mcp.exceptions import MetabaseApiError, TotalFailureError
from metabase_mcp.retrieve.fetcher import RetrieveClient, fetch_batch
from metabase_mcp.retrieve.levels import concurrency_limit, select_optimization_level
from metabase_mcp.retrieve.models import (
    AggregateResponse,
    FetchFailure,
    FetchSuccess,
    OptimizationLevel,
    OptimizedEntity,
    RetrievalError,
    RetrievalRequest,
    SourceCounts,
)
from metabase_mcp.retrieve.monitor import log_response_size
from metabase_mcp.retrieve.optimizers import OPTIMIZERS, Optimizer, optimize_database
from metabase_mcp.retrieve.validation import validate_retrieve_request

_logger = get_logger(__name__)

PAGINATION_GUIDANCE = (
    "This response contains paginated table information. Check each database's "
    "pagination block and request further pages with the table_offset and table_limit "
    "parameters (next_offset gives the next table_offset to use)."
)


def _optimizer_for(request: RetrievalRequest) -> Optimizer:
    if request.model == "database":
        return partial(
            optimize_database,
            table_offset=request.table_offset or 0,
            table_limit=request.table_limit,
        )
    return OPTIMIZERS[request.model]


def _source_summary(counts: SourceCounts) -> str:
    if counts.cache == 0:
        return "api"
    if counts.api == 0:
        return "cache"
    return f"{counts.cache} cache, {counts.api} api"


def _raise_total_failure(
    request: RetrievalRequest, failures: list[FetchFailure], logger: logging.Logger
) -> NoReturn:
    first_error = failures[0].error
    logger.error(
        "All %d %s retrievals failed; first error: %s",
        len(failures),
        request.model,
        first_error,
    )
    if isinstance(first_error, MetabaseApiError):
        # Classified errors (e.g. resource_not_found) reach the caller unwrapped
        raise first_error
    raise TotalFailureError(
        request.model, first_error, [f.id for f in failures]
    ) from first_error


def assemble_response(
    request: RetrievalRequest,
    successes: list[FetchSuccess],
    failures: list[FetchFailure],
    level: OptimizationLevel,
) -> AggregateResponse:
    """Shape successes and package them with tallies, errors and guidance."""
    optimizer = _optimizer_for(request)
    results: list[OptimizedEntity] = [optimizer(s.raw_entity, level) for s in successes]

    counts = SourceCounts(
        cache=sum(1 for s in successes if s.source == "cache"),
        api=sum(1 for s in successes if s.source == "api"),
    )
    optional: dict[str, Any] = {}
    if any("pagination" in r for r in results):
        optional["usage_guidance"] = PAGINATION_GUIDANCE
    if failures:
        optional["errors"] = [RetrievalError(id=f.id, message=str(f.error)) for f in failures]
    return AggregateResponse(
        results=results,
        successful_retrievals=len(successes),
        failed_retrievals=len(failures),
        source=counts,
        **optional,
    )


async def retrieve(
    arguments: Mapping[str, Any] | None,
    request_id: str,
    client: RetrieveClient,
    logger: logging.Logger | None = None,
) -> AggregateResponse:
    """Retrieve and optimize a batch of Metabase entities.

    Raises:
        InvalidParameterError: If the arguments fail validation
        MetabaseApiError: If every ID failed and the first error was classified
        TotalFailureError: If every ID failed with an unclassified error
    """
    log = logger or _logger
    request = validate_retrieve_request(arguments, request_id=request_id, logger=log)
    model = request.model
    batch_size = len(request.ids)

    log.debug("Retrieving %s details for IDs: %s", model, ", ".join(map(str, request.ids)))

    level = select_optimization_level(batch_size)
    log.debug("Using optimization level: %s for %d items", level.value, batch_size)

    concurrency = concurrency_limit(batch_size)
    log.debug("Fetching %d %ss with concurrency limit: %d", batch_size, model, concurrency)

    outcomes = await fetch_batch(model, request.ids, client, concurrency=concurrency)
    successes = [o for o in outcomes if isinstance(o, FetchSuccess)]
    failures = [o for o in outcomes if isinstance(o, FetchFailure)]
    for failure in failures:
        log.warning(
            "Failed to retrieve %s %d: %s",
            model,
            failure.id,
            failure.error,
            extra={"requestId": request_id},
        )

    if not successes:
        _raise_total_failure(request, failures, log)

    response = assemble_response(request, successes, failures, level)
    log.info(
        "Successfully retrieved %d %ss (source: %s)",
        response.successful_retrievals,
        model,
        _source_summary(response.source),
    )
    if failures:
        log.info("Partial retrieval: %d of %d %ss failed", len(failures), batch_size, model)

    log_response_size(
        response.to_json(),
        level=level,
        item_count=batch_size,
        request_id=request_id,
        logger=log,
    )
    return response
