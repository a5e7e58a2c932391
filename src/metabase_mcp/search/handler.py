"""Search flow for the search MCP tool.

Validates the raw arguments against the search API's model restrictions,
runs one native search, trims every hit to the fields an agent needs to pick
items, groups hits by model and suggests follow-up retrieve calls.
"""

from __future__ import annotations

from collections.abc import Mapping
import logging
from typing import Any, Protocol, cast

from fastmcp.utilities.logging import get_logger

from metabase_mcp.retrieve.models import MAX_IDS_PER_REQUEST
from metabase_mcp.retrieve.validation import invalid_parameter, is_int
from metabase_mcp.search.models import (
    DEFAULT_MAX_RESULTS,
    DEFAULT_SEARCH_MODELS,
    MAX_SEARCH_RESULTS,
    RETRIEVABLE_MODELS,
    SEARCH_MODELS,
    SearchMetrics,
    SearchRequest,
    SearchResponse,
)

_logger = get_logger(__name__)

_ID_EXCLUDED_MODELS = {"table", "database"}


class SearchClient(Protocol):
    async def search(  # noqa: PLR0913
        self,
        query: str | None,
        models: list[str],
        *,
        archived: bool | None = None,
        database_id: int | None = None,
        ids: list[int] | None = None,
        search_native_query: bool = False,
        include_dashboard_questions: bool = False,
        verified: bool | None = None,
    ) -> Mapping[str, Any]: ...


def _optional_bool(
    args: Mapping[str, Any], name: str, logger: logging.Logger, request_id: str
) -> bool | None:
    value = args.get(name)
    if value is not None and not isinstance(value, bool):
        raise invalid_parameter(
            logger, request_id, name, f"Invalid parameter: {name}. {name} must be a boolean"
        )
    return value


def _validate_models(
    raw: object, logger: logging.Logger, request_id: str
) -> list[str] | None:
    if raw is None:
        return None
    if not isinstance(raw, list | tuple) or not raw:
        raise invalid_parameter(
            logger,
            request_id,
            "models",
            "Invalid parameter: models. Must be a non-empty array of model types",
        )
    models: list[str] = []
    for model in raw:
        if model not in SEARCH_MODELS:
            raise invalid_parameter(
                logger,
                request_id,
                "models",
                f"Invalid parameter: models. Unsupported model {model!r}. "
                f"Must be one of: {', '.join(SEARCH_MODELS)}",
            )
        if model not in models:
            models.append(model)
    if "database" in models and len(models) > 1:
        raise invalid_parameter(
            logger,
            request_id,
            "models",
            "Invalid parameter: models. The database model cannot be mixed with other models",
        )
    return models


def validate_search_request(  # noqa: C901
    arguments: Mapping[str, Any] | None,
    *,
    request_id: str,
    logger: logging.Logger,
) -> SearchRequest:
    """Validate raw search arguments.

    Raises:
        InvalidParameterError: On the first rule that fails
    """
    args = arguments or {}

    query = args.get("query")
    if query is not None and not isinstance(query, str):
        raise invalid_parameter(
            logger, request_id, "query", "Invalid parameter: query. query must be a string"
        )

    models = _validate_models(args.get("models"), logger, request_id) or list(
        DEFAULT_SEARCH_MODELS
    )

    max_results = args.get("max_results", DEFAULT_MAX_RESULTS)
    if not is_int(max_results) or not 1 <= max_results <= MAX_SEARCH_RESULTS:
        raise invalid_parameter(
            logger,
            request_id,
            "max_results",
            f"Invalid parameter: max_results. max_results must be between 1 and "
            f"{MAX_SEARCH_RESULTS}",
            value=max_results,
        )

    native = _optional_bool(args, "search_native_query", logger, request_id) or False
    if native and models != ["card"]:
        raise invalid_parameter(
            logger,
            request_id,
            "search_native_query",
            "Invalid parameter: search_native_query. Only supported when models is ['card']",
        )

    dashboard_questions = (
        _optional_bool(args, "include_dashboard_questions", logger, request_id) or False
    )
    if dashboard_questions and "dashboard" not in models:
        raise invalid_parameter(
            logger,
            request_id,
            "include_dashboard_questions",
            "Invalid parameter: include_dashboard_questions. Requires 'dashboard' in models",
        )

    ids = args.get("ids")
    if ids is not None:
        if (
            not isinstance(ids, list | tuple)
            or not ids
            or len(ids) > MAX_IDS_PER_REQUEST
            or not all(is_int(i) and i > 0 for i in ids)
        ):
            raise invalid_parameter(
                logger,
                request_id,
                "ids",
                f"Invalid parameter: ids. Must be 1-{MAX_IDS_PER_REQUEST} positive integer IDs",
            )
        if len(models) != 1 or models[0] in _ID_EXCLUDED_MODELS:
            raise invalid_parameter(
                logger,
                request_id,
                "ids",
                "Invalid parameter: ids. ids require exactly one model type other than "
                "table or database",
            )

    database_id = args.get("database_id")
    if database_id is not None:
        if not is_int(database_id) or database_id <= 0:
            raise invalid_parameter(
                logger,
                request_id,
                "database_id",
                "Invalid parameter: database_id. database_id must be a positive integer",
                value=database_id,
            )
        if models == ["database"]:
            raise invalid_parameter(
                logger,
                request_id,
                "database_id",
                "Invalid parameter: database_id. database_id cannot be used when searching "
                "databases",
            )

    return SearchRequest(
        query=query or None,
        models=cast("Any", models),
        max_results=max_results,
        search_native_query=native,
        include_dashboard_questions=dashboard_questions,
        ids=[int(i) for i in ids] if ids is not None else None,
        archived=_optional_bool(args, "archived", logger, request_id),
        database_id=database_id,
        verified=_optional_bool(args, "verified", logger, request_id),
    )


def compact_hit(hit: Mapping[str, Any]) -> dict[str, Any]:
    """Trim one search hit to identifiers, description and location."""
    compact = {
        key: hit[key]
        for key in ("id", "name", "model", "description", "database_id", "table_schema")
        if hit.get(key) is not None
    }
    if hit.get("model") == "table" and hit.get("table_id") is not None:
        compact["table_id"] = hit["table_id"]
    collection = hit.get("collection")
    if isinstance(collection, Mapping) and collection.get("id") is not None:
        compact["collection"] = {"id": collection["id"], "name": collection.get("name")}
    dashboard = hit.get("dashboard")
    if isinstance(dashboard, Mapping) and dashboard.get("id") is not None:
        compact["dashboard"] = {"id": dashboard["id"], "name": dashboard.get("name")}
    if hit.get("archived"):
        compact["archived"] = True
    return compact


def _recommendations(
    grouped: dict[str, list[dict[str, Any]]], total: int, returned: int
) -> list[str]:
    if returned == 0:
        return ["No matches. Try a broader query or different models."]

    tips: list[str] = []
    if total > returned:
        tips.append(
            f"Showing {returned} of {total} matches. Refine the query, narrow the models "
            "or raise max_results to see more."
        )
    retrievable: dict[str, list[int]] = {}
    for model, hits in grouped.items():
        target = RETRIEVABLE_MODELS.get(model)
        if target is None:
            continue
        retrievable.setdefault(target, []).extend(h["id"] for h in hits if "id" in h)
    for target, ids in retrievable.items():
        unique = list(dict.fromkeys(ids))[:MAX_IDS_PER_REQUEST]
        tips.append(f"Use retrieve with model='{target}' and ids={unique} for full details.")
    return tips


async def search(
    arguments: Mapping[str, Any] | None,
    request_id: str,
    client: SearchClient,
    logger: logging.Logger | None = None,
) -> SearchResponse:
    """Search Metabase and return hits grouped by model.

    Raises:
        InvalidParameterError: If the arguments fail validation
        MetabaseApiError: If the search API call fails
    """
    log = logger or _logger
    request = validate_search_request(arguments, request_id=request_id, logger=log)
    log.debug(
        "Searching Metabase: query=%r models=%s",
        request.query,
        ",".join(request.models),
        extra={"requestId": request_id},
    )

    payload = await client.search(
        request.query,
        list(request.models),
        archived=request.archived,
        database_id=request.database_id,
        ids=request.ids,
        search_native_query=request.search_native_query,
        include_dashboard_questions=request.include_dashboard_questions,
        verified=request.verified,
    )
    hits = [h for h in payload.get("data") or [] if isinstance(h, Mapping)]
    total = payload.get("total")
    if not isinstance(total, int):
        total = len(hits)

    grouped: dict[str, list[dict[str, Any]]] = {}
    for hit in hits[: request.max_results]:
        compact = compact_hit(hit)
        grouped.setdefault(str(hit.get("model", "unknown")), []).append(compact)
    returned = sum(len(v) for v in grouped.values())

    log.info(
        "Search returned %d of %d matches",
        returned,
        total,
        extra={"requestId": request_id},
    )
    return SearchResponse(
        search_metrics=SearchMetrics(
            query=request.query,
            models=list(request.models),
            total_results=total,
            returned_results=returned,
            truncated=total > returned,
        ),
        recommendations=_recommendations(grouped, total, returned),
        results=grouped,
    )
