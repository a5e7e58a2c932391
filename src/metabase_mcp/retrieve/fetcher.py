"""Bounded concurrent batch fetching for the retrieve tool.

IDs are split into windows no larger than the concurrency cap. Windows run
one after another; inside a window every fetch runs concurrently in an
`asyncio.TaskGroup`. Each task captures its own exception, so one failing ID
never cancels its siblings.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Final, Literal, Protocol

from metabase_mcp.retrieve.models import FetchFailure, FetchOutcome, FetchSuccess, ModelType


class RetrieveClient(Protocol):
    """Upstream getters consumed by the fetch strategies.

    Each resolves to a `CachedResponse`-like object (``data`` and ``source``
    attributes), a ``{"data", "source"}`` mapping, or a bare entity.
    """

    async def get_card(self, card_id: int) -> Any: ...
    async def get_dashboard(self, dashboard_id: int) -> Any: ...
    async def get_table(self, table_id: int) -> Any: ...
    async def get_database(self, database_id: int) -> Any: ...
    async def get_collection(self, collection_id: int) -> Any: ...
    async def get_collection_items(self, collection_id: int) -> Any: ...
    async def get_field(self, field_id: int) -> Any: ...


Source = Literal["cache", "api"]
FetchStrategy = Callable[[RetrieveClient, int], Awaitable[tuple[dict[str, Any], Source]]]


def unwrap_response(response: Any) -> tuple[Any, Source]:
    """Split an upstream response into payload and source tag (default ``api``)."""
    if hasattr(response, "data") and hasattr(response, "source"):
        return response.data, "cache" if response.source == "cache" else "api"
    if isinstance(response, Mapping) and "data" in response and response.get("source") in {
        "cache",
        "api",
    }:
        return response["data"], response["source"]
    return response, "api"


async def _fetch_card(client: RetrieveClient, item_id: int) -> tuple[dict[str, Any], Source]:
    return unwrap_response(await client.get_card(item_id))


async def _fetch_dashboard(
    client: RetrieveClient, item_id: int
) -> tuple[dict[str, Any], Source]:
    return unwrap_response(await client.get_dashboard(item_id))


async def _fetch_table(client: RetrieveClient, item_id: int) -> tuple[dict[str, Any], Source]:
    return unwrap_response(await client.get_table(item_id))


async def _fetch_database(
    client: RetrieveClient, item_id: int
) -> tuple[dict[str, Any], Source]:
    return unwrap_response(await client.get_database(item_id))


async def _fetch_field(client: RetrieveClient, item_id: int) -> tuple[dict[str, Any], Source]:
    return unwrap_response(await client.get_field(item_id))


async def _fetch_collection(
    client: RetrieveClient, item_id: int
) -> tuple[dict[str, Any], Source]:
    """Fetch collection metadata then its items as one unit.

    Either call failing fails the whole ID; a collection without its items
    is not returned.
    """
    collection, source = unwrap_response(await client.get_collection(item_id))
    items, _ = unwrap_response(await client.get_collection_items(item_id))
    return {**collection, "items": items}, source


FETCH_STRATEGIES: Final[dict[ModelType, FetchStrategy]] = {
    "card": _fetch_card,
    "dashboard": _fetch_dashboard,
    "table": _fetch_table,
    "database": _fetch_database,
    "collection": _fetch_collection,
    "field": _fetch_field,
}


async def _fetch_one(
    strategy: FetchStrategy, client: RetrieveClient, item_id: int
) -> FetchOutcome:
    try:
        raw, source = await strategy(client, item_id)
    except Exception as exc:  # noqa: BLE001
        return FetchFailure(id=item_id, error=exc)
    if not isinstance(raw, Mapping):
        error = TypeError(f"Unexpected payload for id {item_id}: {type(raw).__name__}")
        return FetchFailure(id=item_id, error=error)
    return FetchSuccess(id=item_id, raw_entity=raw, source=source)


async def fetch_batch(
    model: ModelType,
    ids: list[int],
    client: RetrieveClient,
    *,
    concurrency: int,
) -> list[FetchOutcome]:
    """Fetch every ID with at most ``concurrency`` calls in flight.

    Returns one outcome per ID, in the order of ``ids``.
    """
    strategy = FETCH_STRATEGIES[model]
    window_size = max(1, concurrency)
    outcomes: list[FetchOutcome] = []
    for start in range(0, len(ids), window_size):
        window = ids[start : start + window_size]
        async with asyncio.TaskGroup() as group:
            tasks = [group.create_task(_fetch_one(strategy, client, i)) for i in window]
        outcomes.extend(task.result() for task in tasks)
    return outcomes
