"""Async Metabase REST client used by the catalog tools.

Wraps `httpx.AsyncClient` with API-key authentication, a per-resource TTL
cache, and classification of failures into `MetabaseApiError` subclasses.
Single-resource getters and full listings return a `CachedResponse` whose
`source` tells whether the payload came from the cache or a live API call;
search results are never cached.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
import logging
from typing import Any, Final, Literal

from fastmcp.utilities.logging import get_logger
import httpx

from metabase_mcp.client.cache import (
    LIST_KEY,
    CacheKey,
    CacheTarget,
    ListKind,
    ResourceCache,
    ResourceKind,
    kinds_for_target,
)
from metabase_mcp.exceptions import ErrorDetails, MetabaseApiError, ResourceNotFoundError
from metabase_mcp.services.config_service import ConfigService

ResponseSource = Literal["cache", "api"]
ListModel = Literal["cards", "dashboards", "tables", "databases", "collections"]

_HTTP_NOT_FOUND = 404
_HTTP_UNAUTHORIZED = 401
_HTTP_FORBIDDEN = 403
_HTTP_TOO_MANY_REQUESTS = 429
_HTTP_SERVER_ERROR = 500

LIST_ENDPOINTS: Final[dict[ListModel, str]] = {
    "cards": "/api/card",
    "dashboards": "/api/dashboard",
    "tables": "/api/table",
    "databases": "/api/database",
    "collections": "/api/collection",
}


@dataclass(frozen=True, slots=True)
class CachedResponse:
    """A Metabase payload tagged with where it was served from."""

    data: Any
    source: ResponseSource = "api"


def _describe(resource: str, resource_id: int | None) -> str:
    return resource if resource_id is None else f"{resource} {resource_id}"


def _unwrap_data(payload: Any) -> Any:
    """Return the ``data`` list of paged envelopes; other payloads unchanged."""
    if isinstance(payload, dict) and "data" in payload:
        return payload["data"]
    return payload


def classify_http_error(
    response: httpx.Response, resource: str, resource_id: int | None = None
) -> MetabaseApiError:
    """Map a non-success HTTP response to a classified API error."""
    status = response.status_code
    target = _describe(resource, resource_id)
    if status == _HTTP_NOT_FOUND:
        return ResourceNotFoundError(resource, resource_id)
    if status in {_HTTP_UNAUTHORIZED, _HTTP_FORBIDDEN}:
        details = ErrorDetails(category="authorization", http_status=status, retryable=False)
        return MetabaseApiError(f"Not authorized to read {target} (HTTP {status})", details)
    if status == _HTTP_TOO_MANY_REQUESTS:
        details = ErrorDetails(category="rate_limited", http_status=status, retryable=True)
        return MetabaseApiError(f"Rate limited while reading {target}", details)
    if status >= _HTTP_SERVER_ERROR:
        details = ErrorDetails(category="upstream_error", http_status=status, retryable=True)
        return MetabaseApiError(
            f"Metabase server error reading {target} (HTTP {status})", details
        )
    details = ErrorDetails(category="bad_request", http_status=status, retryable=False)
    return MetabaseApiError(
        f"Metabase rejected request for {target} (HTTP {status}): {response.text[:200]}",
        details,
    )


class MetabaseApiClient:
    """Read-only Metabase API client with a per-resource result cache."""

    def __init__(  # noqa: PLR0913
        self,
        base_url: str,
        api_key: str,
        *,
        timeout_seconds: float = 30.0,
        cache_ttl_seconds: float = 600.0,
        transport: httpx.AsyncBaseTransport | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.cache = ResourceCache(cache_ttl_seconds)
        self._logger = logger or get_logger(__name__)
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"x-api-key": api_key, "Accept": "application/json"},
            timeout=httpx.Timeout(timeout_seconds),
            transport=transport,
        )

    @classmethod
    def from_config(cls) -> MetabaseApiClient:
        """Build a client from environment configuration."""
        return cls(
            ConfigService.get_metabase_url(),
            ConfigService.get_api_key(),
            timeout_seconds=ConfigService.request_timeout_seconds(),
            cache_ttl_seconds=ConfigService.cache_ttl_seconds(),
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    # ---- single-resource getters ----------------------------------------
    async def get_card(self, card_id: int) -> CachedResponse:
        return await self._get_cached("cards", "card", card_id, f"/api/card/{card_id}")

    async def get_dashboard(self, dashboard_id: int) -> CachedResponse:
        return await self._get_cached(
            "dashboards", "dashboard", dashboard_id, f"/api/dashboard/{dashboard_id}"
        )

    async def get_table(self, table_id: int) -> CachedResponse:
        # query_metadata includes the field list and the parent db block
        return await self._get_cached(
            "tables", "table", table_id, f"/api/table/{table_id}/query_metadata"
        )

    async def get_database(self, database_id: int) -> CachedResponse:
        return await self._get_cached(
            "databases",
            "database",
            database_id,
            f"/api/database/{database_id}",
            params={"include": "tables"},
        )

    async def get_collection(self, collection_id: int) -> CachedResponse:
        return await self._get_cached(
            "collections", "collection", collection_id, f"/api/collection/{collection_id}"
        )

    async def get_collection_items(self, collection_id: int) -> CachedResponse:
        resp = await self._get_cached(
            "collection-items",
            "collection",
            collection_id,
            f"/api/collection/{collection_id}/items",
        )
        return CachedResponse(data=_unwrap_data(resp.data), source=resp.source)

    async def get_field(self, field_id: int) -> CachedResponse:
        return await self._get_cached("fields", "field", field_id, f"/api/field/{field_id}")

    # ---- listings ----------------------------------------------------------
    async def list_cards(self) -> CachedResponse:
        return await self._list_cached("cards")

    async def list_dashboards(self) -> CachedResponse:
        return await self._list_cached("dashboards")

    async def list_tables(self) -> CachedResponse:
        return await self._list_cached("tables")

    async def list_databases(self) -> CachedResponse:
        # /api/database wraps its rows in {"data": [...], "total": n}
        return await self._list_cached("databases")

    async def list_collections(self) -> CachedResponse:
        return await self._list_cached("collections")

    # ---- search ------------------------------------------------------------
    async def search(  # noqa: PLR0913
        self,
        query: str | None,
        models: Sequence[str],
        *,
        archived: bool | None = None,
        database_id: int | None = None,
        ids: Sequence[int] | None = None,
        search_native_query: bool = False,
        include_dashboard_questions: bool = False,
        verified: bool | None = None,
    ) -> dict[str, Any]:
        """Run the native search API and return its envelope (``data``, ``total``)."""
        params: list[tuple[str, str | int]] = []
        if query:
            params.append(("q", query))
        params.extend(("models", model) for model in models)
        params.extend(("ids", item_id) for item_id in ids or ())
        if archived is not None:
            params.append(("archived", str(archived).lower()))
        if database_id is not None:
            params.append(("table_db_id", database_id))
        if search_native_query:
            params.append(("search_native_query", "true"))
        if include_dashboard_questions:
            params.append(("include_dashboard_questions", "true"))
        if verified is not None:
            params.append(("verified", str(verified).lower()))

        payload = await self._request("search", None, "/api/search", params)
        if isinstance(payload, list):
            return {"data": payload, "total": len(payload)}
        return payload

    def clear_cache(self, target: CacheTarget | None = None) -> int:
        """Clear one kind, a bulk target (all, all-lists, all-individual) or everything."""
        removed = sum(self.cache.clear(kind) for kind in kinds_for_target(target))
        self._logger.info("Cleared %d cached entries (%s)", removed, target or "all")
        return removed

    # ---- internals -------------------------------------------------------
    async def _get_cached(
        self,
        kind: ResourceKind,
        resource: str,
        resource_id: int,
        path: str,
        params: dict[str, str] | None = None,
    ) -> CachedResponse:
        cached = self.cache.get(kind, resource_id)
        if cached is not None:
            self._logger.debug("Cache hit for %s %d", resource, resource_id)
            return CachedResponse(data=cached, source="cache")

        data = await self._request(resource, resource_id, path, params)
        self.cache.set(kind, resource_id, data)
        return CachedResponse(data=data, source="api")

    async def _list_cached(self, model: ListModel) -> CachedResponse:
        kind: ListKind = f"{model}-list"  # type: ignore[assignment]
        key: CacheKey = LIST_KEY
        cached = self.cache.get(kind, key)
        if cached is not None:
            self._logger.debug("Cache hit for %s list", model)
            return CachedResponse(data=cached, source="cache")

        data = _unwrap_data(await self._request(model, None, LIST_ENDPOINTS[model], None))
        self.cache.set(kind, key, data)
        return CachedResponse(data=data, source="api")

    async def _request(
        self,
        resource: str,
        resource_id: int | None,
        path: str,
        params: Any,
    ) -> Any:
        target = _describe(resource, resource_id)
        self._logger.debug("GET %s", path)
        try:
            response = await self._http.get(path, params=params)
        except httpx.TimeoutException as exc:
            details = ErrorDetails(category="timeout", retryable=True)
            msg = f"Timed out reading {target}: {exc}"
            raise MetabaseApiError(msg, details) from exc
        except httpx.TransportError as exc:
            details = ErrorDetails(category="network", retryable=True)
            msg = f"Network error reading {target}: {exc}"
            raise MetabaseApiError(msg, details) from exc

        if response.is_error:
            error = classify_http_error(response, resource, resource_id)
            self._logger.warning("%s (HTTP %d)", error, response.status_code)
            raise error
        return response.json()
