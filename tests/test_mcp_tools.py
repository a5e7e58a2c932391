from __future__ import annotations

import asyncio
import json

from fastmcp import Client, FastMCP
from fastmcp.exceptions import ToolError
import httpx
import pytest

from metabase_mcp.client.api import MetabaseApiClient
from metabase_mcp.client.mcp_tools import register_cache_tools
from metabase_mcp.exceptions import ResourceNotFoundError
from metabase_mcp.listing.mcp_tools import register_list_tool
from metabase_mcp.retrieve.mcp_tools import new_request_id, register_retrieve_tool
from metabase_mcp.search.mcp_tools import register_search_tool
from metabase_mcp.services.client_manager import ClientManager


def _mk_server(manager: ClientManager) -> FastMCP:
    mcp = FastMCP(name="metabase-mcp-test")
    register_search_tool(mcp, manager)
    register_retrieve_tool(mcp, manager)
    register_list_tool(mcp, manager)
    register_cache_tools(mcp, manager)
    return mcp


def _call_tool(mcp: FastMCP, name: str, arguments: dict) -> dict:
    async def _go() -> dict:
        async with Client(mcp) as client:
            result = await client.call_tool(name, arguments)
        return json.loads(result.content[0].text)

    return asyncio.run(_go())


def test_new_request_id_is_short_hex() -> None:
    first, second = new_request_id(), new_request_id()
    assert len(first) == 12
    int(first, 16)
    assert first != second


def test_retrieve_tool_returns_aggregate_json(fake_client, sample_card) -> None:
    fake_client.add("get_card", 1, sample_card)
    fake_client.add("get_card", 2, ResourceNotFoundError("card", 2))
    mcp = _mk_server(ClientManager(client=fake_client))

    payload = _call_tool(mcp, "retrieve", {"model": "card", "ids": [1, 2]})

    assert payload["successful_retrievals"] == 1
    assert payload["failed_retrievals"] == 1
    assert payload["source"] == {"cache": 0, "api": 1}
    assert payload["errors"][0]["message"] == "card not found: 2"


def test_retrieve_tool_surfaces_total_failure(fake_client) -> None:
    fake_client.add("get_table", 3, ResourceNotFoundError("table", 3))
    mcp = _mk_server(ClientManager(client=fake_client))

    with pytest.raises(ToolError, match="table not found: 3"):
        _call_tool(mcp, "retrieve", {"model": "table", "ids": [3]})


def test_retrieve_tool_without_configuration(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("METABASE_URL", raising=False)
    mcp = _mk_server(ClientManager())

    with pytest.raises(ToolError, match="METABASE_URL"):
        _call_tool(mcp, "retrieve", {"model": "card", "ids": [1]})


def test_clear_cache_tool() -> None:
    api = MetabaseApiClient(
        "https://metabase.example.com",
        "key",
        transport=httpx.MockTransport(lambda r: httpx.Response(200, json={"id": 1})),
    )
    api.cache.set("cards", 1, {"id": 1})
    api.cache.set("fields", 4, {"id": 4})
    mcp = _mk_server(ClientManager(client=api))

    payload = _call_tool(mcp, "clear_cache", {"cache_type": "cards"})
    assert payload["cleared"] == "cards"
    assert payload["entries_removed"] == 1
    assert api.cache.size("fields") == 1

    payload = _call_tool(mcp, "clear_cache", {})
    assert payload == {
        "cleared": "all",
        "entries_removed": 1,
        "message": "Cleared all cache (1 entries)",
    }


def test_search_tool(fake_client) -> None:
    fake_client.add(
        "search", 0, {"data": [{"id": 3, "name": "Sales", "model": "dashboard"}], "total": 1}
    )
    mcp = _mk_server(ClientManager(client=fake_client))

    payload = _call_tool(mcp, "search", {"query": "sales"})

    assert payload["results"] == {"dashboard": [{"id": 3, "name": "Sales", "model": "dashboard"}]}
    assert fake_client.search_calls[0]["models"] == ["card", "dashboard"]


def test_search_tool_rejects_mixed_database_model(fake_client) -> None:
    mcp = _mk_server(ClientManager(client=fake_client))

    with pytest.raises(ToolError, match="cannot be mixed"):
        _call_tool(mcp, "search", {"models": ["database", "card"]})


def test_list_tool(fake_client) -> None:
    fake_client.add("list_collections", 0, [{"id": i, "name": f"c{i}"} for i in range(1, 6)])
    mcp = _mk_server(ClientManager(client=fake_client))

    payload = _call_tool(mcp, "list", {"model": "collections", "offset": 2, "limit": 2})

    assert [r["id"] for r in payload["results"]] == [3, 4]
    assert payload["next_offset"] == 4


def test_clear_cache_tool_list_targets() -> None:
    api = MetabaseApiClient(
        "https://metabase.example.com",
        "key",
        transport=httpx.MockTransport(lambda r: httpx.Response(200, json=[])),
    )
    api.cache.set("cards-list", "all", [])
    api.cache.set("tables-list", "all", [])
    api.cache.set("cards", 1, {"id": 1})
    mcp = _mk_server(ClientManager(client=api))

    payload = _call_tool(mcp, "clear_cache", {"cache_type": "cards-list"})
    assert payload["entries_removed"] == 1

    payload = _call_tool(mcp, "clear_cache", {"cache_type": "all-lists"})
    assert payload["entries_removed"] == 1
    assert api.cache.size("cards") == 1
