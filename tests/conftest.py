"""Shared fixtures: an in-memory Metabase client and sample entities."""

from __future__ import annotations

import asyncio
from collections import defaultdict
from collections.abc import Callable
import copy
import logging
from typing import Any

import pytest


class FakeMetabaseClient:
    """Async stand-in for MetabaseApiClient.

    Responses are registered per getter and ID; an Exception value is raised
    instead of returned. A `default` response answers any unregistered ID.
    Listings and search are registered under ID 0.
    """

    def __init__(self) -> None:
        self.responses: dict[str, dict[int, Any]] = defaultdict(dict)
        self.defaults: dict[str, Any] = {}
        self.calls: list[tuple[str, int]] = []
        self.search_calls: list[dict[str, Any]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def add(self, getter: str, item_id: int, response: Any) -> None:
        self.responses[getter][item_id] = response

    def default(self, getter: str, response: Any) -> None:
        self.defaults[getter] = response

    async def _serve(self, getter: str, item_id: int) -> Any:
        self.calls.append((getter, item_id))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            response = self.responses[getter].get(item_id, self.defaults.get(getter))
            if response is None:
                msg = f"no fake response for {getter}({item_id})"
                raise LookupError(msg)
            if isinstance(response, Exception):
                raise response
            return copy.deepcopy(response)
        finally:
            self.in_flight -= 1

    def call_ids(self, getter: str) -> list[int]:
        return [i for g, i in self.calls if g == getter]

    async def get_card(self, card_id: int) -> Any:
        return await self._serve("get_card", card_id)

    async def get_dashboard(self, dashboard_id: int) -> Any:
        return await self._serve("get_dashboard", dashboard_id)

    async def get_table(self, table_id: int) -> Any:
        return await self._serve("get_table", table_id)

    async def get_database(self, database_id: int) -> Any:
        return await self._serve("get_database", database_id)

    async def get_collection(self, collection_id: int) -> Any:
        return await self._serve("get_collection", collection_id)

    async def get_collection_items(self, collection_id: int) -> Any:
        return await self._serve("get_collection_items", collection_id)

    async def get_field(self, field_id: int) -> Any:
        return await self._serve("get_field", field_id)

    async def list_cards(self) -> Any:
        return await self._serve("list_cards", 0)

    async def list_dashboards(self) -> Any:
        return await self._serve("list_dashboards", 0)

    async def list_tables(self) -> Any:
        return await self._serve("list_tables", 0)

    async def list_databases(self) -> Any:
        return await self._serve("list_databases", 0)

    async def list_collections(self) -> Any:
        return await self._serve("list_collections", 0)

    async def search(self, query: str | None, models: list[str], **options: Any) -> Any:
        self.search_calls.append({"query": query, "models": models, **options})
        return await self._serve("search", 0)


@pytest.fixture
def fake_client() -> FakeMetabaseClient:
    return FakeMetabaseClient()


@pytest.fixture
def test_logger(caplog: pytest.LogCaptureFixture) -> logging.Logger:
    """A plain stdlib logger captured by caplog at DEBUG level."""
    name = "tests.metabase_mcp"
    caplog.set_level(logging.DEBUG, logger=name)
    return logging.getLogger(name)


@pytest.fixture
def sample_card() -> dict[str, Any]:
    return {
        "id": 1,
        "name": "Test Card",
        "description": "A test card",
        "database_id": 1,
        "dataset_query": {
            "type": "native",
            "database": 1,
            "native": {"query": "SELECT * FROM test_table", "template_tags": {}},
        },
        "collection_id": 1,
        "collection": {"id": 1, "name": "Analytics", "location": "/"},
        "creator": {
            "id": 7,
            "email": "ana@example.com",
            "first_name": "Ana",
            "last_name": "Lopez",
            "common_name": "Ana Lopez",
        },
        "query_type": "native",
        "display": "table",
        "archived": False,
        "can_write": True,
        "view_count": 42,
        "query_average_duration": 120,
        "result_metadata": [{"name": "col", "fingerprint": {"global": {}}}] * 20,
        "created_at": "2023-01-01T00:00:00.000Z",
        "updated_at": "2023-01-02T00:00:00.000Z",
    }


@pytest.fixture
def sample_staged_card() -> dict[str, Any]:
    return {
        "id": 2,
        "name": "Test Card MBQL Stages",
        "database_id": 3,
        "dataset_query": {
            "lib/type": "mbql/query",
            "stages": [
                {
                    "lib/type": "mbql.stage/native",
                    "native": "SELECT id, name FROM users WHERE id = {{user_id}}",
                    "template-tags": {
                        "user_id": {"name": "user_id", "type": "number", "display-name": "User"}
                    },
                }
            ],
            "database": 3,
        },
    }


@pytest.fixture
def sample_dashboard() -> dict[str, Any]:
    return {
        "id": 1,
        "name": "Test Dashboard",
        "description": "A test dashboard",
        "collection_id": 1,
        "collection": {"id": 1, "name": "Analytics", "location": "/"},
        "last-edit-info": {"id": 7, "email": "ana@example.com", "first_name": "Ana"},
        "width": "fixed",
        "auto_apply_filters": True,
        "tabs": [],
        "parameters": [
            {
                "id": "p1",
                "name": "Region",
                "slug": "region",
                "type": "string/=",
                "sectionId": "location",
                "values_source_type": "static-list",
                "values_source_config": {"values": ["EU", "US"]},
            }
        ],
        "dashcards": [
            {
                "id": 11,
                "card_id": 1,
                "dashboard_id": 1,
                "row": 0,
                "col": 4,
                "size_x": 6,
                "size_y": 3,
                "series": [],
                "parameter_mappings": [
                    {
                        "parameter_id": "p1",
                        "card_id": 1,
                        "target": ["variable", ["template-tag", "region"]],
                    }
                ],
                "visualization_settings": {},
                "card": {
                    "id": 1,
                    "name": "Revenue",
                    "description": "Revenue by region",
                    "database_id": 1,
                    "display": "bar",
                    "result_metadata": [{"name": "x"}],
                    "dataset_query": {
                        "type": "native",
                        "database": 1,
                        "native": {"query": "SELECT region, sum(amount) FROM sales"},
                    },
                },
            }
        ],
        "created_at": "2023-01-01T00:00:00.000Z",
        "updated_at": "2023-01-01T00:00:00.000Z",
    }


@pytest.fixture
def sample_table() -> dict[str, Any]:
    return {
        "id": 1,
        "name": "orders",
        "display_name": "Orders",
        "description": "Customer orders",
        "db_id": 1,
        "schema": "public",
        "entity_type": "entity/TransactionTable",
        "active": True,
        "view_count": 10,
        "estimated_row_count": 1000,
        "db": {"id": 1, "name": "Sales", "engine": "postgres", "details": {"host": "db"}},
        "fields": [
            {
                "id": 100,
                "name": "id",
                "display_name": "ID",
                "description": "Primary key",
                "database_type": "int4",
                "base_type": "type/Integer",
                "effective_type": "type/Integer",
                "semantic_type": "type/PK",
                "table_id": 1,
                "position": 0,
                "active": True,
                "fingerprint": {"global": {"distinct-count": 1000}},
                "created_at": "2023-01-01T00:00:00.000Z",
            },
            {
                "id": 101,
                "name": "customer_id",
                "display_name": "Customer ID",
                "database_type": "int4",
                "base_type": "type/Integer",
                "effective_type": "type/Integer",
                "semantic_type": "type/FK",
                "fk_target_field_id": 200,
                "table_id": 1,
                "position": 1,
                "active": True,
            },
            {
                "id": 102,
                "name": "note",
                "display_name": "Note",
                "database_type": "text",
                "base_type": "type/Text",
                "effective_type": "type/Text",
                "semantic_type": None,
                "fk_target_field_id": None,
                "table_id": 1,
                "position": 2,
                "active": True,
            },
        ],
        "created_at": "2023-01-01T00:00:00.000Z",
        "updated_at": "2023-01-01T00:00:00.000Z",
    }


def _make_tables(count: int) -> list[dict[str, Any]]:
    return [
        {
            "id": i + 1,
            "name": f"table_{i + 1}",
            "display_name": f"Table {i + 1}",
            "description": f"Table number {i + 1}",
            "schema": "public",
            "active": True,
            "db_id": 1,
            "created_at": "2023-01-01T00:00:00.000Z",
        }
        for i in range(count)
    ]


@pytest.fixture
def make_tables() -> Callable[[int], list[dict[str, Any]]]:
    """Factory for `count` database tables with ids 1..count."""
    return _make_tables


@pytest.fixture
def sample_database() -> dict[str, Any]:
    return {
        "id": 1,
        "name": "Test Database",
        "description": "A test database",
        "engine": "postgres",
        "timezone": "UTC",
        "is_sample": False,
        "dbms_version": {"flavor": "PostgreSQL", "version": "15.2", "semantic-version": [15, 2]},
        "details": {"host": "db", "password": "**MetabasePass**"},
        "features": ["basic-aggregations"] * 30,
        "created_at": "2023-01-01T00:00:00.000Z",
        "updated_at": "2023-01-01T00:00:00.000Z",
    }


@pytest.fixture
def sample_collection() -> dict[str, Any]:
    return {
        "id": 1,
        "name": "Test Collection",
        "description": "A test collection",
        "slug": "test_collection",
        "archived": False,
        "can_write": True,
        "location": "/",
        "authority_level": "official",
        "effective_ancestors": [{"id": "root", "name": "Our analytics", "can_write": True}],
        "created_at": "2023-01-01T00:00:00.000Z",
    }


@pytest.fixture
def sample_collection_items() -> list[dict[str, Any]]:
    return [
        {
            "id": 10,
            "name": "Marketing Dashboard",
            "description": "KPIs",
            "model": "dashboard",
            "view_count": 150,
        },
        {
            "id": 20,
            "name": "Marketing Report",
            "description": "Monthly",
            "model": "card",
            "view_count": 75,
        },
        {
            "id": 30,
            "name": "Campaigns",
            "description": "Campaign collection",
            "model": "collection",
        },
        {"id": 40, "name": "Raw Orders", "description": None, "model": "dataset"},
    ]


@pytest.fixture
def sample_field() -> dict[str, Any]:
    return {
        "id": 101,
        "name": "customer_id",
        "display_name": "Customer ID",
        "description": "Buyer reference",
        "table_id": 1,
        "base_type": "type/Integer",
        "database_type": "int4",
        "effective_type": "type/Integer",
        "semantic_type": "type/FK",
        "fk_target_field_id": 200,
        "position": 1,
        "database_position": 1,
        "active": True,
        "database_indexed": True,
        "database_required": False,
        "has_field_values": "none",
        "visibility_type": "normal",
        "preview_display": True,
        "fingerprint": {"global": {"distinct-count": 321, "nil%": 0.0}, "type": {"x": 1}},
        "table": {
            "id": 1,
            "name": "orders",
            "display_name": "Orders",
            "db_id": 1,
            "schema": "public",
        },
        "target": {
            "id": 200,
            "name": "id",
            "display_name": "ID",
            "table_id": 2,
            "database_type": "int4",
            "base_type": "type/Integer",
            "effective_type": "type/Integer",
            "semantic_type": "type/PK",
        },
        "created_at": "2023-01-01T00:00:00.000Z",
        "updated_at": "2023-01-01T00:00:00.000Z",
    }
