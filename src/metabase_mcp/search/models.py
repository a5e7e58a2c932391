"""Models for the search MCP tool."""

from __future__ import annotations

from typing import Any, Final, Literal

from pydantic import BaseModel, Field

from metabase_mcp.retrieve.models import ModelType

SearchModel = Literal[
    "card",
    "dashboard",
    "table",
    "dataset",
    "segment",
    "collection",
    "database",
    "action",
    "indexed-entity",
    "metric",
]

SEARCH_MODELS: Final[tuple[SearchModel, ...]] = (
    "card",
    "dashboard",
    "table",
    "dataset",
    "segment",
    "collection",
    "database",
    "action",
    "indexed-entity",
    "metric",
)
DEFAULT_SEARCH_MODELS: Final[tuple[SearchModel, ...]] = ("card", "dashboard")
DEFAULT_MAX_RESULTS: Final[int] = 20
MAX_SEARCH_RESULTS: Final[int] = 50

# Search hits that the retrieve tool can expand (datasets and metrics are cards)
RETRIEVABLE_MODELS: Final[dict[str, ModelType]] = {
    "card": "card",
    "dataset": "card",
    "metric": "card",
    "dashboard": "dashboard",
    "table": "table",
    "database": "database",
    "collection": "collection",
}


class SearchRequest(BaseModel):
    """Validated search request."""

    query: str | None = None
    models: list[SearchModel] = Field(default_factory=lambda: list(DEFAULT_SEARCH_MODELS))
    max_results: int = DEFAULT_MAX_RESULTS
    search_native_query: bool = False
    include_dashboard_questions: bool = False
    ids: list[int] | None = None
    archived: bool | None = None
    database_id: int | None = None
    verified: bool | None = None


class SearchMetrics(BaseModel):
    """Summary of what the search API matched and what was returned."""

    query: str | None
    models: list[str]
    total_results: int
    returned_results: int
    truncated: bool


class SearchResponse(BaseModel):
    """Complete reply of one search call; hits are grouped by model."""

    search_metrics: SearchMetrics
    recommendations: list[str]
    results: dict[str, list[dict[str, Any]]]

    def to_json(self) -> str:
        return self.model_dump_json()
