"""Models for the list MCP tool."""

from __future__ import annotations

from typing import Any, Final

from pydantic import BaseModel, Field

from metabase_mcp.client.api import ListModel

LIST_MODELS: Final[tuple[ListModel, ...]] = (
    "cards",
    "dashboards",
    "tables",
    "databases",
    "collections",
)
MAX_LIST_LIMIT: Final[int] = 1000


class ListRequest(BaseModel):
    """Validated list request."""

    model: ListModel
    offset: int = 0
    limit: int = MAX_LIST_LIMIT


class ListResponse(BaseModel):
    """One page of a full resource listing with essential fields only.

    Serialize with `exclude_none=True`; `next_offset` and `usage_guidance`
    only appear when there is a further page.
    """

    model: ListModel
    total_items: int
    offset: int
    limit: int
    returned_items: int
    has_more: bool
    next_offset: int | None = None
    source: str = Field(description="'cache' or 'api'")
    usage_guidance: str | None = None
    results: list[dict[str, Any]]

    def to_json(self) -> str:
        return self.model_dump_json(exclude_none=True)
