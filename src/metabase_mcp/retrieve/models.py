"""Models for the retrieve MCP tool.

Request, per-item outcome, and aggregate response types shared by the
validator, batch fetcher, optimizers and response assembler.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Final, Literal

from pydantic import BaseModel, Field

ModelType = Literal["card", "dashboard", "table", "database", "collection", "field"]

SUPPORTED_MODELS: Final[tuple[ModelType, ...]] = (
    "card",
    "dashboard",
    "table",
    "database",
    "collection",
    "field",
)

MAX_IDS_PER_REQUEST: Final[int] = 50
MAX_DATABASE_IDS_PER_REQUEST: Final[int] = 2
MAX_TABLE_LIMIT: Final[int] = 100

# Optimized entities are plain JSON objects; shape varies per model.
OptimizedEntity = dict[str, Any]


class OptimizationLevel(Enum):
    """Response-shaping tiers in decreasing verbosity."""

    STANDARD = "standard"  # Full context for small batches
    AGGRESSIVE = "aggressive"  # No timestamps/analytics; compact creator/collection
    ULTRA_MINIMAL = "ultra_minimal"  # Identifiers and relationship fields only


class RetrievalRequest(BaseModel):
    """Validated retrieve request."""

    model: ModelType = Field(description="Metabase model type to retrieve")
    ids: list[int] = Field(description="Positive integer IDs, in caller order")
    table_offset: int | None = Field(
        default=None, description="Table pagination offset (database model only)"
    )
    table_limit: int | None = Field(
        default=None, description="Table page size (database model only)"
    )


@dataclass(frozen=True, slots=True)
class FetchSuccess:
    """One ID fetched successfully."""

    id: int
    raw_entity: dict[str, Any]
    source: Literal["cache", "api"]


@dataclass(frozen=True, slots=True)
class FetchFailure:
    """One ID whose fetch raised."""

    id: int
    error: Exception


FetchOutcome = FetchSuccess | FetchFailure


class PaginationMetadata(BaseModel):
    """Pagination block attached to a database's table list."""

    total_tables: int
    table_offset: int
    table_limit: int
    current_page_size: int
    has_more: bool
    next_offset: int | None = None


class SourceCounts(BaseModel):
    """Tally of where successful items were served from."""

    cache: int = 0
    api: int = 0


class RetrievalError(BaseModel):
    """Per-ID failure entry in the aggregate response."""

    id: int
    message: str


class AggregateResponse(BaseModel):
    """Complete reply of one retrieve call.

    Serialize with `exclude_unset=True` so optional keys only appear when the
    assembler set them.
    """

    results: list[OptimizedEntity] = Field(description="Optimized entities in request order")
    successful_retrievals: int
    failed_retrievals: int
    source: SourceCounts
    usage_guidance: str | None = None
    errors: list[RetrievalError] | None = None

    def to_json(self) -> str:
        return self.model_dump_json(exclude_unset=True)
