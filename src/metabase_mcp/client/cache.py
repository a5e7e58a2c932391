"""TTL cache for Metabase responses.

Entries are grouped per resource kind so callers can clear one kind
(for example only dashboards) without dropping the rest. Single resources
are keyed by id; full listings use the `LIST_KEY` key in their ``*-list``
kind. Each kind holds at most ``max_entries`` entries; when a kind is full,
expired entries are swept first and then the oldest entry is evicted.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
import time
from typing import Any, Final, Literal, get_args

IndividualKind = Literal[
    "cards",
    "dashboards",
    "tables",
    "databases",
    "collections",
    "collection-items",
    "fields",
]
ListKind = Literal[
    "cards-list",
    "dashboards-list",
    "tables-list",
    "databases-list",
    "collections-list",
]
ResourceKind = IndividualKind | ListKind
CacheKey = int | str

INDIVIDUAL_KINDS: Final[tuple[IndividualKind, ...]] = get_args(IndividualKind)
LIST_KINDS: Final[tuple[ListKind, ...]] = get_args(ListKind)
RESOURCE_KINDS: Final[tuple[ResourceKind, ...]] = (*INDIVIDUAL_KINDS, *LIST_KINDS)

# Bulk targets accepted by clear_cache besides a single kind
CacheTarget = Literal["all", "all-lists", "all-individual"] | ResourceKind

LIST_KEY: Final[str] = "all"
DEFAULT_MAX_ENTRIES: Final[int] = 1000


def kinds_for_target(target: CacheTarget | None) -> tuple[ResourceKind, ...]:
    """Expand a clear_cache target into the resource kinds it covers."""
    if target is None or target == "all":
        return RESOURCE_KINDS
    if target == "all-lists":
        return LIST_KINDS
    if target == "all-individual":
        return INDIVIDUAL_KINDS
    if target not in RESOURCE_KINDS:
        msg = f"Unknown cache type: {target}"
        raise ValueError(msg)
    return (target,)


@dataclass(slots=True)
class CacheEntry:
    """Cached payload with its expiry deadline."""

    data: Any
    expires_at: float


class ResourceCache:
    """Per-kind TTL cache keyed by resource id (or `LIST_KEY`)."""

    def __init__(
        self,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        max_entries: int = DEFAULT_MAX_ENTRIES,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.max_entries = max(1, max_entries)
        self._clock = clock
        self._entries: dict[ResourceKind, dict[CacheKey, CacheEntry]] = {
            kind: {} for kind in RESOURCE_KINDS
        }

    def get(self, kind: ResourceKind, key: CacheKey) -> Any | None:
        """Return the cached payload, or None when missing or expired."""
        bucket = self._entries[kind]
        entry = bucket.get(key)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            del bucket[key]
            return None
        return entry.data

    def set(self, kind: ResourceKind, key: CacheKey, data: Any) -> None:
        if self.ttl_seconds <= 0:
            return
        bucket = self._entries[kind]
        bucket.pop(key, None)
        if len(bucket) >= self.max_entries:
            self._sweep(bucket)
        while len(bucket) >= self.max_entries:
            del bucket[next(iter(bucket))]
        bucket[key] = CacheEntry(data=data, expires_at=self._clock() + self.ttl_seconds)

    def _sweep(self, bucket: dict[CacheKey, CacheEntry]) -> None:
        now = self._clock()
        for key in [k for k, entry in bucket.items() if now >= entry.expires_at]:
            del bucket[key]

    def clear(self, kind: ResourceKind | None = None) -> int:
        """Drop cached entries for one kind (or all kinds); return how many were removed."""
        kinds = RESOURCE_KINDS if kind is None else (kind,)
        removed = 0
        for k in kinds:
            removed += len(self._entries[k])
            self._entries[k].clear()
        return removed

    def size(self, kind: ResourceKind | None = None) -> int:
        kinds = RESOURCE_KINDS if kind is None else (kind,)
        return sum(len(self._entries[k]) for k in kinds)
