"""Per-model response optimizers for the retrieve tool.

Each optimizer is a pure function ``(raw, level) -> dict`` that keeps what
later tools need verbatim (query text, template tags, parameter specs) and
drops bulk metadata according to the batch's `OptimizationLevel`:

- STANDARD keeps descriptions, timestamps, creator/collection detail and
  analytics counters.
- AGGRESSIVE drops timestamps and analytics and compacts creator/collection
  to id + name.
- ULTRA_MINIMAL drops descriptions, creator, collection and timestamps.

Semantic and relationship fields (``semantic_type``, ``fk_target_field_id``,
FK ``target``, parameter ``values_source_*``) are kept at every level when
present and never invented when absent.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from datetime import UTC, datetime
from typing import Any, Final

from metabase_mcp.retrieve.models import ModelType, OptimizationLevel, OptimizedEntity
from metabase_mcp.retrieve.pagination import paginate_tables

NATIVE_STAGE_TYPE: Final[str] = "mbql.stage/native"

_STANDARD = OptimizationLevel.STANDARD
_ULTRA = OptimizationLevel.ULTRA_MINIMAL

_USER_KEYS: Final[tuple[str, ...]] = ("id", "email", "first_name", "last_name")
_VALUES_SOURCE_KEYS: Final[tuple[str, ...]] = ("values_source_type", "values_source_config")

_TABLE_FIELD_KEYS: Final[dict[OptimizationLevel, tuple[str, ...]]] = {
    OptimizationLevel.ULTRA_MINIMAL: (
        "id",
        "name",
        "display_name",
        "database_type",
        "base_type",
        "effective_type",
        "table_id",
        "position",
        "active",
    ),
    OptimizationLevel.AGGRESSIVE: (
        "id",
        "name",
        "display_name",
        "database_type",
        "base_type",
        "effective_type",
        "table_id",
        "position",
        "active",
        "database_indexed",
        "database_required",
    ),
    OptimizationLevel.STANDARD: (
        "id",
        "name",
        "display_name",
        "database_type",
        "base_type",
        "effective_type",
        "table_id",
        "position",
        "database_position",
        "active",
        "database_indexed",
        "database_required",
        "has_field_values",
        "visibility_type",
        "preview_display",
        "created_at",
        "updated_at",
    ),
}

_DATABASE_TABLE_KEYS: Final[dict[OptimizationLevel, tuple[str, ...]]] = {
    OptimizationLevel.ULTRA_MINIMAL: ("id", "name", "display_name", "active", "db_id"),
    OptimizationLevel.AGGRESSIVE: ("id", "name", "display_name", "active", "db_id", "is_upload"),
    OptimizationLevel.STANDARD: (
        "id",
        "name",
        "display_name",
        "active",
        "db_id",
        "field_order",
        "is_upload",
        "initial_sync_status",
        "created_at",
        "updated_at",
    ),
}


# ---- helpers ---------------------------------------------------------------


def _now() -> str:
    return datetime.now(UTC).isoformat()


def _pick(raw: Mapping[str, Any], keys: Iterable[str]) -> dict[str, Any]:
    """Copy the keys that exist in ``raw`` (null values included)."""
    return {key: raw[key] for key in keys if key in raw}


def _pick_present(raw: Mapping[str, Any], keys: Iterable[str]) -> dict[str, Any]:
    """Copy the keys whose value is not None."""
    return {key: raw[key] for key in keys if raw.get(key) is not None}


def _pick_truthy(raw: Mapping[str, Any], keys: Iterable[str]) -> dict[str, Any]:
    """Copy the keys with a meaningful (truthy) value."""
    return {key: raw[key] for key in keys if raw.get(key)}


def _non_empty_list(value: object) -> list[Any]:
    return value if isinstance(value, list) and value else []


def _compact_user(user: Mapping[str, Any], level: OptimizationLevel) -> dict[str, Any]:
    if level is _STANDARD:
        return _pick(user, _USER_KEYS)
    name = user.get("common_name") or " ".join(
        part for part in (user.get("first_name"), user.get("last_name")) if part
    )
    compact: dict[str, Any] = _pick(user, ("id",))
    if name:
        compact["name"] = name
    return compact


def _compact_collection(collection: Mapping[str, Any], level: OptimizationLevel) -> dict[str, Any]:
    keys = ("id", "name", "location") if level is _STANDARD else ("id", "name")
    return _pick(collection, keys)


def _apply_common_context(
    optimized: dict[str, Any],
    raw: Mapping[str, Any],
    level: OptimizationLevel,
    creator: Mapping[str, Any] | None = None,
) -> None:
    """Add description, timestamps, creator and collection per level."""
    if level is not _ULTRA and raw.get("description"):
        optimized["description"] = raw["description"]
    if level is _STANDARD:
        optimized.update(_pick_truthy(raw, ("created_at", "updated_at")))
    if level is _ULTRA:
        return
    creator = creator if creator is not None else raw.get("creator")
    if creator:
        optimized["creator"] = _compact_user(creator, level)
    if raw.get("collection"):
        optimized["collection"] = _compact_collection(raw["collection"], level)


# ---- queries and parameters -------------------------------------------------


def extract_native_query(dataset_query: Mapping[str, Any] | None) -> dict[str, Any] | None:
    """Return ``{query, template_tags}`` for native queries, else None.

    Accepts the legacy ``{"native": {"query", "template_tags"}}`` shape and
    the staged shape where the first stage tagged ``mbql.stage/native``
    carries the SQL in ``native`` and its tags in ``template-tags``.
    """
    if not dataset_query:
        return None

    legacy = dataset_query.get("native")
    if isinstance(legacy, Mapping) and legacy.get("query"):
        return _pick_present(
            {"query": legacy["query"], "template_tags": legacy.get("template_tags")},
            ("query", "template_tags"),
        )

    stages = dataset_query.get("stages")
    if isinstance(stages, list):
        for stage in stages:
            if (
                isinstance(stage, Mapping)
                and stage.get("lib/type") == NATIVE_STAGE_TYPE
                and stage.get("native")
            ):
                return _pick_present(
                    {"query": stage["native"], "template_tags": stage.get("template-tags")},
                    ("query", "template_tags"),
                )
    return None


def _optimize_dataset_query(dataset_query: Mapping[str, Any]) -> dict[str, Any]:
    optimized = _pick(dataset_query, ("type", "database"))
    native = extract_native_query(dataset_query)
    if native is not None:
        optimized["native"] = native
    return optimized


def _optimize_parameter(param: Mapping[str, Any], keys: tuple[str, ...]) -> dict[str, Any]:
    optimized = _pick(param, keys)
    optimized.update(_pick_present(param, _VALUES_SOURCE_KEYS))
    return optimized


def _optimize_card_parameters(params: object) -> list[dict[str, Any]]:
    return [
        _optimize_parameter(p, ("id", "name", "type", "slug", "target"))
        for p in _non_empty_list(params)
    ]


# ---- cards --------------------------------------------------------------


def optimize_card(card: Mapping[str, Any], level: OptimizationLevel) -> OptimizedEntity:
    """Shape a card; the executable query and its parameters always survive."""
    optimized: OptimizedEntity = _pick(card, ("id", "name", "database_id"))
    optimized["retrieved_at"] = _now()

    if card.get("dataset_query"):
        optimized["dataset_query"] = _optimize_dataset_query(card["dataset_query"])
    if card.get("collection_id") is not None:
        optimized["collection_id"] = card["collection_id"]
    optimized.update(_pick_truthy(card, ("query_type", "display")))
    optimized.update(_pick(card, ("archived", "can_write")))

    _apply_common_context(optimized, card, level)

    parameters = _optimize_card_parameters(card.get("parameters"))
    if parameters:
        optimized["parameters"] = parameters

    if level is _STANDARD:
        optimized.update(_pick(card, ("view_count", "query_average_duration")))
    return optimized


# ---- dashboards ---------------------------------------------------------


def _optimize_dashcard_card(card: Mapping[str, Any], level: OptimizationLevel) -> dict[str, Any]:
    optimized = _pick(card, ("id", "name", "database_id"))
    if level is not _ULTRA and card.get("description"):
        optimized["description"] = card["description"]
    optimized.update(_pick_truthy(card, ("query_type", "display")))
    if card.get("dataset_query"):
        optimized["dataset_query"] = _optimize_dataset_query(card["dataset_query"])
    parameters = _optimize_card_parameters(card.get("parameters"))
    if parameters:
        optimized["parameters"] = parameters
    return optimized


def _optimize_dashcard(dashcard: Mapping[str, Any], level: OptimizationLevel) -> dict[str, Any]:
    optimized = _pick(
        dashcard, ("id", "card_id", "dashboard_id", "row", "col", "size_x", "size_y")
    )
    if dashcard.get("dashboard_tab_id") is not None:
        optimized["dashboard_tab_id"] = dashcard["dashboard_tab_id"]

    mappings = _non_empty_list(dashcard.get("parameter_mappings"))
    if mappings:
        optimized["parameter_mappings"] = [
            _pick(m, ("parameter_id", "card_id", "target")) for m in mappings
        ]
    if dashcard.get("visualization_settings"):
        optimized["visualization_settings"] = dashcard["visualization_settings"]
    if dashcard.get("card"):
        optimized["card"] = _optimize_dashcard_card(dashcard["card"], level)
    return optimized


def optimize_dashboard(dashboard: Mapping[str, Any], level: OptimizationLevel) -> OptimizedEntity:
    """Shape a dashboard, keeping layout geometry and filter wiring."""
    optimized: OptimizedEntity = _pick(dashboard, ("id", "name"))
    optimized["retrieved_at"] = _now()

    if dashboard.get("collection_id") is not None:
        optimized["collection_id"] = dashboard["collection_id"]
    optimized.update(_pick(dashboard, ("archived", "can_write")))

    _apply_common_context(
        optimized,
        dashboard,
        level,
        creator=dashboard.get("creator") or dashboard.get("last-edit-info"),
    )

    dashcards = _non_empty_list(dashboard.get("dashcards"))
    if dashcards:
        optimized["dashcards"] = [_optimize_dashcard(dc, level) for dc in dashcards]

    parameters = _non_empty_list(dashboard.get("parameters"))
    if parameters:
        optimized["parameters"] = [
            _optimize_parameter(p, ("id", "name", "type", "slug", "sectionId"))
            for p in parameters
        ]

    tabs = _non_empty_list(dashboard.get("tabs"))
    if tabs:
        optimized["tabs"] = tabs
    optimized.update(_pick_truthy(dashboard, ("width",)))
    optimized.update(_pick(dashboard, ("auto_apply_filters",)))

    if level is _STANDARD:
        optimized.update(_pick(dashboard, ("view_count",)))
    return optimized


# ---- tables and fields --------------------------------------------------


def _optimize_table_field(field: Mapping[str, Any], level: OptimizationLevel) -> dict[str, Any]:
    optimized = _pick(field, _TABLE_FIELD_KEYS[level])
    if level is not _ULTRA and field.get("description"):
        optimized["description"] = field["description"]
    optimized.update(_pick_present(field, ("semantic_type", "fk_target_field_id")))
    return optimized


def _optimize_table_db(db: Mapping[str, Any], level: OptimizationLevel) -> dict[str, Any]:
    optimized = _pick(db, ("id", "name", "engine"))
    if level is not _ULTRA and db.get("description"):
        optimized["description"] = db["description"]
    optimized.update(_pick_truthy(db, ("timezone", "dbms_version")))
    optimized.update(
        _pick(db, ("is_sample", "is_on_demand", "uploads_enabled", "auto_run_queries"))
    )
    return optimized


def optimize_table(table: Mapping[str, Any], level: OptimizationLevel) -> OptimizedEntity:
    """Shape a table; every field is kept with a level-dependent key set."""
    optimized: OptimizedEntity = _pick(
        table,
        (
            "id",
            "name",
            "db_id",
            "display_name",
            "entity_type",
            "active",
            "field_order",
            "is_upload",
            "initial_sync_status",
        ),
    )
    optimized["retrieved_at"] = _now()

    if level is _STANDARD:
        optimized.update(_pick(table, ("created_at", "updated_at", "view_count")))
    if level is not _ULTRA:
        if table.get("description"):
            optimized["description"] = table["description"]
        optimized.update(_pick(table, ("estimated_row_count",)))
    optimized.update(_pick_truthy(table, ("schema",)))

    if table.get("db"):
        optimized["db"] = _optimize_table_db(table["db"], level)

    fields = _non_empty_list(table.get("fields"))
    if fields:
        optimized["fields"] = [_optimize_table_field(f, level) for f in fields]
    return optimized


def optimize_field(field: Mapping[str, Any], level: OptimizationLevel) -> OptimizedEntity:
    """Shape a field with its parent table and FK target."""
    optimized: OptimizedEntity = _pick(
        field,
        (
            "id",
            "name",
            "display_name",
            "database_type",
            "base_type",
            "effective_type",
            "table_id",
            "position",
            "database_position",
            "active",
            "database_indexed",
            "database_required",
            "has_field_values",
            "visibility_type",
            "preview_display",
        ),
    )
    optimized["retrieved_at"] = _now()

    if level is not _ULTRA and field.get("description"):
        optimized["description"] = field["description"]
    if level is _STANDARD:
        optimized.update(_pick(field, ("created_at", "updated_at")))

    optimized.update(_pick_present(field, ("semantic_type", "fk_target_field_id")))

    fingerprint = field.get("fingerprint") or {}
    global_fp = fingerprint.get("global") if isinstance(fingerprint, Mapping) else None
    if level is _STANDARD and isinstance(global_fp, Mapping):
        optimized["fingerprint"] = {"global": _pick(global_fp, ("distinct-count", "nil%"))}

    parent = field.get("table")
    if isinstance(parent, Mapping):
        table = _pick(parent, ("id", "name", "display_name", "db_id"))
        table.update(_pick_truthy(parent, ("schema", "entity_type")))
        if level is _STANDARD:
            table.update(_pick(parent, ("view_count",)))
        optimized["table"] = table

    target = field.get("target")
    if isinstance(target, Mapping):
        optimized["target"] = _pick(
            target,
            (
                "id",
                "name",
                "display_name",
                "table_id",
                "database_type",
                "base_type",
                "effective_type",
            ),
        )
        optimized["target"].update(_pick_present(target, ("semantic_type",)))
    return optimized


# ---- databases ----------------------------------------------------------


def _optimize_database_table(table: Mapping[str, Any], level: OptimizationLevel) -> dict[str, Any]:
    optimized = _pick(table, _DATABASE_TABLE_KEYS[level])
    optimized.update(_pick_truthy(table, ("schema",)))
    if level is not _ULTRA:
        optimized.update(_pick_truthy(table, ("description", "entity_type")))
    if level is _STANDARD:
        optimized.update(_pick_truthy(table, ("view_count", "estimated_row_count")))
    return optimized


def optimize_database(
    database: Mapping[str, Any],
    level: OptimizationLevel,
    table_offset: int = 0,
    table_limit: int | None = None,
) -> OptimizedEntity:
    """Shape a database and page through its table list.

    A ``pagination`` block is attached only when ``table_limit`` is given.
    """
    optimized: OptimizedEntity = _pick(database, ("id", "name", "engine"))
    optimized["retrieved_at"] = _now()

    if level is not _ULTRA and database.get("description"):
        optimized["description"] = database["description"]
    optimized.update(_pick_truthy(database, ("timezone", "initial_sync_status")))
    optimized.update(
        _pick(database, ("auto_run_queries", "is_sample", "is_on_demand", "uploads_enabled"))
    )
    dbms_version = database.get("dbms_version")
    if isinstance(dbms_version, Mapping) and dbms_version:
        optimized["dbms_version"] = _pick(
            dbms_version, ("flavor", "version", "semantic-version")
        )
    if level is _STANDARD:
        optimized.update(_pick_truthy(database, ("created_at", "updated_at")))

    tables = _non_empty_list(database.get("tables"))
    if tables:
        page, pagination = paginate_tables(tables, table_offset, table_limit)
        if pagination is not None:
            optimized["pagination"] = pagination.model_dump(exclude_none=True)
        optimized["tables"] = [_optimize_database_table(t, level) for t in page]
    return optimized


# ---- collections --------------------------------------------------------


def _optimize_collection_item(
    item: Mapping[str, Any], level: OptimizationLevel, *, counted: bool
) -> dict[str, Any]:
    optimized = _pick(item, ("id", "name"))
    if level is not _ULTRA:
        optimized.update(_pick(item, ("description",)))
    optimized.update(_pick(item, ("model",)))
    if counted and level is _STANDARD:
        optimized.update(_pick(item, ("view_count",)))
    return optimized


def _group_collection_items(items: list[Any], level: OptimizationLevel) -> dict[str, Any]:
    grouped: dict[str, Any] = {
        "total_count": len(items),
        "cards": [],
        "dashboards": [],
        "collections": [],
        "other": [],
    }
    buckets = {"card": "cards", "dashboard": "dashboards", "collection": "collections"}
    for item in items:
        if not isinstance(item, Mapping):
            continue
        bucket = buckets.get(item.get("model"), "other")
        grouped[bucket].append(
            _optimize_collection_item(item, level, counted=bucket in {"cards", "dashboards"})
        )
    return grouped


def optimize_collection(
    collection: Mapping[str, Any], level: OptimizationLevel
) -> OptimizedEntity:
    """Shape a collection and regroup its items by model."""
    optimized: OptimizedEntity = _pick(
        collection,
        (
            "id",
            "name",
            "archived",
            "slug",
            "can_write",
            "can_restore",
            "can_delete",
            "is_sample",
            "is_personal",
            "location",
            "effective_location",
        ),
    )
    optimized["retrieved_at"] = _now()

    if level is not _ULTRA:
        optimized.update(_pick_truthy(collection, ("description", "authority_level")))
    if level is _STANDARD:
        optimized.update(_pick_truthy(collection, ("created_at",)))
    optimized.update(_pick_present(collection, ("personal_owner_id", "parent_id")))
    optimized.update(_pick_truthy(collection, ("type", "namespace")))

    ancestors = _non_empty_list(collection.get("effective_ancestors"))
    if ancestors and level is _STANDARD:
        optimized["effective_ancestors"] = [
            _pick(
                a,
                (
                    "metabase.collections.models.collection.root/is-root?",
                    "authority_level",
                    "name",
                    "is_personal",
                    "id",
                    "can_write",
                ),
            )
            for a in ancestors
        ]

    items = collection.get("items")
    if isinstance(items, list):
        optimized["items"] = _group_collection_items(items, level)
    return optimized


Optimizer = Callable[[Mapping[str, Any], OptimizationLevel], OptimizedEntity]

# optimize_database also takes table pagination keyword arguments.
OPTIMIZERS: Final[dict[ModelType, Optimizer]] = {
    "card": optimize_card,
    "dashboard": optimize_dashboard,
    "table": optimize_table,
    "database": optimize_database,
    "collection": optimize_collection,
    "field": optimize_field,
}
