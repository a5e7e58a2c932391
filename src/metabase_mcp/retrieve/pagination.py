"""Table pagination for database responses.

Large databases can hold hundreds of tables; this slices the nested table
list independently of the outer ID batch.
"""

from __future__ import annotations

from typing import Any

from metabase_mcp.retrieve.models import PaginationMetadata


def paginate_tables(
    tables: list[Any], table_offset: int = 0, table_limit: int | None = None
) -> tuple[list[Any], PaginationMetadata | None]:
    """Return the requested page of tables and its metadata.

    Without ``table_limit`` the full list is returned and no metadata is
    produced.
    """
    if table_limit is None:
        return tables, None

    total = len(tables)
    end_index = table_offset + table_limit
    page = tables[table_offset:end_index]
    has_more = end_index < total
    return page, PaginationMetadata(
        total_tables=total,
        table_offset=table_offset,
        table_limit=table_limit,
        current_page_size=len(page),
        has_more=has_more,
        next_offset=end_index if has_more else None,
    )
