"""Name search across the five levels."""

from __future__ import annotations

from typing import Any

from psgc_shared.codes import LEVEL_ORDER, Level

from psgc_pipeline.loaders.duckdb_loader import GeoStore

from psgc_api.services.geo_service import to_row
from psgc_api.utils.cache import search_cache

ALL = "all"

# ?type= values, one per table
SEARCH_TYPES: dict[str, Level] = {level.table: level for level in LEVEL_ORDER}


class InvalidSearchType(ValueError):
    def __init__(self, value: str) -> None:
        self.value = value
        allowed = ", ".join([ALL, *SEARCH_TYPES])
        super().__init__(f'Invalid type "{value}"; expected one of: {allowed}')


def search(store: GeoStore, q: str, *, type: str = ALL, limit: int = 20) -> dict[str, Any]:
    """
    Case-insensitive substring match on name.

    Args:
        q:     Search text (already stripped, non-empty).
        type:  "all" or one table name (regions, provinces, …).
        limit: Maximum results per level.

    Returns:
        {query, type, data: {<table>: [...]}, counts: {<table>: n, total: n}}

    Raises:
        InvalidSearchType: *type* is not "all" or a table name.
    """
    search_type = type.lower()
    if search_type != ALL and search_type not in SEARCH_TYPES:
        raise InvalidSearchType(type)

    cache_key = f"search:{q.lower()}:{search_type}:{limit}"
    cached = search_cache.get(cache_key)
    if cached is not None:
        return cached

    data: dict[str, list[dict[str, Any]]] = {}
    for table, level in SEARCH_TYPES.items():
        if search_type in (ALL, table):
            data[table] = [to_row(e) for e in store.search(level, q, limit=limit)]

    counts = {table: len(data.get(table, [])) for table in SEARCH_TYPES}
    counts["total"] = sum(counts.values())

    result = {"query": q, "type": search_type, "data": data, "counts": counts}
    search_cache.set(cache_key, result)
    return result
