"""Geography read service: lists, single entities with ancestors, children."""

from __future__ import annotations

from typing import Any

from psgc_shared.codes import Level
from psgc_shared.models.geography import PARENT_COLUMNS, Entity

from psgc_pipeline.loaders.duckdb_loader import GeoStore

from psgc_api.utils.cache import geography_cache


def to_row(entity: Entity) -> dict[str, Any]:
    """JSON-ready row; the level is implied by the endpoint."""
    return entity.model_dump(mode="json", exclude={"level"})


def list_all(store: GeoStore, level: Level, *, limit: int | None = None) -> list[dict[str, Any]]:
    """Every entity of *level*, ordered by name."""
    cache_key = f"all:{level.value}:{limit}"
    cached = geography_cache.get(cache_key)
    if cached is not None:
        return cached

    rows = [to_row(e) for e in store.scan(level, order_by="name", limit=limit)]
    geography_cache.set(cache_key, rows)
    return rows


def list_by_parent(
    store: GeoStore,
    level: Level,
    parent_level: Level,
    parent_code: str,
    *,
    limit: int | None = None,
) -> list[dict[str, Any]]:
    """Entities of *level* whose `<parent_level>_code` equals *parent_code*."""
    cache_key = f"by:{level.value}:{parent_level.value}:{parent_code}:{limit}"
    cached = geography_cache.get(cache_key)
    if cached is not None:
        return cached

    entities = store.list_by(level, f"{parent_level.value}_code", parent_code, limit=limit)
    rows = [to_row(e) for e in entities]
    geography_cache.set(cache_key, rows)
    return rows


def count(store: GeoStore, level: Level) -> int:
    return store.count(level)


def get_entity(store: GeoStore, level: Level, code: str) -> Entity | None:
    return store.get(level, code)


def get_with_ancestors(store: GeoStore, level: Level, code: str) -> dict[str, Any] | None:
    """
    The entity plus one key per ancestor level (region, province, …).

    An ancestor the entity does not reference, or that is not stored,
    comes back as None.
    """
    entity = store.get(level, code)
    if entity is None:
        return None

    row = to_row(entity)
    for column, parent_level in PARENT_COLUMNS[level]:
        parent_code = getattr(entity, column)
        parent = store.get(parent_level, parent_code) if parent_code else None
        row[parent_level.value] = to_row(parent) if parent is not None else None
    return row
