"""
psgc_shared.models — Pydantic models matching each database table.

These models are used by:
- packages/pipeline: classified and reconciled records written to DuckDB
- packages/api: rows read back and serialized into API responses

All geography models provide:
  .from_db_row(row: dict) -> Model
  .to_insert_dict() -> dict
"""

from psgc_shared.models.geography import (
    MODEL_FOR_LEVEL,
    Barangay,
    City,
    Entity,
    GeoEntity,
    Municipality,
    Province,
    Region,
)
from psgc_shared.models.standards import LevelStandard, StandardsTable, load_standards

__all__ = [
    "GeoEntity",
    "Entity",
    "Region",
    "Province",
    "City",
    "Municipality",
    "Barangay",
    "MODEL_FOR_LEVEL",
    "LevelStandard",
    "StandardsTable",
    "load_standards",
]
