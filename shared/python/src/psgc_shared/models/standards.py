"""
models/standards.py — Reference totals published by the PSA.

The figures change with every PSGC release, so they live in a JSON file
rather than in code. The bundled file holds the 30 September 2025 totals;
point settings.standards_path (env STANDARDS_PATH) at another file to
validate against a different vintage.

Usage:
    from psgc_shared.models.standards import load_standards

    table = load_standards()
    table.levels[Level.BARANGAY].expected   # 42011
"""

from __future__ import annotations

from pathlib import Path

import structlog
from pydantic import BaseModel, Field, NonNegativeInt

from psgc_shared.codes import Level
from psgc_shared.config import settings

log = structlog.get_logger(__name__)

BUNDLED_STANDARDS = Path(__file__).resolve().parent.parent / "data" / "psa_standards.json"


class LevelStandard(BaseModel):
    expected: NonNegativeInt
    tolerance: NonNegativeInt = 0


class StandardsTable(BaseModel):
    vintage: str
    source: str | None = None
    levels: dict[Level, LevelStandard]
    city_classes: dict[str, LevelStandard] = Field(default_factory=dict)


def load_standards(path: str | Path | None = None) -> StandardsTable:
    """
    Load a StandardsTable from JSON.

    Args:
        path: Explicit file. Defaults to settings.standards_path, then the
              bundled PSA file.
    """
    resolved = Path(path or settings.standards_path or BUNDLED_STANDARDS)
    table = StandardsTable.model_validate_json(resolved.read_text(encoding="utf-8"))
    log.debug("standards_loaded", path=str(resolved), vintage=table.vintage)
    return table
