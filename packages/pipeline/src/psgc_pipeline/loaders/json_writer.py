"""
loaders/json_writer.py — Write entity batches as level-grouped JSON.

Output layout (read back by FileSource, which restores each record's
level from its group):

  {
    "regions":        [ {"code": "130000000", "name": "NCR", ...}, ... ],
    "provinces":      [ ... ],
    "cities":         [ ... ],
    "municipalities": [ ... ],
    "barangays":      [ ... ]
  }
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import structlog

from psgc_shared.codes import LEVEL_ORDER
from psgc_shared.models.geography import Entity

log = structlog.get_logger(__name__)


def group_entities(entities: Iterable[Entity]) -> dict[str, list[dict[str, Any]]]:
    grouped: dict[str, list[dict[str, Any]]] = {level.table: [] for level in LEVEL_ORDER}
    for entity in entities:
        grouped[entity.level.table].append(
            entity.model_dump(mode="json", exclude={"level", "created_at", "updated_at"})
        )
    return grouped


def write_json(entities: Iterable[Entity], path: str | Path) -> Path:
    """Write *entities* to *path*, creating parent directories."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    grouped = group_entities(entities)
    target.write_text(json.dumps(grouped, indent=2, ensure_ascii=False), encoding="utf-8")
    log.info(
        "json_written",
        path=str(target),
        **{table: len(rows) for table, rows in grouped.items()},
    )
    return target
