"""
pipelines/diagnose.py — Explain count discrepancies for a source file.

Looks for the usual causes of a mismatch against the PSA totals:
  - City/Municipality misclassification: municipalities whose name
    mentions "city", cities whose name does not
  - per-level deltas of the file against the standards table
  - records that are in the file but not in the store (skipped on import)

Usage:
    from psgc_pipeline.pipelines.diagnose import run
    report = await run("data/psgc.xlsx", store=GeoStore())
    report.suspect_cities[:20]
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from psgc_shared.codes import LEVEL_ORDER, Level
from psgc_shared.models.geography import City, Entity, Municipality
from psgc_shared.models.standards import StandardsTable, load_standards

from psgc_pipeline.loaders.duckdb_loader import GeoStore
from psgc_pipeline.pipelines.import_psgc import read_outcomes
from psgc_pipeline.transforms.classify import CityHeuristic, Rejected
from psgc_pipeline.utils.logging import get_logger
from psgc_pipeline.validation.standards import LevelCheck, check_counts, count_levels

log = get_logger(__name__, pipeline="diagnose")


@dataclass
class DiagnoseReport:
    file_counts: dict[Level, int]
    checks: list[LevelCheck]
    rejected: int = 0
    # Municipalities that look like cities and vice versa
    suspect_cities: list[Municipality] = field(default_factory=list)
    suspect_municipalities: list[City] = field(default_factory=list)
    # Codes present in the file but missing from the store, per level
    missing_in_store: dict[Level, list[str]] = field(default_factory=dict)

    @property
    def city_municipality_delta(self) -> int:
        by_key = {c.key: c for c in self.checks}
        return sum(
            by_key[lv.value].delta for lv in (Level.CITY, Level.MUNICIPALITY) if lv.value in by_key
        )


def _mentions_city(name: str) -> bool:
    return "city" in name.lower()


async def run(
    path: str | Path,
    *,
    store: GeoStore | None = None,
    standards: StandardsTable | None = None,
    heuristic: CityHeuristic | None = None,
) -> DiagnoseReport:
    table = standards or load_standards()
    _, outcomes = await read_outcomes(path, heuristic=heuristic)
    entities: list[Entity] = [o for o in outcomes if not isinstance(o, Rejected)]  # type: ignore[misc]

    counts = count_levels(entities)
    report = DiagnoseReport(
        file_counts=counts,
        checks=check_counts(counts, table),
        rejected=len(outcomes) - len(entities),
        suspect_cities=[
            e for e in entities if isinstance(e, Municipality) and _mentions_city(e.name)
        ],
        suspect_municipalities=[
            e for e in entities if isinstance(e, City) and not _mentions_city(e.name)
        ],
    )

    if store is not None:
        for level in LEVEL_ORDER:
            stored = store.codes(level)
            missing = sorted({e.code for e in entities if e.level is level} - stored)
            if missing:
                report.missing_in_store[level] = missing

    log.info(
        "diagnose_complete",
        path=str(path),
        rejected=report.rejected,
        suspect_cities=len(report.suspect_cities),
        suspect_municipalities=len(report.suspect_municipalities),
        city_municipality_delta=report.city_municipality_delta,
        missing_in_store={lv.value: len(c) for lv, c in report.missing_in_store.items()},
    )
    return report
