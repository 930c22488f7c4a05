"""
pipelines/validate.py — Check a file and/or the store against PSA standards.

Reports, for whichever inputs are given:
  - per-level counts of the classified file vs the standards table
  - per-level counts of the store vs the standards table, plus HUC/ICC/CC
  - store integrity checks (orphans, code shapes, dangling parents,
    barangay prefix mismatches)
  - file vs store deltas per level

Mismatches are reported, never raised.

Usage:
    from psgc_pipeline.pipelines.validate import run
    report = await run("data/psgc.json", store=GeoStore())
    report.ok
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from psgc_shared.codes import Level
from psgc_shared.models.geography import City
from psgc_shared.models.standards import StandardsTable, load_standards

from psgc_pipeline.loaders.duckdb_loader import GeoStore
from psgc_pipeline.pipelines.import_psgc import read_outcomes
from psgc_pipeline.transforms.classify import Rejected
from psgc_pipeline.utils.logging import get_logger
from psgc_pipeline.validation.integrity import IntegrityResult, run_integrity_checks
from psgc_pipeline.validation.standards import (
    LevelCheck,
    check_city_classes,
    check_counts,
    count_levels,
)

log = get_logger(__name__, pipeline="validate")


@dataclass
class ValidationReport:
    vintage: str
    file_counts: dict[Level, int] | None = None
    file_rejected: int = 0
    file_checks: list[LevelCheck] = field(default_factory=list)
    store_counts: dict[Level, int] | None = None
    store_checks: list[LevelCheck] = field(default_factory=list)
    city_class_checks: list[LevelCheck] = field(default_factory=list)
    integrity: list[IntegrityResult] = field(default_factory=list)

    @property
    def file_vs_store(self) -> dict[Level, int]:
        """store - file per level; empty unless both were counted."""
        if self.file_counts is None or self.store_counts is None:
            return {}
        return {
            level: self.store_counts.get(level, 0) - self.file_counts.get(level, 0)
            for level in self.file_counts
        }

    @property
    def ok(self) -> bool:
        checks = [*self.file_checks, *self.store_checks, *self.city_class_checks]
        return all(c.ok for c in checks) and all(r.passed for r in self.integrity)

    def summary(self) -> dict[str, Any]:
        return {
            "vintage": self.vintage,
            "file": {c.key: [c.actual, c.expected, c.outcome.value] for c in self.file_checks},
            "store": {c.key: [c.actual, c.expected, c.outcome.value] for c in self.store_checks},
            "integrity": {r.name: len(r.rows) for r in self.integrity},
            "ok": self.ok,
        }


async def run(
    path: str | Path | None = None,
    *,
    store: GeoStore | None = None,
    standards: StandardsTable | None = None,
) -> ValidationReport:
    """
    Validate a source file, the store, or both.

    Args:
        path:      Source file to classify and count (optional).
        store:     Store to count and check (default: settings.duckdb_path
                   when no path is given).
        standards: Reference totals (default: load_standards()).
    """
    table = standards or load_standards()
    report = ValidationReport(vintage=table.vintage)

    if path is not None:
        _, outcomes = await read_outcomes(path)
        entities = [o for o in outcomes if not isinstance(o, Rejected)]
        report.file_rejected = len(outcomes) - len(entities)
        report.file_counts = count_levels(entities)  # type: ignore[arg-type]
        report.file_checks = check_counts(report.file_counts, table)
        log.info(
            "file_counted",
            path=str(path),
            rejected=report.file_rejected,
            **{lv.value: n for lv, n in report.file_counts.items()},
        )

    if store is None and path is None:
        store = GeoStore()

    if store is not None:
        report.store_counts = store.counts()
        report.store_checks = check_counts(report.store_counts, table)
        cities = [c for c in store.scan(Level.CITY) if isinstance(c, City)]
        report.city_class_checks = check_city_classes(cities, table)
        report.integrity = run_integrity_checks(store)
        log.info("store_counted", **{lv.value: n for lv, n in report.store_counts.items()})

    log.info("validate_complete", ok=report.ok, vintage=table.vintage)
    return report
