"""
pipelines/import_psgc.py — Import a PSGC source file into the store.

Flow:
  FileSource (CSV/JSON/Excel) → classify_records → reconcile (store as the
  known-codes oracle) → GeoStore.load (region → province → city →
  municipality → barangay, one transaction) → standards check on the
  stored counts.

Per-record problems (bad codes, missing names, duplicates, synthesized
ancestors) end up in the reconcile report and never abort the run. A
ForeignKeyViolation from the store means reconciliation missed something
and aborts the run with nothing written.

Usage:
    from psgc_pipeline.pipelines.import_psgc import run
    result = await run("data/PSGC-3Q-2025.xlsx")
    result = await run("data/psgc.json", dry_run=True)      # no DB writes
    result = await run(records=[{"code": "130000000", "name": "NCR"}])
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from psgc_shared.codes import Level
from psgc_shared.config import settings
from psgc_shared.models.geography import City
from psgc_shared.models.standards import StandardsTable, load_standards

from psgc_pipeline.loaders.duckdb_loader import GeoStore, LoadResult
from psgc_pipeline.sources.files import FileFormat, FileSource
from psgc_pipeline.transforms.classify import (
    CityHeuristic,
    ClassifyOutcome,
    classify_records,
)
from psgc_pipeline.transforms.reconcile import ReconcileResult, reconcile
from psgc_pipeline.utils.logging import get_logger
from psgc_pipeline.validation.standards import (
    LevelCheck,
    check_city_classes,
    check_counts,
    count_levels,
)

log = get_logger(__name__, pipeline="import_psgc")


@dataclass
class ImportResult:
    source: str
    records_read: int
    reconciled: ReconcileResult
    loaded: dict[Level, LoadResult] = field(default_factory=dict)
    checks: list[LevelCheck] = field(default_factory=list)
    city_class_checks: list[LevelCheck] = field(default_factory=list)
    dry_run: bool = False

    @property
    def records_loaded(self) -> int:
        return sum(r.records_loaded for r in self.loaded.values())

    def summary(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "records_read": self.records_read,
            "records_loaded": self.records_loaded,
            "dry_run": self.dry_run,
            "reconcile": self.reconciled.report.summary(),
            "standards": {c.key: c.outcome.value for c in self.checks},
        }


async def read_outcomes(
    path: str | Path,
    *,
    format: FileFormat | None = None,
    sheet_name: str | None = None,
    heuristic: CityHeuristic | None = None,
) -> tuple[int, list[ClassifyOutcome]]:
    """Read and classify one file; returns (records read, outcomes)."""
    records = await FileSource(path, format, sheet_name=sheet_name).run()
    return len(records), classify_records(records, heuristic=heuristic)


def log_issues(result: ReconcileResult, *, limit: int | None = None) -> None:
    """Log the first *limit* report issues so an operator can find them in the file."""
    limit = settings.error_preview_limit if limit is None else limit
    issues = result.report.issues
    for issue in issues[:limit]:
        log.info(
            "record_issue",
            kind=issue.kind.value,
            code=issue.code,
            name=issue.name,
            source_index=issue.source_index,
            entity_level=issue.level.value if issue.level else None,
            detail=issue.detail,
        )
    if len(issues) > limit:
        log.info("record_issues_truncated", shown=limit, total=len(issues))


async def run(
    path: str | Path | None = None,
    *,
    records: list[dict[str, Any]] | None = None,
    format: FileFormat | None = None,
    sheet_name: str | None = None,
    dry_run: bool = False,
    store: GeoStore | None = None,
    heuristic: CityHeuristic | None = None,
    standards: StandardsTable | None = None,
) -> ImportResult:
    """
    Import one source into the store.

    Args:
        path:       Source file (CSV/JSON/Excel). Ignored when records is given.
        records:    Already-parsed raw records.
        format:     Override format detection by file suffix.
        sheet_name: Excel sheet (default "PSGC", else the first sheet).
        dry_run:    Classify and reconcile but do not write.
        store:      Target store (default: settings.duckdb_path).
        heuristic:  City/Municipality strategy.
        standards:  Reference totals (default: load_standards()).

    Returns:
        ImportResult.

    Raises:
        ForeignKeyViolation: the store refused the batch; nothing was written.
    """
    if path is None and records is None:
        raise ValueError("import needs a path or records")

    source_name = str(path) if records is None else "<records>"
    log.info("import_start", source=source_name, dry_run=dry_run)

    if records is not None:
        n_read, outcomes = len(records), classify_records(records, heuristic=heuristic)
    else:
        assert path is not None
        n_read, outcomes = await read_outcomes(
            path, format=format, sheet_name=sheet_name, heuristic=heuristic
        )

    if store is None and not dry_run:
        store = GeoStore()

    reconciled = reconcile(outcomes, known=store)
    log_issues(reconciled)

    result = ImportResult(
        source=source_name, records_read=n_read, reconciled=reconciled, dry_run=dry_run
    )

    if dry_run:
        counts = count_levels(reconciled.entities)
        stored = reconciled.entities
    else:
        assert store is not None
        result.loaded = store.load(reconciled.entities)
        counts = store.counts()
        stored = store.scan(Level.CITY)

    table = standards or load_standards()
    result.checks = check_counts(counts, table)
    result.city_class_checks = check_city_classes(
        [e for e in stored if isinstance(e, City)], table
    )

    log.info(
        "import_complete",
        source=source_name,
        records_read=n_read,
        entities=len(reconciled.entities),
        records_loaded=result.records_loaded,
        synthesized=reconciled.report.total_synthesized,
        duplicates=reconciled.report.total_duplicates,
        rejected=reconciled.report.total_rejected,
        dry_run=dry_run,
    )
    return result
