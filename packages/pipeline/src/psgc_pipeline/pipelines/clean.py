"""
pipelines/clean.py — Classify and reconcile a source file without a store.

Produces a level-grouped JSON file ({"regions": [...], ...}) in which
every record has a valid code, a level, and resolvable parents. Rejected
records are left out and reported.

Usage:
    from psgc_pipeline.pipelines.clean import run
    result = await run("data/psgc-raw.csv", "data/psgc-clean.json")
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from psgc_pipeline.loaders.json_writer import write_json
from psgc_pipeline.pipelines.import_psgc import log_issues, read_outcomes
from psgc_pipeline.sources.files import FileFormat
from psgc_pipeline.transforms.classify import CityHeuristic
from psgc_pipeline.transforms.reconcile import ReconcileResult, reconcile
from psgc_pipeline.utils.logging import get_logger

log = get_logger(__name__, pipeline="clean")


@dataclass
class CleanResult:
    input_path: Path
    output_path: Path
    records_read: int
    reconciled: ReconcileResult


async def run(
    input_path: str | Path,
    output_path: str | Path,
    *,
    format: FileFormat | None = None,
    heuristic: CityHeuristic | None = None,
) -> CleanResult:
    log.info("clean_start", input=str(input_path), output=str(output_path))

    n_read, outcomes = await read_outcomes(input_path, format=format, heuristic=heuristic)
    reconciled = reconcile(outcomes)
    log_issues(reconciled)
    written = write_json(reconciled.entities, output_path)

    log.info(
        "clean_complete",
        records_read=n_read,
        entities=len(reconciled.entities),
        rejected=reconciled.report.total_rejected,
        duplicates=reconciled.report.total_duplicates,
        synthesized=reconciled.report.total_synthesized,
    )
    return CleanResult(Path(input_path), written, n_read, reconciled)
