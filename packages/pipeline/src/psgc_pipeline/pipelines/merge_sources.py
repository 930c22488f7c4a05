"""
pipelines/merge_sources.py — Fill gaps in a baseline file from supplements.

Flow:
  baseline file → classify
  supplement files → classify
  merge (baseline wins, first supplement wins among supplements)
  → reconcile the merged set → level-grouped JSON

The baseline is merged before it is reconciled, so an ancestor it lacks
is taken from a supplement rather than blocked by a placeholder. The
baseline reconcile kept on the result is for reporting only.

The merged reconcile attaches added barangays to their (possibly also
added) cities and municipalities, and synthesizes what is still missing.

Usage:
    from psgc_pipeline.pipelines.merge_sources import run
    result = await run(
        "data/psgc-complete.json",
        ["data/psgc-cloud.json"],
        "data/psgc-merged.json",
    )
    result.merged.report.preview()
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from psgc_shared.config import settings

from psgc_pipeline.loaders.json_writer import write_json
from psgc_pipeline.pipelines.import_psgc import log_issues, read_outcomes
from psgc_pipeline.transforms.classify import CityHeuristic, ClassifyOutcome
from psgc_pipeline.transforms.merge import MergeResult, merge
from psgc_pipeline.transforms.reconcile import ReconcileResult, reconcile
from psgc_pipeline.utils.logging import get_logger

log = get_logger(__name__, pipeline="merge_sources")


@dataclass
class MergeRunResult:
    output_path: Path
    baseline: ReconcileResult
    merged: MergeResult
    reconciled: ReconcileResult


async def run(
    baseline_path: str | Path,
    supplement_paths: list[str | Path],
    output_path: str | Path,
    *,
    heuristic: CityHeuristic | None = None,
    preview_limit: int | None = None,
) -> MergeRunResult:
    log.info(
        "merge_start",
        baseline=str(baseline_path),
        supplements=[str(p) for p in supplement_paths],
    )

    _, baseline_outcomes = await read_outcomes(baseline_path, heuristic=heuristic)
    baseline = reconcile(baseline_outcomes)

    supplements: list[list[ClassifyOutcome]] = []
    for path in supplement_paths:
        _, outcomes = await read_outcomes(path, heuristic=heuristic)
        supplements.append(outcomes)

    merged = merge(
        baseline_outcomes,
        supplements,
        preview_limit=preview_limit or settings.merge_preview_limit,
    )
    reconciled = reconcile(merged.entities)
    log_issues(reconciled)
    written = write_json(reconciled.entities, output_path)

    report = merged.report
    log.info(
        "merge_report",
        **{f"added_{level.value}": n for level, n in report.added.items()},
        duplicates=report.duplicates,
        invalid=report.invalid,
        preview=report.preview(),
        more=max(0, len(report.added_codes) - len(report.preview())),
    )
    log.info("merge_sources_complete", output=str(written), entities=len(reconciled.entities))
    return MergeRunResult(written, baseline, merged, reconciled)
