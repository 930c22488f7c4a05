"""
transforms/merge.py — Combine a baseline dataset with supplementary sources.

Code is the primary key. The baseline always wins: a supplement record
whose code the baseline already has is counted as an overlap and dropped.
The one exception is a baseline placeholder, which a real supplement
record replaces (at whatever level the supplement classifies it).
Codes found only in a supplement are added and tagged missing_in_baseline;
among several supplements the first to supply a code wins.

The merged set is not reconciled here. Pipelines run the reconciler on
the result so that added barangays find their (possibly added) parents.

Usage:
    from psgc_pipeline.transforms.merge import merge

    result = merge(baseline_entities, [cloud_outcomes])
    result.report.added[Level.BARANGAY]     # 37
    result.report.preview()                 # first 20 added codes
    result.provenance["042111001"]          # Provenance.MISSING_IN_BASELINE
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import structlog

from psgc_shared.codes import LEVEL_ORDER, Level
from psgc_shared.models.geography import Entity

from psgc_pipeline.transforms.classify import ClassifyOutcome, Rejected

log = structlog.get_logger(__name__)


class Provenance(str, Enum):
    BASELINE = "baseline"
    MISSING_IN_BASELINE = "missing_in_baseline"


@dataclass
class MergeReport:
    added: dict[Level, int] = field(default_factory=lambda: {lv: 0 for lv in LEVEL_ORDER})
    duplicates: int = 0
    invalid: int = 0
    # Baseline placeholders replaced by a supplement record
    filled_placeholders: int = 0
    added_codes: list[str] = field(default_factory=list)
    preview_limit: int = 20

    @property
    def total_added(self) -> int:
        return sum(self.added.values())

    def preview(self, limit: int | None = None) -> list[str]:
        """First *limit* added codes, for display only; added_codes stays complete."""
        return self.added_codes[: self.preview_limit if limit is None else limit]

    def summary(self) -> dict[str, Any]:
        return {
            "added": {level.value: count for level, count in self.added.items()},
            "total_added": self.total_added,
            "duplicates": self.duplicates,
            "invalid": self.invalid,
            "filled_placeholders": self.filled_placeholders,
        }


@dataclass
class MergeResult:
    entities: list[Entity]
    provenance: dict[str, Provenance]
    seen: set[str]
    report: MergeReport

    def added(self) -> list[Entity]:
        return [
            e for e in self.entities
            if self.provenance.get(e.code) is Provenance.MISSING_IN_BASELINE
        ]


def merge(
    baseline: Iterable[ClassifyOutcome],
    supplements: Iterable[Iterable[ClassifyOutcome]],
    *,
    preview_limit: int = 20,
    seen: set[str] | None = None,
) -> MergeResult:
    """
    Merge *supplements* into *baseline* without overwriting baseline records.

    Args:
        baseline:      Baseline outcomes, reconciled or not (Rejected items
                       are counted; placeholders may be replaced).
        supplements:   One iterable of outcomes per supplementary source, in
                       priority order.
        preview_limit: Size of MergeReport.preview().
        seen:          Codes to treat as already present (e.g. persisted);
                       the updated copy is returned on the result.

    Returns:
        MergeResult with dependency-ordered entities and provenance per code.
    """
    report = MergeReport(preview_limit=preview_limit)
    merged: dict[str, Entity] = {}
    provenance: dict[str, Provenance] = {}
    seen = set(seen or ())
    placeholders: set[str] = set()

    for item in baseline:
        if isinstance(item, Rejected):
            report.invalid += 1
            continue
        merged[item.code] = item
        provenance[item.code] = Provenance.BASELINE
        seen.add(item.code)
        if item.is_placeholder:
            placeholders.add(item.code)
        else:
            placeholders.discard(item.code)

    for source_no, supplement in enumerate(supplements):
        for item in supplement:
            if isinstance(item, Rejected):
                report.invalid += 1
                continue
            if item.code in placeholders and not item.is_placeholder:
                placeholders.discard(item.code)
                report.filled_placeholders += 1
                log.debug(
                    "placeholder_replaced",
                    code=item.code,
                    was=merged[item.code].level.value,
                    now=item.level.value,
                )
            elif item.code in seen:
                report.duplicates += 1
                continue
            merged[item.code] = item
            provenance[item.code] = Provenance.MISSING_IN_BASELINE
            seen.add(item.code)
            report.added[item.level] += 1
            report.added_codes.append(item.code)
        log.debug("supplement_merged", supplement=source_no, total_added=report.total_added)

    rank = {level: i for i, level in enumerate(LEVEL_ORDER)}
    entities = sorted(merged.values(), key=lambda e: (rank[e.level], e.code))

    log.info(
        "merge_complete",
        baseline=sum(1 for p in provenance.values() if p is Provenance.BASELINE),
        added=report.total_added,
        duplicates=report.duplicates,
        invalid=report.invalid,
        filled_placeholders=report.filled_placeholders,
        preview=report.preview(),
    )
    return MergeResult(
        entities=entities, provenance=provenance, seen=seen, report=report
    )
