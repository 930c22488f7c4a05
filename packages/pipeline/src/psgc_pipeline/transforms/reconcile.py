"""
transforms/reconcile.py — Hierarchy reconciler for one import batch.

Takes classified entities (and Rejected outcomes) and returns a batch in
which every parent reference resolves, either to an entity in the batch
or to one already persisted (via the KnownCodes protocol):

  - duplicates:  the same code twice → last one wins, counted per level
  - barangays:   city_code / municipality_code resolved from the code
                 prefix, City set first, then Municipality set
  - ancestors:   a referenced region/province/city/municipality that exists
                 nowhere is synthesized as a placeholder and logged

The duplicate-detection set is passed in and handed back, so a caller
reconciling several batches decides how long "seen" lives.

Usage:
    from psgc_pipeline.transforms.reconcile import reconcile

    result = reconcile(outcomes, known=store)
    result.entities                 # dependency-ordered, parents first
    result.report.counts[Level.BARANGAY].duplicate
    result.report.issues            # list[RecordIssue]
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Protocol

import structlog

from psgc_shared.codes import LEVEL_ORDER, CodeShape, Level, parent_code
from psgc_shared.errors import IssueKind
from psgc_shared.models.geography import (
    MODEL_FOR_LEVEL,
    PARENT_COLUMNS,
    Barangay,
    Entity,
)

from psgc_pipeline.transforms.classify import ClassifyOutcome, Rejected

log = structlog.get_logger(__name__)

# Levels whose parents are checked, children first so that placeholders
# synthesized for a lower level get their own ancestors checked later.
_ANCESTOR_PASS: tuple[Level, ...] = (
    Level.BARANGAY,
    Level.MUNICIPALITY,
    Level.CITY,
    Level.PROVINCE,
)

_PLACEHOLDER_PREFIX: dict[Level, tuple[str, int]] = {
    Level.REGION: ("Region", 2),
    Level.PROVINCE: ("Province", 4),
    Level.CITY: ("City", 6),
    Level.MUNICIPALITY: ("Municipality", 6),
}


class KnownCodes(Protocol):
    """Anything that can say whether a code is already persisted."""

    def exists(self, level: Level, code: str) -> bool: ...


# ---------------------------------------------------------------------------
# Report types
# ---------------------------------------------------------------------------


@dataclass
class LevelCounts:
    created: int = 0
    synthesized: int = 0
    duplicate: int = 0
    rejected: int = 0


@dataclass(frozen=True)
class RecordIssue:
    """One reportable event, locatable in the source file."""

    kind: IssueKind
    code: str | None
    name: str | None = None
    source_index: int | None = None
    level: Level | None = None
    detail: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "code": self.code,
            "name": self.name,
            "source_index": self.source_index,
            "level": self.level.value if self.level else None,
            "detail": self.detail,
        }


@dataclass
class ReconcileReport:
    counts: dict[Level, LevelCounts] = field(
        default_factory=lambda: {level: LevelCounts() for level in LEVEL_ORDER}
    )
    issues: list[RecordIssue] = field(default_factory=list)
    # Rejections whose level could not be determined (no usable code)
    rejected_unleveled: int = 0

    @property
    def total_rejected(self) -> int:
        return self.rejected_unleveled + sum(c.rejected for c in self.counts.values())

    @property
    def total_synthesized(self) -> int:
        return sum(c.synthesized for c in self.counts.values())

    @property
    def total_duplicates(self) -> int:
        return sum(c.duplicate for c in self.counts.values())

    def issues_of(self, kind: IssueKind) -> list[RecordIssue]:
        return [issue for issue in self.issues if issue.kind is kind]

    def summary(self) -> dict[str, Any]:
        return {
            level.value: {
                "created": counts.created,
                "synthesized": counts.synthesized,
                "duplicate": counts.duplicate,
                "rejected": counts.rejected,
            }
            for level, counts in self.counts.items()
        } | {"rejected_unleveled": self.rejected_unleveled}


@dataclass
class ReconcileResult:
    entities: list[Entity]
    seen: set[str]
    report: ReconcileReport

    def by_level(self, level: Level) -> list[Entity]:
        return [entity for entity in self.entities if entity.level is level]


# ---------------------------------------------------------------------------
# Reconciler
# ---------------------------------------------------------------------------


def placeholder(level: Level, code: str) -> Entity:
    """A minimal stand-in for an ancestor absent from every source."""
    label, digits = _PLACEHOLDER_PREFIX[level]
    values: dict[str, Any] = {
        "code": code,
        "name": f"{label} {code[:digits]}",
        "is_placeholder": True,
    }
    if level is not Level.REGION:
        values["region_code"] = parent_code(code, Level.REGION)
    if level in (Level.CITY, Level.MUNICIPALITY):
        values["province_code"] = parent_code(code, Level.PROVINCE)
    return MODEL_FOR_LEVEL[level](**values)  # type: ignore[return-value]


class _Batch:
    """Working state of one reconcile() call."""

    def __init__(self, known: KnownCodes | None, report: ReconcileReport) -> None:
        self.by_level: dict[Level, dict[str, Entity]] = {level: {} for level in LEVEL_ORDER}
        self.level_of: dict[str, Level] = {}
        self.known = known
        self.report = report

    def put(self, entity: Entity) -> None:
        previous = self.level_of.get(entity.code)
        if previous is not None and previous is not entity.level:
            del self.by_level[previous][entity.code]
        self.by_level[entity.level][entity.code] = entity
        self.level_of[entity.code] = entity.level

    def in_batch(self, level: Level, code: str) -> bool:
        return code in self.by_level[level]

    def present(self, level: Level, code: str) -> bool:
        if self.in_batch(level, code):
            return True
        return self.known is not None and self.known.exists(level, code)

    def synthesize(self, level: Level, code: str, child: Entity) -> None:
        stub = placeholder(level, code)
        self.put(stub)
        self.report.counts[level].synthesized += 1
        self.report.issues.append(
            RecordIssue(
                IssueKind.ANCESTOR_MISSING,
                code,
                stub.name,
                level=level,
                detail=f"referenced by {child.level.value} {child.code}",
            )
        )
        log.warning(
            "ancestor_synthesized",
            entity_level=level.value,
            code=code,
            child_level=child.level.value,
            child_code=child.code,
        )

    def ordered(self) -> list[Entity]:
        return [
            self.by_level[level][code]
            for level in LEVEL_ORDER
            for code in sorted(self.by_level[level])
        ]


def _resolve_barangay(batch: _Batch, barangay: Barangay) -> Barangay:
    """Attach *barangay* to exactly one of city/municipality by code prefix."""
    prefix = parent_code(barangay.code, CodeShape.CITY_MUNICIPALITY)
    declared_level = Level.CITY if barangay.city_code else Level.MUNICIPALITY
    declared = barangay.parent_code

    if declared is not None and declared != prefix:
        batch.report.issues.append(
            RecordIssue(
                IssueKind.PARENT_MISMATCH,
                barangay.code,
                barangay.name,
                level=Level.BARANGAY,
                detail=f"declared parent {declared} does not match prefix {prefix}",
            )
        )
        declared = None

    if declared is not None:
        other = Level.MUNICIPALITY if declared_level is Level.CITY else Level.CITY
        if batch.present(declared_level, prefix) or not batch.present(other, prefix):
            level = declared_level
        else:
            batch.report.issues.append(
                RecordIssue(
                    IssueKind.PARENT_MISMATCH,
                    barangay.code,
                    barangay.name,
                    level=Level.BARANGAY,
                    detail=f"{prefix} is a {other.value}, not a {declared_level.value}",
                )
            )
            level = other
    elif batch.in_batch(Level.CITY, prefix):
        level = Level.CITY
    elif batch.in_batch(Level.MUNICIPALITY, prefix):
        level = Level.MUNICIPALITY
    elif batch.known is not None and batch.known.exists(Level.CITY, prefix):
        level = Level.CITY
    else:
        # Unknown parent defaults to Municipality; a placeholder follows
        # in the ancestor pass when it is absent from the store too.
        level = Level.MUNICIPALITY

    city_code = prefix if level is Level.CITY else None
    municipality_code = prefix if level is Level.MUNICIPALITY else None
    if barangay.city_code == city_code and barangay.municipality_code == municipality_code:
        return barangay
    return barangay.model_copy(
        update={"city_code": city_code, "municipality_code": municipality_code}
    )


def reconcile(
    items: Iterable[ClassifyOutcome],
    *,
    known: KnownCodes | None = None,
    seen: set[str] | None = None,
) -> ReconcileResult:
    """
    Reconcile one batch so that every parent reference resolves.

    Args:
        items: Classified entities and Rejected outcomes, in source order.
        known: Already-persisted codes (usually the GeoStore).
        seen:  Codes seen in earlier batches; updated copy is returned.

    Returns:
        ReconcileResult with dependency-ordered entities, the updated seen
        set and a per-level report.
    """
    report = ReconcileReport()
    batch = _Batch(known, report)
    seen = set(seen or ())
    received = 0

    for index, item in enumerate(items):
        received += 1
        if isinstance(item, Rejected):
            if item.level is not None:
                report.counts[item.level].rejected += 1
            else:
                report.rejected_unleveled += 1
            report.issues.append(
                RecordIssue(
                    item.issue_kind,
                    item.raw_code,
                    item.name,
                    item.source_index,
                    item.level,
                    item.detail or item.reason.value,
                )
            )
            continue

        if item.code in seen:
            report.counts[item.level].duplicate += 1
            report.issues.append(
                RecordIssue(
                    IssueKind.DUPLICATE_CODE,
                    item.code,
                    item.name,
                    index,
                    item.level,
                    "last occurrence wins",
                )
            )
        seen.add(item.code)
        batch.put(item)

    for code, barangay in list(batch.by_level[Level.BARANGAY].items()):
        batch.by_level[Level.BARANGAY][code] = _resolve_barangay(batch, barangay)

    for level in LEVEL_ORDER:
        report.counts[level].created = len(batch.by_level[level])

    for level in _ANCESTOR_PASS:
        for entity in list(batch.by_level[level].values()):
            for column, parent_level in PARENT_COLUMNS[level]:
                parent = getattr(entity, column)
                if parent is not None and not batch.present(parent_level, parent):
                    batch.synthesize(parent_level, parent, entity)
                    seen.add(parent)

    entities = batch.ordered()
    log.info(
        "batch_reconciled",
        received=received,
        entities=len(entities),
        synthesized=report.total_synthesized,
        duplicates=report.total_duplicates,
        rejected=report.total_rejected,
    )
    return ReconcileResult(entities=entities, seen=seen, report=report)
