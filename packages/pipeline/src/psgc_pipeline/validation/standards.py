"""
validation/standards.py — Compare level counts against PSA reference totals.

A discrepancy is a normal reporting outcome, never an exception: every
level gets exactly one LevelCheck with outcome exact_match,
within_tolerance or out_of_range, and delta = actual - expected.

Usage:
    from psgc_pipeline.validation.standards import check_counts, count_levels
    from psgc_shared.models.standards import load_standards

    checks = check_counts(count_levels(entities), load_standards())
    for check in checks:
        print(check.key, check.outcome, check.delta)
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum

import polars as pl
import structlog

from psgc_shared.codes import LEVEL_ORDER, Level
from psgc_shared.models.geography import City, Entity
from psgc_shared.models.standards import LevelStandard, StandardsTable

log = structlog.get_logger(__name__)


class Outcome(str, Enum):
    EXACT_MATCH = "exact_match"
    WITHIN_TOLERANCE = "within_tolerance"
    OUT_OF_RANGE = "out_of_range"


@dataclass(frozen=True)
class LevelCheck:
    key: str
    actual: int
    expected: int
    tolerance: int
    outcome: Outcome
    delta: int

    @property
    def ok(self) -> bool:
        return self.outcome is not Outcome.OUT_OF_RANGE


def evaluate(key: str, actual: int, standard: LevelStandard) -> LevelCheck:
    delta = actual - standard.expected
    if delta == 0:
        outcome = Outcome.EXACT_MATCH
    elif abs(delta) <= standard.tolerance:
        outcome = Outcome.WITHIN_TOLERANCE
    else:
        outcome = Outcome.OUT_OF_RANGE
    return LevelCheck(
        key=key,
        actual=actual,
        expected=standard.expected,
        tolerance=standard.tolerance,
        outcome=outcome,
        delta=delta,
    )


def count_levels(entities: Iterable[Entity]) -> dict[Level, int]:
    counts = {level: 0 for level in LEVEL_ORDER}
    for entity in entities:
        counts[entity.level] += 1
    return counts


def check_counts(counts: Mapping[Level, int], table: StandardsTable) -> list[LevelCheck]:
    """One LevelCheck per level the standards table covers, in hierarchy order."""
    checks = [
        evaluate(level.value, counts.get(level, 0), table.levels[level])
        for level in LEVEL_ORDER
        if level in table.levels
    ]
    for check in checks:
        if not check.ok:
            log.warning(
                "standards_mismatch",
                entity_level=check.key,
                actual=check.actual,
                expected=check.expected,
                delta=check.delta,
                vintage=table.vintage,
            )
    return checks


def check_city_classes(cities: Iterable[City], table: StandardsTable) -> list[LevelCheck]:
    """Per city class (HUC/ICC/CC) counts; cities without a class are ignored."""
    counts: dict[str, int] = {key: 0 for key in table.city_classes}
    for city in cities:
        if city.city_class in counts:
            counts[city.city_class] += 1
    return [
        evaluate(key, counts[key], standard)
        for key, standard in table.city_classes.items()
    ]


def checks_frame(checks: Iterable[LevelCheck]) -> pl.DataFrame:
    """Tabular view of checks for CLI output."""
    return pl.DataFrame(
        [
            {
                "level": c.key,
                "actual": c.actual,
                "expected": c.expected,
                "delta": c.delta,
                "outcome": c.outcome.value,
            }
            for c in checks
        ],
        schema={
            "level": pl.String,
            "actual": pl.Int64,
            "expected": pl.Int64,
            "delta": pl.Int64,
            "outcome": pl.String,
        },
    )
