"""
validation/integrity.py — Structural checks over the persisted store.

Each check is one read query against GeoStore and yields the offending
rows. After a reconciled import every check should come back empty; a
non-empty result means the store was written by something other than the
import pipeline, or the reconciler has a bug.

Usage:
    from psgc_pipeline.validation.integrity import run_integrity_checks

    for check in run_integrity_checks(store):
        if not check.passed:
            print(check.name, len(check.rows))
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import structlog

from psgc_pipeline.loaders.duckdb_loader import GeoStore

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class IntegrityCheck:
    name: str
    description: str
    sql: str


@dataclass
class IntegrityResult:
    name: str
    description: str
    rows: list[dict[str, Any]] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.rows


# table -> (shape pattern, digits that must not be all zero)
_PATTERNS: dict[str, tuple[str, str]] = {
    "regions": (r"^[0-9]{2}0{7}$", "substr(code, 1, 2)"),
    "provinces": (r"^[0-9]{4}0{5}$", "substr(code, 3, 2)"),
    "cities": (r"^[0-9]{6}000$", "substr(code, 5, 2)"),
    "municipalities": (r"^[0-9]{6}000$", "substr(code, 5, 2)"),
}

CHECKS: tuple[IntegrityCheck, ...] = (
    IntegrityCheck(
        "orphan_barangays",
        "Barangays with neither a city nor a municipality",
        "SELECT code, name FROM barangays "
        "WHERE city_code IS NULL AND municipality_code IS NULL ORDER BY code",
    ),
    IntegrityCheck(
        "double_parent_barangays",
        "Barangays with both a city and a municipality",
        "SELECT code, name, city_code, municipality_code FROM barangays "
        "WHERE city_code IS NOT NULL AND municipality_code IS NOT NULL ORDER BY code",
    ),
    *(
        IntegrityCheck(
            f"invalid_{table}_codes",
            f"{table.capitalize()} whose code does not have the {table} shape",
            f"SELECT code, name FROM {table} "
            f"WHERE NOT regexp_matches(code, '{pattern}') OR {significant} = '00' "
            "ORDER BY code",
        )
        for table, (pattern, significant) in _PATTERNS.items()
    ),
    IntegrityCheck(
        "invalid_barangays_codes",
        "Barangays whose code ends in 000 or is not 9 digits",
        "SELECT code, name FROM barangays "
        "WHERE code LIKE '%000' OR NOT regexp_matches(code, '^[0-9]{9}$') ORDER BY code",
    ),
    IntegrityCheck(
        "dangling_barangay_parents",
        "Barangays pointing at a city or municipality that does not exist",
        "SELECT b.code, b.name, b.city_code, b.municipality_code FROM barangays b "
        "LEFT JOIN cities c ON b.city_code = c.code "
        "LEFT JOIN municipalities m ON b.municipality_code = m.code "
        "WHERE (b.city_code IS NOT NULL AND c.code IS NULL) "
        "OR (b.municipality_code IS NOT NULL AND m.code IS NULL) ORDER BY b.code",
    ),
    IntegrityCheck(
        "dangling_city_provinces",
        "Cities pointing at a province that does not exist",
        "SELECT c.code, c.name, c.province_code FROM cities c "
        "LEFT JOIN provinces p ON c.province_code = p.code "
        "WHERE p.code IS NULL ORDER BY c.code",
    ),
    IntegrityCheck(
        "dangling_municipality_provinces",
        "Municipalities pointing at a province that does not exist",
        "SELECT m.code, m.name, m.province_code FROM municipalities m "
        "LEFT JOIN provinces p ON m.province_code = p.code "
        "WHERE p.code IS NULL ORDER BY m.code",
    ),
    IntegrityCheck(
        "dangling_province_regions",
        "Provinces pointing at a region that does not exist",
        "SELECT p.code, p.name, p.region_code FROM provinces p "
        "LEFT JOIN regions r ON p.region_code = r.code "
        "WHERE r.code IS NULL ORDER BY p.code",
    ),
    IntegrityCheck(
        "cross_level_duplicate_codes",
        "Codes stored in more than one table",
        "SELECT code, string_agg(tbl, ',' ORDER BY tbl) AS tables FROM ("
        + " UNION ALL ".join(
            f"SELECT code, '{table}' AS tbl FROM {table}"
            for table in ("regions", "provinces", "cities", "municipalities", "barangays")
        )
        + ") GROUP BY code HAVING count(*) > 1 ORDER BY code",
    ),
    IntegrityCheck(
        "barangay_prefix_mismatch",
        "Barangays whose parent code differs from the first 6 digits + 000",
        "SELECT code, name, city_code, municipality_code FROM barangays "
        "WHERE (city_code IS NOT NULL AND substr(code, 1, 6) || '000' != city_code) "
        "OR (municipality_code IS NOT NULL AND substr(code, 1, 6) || '000' != municipality_code) "
        "ORDER BY code",
    ),
)


def run_integrity_checks(store: GeoStore) -> list[IntegrityResult]:
    results = []
    for check in CHECKS:
        rows = store.fetch(check.sql)
        results.append(IntegrityResult(check.name, check.description, rows))
        if rows:
            log.warning("integrity_check_failed", check=check.name, rows=len(rows))
    log.info(
        "integrity_checks_complete",
        checks=len(results),
        failed=sum(1 for r in results if not r.passed),
    )
    return results
