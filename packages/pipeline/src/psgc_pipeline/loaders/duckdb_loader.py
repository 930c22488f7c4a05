"""
loaders/duckdb_loader.py — GeoStore: the DuckDB-backed geography store.

All pipelines write through this module and the API reads through it.
The store:
  - Upserts by code (last import wins; created_at survives re-imports)
  - Moves a code between cities and municipalities when its level changes
  - Writes levels in dependency order inside one transaction
  - Refuses a write whose parent code is not stored yet (ForeignKeyViolation)
  - Offers the read operations the API needs: get, scan, list_by, search

DuckDB cannot update rows that are referenced by a FOREIGN KEY, which
rules out upserting parents, so parent references are checked here
before each write instead of being declared in the schema.

Usage:
    from psgc_pipeline.loaders.duckdb_loader import GeoStore

    store = GeoStore()                       # settings.duckdb_path
    results = store.load(reconciled.entities)
    results[Level.BARANGAY].records_loaded   # 42011

    store.exists(Level.CITY, "137401000")    # True
    store.list_by(Level.BARANGAY, "city_code", "137401000")
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal

import duckdb
import structlog

from psgc_shared.codes import LEVEL_ORDER, Level
from psgc_shared.db import get_duckdb_connection, init_schema
from psgc_shared.errors import ForeignKeyViolation
from psgc_shared.models.geography import MODEL_FOR_LEVEL, PARENT_COLUMNS, Entity

log = structlog.get_logger(__name__)

OrderBy = Literal["code", "name"]

_SIBLING: dict[Level, Level] = {Level.CITY: Level.MUNICIPALITY, Level.MUNICIPALITY: Level.CITY}

_FILTER_COLUMNS: dict[Level, frozenset[str]] = {
    level: frozenset(column for column, _ in PARENT_COLUMNS[level]) for level in LEVEL_ORDER
}


@dataclass
class LoadResult:
    """Summary of one table upsert."""

    table: str
    records_loaded: int = 0
    records_failed: int = 0
    errors: list[str] = field(default_factory=list)
    # Codes taken over from the other city/municipality table
    moved_codes: list[str] = field(default_factory=list)
    duration_ms: int = 0

    @property
    def success(self) -> bool:
        return self.records_failed == 0

    @property
    def status(self) -> str:
        if self.records_failed == 0:
            return "success"
        if self.records_loaded > 0:
            return "partial_failure"
        return "failure"


def _columns(level: Level) -> list[str]:
    model = MODEL_FOR_LEVEL[level]
    return [
        name for name in model.model_fields
        if name not in ("level", "created_at", "updated_at")
    ]


def _rows(cursor: duckdb.DuckDBPyConnection) -> list[dict[str, Any]]:
    names = [d[0] for d in cursor.description or ()]
    return [dict(zip(names, row)) for row in cursor.fetchall()]


class GeoStore:
    """
    Read/write access to the five geography tables.

    Every operation runs on its own cursor so the API can share one
    store across request threads.
    """

    def __init__(self, conn: duckdb.DuckDBPyConnection | None = None) -> None:
        self._conn = conn if conn is not None else get_duckdb_connection()

    @property
    def conn(self) -> duckdb.DuckDBPyConnection:
        return self._conn

    def init_schema(self) -> None:
        init_schema(self._conn)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _missing_parents(
        self,
        cur: duckdb.DuckDBPyConnection,
        level: Level,
        entities: Sequence[Entity],
    ) -> None:
        for column, parent_level in PARENT_COLUMNS[level]:
            referenced = {getattr(e, column) for e in entities} - {None}
            if not referenced:
                continue
            present = self._codes(cur, parent_level)
            missing = [
                (e.code, getattr(e, column))
                for e in entities
                if getattr(e, column) is not None and getattr(e, column) not in present
            ]
            if missing:
                log.error(
                    "foreign_key_violation",
                    table=level.table,
                    column=column,
                    missing=len(missing),
                )
                raise ForeignKeyViolation(level.table, column, missing)

    def _take_from_sibling(
        self,
        cur: duckdb.DuckDBPyConnection,
        level: Level,
        entities: Sequence[Entity],
    ) -> list[str]:
        """
        Move codes that are stored at the other city/municipality level.

        A municipality that becomes a city (or the reverse) keeps its code,
        so the old row is deleted and its barangays are re-pointed before
        the new row is written.
        """
        sibling = _SIBLING.get(level)
        if sibling is None:
            return []
        moved = sorted({e.code for e in entities} & self._codes(cur, sibling))
        for code in moved:
            cur.execute(
                f"UPDATE barangays SET {level.value}_code = ?, {sibling.value}_code = NULL, "
                f"updated_at = current_timestamp WHERE {sibling.value}_code = ?",
                [code, code],
            )
            cur.execute(f"DELETE FROM {sibling.table} WHERE code = ?", [code])
        if moved:
            log.warning(
                "codes_changed_level",
                from_table=sibling.table,
                to_table=level.table,
                codes=moved,
            )
        return moved

    def _upsert(
        self,
        cur: duckdb.DuckDBPyConnection,
        level: Level,
        entities: Sequence[Entity],
    ) -> LoadResult:
        result = LoadResult(table=level.table)
        t0 = time.monotonic()
        if not entities:
            return result

        # Last occurrence of a code wins
        entities = list({e.code: e for e in entities}.values())
        self._missing_parents(cur, level, entities)
        result.moved_codes = self._take_from_sibling(cur, level, entities)

        columns = _columns(level)
        existing = self._codes(cur, level)
        fresh = [e for e in entities if e.code not in existing]
        stale = [e for e in entities if e.code in existing]

        if fresh:
            placeholders = ", ".join("?" for _ in columns)
            cur.executemany(
                f"INSERT INTO {level.table} ({', '.join(columns)}) VALUES ({placeholders})",
                [[getattr(e, c) for c in columns] for e in fresh],
            )
        if stale:
            # created_at survives a re-import; updated_at moves
            assignments = ", ".join(f"{c} = ?" for c in columns if c != "code")
            cur.executemany(
                f"UPDATE {level.table} SET {assignments}, updated_at = current_timestamp "
                "WHERE code = ?",
                [[getattr(e, c) for c in columns if c != "code"] + [e.code] for e in stale],
            )

        result.records_loaded = len(entities)
        result.duration_ms = int((time.monotonic() - t0) * 1000)
        log.info(
            "upsert_complete",
            table=level.table,
            records_loaded=result.records_loaded,
            duration_ms=result.duration_ms,
        )
        return result

    def upsert(self, level: Level, entities: Iterable[Entity]) -> LoadResult:
        """
        Upsert entities of one level by code.

        Raises:
            ForeignKeyViolation: a parent code is not stored.
        """
        batch = [e for e in entities if e.level is level]
        cur = self._conn.cursor()
        try:
            return self._upsert(cur, level, batch)
        finally:
            cur.close()

    def load(self, entities: Iterable[Entity]) -> dict[Level, LoadResult]:
        """
        Write a reconciled batch, parents before children, in one transaction.

        Raises:
            ForeignKeyViolation: the batch was not reconciled; nothing is written.
        """
        grouped: dict[Level, list[Entity]] = {level: [] for level in LEVEL_ORDER}
        for entity in entities:
            grouped[entity.level].append(entity)

        cur = self._conn.cursor()
        try:
            cur.begin()
            results = {level: self._upsert(cur, level, grouped[level]) for level in LEVEL_ORDER}
            cur.commit()
        except Exception:
            cur.rollback()
            raise
        finally:
            cur.close()
        return results

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def fetch(self, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        """Run a read query and return rows as dicts."""
        cur = self._conn.cursor()
        try:
            cur.execute(sql, list(params))
            return _rows(cur)
        finally:
            cur.close()

    def _codes(self, cur: duckdb.DuckDBPyConnection, level: Level) -> set[str]:
        cur.execute(f"SELECT code FROM {level.table}")
        return {row[0] for row in cur.fetchall()}

    def codes(self, level: Level) -> set[str]:
        cur = self._conn.cursor()
        try:
            return self._codes(cur, level)
        finally:
            cur.close()

    def exists(self, level: Level, code: str) -> bool:
        return bool(self.fetch(f"SELECT 1 AS hit FROM {level.table} WHERE code = ?", [code]))

    def get(self, level: Level, code: str) -> Entity | None:
        rows = self.fetch(f"SELECT * FROM {level.table} WHERE code = ?", [code])
        if not rows:
            return None
        return MODEL_FOR_LEVEL[level].from_db_row(rows[0])  # type: ignore[return-value]

    def scan(
        self,
        level: Level,
        *,
        order_by: OrderBy = "code",
        limit: int | None = None,
    ) -> list[Entity]:
        """Full-table scan ordered by code (dependency-stable) or name."""
        sql = f"SELECT * FROM {level.table} ORDER BY {self._order(order_by)}"
        params: list[Any] = []
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)
        return self._models(level, self.fetch(sql, params))

    def list_by(
        self,
        level: Level,
        column: str,
        value: str,
        *,
        order_by: OrderBy = "name",
        limit: int | None = None,
    ) -> list[Entity]:
        """Entities of *level* whose parent *column* equals *value*."""
        if column not in _FILTER_COLUMNS[level]:
            raise ValueError(f"{level.table} has no parent column {column!r}")
        sql = f"SELECT * FROM {level.table} WHERE {column} = ? ORDER BY {self._order(order_by)}"
        params: list[Any] = [value]
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)
        return self._models(level, self.fetch(sql, params))

    def search(self, level: Level, q: str, *, limit: int | None = None) -> list[Entity]:
        """Case-insensitive substring match on name."""
        sql = (
            f"SELECT * FROM {level.table} "
            "WHERE contains(lower(name), lower(?)) ORDER BY name, code"
        )
        params: list[Any] = [q]
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)
        return self._models(level, self.fetch(sql, params))

    def count(self, level: Level) -> int:
        return self.fetch(f"SELECT count(*) AS n FROM {level.table}")[0]["n"]

    def counts(self) -> dict[Level, int]:
        return {level: self.count(level) for level in LEVEL_ORDER}

    def all_entities(self) -> list[Entity]:
        """Every stored entity, dependency-ordered."""
        return [e for level in LEVEL_ORDER for e in self.scan(level)]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _order(order_by: OrderBy) -> str:
        if order_by == "name":
            return "name, code"
        if order_by == "code":
            return "code"
        raise ValueError(f"unsupported order_by {order_by!r}")

    @staticmethod
    def _models(level: Level, rows: list[dict[str, Any]]) -> list[Entity]:
        model = MODEL_FOR_LEVEL[level]
        return [model.from_db_row(row) for row in rows]  # type: ignore[misc]
