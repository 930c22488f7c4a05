"""
db.py — DuckDB connection singleton and geography schema.

The pipeline writes and the API reads the same DuckDB file
(settings.duckdb_path). Bulk import runs as an exclusive maintenance
operation; the API never writes.

Usage:
    from psgc_shared.db import get_duckdb_connection, init_schema

    conn = get_duckdb_connection()
    init_schema(conn)
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Optional

import duckdb
import structlog

from psgc_shared.config import settings

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Schema (parent columns are checked by GeoStore before every write)
# ---------------------------------------------------------------------------
SCHEMA_SQL: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS regions (
        code VARCHAR PRIMARY KEY,
        name VARCHAR NOT NULL,
        island_group_code VARCHAR,
        island_group_name VARCHAR,
        is_placeholder BOOLEAN DEFAULT FALSE,
        created_at TIMESTAMP DEFAULT current_timestamp,
        updated_at TIMESTAMP DEFAULT current_timestamp
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS provinces (
        code VARCHAR PRIMARY KEY,
        name VARCHAR NOT NULL,
        region_code VARCHAR NOT NULL,
        island_group_code VARCHAR,
        is_placeholder BOOLEAN DEFAULT FALSE,
        created_at TIMESTAMP DEFAULT current_timestamp,
        updated_at TIMESTAMP DEFAULT current_timestamp
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS cities (
        code VARCHAR PRIMARY KEY,
        name VARCHAR NOT NULL,
        province_code VARCHAR NOT NULL,
        region_code VARCHAR NOT NULL,
        city_class VARCHAR,
        income_class VARCHAR,
        is_capital BOOLEAN DEFAULT FALSE,
        is_placeholder BOOLEAN DEFAULT FALSE,
        created_at TIMESTAMP DEFAULT current_timestamp,
        updated_at TIMESTAMP DEFAULT current_timestamp
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS municipalities (
        code VARCHAR PRIMARY KEY,
        name VARCHAR NOT NULL,
        province_code VARCHAR NOT NULL,
        region_code VARCHAR NOT NULL,
        income_class VARCHAR,
        is_capital BOOLEAN DEFAULT FALSE,
        is_placeholder BOOLEAN DEFAULT FALSE,
        created_at TIMESTAMP DEFAULT current_timestamp,
        updated_at TIMESTAMP DEFAULT current_timestamp
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS barangays (
        code VARCHAR PRIMARY KEY,
        name VARCHAR NOT NULL,
        city_code VARCHAR,
        municipality_code VARCHAR,
        province_code VARCHAR NOT NULL,
        region_code VARCHAR NOT NULL,
        urban_rural VARCHAR,
        is_placeholder BOOLEAN DEFAULT FALSE,
        created_at TIMESTAMP DEFAULT current_timestamp,
        updated_at TIMESTAMP DEFAULT current_timestamp
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_provinces_region ON provinces(region_code)",
    "CREATE INDEX IF NOT EXISTS idx_cities_province ON cities(province_code)",
    "CREATE INDEX IF NOT EXISTS idx_cities_region ON cities(region_code)",
    "CREATE INDEX IF NOT EXISTS idx_municipalities_province ON municipalities(province_code)",
    "CREATE INDEX IF NOT EXISTS idx_municipalities_region ON municipalities(region_code)",
    "CREATE INDEX IF NOT EXISTS idx_barangays_city ON barangays(city_code)",
    "CREATE INDEX IF NOT EXISTS idx_barangays_municipality ON barangays(municipality_code)",
    "CREATE INDEX IF NOT EXISTS idx_barangays_province ON barangays(province_code)",
    "CREATE INDEX IF NOT EXISTS idx_barangays_region ON barangays(region_code)",
)


def init_schema(conn: duckdb.DuckDBPyConnection) -> None:
    """Create the five geography tables and their parent indexes. Idempotent."""
    for statement in SCHEMA_SQL:
        conn.execute(statement)
    logger.debug("schema_initialized", statements=len(SCHEMA_SQL))


# ---------------------------------------------------------------------------
# DuckDB — single connection per process
# ---------------------------------------------------------------------------
_duckdb_lock = threading.Lock()
_duckdb_conn: Optional[duckdb.DuckDBPyConnection] = None


def get_duckdb_connection(*, read_only: bool = False) -> duckdb.DuckDBPyConnection:
    """
    Return a singleton DuckDB connection to the geography database.

    The file path is read from settings.duckdb_path.
    Creates parent directories if they don't exist.

    Args:
        read_only: Open the file read-only (the API's mode). Only honoured
                   on the first call in a process.

    Returns:
        duckdb.DuckDBPyConnection
    """
    global _duckdb_conn

    with _duckdb_lock:
        if _duckdb_conn is None:
            db_path = Path(settings.duckdb_path)
            if not read_only:
                db_path.parent.mkdir(parents=True, exist_ok=True)

            _duckdb_conn = duckdb.connect(str(db_path), read_only=read_only)
            if not read_only:
                init_schema(_duckdb_conn)

            logger.info("duckdb_connected", path=str(db_path), read_only=read_only)

        return _duckdb_conn


def reset_duckdb_connection() -> None:
    """Reset the DuckDB singleton (useful in tests)."""
    global _duckdb_conn
    with _duckdb_lock:
        if _duckdb_conn is not None:
            _duckdb_conn.close()
            _duckdb_conn = None
