"""
tests/conftest.py — Shared pytest fixtures for the pipeline test suite.

Provides:
  fixture_path()   — resolves paths to tests/fixtures/
  store()          — GeoStore over a fresh in-memory DuckDB
  file_store()     — settings.duckdb_path pointed at a temp file (CLI tests)
  sample_records   — raw provider-style records for two small regions
  standards        — a StandardsTable sized to sample_records
  mock_http        — configured respx router for faking HTTP responses
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import duckdb
import pytest
import respx

from psgc_shared import db
from psgc_shared.codes import Level
from psgc_shared.config import settings
from psgc_shared.models.standards import LevelStandard, StandardsTable

from psgc_pipeline.loaders.duckdb_loader import GeoStore

FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

@pytest.fixture
def fixture_path() -> Path:
    return FIXTURES_DIR


# ---------------------------------------------------------------------------
# DuckDB store
# ---------------------------------------------------------------------------

@pytest.fixture
def store() -> GeoStore:
    """A GeoStore with the schema created, backed by :memory:."""
    conn = duckdb.connect(":memory:")
    geo = GeoStore(conn)
    geo.init_schema()
    yield geo
    conn.close()


@pytest.fixture
def file_store(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """
    Point settings.duckdb_path at a temp file and reset the connection
    singleton, so code that calls GeoStore() without arguments is isolated.
    """
    path = tmp_path / "psgc.duckdb"
    monkeypatch.setattr(settings, "duckdb_path", str(path))
    db.reset_duckdb_connection()
    yield path
    db.reset_duckdb_connection()


# ---------------------------------------------------------------------------
# Sample records
# ---------------------------------------------------------------------------

@pytest.fixture
def sample_records() -> list[dict[str, Any]]:
    """
    Two regions as a PSA-style export would carry them: mixed key
    spellings, a 10-digit code, an Excel float, and a barangay with an
    explicit city code.
    """
    return [
        {"Code": "130000000", "Name": "National Capital Region (NCR)", "Type": "Reg"},
        {"Code": "137400000", "Name": "NCR, Second District", "Type": "Prov"},
        {"Code": "0137401000", "Name": "City of Manila", "City Class": "HUC"},
        {"Code": "137401001", "Name": "Barangay 1", "city_code": "137401000"},
        {"Code": "137401002", "Name": "Barangay 2"},
        {"Code": "040000000", "Name": "Region IV-A (CALABARZON)"},
        {"Code": 42100000.0, "Name": "Cavite"},
        {"Code": "042103000", "Name": "Bacoor City", "City Class": "CC"},
        {"Code": "042111000", "Name": "Kawit", "Type": "Mun"},
        {"Code": "042111001", "Name": "Batong Dalig"},
        {"Code": "042103001", "Name": "Alima"},
    ]


@pytest.fixture
def standards() -> StandardsTable:
    """Reference totals that sample_records meets exactly."""
    return StandardsTable(
        vintage="test",
        levels={
            Level.REGION: LevelStandard(expected=2),
            Level.PROVINCE: LevelStandard(expected=2),
            Level.CITY: LevelStandard(expected=2),
            Level.MUNICIPALITY: LevelStandard(expected=1),
            Level.BARANGAY: LevelStandard(expected=4, tolerance=1),
        },
        city_classes={
            "HUC": LevelStandard(expected=1),
            "ICC": LevelStandard(expected=0),
            "CC": LevelStandard(expected=1),
        },
    )


# ---------------------------------------------------------------------------
# respx HTTP mock router
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_http():
    """
    Activate the respx mock router for all httpx requests.

    Usage in tests:
        def test_something(mock_http):
            mock_http.get("https://...").mock(return_value=httpx.Response(200, json={...}))
    """
    with respx.mock(assert_all_called=False) as router:
        yield router
