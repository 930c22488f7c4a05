"""Shared test fixtures for psgc-api."""

from __future__ import annotations

import duckdb
import pytest
from fastapi.testclient import TestClient

from psgc_pipeline.loaders.duckdb_loader import GeoStore
from psgc_pipeline.transforms.classify import classify_records
from psgc_pipeline.transforms.reconcile import reconcile

# Two regions: NCR with one city, CALABARZON with a city and a municipality
RECORDS = [
    {"code": "130000000", "name": "National Capital Region (NCR)"},
    {"code": "137400000", "name": "NCR, Second District", "type": "Prov"},
    {"code": "137401000", "name": "City of Manila", "city_class": "HUC"},
    {"code": "137401001", "name": "Barangay 1"},
    {"code": "137401002", "name": "Barangay 2"},
    {"code": "040000000", "name": "Region IV-A (CALABARZON)"},
    {"code": "042100000", "name": "Cavite"},
    {"code": "042103000", "name": "Bacoor City", "city_class": "CC"},
    {"code": "042111000", "name": "Kawit", "type": "Mun"},
    {"code": "042111001", "name": "Batong Dalig"},
    {"code": "042103001", "name": "Alima"},
]


@pytest.fixture(autouse=True)
def _clear_caches():
    """Clear all in-memory caches between tests."""
    from psgc_api.utils.cache import geography_cache, search_cache

    yield
    for cache in (geography_cache, search_cache):
        cache.clear()


@pytest.fixture()
def store():
    """In-memory GeoStore loaded with RECORDS."""
    conn = duckdb.connect(":memory:")
    geo = GeoStore(conn)
    geo.init_schema()
    geo.load(reconcile(classify_records(RECORDS)).entities)
    yield geo
    conn.close()


@pytest.fixture()
def app(store):
    """Test FastAPI app reading from the in-memory store."""
    from psgc_api.app import create_app
    from psgc_api.dependencies import get_store

    application = create_app()
    application.dependency_overrides[get_store] = lambda: store
    return application


@pytest.fixture()
def client(app):
    return TestClient(app)
