"""
psgc_pipeline — ingestion pipeline for the PSGC geography store.

Architecture:
  sources/     — raw record batches from files (CSV/JSON/Excel) and PSGC Cloud
  transforms/  — entity classification, hierarchy reconciliation, merge/dedup
  validation/  — PSA standards checks and store integrity checks
  loaders/     — DuckDB GeoStore with dependency-ordered upserts
  pipelines/   — orchestrators that wire sources -> transforms -> loaders
  utils/       — structlog configuration, exponential-backoff retry decorator

Quick start:
    from psgc_pipeline.pipelines.import_psgc import run as run_import
    import asyncio
    result = asyncio.run(run_import("data/psgc-2025.xlsx", dry_run=True))

CLI:
    psgc import data/psgc-2025.xlsx
    psgc merge data/psgc-complete.json data/psgc-cloud.json -o data/merged.json
    psgc validate

Shared code from psgc_shared:
    from psgc_shared.config import settings
    from psgc_shared.codes import normalize, classify, parent_code, Level
    from psgc_shared.models import Region, Province, City, Municipality, Barangay
    from psgc_shared.db import get_duckdb_connection
"""

__version__ = "1.0.0"
