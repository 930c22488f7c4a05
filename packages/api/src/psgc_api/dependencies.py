"""Shared FastAPI dependencies."""

from __future__ import annotations

from pathlib import Path

import duckdb
import structlog
from fastapi import HTTPException

from psgc_shared.config import settings
from psgc_shared.db import get_duckdb_connection

from psgc_pipeline.loaders.duckdb_loader import GeoStore

logger = structlog.get_logger()


def _unavailable(message: str) -> HTTPException:
    return HTTPException(status_code=503, detail=message)


def get_store() -> GeoStore:
    """
    The geography store, opened read-only; the API never writes.

    A database that has not been imported yet is a 503, not a 500 on
    every route.
    """
    path = Path(settings.duckdb_path)
    if not path.is_file():
        logger.error("database_missing", path=str(path))
        raise _unavailable(f"PSGC database not found at {path}; run `psgc import` first")
    try:
        return GeoStore(get_duckdb_connection(read_only=True))
    except duckdb.IOException as exc:
        logger.error("database_unreadable", path=str(path), error=str(exc))
        raise _unavailable(f"PSGC database at {path} could not be opened") from exc


__all__ = ["GeoStore", "get_store"]
