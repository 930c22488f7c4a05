"""Health check and API info endpoints."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter

from psgc_api import __version__

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
async def health() -> dict:
    return {
        "status": "ok",
        "message": "PSGC API is running",
        "version": __version__,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("")
async def info() -> dict:
    return {
        "name": "Philippine Standard Geographic Code (PSGC) API",
        "version": __version__,
        "description": "API for accessing PSGC data from the Philippine Statistics Authority (PSA)",
        "endpoints": {
            table: f"/api/v1/{table}"
            for table in ("regions", "provinces", "cities", "municipalities", "barangays", "search")
        },
        "documentation": "https://psa.gov.ph/classification/psgc/",
    }
