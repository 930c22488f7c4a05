"""
sources/psgc_cloud.py — PSGC Cloud REST API source adapter.

PSGC Cloud (https://psgc.cloud) republishes the PSA datafile as JSON,
one endpoint per level. Codes are 10 digits with a leading zero; the
classifier's normalize() drops it.

Endpoints:
  GET /regions
  GET /provinces
  GET /cities
  GET /municipalities
  GET /barangays
  GET /provinces/{code}/barangays   (fallback when /barangays fails)

Response shape (every endpoint):
  [ { "code": "1300000000", "name": "National Capital Region (NCR)", ... }, ... ]

A level endpoint that fails after retries is logged and skipped so the
other levels still come through. Each record gets a "type" field from its
endpoint, which settles City vs Municipality without name heuristics.

Usage:
    source = PSGCCloudSource()
    records = await source.run()                            # all levels
    records = await source.run(levels=[Level.REGION])       # just regions
"""

from __future__ import annotations

from typing import Any

import httpx
import polars as pl
import structlog

from psgc_shared.codes import LEVEL_ORDER, Level
from psgc_shared.config import settings

from psgc_pipeline.sources.base import BaseSource, as_text
from psgc_pipeline.utils.retry import with_retry

log = structlog.get_logger(__name__)


class PSGCCloudSource(BaseSource):
    """Pulls every PSGC level from the PSGC Cloud API."""

    name = "PSGC Cloud"

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        *,
        province_fallback: bool = True,
    ) -> None:
        super().__init__()
        self._base_url = (base_url or settings.psgc_cloud_url).rstrip("/")
        self._timeout = timeout or settings.http_timeout
        self._province_fallback = province_fallback
        self.failed_levels: list[Level] = []

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    @with_retry(max_attempts=3, base_delay=1.0, retry_on=(httpx.HTTPError,))
    async def _fetch_json(self, client: httpx.AsyncClient, path: str) -> list[dict[str, Any]]:
        url = f"{self._base_url}{path}"
        self._log.info("psgc_cloud_fetch", url=url)
        response = await client.get(url)
        response.raise_for_status()
        payload = response.json()
        if isinstance(payload, dict):
            payload = payload.get("data", [])
        return [row for row in payload if isinstance(row, dict)]

    async def _fetch_level(
        self, client: httpx.AsyncClient, level: Level
    ) -> list[dict[str, Any]] | None:
        try:
            return await self._fetch_json(client, f"/{level.table}")
        except httpx.HTTPError as exc:
            self._log.warning("psgc_cloud_level_failed", entity_level=level.value, error=str(exc))
            return None

    async def _barangays_by_province(
        self, client: httpx.AsyncClient, provinces: list[dict[str, Any]]
    ) -> list[dict[str, Any]]:
        rows: list[dict[str, Any]] = []
        for province in provinces:
            code = province.get("code")
            if not code:
                continue
            try:
                rows.extend(await self._fetch_json(client, f"/provinces/{code}/barangays"))
            except httpx.HTTPError as exc:
                self._log.warning(
                    "psgc_cloud_province_barangays_failed", province=str(code), error=str(exc)
                )
        self._log.info("psgc_cloud_barangays_by_province", provinces=len(provinces), rows=len(rows))
        return rows

    # ------------------------------------------------------------------
    # BaseSource interface
    # ------------------------------------------------------------------

    async def extract(
        self,
        *,
        levels: list[Level] | None = None,
        **kwargs: Any,
    ) -> pl.DataFrame:
        """
        Fetch the requested levels (default: all five).

        Returns:
            Raw polars DataFrame, all columns as strings, plus a "type"
            column naming the endpoint level.
        """
        wanted = [level for level in LEVEL_ORDER if levels is None or level in levels]
        self.failed_levels = []
        fetched: dict[Level, list[dict[str, Any]]] = {}

        async with httpx.AsyncClient(timeout=self._timeout) as client:
            for level in wanted:
                rows = await self._fetch_level(client, level)
                if rows is None and level is Level.BARANGAY and self._province_fallback:
                    provinces = fetched.get(Level.PROVINCE)
                    if provinces is None:
                        provinces = await self._fetch_level(client, Level.PROVINCE) or []
                    rows = await self._barangays_by_province(client, provinces) or None
                if rows is None:
                    self.failed_levels.append(level)
                    continue
                fetched[level] = rows

        records = [
            {**{k: as_text(v) for k, v in row.items()}, "type": level.value}
            for level, rows in fetched.items()
            for row in rows
        ]
        if not records:
            return pl.DataFrame()
        columns = list(dict.fromkeys(key for row in records for key in row))
        return pl.DataFrame(
            {col: [row.get(col) for row in records] for col in columns},
            schema={col: pl.String for col in columns},
        )

    async def get_metadata(self) -> dict[str, Any]:
        return {
            "source_name": self.name,
            "base_url": self._base_url,
            "failed_levels": [level.value for level in self.failed_levels],
            "description": "PSGC Cloud JSON API (PSA datafile mirror)",
        }

