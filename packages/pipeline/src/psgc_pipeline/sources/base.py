"""
sources/base.py — Abstract base class for raw record sources.

Each concrete source must implement:
  extract()      — read/fetch raw data, return a polars DataFrame
  get_metadata() — return dict with source info for logs and reports

transform() turns the frame into the format-agnostic batch the classifier
consumes: a list of field-name → value mappings, one per source row, with
fully blank rows dropped. run() orchestrates extract → transform with
timing and logging; pipelines call run() rather than the individual
methods.
"""

from __future__ import annotations

import json
import time
from abc import ABC, abstractmethod
from typing import Any

import polars as pl
import structlog

log = structlog.get_logger(__name__)

RawBatch = list[dict[str, Any]]


def as_text(value: Any) -> str | None:
    """Render a parsed scalar as text so codes keep their digits verbatim."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


class BaseSource(ABC):
    """Abstract base for psgc record sources."""

    # Override in subclass — used for logging
    name: str = "unknown"

    def __init__(self) -> None:
        self._log = log.bind(source_name=self.name)

    # ------------------------------------------------------------------
    # Abstract interface
    # ------------------------------------------------------------------

    @abstractmethod
    async def extract(self, **kwargs: Any) -> pl.DataFrame:
        """
        Read the raw rows with every original column preserved.

        Returns:
            Raw polars DataFrame (values as strings where the format allows).
        """
        ...

    @abstractmethod
    async def get_metadata(self) -> dict[str, Any]:
        """Return source-level metadata (source_name, location, description)."""
        ...

    def transform(self, raw: pl.DataFrame) -> RawBatch:
        """Rows as dicts, skipping rows where every cell is null or blank."""
        if raw.is_empty():
            return []
        blank = pl.all_horizontal(
            pl.col(c).is_null() | (pl.col(c).cast(pl.String).str.strip_chars() == "")
            for c in raw.columns
        )
        return raw.filter(~blank).to_dicts()

    # ------------------------------------------------------------------
    # Orchestration — pipelines call this
    # ------------------------------------------------------------------

    async def run(self, **kwargs: Any) -> RawBatch:
        """
        Extract + transform in sequence with timing and structured logging.

        Raises:
            Any exception from extract() or transform() after logging it.
        """
        run_log = self._log.bind(**{k: str(v) for k, v in kwargs.items()})
        run_log.info("source_run_start")

        t0 = time.monotonic()
        try:
            raw = await self.extract(**kwargs)
            run_log.info(
                "extract_complete",
                raw_rows=len(raw),
                raw_cols=raw.width,
                duration_ms=int((time.monotonic() - t0) * 1000),
            )

            records = self.transform(raw)
            run_log.info(
                "source_run_complete",
                total_duration_ms=int((time.monotonic() - t0) * 1000),
                records=len(records),
            )
            return records

        except Exception as exc:
            run_log.error(
                "source_run_failed",
                error=str(exc),
                duration_ms=int((time.monotonic() - t0) * 1000),
            )
            raise
