"""
sources/files.py — CSV / JSON / Excel exports from PSA, DILG and others.

Every value is read as a string (or left as the JSON scalar) so codes
keep their leading zeros; the classifier normalizes them afterwards.

Excel workbooks from the PSA carry the data on a sheet named "PSGC";
when it is present it is used, otherwise the first sheet.

Usage:
    source = FileSource("data/PSGC-3Q-2025-Publication-Datafile.xlsx")
    records = await source.run()            # list[dict[str, Any]]

    records = await FileSource("psgc.json").run()
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Literal

import polars as pl

from psgc_shared.codes import LEVEL_TABLES

from psgc_pipeline.sources.base import BaseSource, as_text

FileFormat = Literal["csv", "json", "excel"]

_SUFFIX_FORMATS: dict[str, FileFormat] = {
    ".csv": "csv",
    ".txt": "csv",
    ".json": "json",
    ".xlsx": "excel",
    ".xls": "excel",
}

DEFAULT_SHEET = "PSGC"

# Wrapper keys used by JSON exports that nest the record list
_JSON_LIST_KEYS = ("data", "records", "items")

_TABLE_LEVELS: dict[str, str] = {table: level.value for level, table in LEVEL_TABLES.items()}


def detect_format(path: Path) -> FileFormat:
    try:
        return _SUFFIX_FORMATS[path.suffix.lower()]
    except KeyError:
        raise ValueError(f"Cannot infer file format from {path.name!r}; pass format=") from None


class FileSource(BaseSource):
    """Reads one local file into a raw record batch."""

    name = "file"

    def __init__(
        self,
        path: str | Path,
        format: FileFormat | None = None,
        *,
        sheet_name: str | None = None,
    ) -> None:
        super().__init__()
        self._path = Path(path)
        self._format: FileFormat = format or detect_format(self._path)
        self._sheet_name = sheet_name
        self._log = self._log.bind(path=str(self._path), format=self._format)

    @property
    def path(self) -> Path:
        return self._path

    async def extract(self, **kwargs: Any) -> pl.DataFrame:
        if not self._path.is_file():
            raise FileNotFoundError(self._path)
        if self._format == "csv":
            return pl.read_csv(self._path, infer_schema_length=0, encoding="utf8-lossy")
        if self._format == "json":
            return self._read_json()
        return self._read_excel()

    def _read_json(self) -> pl.DataFrame:
        payload = json.loads(self._path.read_text(encoding="utf-8"))
        if isinstance(payload, dict):
            for key in _JSON_LIST_KEYS:
                if isinstance(payload.get(key), list):
                    payload = payload[key]
                    break
            else:
                # {"regions": [...], "provinces": [...], ...} with the level as key
                payload = [
                    {"type": _TABLE_LEVELS[key], **row}
                    for key, rows in payload.items()
                    if key in _TABLE_LEVELS and isinstance(rows, list)
                    for row in rows
                ]
        if not isinstance(payload, list):
            raise ValueError(f"{self._path.name}: expected a list of records")
        rows = [row for row in payload if isinstance(row, dict)]
        if not rows:
            return pl.DataFrame()
        columns = list(dict.fromkeys(key for row in rows for key in row))
        return pl.DataFrame(
            {col: [as_text(row.get(col)) for row in rows] for col in columns},
            schema={col: pl.String for col in columns},
        )

    def _read_excel(self) -> pl.DataFrame:
        sheet = self._sheet_name
        if sheet is None:
            sheets = pl.read_excel(self._path, sheet_id=0)
            if DEFAULT_SHEET in sheets:
                frame = sheets[DEFAULT_SHEET]
            else:
                self._log.info("default_sheet_missing", sheets=list(sheets))
                frame = next(iter(sheets.values()))
        else:
            frame = pl.read_excel(self._path, sheet_name=sheet)
        # Numeric cells come back as floats ("137401000.0"); normalize() strips that
        return frame.with_columns(pl.all().cast(pl.String))

    async def get_metadata(self) -> dict[str, Any]:
        return {
            "source_name": self.name,
            "path": str(self._path),
            "format": self._format,
            "size_bytes": self._path.stat().st_size if self._path.exists() else None,
        }

