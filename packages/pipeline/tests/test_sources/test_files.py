"""
tests/test_sources/test_files.py — FileSource over CSV and JSON fixtures.
"""

from __future__ import annotations

import json
from pathlib import Path

import polars as pl
import pytest

from psgc_shared.models.geography import City

from psgc_pipeline.sources.files import FileSource, detect_format
from psgc_pipeline.transforms.classify import Rejected, classify_records

FIXTURES = Path(__file__).parent.parent / "fixtures"


class TestDetectFormat:
    @pytest.mark.parametrize(
        "name,fmt",
        [("a.csv", "csv"), ("a.JSON", "json"), ("a.xlsx", "excel"), ("a.xls", "excel")],
    )
    def test_by_suffix(self, name, fmt):
        assert detect_format(Path(name)) == fmt

    def test_unknown_suffix(self):
        with pytest.raises(ValueError):
            detect_format(Path("psgc.parquet"))


class TestCsv:
    @pytest.mark.asyncio
    async def test_reads_strings_and_skips_blank_rows(self):
        records = await FileSource(FIXTURES / "psgc_sample.csv").run()
        assert len(records) == 7
        # Leading zeros survive: nothing is inferred as an integer
        assert records[0]["10-digit PSGC"] == "0130000000"

    @pytest.mark.asyncio
    async def test_classifies(self):
        records = await FileSource(FIXTURES / "psgc_sample.csv").run()
        outcomes = classify_records(records)
        rejected = [o for o in outcomes if isinstance(o, Rejected)]
        assert len(rejected) == 1
        assert rejected[0].detail == "SubMun"
        manila = [o for o in outcomes if isinstance(o, City)]
        assert {c.income_class for c in manila} == {"1st", "Special"}

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            await FileSource(tmp_path / "nope.csv").run()


class TestJson:
    @pytest.mark.asyncio
    async def test_level_grouped_file_gets_type(self):
        records = await FileSource(FIXTURES / "psgc_cloud_sample.json").run()
        assert len(records) == 6
        by_code = {r["code"]: r for r in records}
        assert by_code["0042103000"]["type"] == "city"
        assert by_code["0042111000"]["type"] == "municipality"

    @pytest.mark.asyncio
    async def test_wrapped_list(self, tmp_path):
        path = tmp_path / "wrapped.json"
        path.write_text(json.dumps({"data": [{"code": 130000000, "name": "NCR"}]}))
        records = await FileSource(path).run()
        assert records == [{"code": "130000000", "name": "NCR"}]

    @pytest.mark.asyncio
    async def test_plain_list_with_mixed_keys(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text(
            json.dumps(
                [
                    {"code": "130000000", "name": "NCR"},
                    {"code": "137400000", "name": "Second District", "is_capital": False},
                ]
            )
        )
        records = await FileSource(path).run()
        assert records[0]["is_capital"] is None
        assert records[1]["is_capital"] == "false"

    @pytest.mark.asyncio
    async def test_scalar_payload_rejected(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("42")
        with pytest.raises(ValueError):
            await FileSource(path).run()

    @pytest.mark.asyncio
    async def test_empty_list(self, tmp_path):
        path = tmp_path / "empty.json"
        path.write_text("[]")
        assert await FileSource(path).run() == []


class TestMetadata:
    @pytest.mark.asyncio
    async def test_metadata(self):
        meta = await FileSource(FIXTURES / "psgc_sample.csv").get_metadata()
        assert meta["format"] == "csv"
        assert meta["size_bytes"] > 0

    def test_transform_drops_all_blank_rows(self):
        frame = pl.DataFrame({"code": ["130000000", None, " "], "name": ["NCR", None, ""]})
        assert FileSource("x.csv").transform(frame) == [{"code": "130000000", "name": "NCR"}]
