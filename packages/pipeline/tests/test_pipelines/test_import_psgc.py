"""
tests/test_pipelines/test_import_psgc.py — Import pipeline against in-memory DuckDB.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from psgc_shared.codes import Level
from psgc_shared.errors import ForeignKeyViolation, IssueKind

from psgc_pipeline.pipelines.import_psgc import run
from psgc_pipeline.validation.standards import Outcome

FIXTURES = Path(__file__).parent.parent / "fixtures"


class TestImportRecords:
    @pytest.mark.asyncio
    async def test_loads_in_dependency_order(self, store, sample_records, standards):
        result = await run(records=sample_records, store=store, standards=standards)

        assert result.records_read == len(sample_records)
        assert result.records_loaded == 11
        assert list(result.loaded) == [
            Level.REGION, Level.PROVINCE, Level.CITY, Level.MUNICIPALITY, Level.BARANGAY,
        ]
        assert store.count(Level.BARANGAY) == 4
        assert all(c.outcome is Outcome.EXACT_MATCH for c in result.checks)
        assert all(c.ok for c in result.city_class_checks)

    @pytest.mark.asyncio
    async def test_dry_run_writes_nothing(self, store, sample_records, standards):
        result = await run(records=sample_records, store=store, dry_run=True, standards=standards)
        assert result.dry_run
        assert result.records_loaded == 0
        assert store.count(Level.REGION) == 0
        # Standards are still checked against what would have been written
        assert {c.key: c.actual for c in result.checks}["barangay"] == 4

    @pytest.mark.asyncio
    async def test_partial_file_synthesizes_and_reports(self, store, standards):
        records = [{"code": "042111001", "name": "Batong Dalig"}, {"code": "", "name": "?"}]
        result = await run(records=records, store=store, standards=standards)

        report = result.reconciled.report
        assert report.total_rejected == 1
        assert report.counts[Level.MUNICIPALITY].synthesized == 1
        assert store.get(Level.MUNICIPALITY, "042111000").is_placeholder
        checks = {c.key: c for c in result.checks}
        assert checks["barangay"].delta == -3

    @pytest.mark.asyncio
    async def test_second_import_resolves_against_store(self, store, sample_records, standards):
        await run(records=sample_records, store=store, standards=standards)
        result = await run(
            records=[{"code": "137401003", "name": "Barangay 3"}], store=store, standards=standards
        )
        assert result.reconciled.report.total_synthesized == 0
        assert store.get(Level.BARANGAY, "137401003").city_code == "137401000"

    @pytest.mark.asyncio
    async def test_foreign_key_violation_aborts(self, store, sample_records, standards):
        def _skip_ancestors(outcomes, *, known=None, seen=None):
            from psgc_pipeline.transforms.reconcile import reconcile

            result = reconcile(outcomes, known=known, seen=seen)
            result.entities = [e for e in result.entities if e.level is not Level.PROVINCE]
            return result

        with patch("psgc_pipeline.pipelines.import_psgc.reconcile", side_effect=_skip_ancestors):
            with pytest.raises(ForeignKeyViolation):
                await run(records=sample_records, store=store, standards=standards)
        assert store.count(Level.REGION) == 0

    @pytest.mark.asyncio
    async def test_needs_input(self, store):
        with pytest.raises(ValueError):
            await run(store=store)


class TestImportFile:
    @pytest.mark.asyncio
    async def test_csv(self, store):
        result = await run(FIXTURES / "psgc_sample.csv", store=store)

        assert result.records_read == 7
        report = result.reconciled.report
        assert report.counts[Level.CITY].duplicate == 1
        assert report.issues_of(IssueKind.UNSUPPORTED_LEVEL)
        assert store.get(Level.CITY, "137401000").income_class == "Special"
        assert store.count(Level.BARANGAY) == 2

        # Against the bundled national totals this file is far off
        checks = {c.key: c for c in result.checks}
        assert checks["barangay"].outcome is Outcome.OUT_OF_RANGE
        assert checks["barangay"].delta == 2 - 42011

    @pytest.mark.asyncio
    async def test_summary_is_serializable(self, store):
        import json

        result = await run(FIXTURES / "psgc_cloud_sample.json", store=store)
        summary = json.loads(json.dumps(result.summary()))
        assert summary["records_loaded"] == 6
        assert summary["reconcile"]["barangay"]["created"] == 2
