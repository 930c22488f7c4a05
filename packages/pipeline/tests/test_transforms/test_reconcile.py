"""
tests/test_transforms/test_reconcile.py — Hierarchy reconciler.
"""

from __future__ import annotations

from psgc_shared.codes import LEVEL_ORDER, Level
from psgc_shared.errors import IssueKind
from psgc_shared.models.geography import Barangay, City, Municipality, Province, Region

from psgc_pipeline.transforms.classify import classify_records
from psgc_pipeline.transforms.reconcile import placeholder, reconcile


def _bgy(code: str, name: str = "Poblacion", **parents) -> Barangay:
    return Barangay(
        code=code,
        name=name,
        province_code=code[:4] + "00000",
        region_code=code[:2] + "0000000",
        **parents,
    )


def _munic(code: str, name: str) -> Municipality:
    return Municipality(
        code=code, name=name, province_code=code[:4] + "00000", region_code=code[:2] + "0000000"
    )


def _city(code: str, name: str) -> City:
    return City(
        code=code, name=name, province_code=code[:4] + "00000", region_code=code[:2] + "0000000"
    )


class _Known:
    """KnownCodes stand-in."""

    def __init__(self, codes: dict[Level, set[str]]) -> None:
        self.codes = codes

    def exists(self, level: Level, code: str) -> bool:
        return code in self.codes.get(level, set())


def _assert_hierarchy_closed(entities) -> None:
    codes = {(e.level, e.code) for e in entities}
    for e in entities:
        if isinstance(e, Barangay):
            assert (e.city_code is None) != (e.municipality_code is None)
            parent_level = Level.CITY if e.city_code else Level.MUNICIPALITY
            assert (parent_level, e.code[:6] + "000") in codes
        if not isinstance(e, Region):
            assert (Level.REGION, e.region_code) in codes
        if isinstance(e, (City, Municipality, Barangay)):
            assert (Level.PROVINCE, e.province_code) in codes


class TestBarangayResolution:
    def test_municipality_only_parent(self):
        result = reconcile(
            [
                Region(code="040000000", name="CALABARZON"),
                Province(code="042100000", name="Cavite", region_code="040000000"),
                _munic("042111000", "Kawit"),
                _bgy("042111001", "Batong Dalig"),
            ]
        )
        barangay = result.by_level(Level.BARANGAY)[0]
        assert barangay.municipality_code == "042111000"
        assert barangay.city_code is None
        assert result.report.total_synthesized == 0

    def test_code_reused_across_city_and_municipality_last_wins(self):
        result = reconcile(
            [_city("137401000", "City of Manila"), _munic("137401000", "Manila"), _bgy("137401001")]
        )
        # Same code twice: the later municipality wins, so the barangay follows it
        barangay = result.by_level(Level.BARANGAY)[0]
        assert barangay.municipality_code == "137401000"
        assert result.report.counts[Level.MUNICIPALITY].duplicate == 1
        assert not result.by_level(Level.CITY)

    def test_known_store_city(self):
        known = _Known({Level.CITY: {"137401000"}, Level.PROVINCE: {"137400000"},
                        Level.REGION: {"130000000"}})
        result = reconcile([_bgy("137401001")], known=known)
        barangay = result.entities[0]
        assert barangay.city_code == "137401000"
        assert result.report.total_synthesized == 0

    def test_unknown_parent_becomes_municipality_placeholder(self):
        result = reconcile([_bgy("042111001")])
        barangay = result.by_level(Level.BARANGAY)[0]
        assert barangay.municipality_code == "042111000"

        stub = result.by_level(Level.MUNICIPALITY)[0]
        assert stub.is_placeholder
        assert stub.name == "Municipality 042111"
        assert result.report.counts[Level.MUNICIPALITY].synthesized == 1
        assert result.report.counts[Level.PROVINCE].synthesized == 1
        assert result.report.counts[Level.REGION].synthesized == 1
        _assert_hierarchy_closed(result.entities)

    def test_declared_parent_mismatching_prefix_reresolved(self):
        result = reconcile(
            [_city("137401000", "City of Manila"), _bgy("137401001", city_code="137402000")]
        )
        barangay = result.by_level(Level.BARANGAY)[0]
        assert barangay.city_code == "137401000"
        mismatches = result.report.issues_of(IssueKind.PARENT_MISMATCH)
        assert len(mismatches) == 1
        assert mismatches[0].code == "137401001"

    def test_declared_city_switched_to_existing_municipality(self):
        result = reconcile([_munic("042111000", "Kawit"), _bgy("042111001", city_code="042111000")])
        barangay = result.by_level(Level.BARANGAY)[0]
        assert barangay.municipality_code == "042111000"
        assert barangay.city_code is None
        assert result.report.issues_of(IssueKind.PARENT_MISMATCH)

    def test_declared_city_synthesized_as_city(self):
        result = reconcile([_bgy("137401001", city_code="137401000")])
        city = result.by_level(Level.CITY)[0]
        assert city.is_placeholder and city.name == "City 137401"
        assert not result.by_level(Level.MUNICIPALITY)


class TestAncestorSynthesis:
    def test_missing_province_and_region(self):
        result = reconcile([_city("137401000", "City of Manila")])
        province = result.by_level(Level.PROVINCE)[0]
        region = result.by_level(Level.REGION)[0]
        assert province.code == "137400000" and province.name == "Province 1374"
        assert region.code == "130000000" and region.name == "Region 13"
        assert province.region_code == "130000000"
        kinds = {i.kind for i in result.report.issues}
        assert kinds == {IssueKind.ANCESTOR_MISSING}

    def test_known_ancestors_not_synthesized(self):
        known = _Known({Level.PROVINCE: {"137400000"}, Level.REGION: {"130000000"}})
        result = reconcile([_city("137401000", "City of Manila")], known=known)
        assert [e.code for e in result.entities] == ["137401000"]

    def test_placeholder_shapes(self):
        stub = placeholder(Level.CITY, "137401000")
        assert stub.province_code == "137400000" and stub.region_code == "130000000"
        assert placeholder(Level.REGION, "130000000").name == "Region 13"


class TestDuplicatesAndRejections:
    def test_last_occurrence_wins(self):
        result = reconcile(
            [Region(code="130000000", name="Old"), Region(code="130000000", name="NCR")]
        )
        assert [e.name for e in result.entities] == ["NCR"]
        assert result.report.counts[Level.REGION].duplicate == 1
        assert result.report.counts[Level.REGION].created == 1
        issue = result.report.issues_of(IssueKind.DUPLICATE_CODE)[0]
        assert issue.source_index == 1

    def test_seen_set_spans_batches(self):
        first = reconcile([Region(code="130000000", name="NCR")])
        second = reconcile([Region(code="130000000", name="NCR")], seen=first.seen)
        assert second.report.counts[Level.REGION].duplicate == 1
        assert "130000000" in second.seen

    def test_seen_not_mutated(self):
        seen = {"999999999"}
        result = reconcile([Region(code="130000000", name="NCR")], seen=seen)
        assert seen == {"999999999"}
        assert result.seen == {"999999999", "130000000"}

    def test_rejections_counted(self):
        outcomes = classify_records(
            [{"code": "", "name": "x"}, {"code": "130000000"}, {"code": "130000000", "name": "NCR"}]
        )
        result = reconcile(outcomes)
        assert result.report.rejected_unleveled == 2
        assert result.report.total_rejected == 2
        assert len(result.entities) == 1


class TestBatchProperties:
    def test_sample_records(self, sample_records):
        result = reconcile(classify_records(sample_records))
        _assert_hierarchy_closed(result.entities)
        assert result.report.total_synthesized == 0

        barangays = {b.code: b for b in result.by_level(Level.BARANGAY)}
        assert barangays["137401002"].city_code == "137401000"
        assert barangays["042111001"].municipality_code == "042111000"
        assert barangays["042103001"].city_code == "042103000"

    def test_dependency_order(self, sample_records):
        result = reconcile(classify_records(reversed(sample_records)))
        ranks = [LEVEL_ORDER.index(e.level) for e in result.entities]
        assert ranks == sorted(ranks)

    def test_idempotent(self, sample_records):
        once = reconcile(classify_records(sample_records))
        twice = reconcile(once.entities)
        assert twice.entities == once.entities
        assert twice.report.total_synthesized == 0
        assert twice.report.total_duplicates == 0

    def test_idempotent_with_synthesis(self):
        once = reconcile([_bgy("042111001"), _bgy("137401001", city_code="137401000")])
        twice = reconcile(once.entities)
        assert twice.entities == once.entities
