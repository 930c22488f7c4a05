"""
tests/test_shared/test_codes.py — PSGC code grammar: normalize, classify, parent_code.
"""

from __future__ import annotations

import pytest

from psgc_shared.codes import (
    CodeShape,
    Level,
    classify,
    code_prefix,
    is_canonical,
    level_rank,
    levels_for_shape,
    normalize,
    parent_code,
)
from psgc_shared.errors import InvalidAncestorRequest, InvalidCode, UnclassifiableCode

VALID_RAW = [
    "130000000",
    "0137401000",
    "13-74-01-000",
    " 137401001 ",
    137401001,
    42100000,
    42100000.0,
    "42100000.0",
    "1",
    "1234567890",
]


class TestNormalize:
    def test_canonical_code_unchanged(self):
        assert normalize("137401000") == "137401000"

    def test_ten_digit_leading_zero_dropped(self):
        # Leading zero is removed, not the trailing digit
        assert normalize("0137401000") == "137401000"

    def test_ten_digit_without_leading_zero_keeps_first_nine(self):
        assert normalize("1234567890") == "123456789"

    def test_short_code_left_padded(self):
        assert normalize("42100000") == "042100000"
        assert normalize(42100000) == "042100000"

    def test_excel_float_and_float_text(self):
        assert normalize(42100000.0) == "042100000"
        assert normalize("42100000.0") == "042100000"

    def test_non_digits_stripped(self):
        assert normalize("13-74-01-000") == "137401000"
        assert normalize(" 137401001 ") == "137401001"

    @pytest.mark.parametrize("raw", [None, "", "   ", "abc", "N/A"])
    def test_empty_or_digitless_rejected(self, raw):
        with pytest.raises(InvalidCode):
            normalize(raw)

    @pytest.mark.parametrize("raw", ["000000000", "0", 0, "00-00"])
    def test_all_zero_means_no_code(self, raw):
        with pytest.raises(InvalidCode) as exc_info:
            normalize(raw)
        assert "zero" in exc_info.value.reason

    def test_fractional_float_rejected(self):
        with pytest.raises(InvalidCode):
            normalize(1374.5)

    def test_bool_rejected(self):
        with pytest.raises(InvalidCode):
            normalize(True)

    @pytest.mark.parametrize("raw", VALID_RAW)
    def test_idempotent(self, raw):
        once = normalize(raw)
        assert normalize(once) == once
        assert is_canonical(once)

    def test_invalid_code_is_value_error(self):
        with pytest.raises(ValueError):
            normalize("")


class TestClassify:
    @pytest.mark.parametrize(
        "code,shape",
        [
            ("130000000", CodeShape.REGION),
            ("137400000", CodeShape.PROVINCE),
            ("137401000", CodeShape.CITY_MUNICIPALITY),
            ("042111000", CodeShape.CITY_MUNICIPALITY),
            ("137401001", CodeShape.BARANGAY),
            ("130000001", CodeShape.BARANGAY),
        ],
    )
    def test_shapes(self, code, shape):
        assert classify(code) is shape

    @pytest.mark.parametrize("code", [normalize(raw) for raw in VALID_RAW])
    def test_exactly_one_shape_matches(self, code):
        patterns = {
            CodeShape.REGION: code[2:] == "0000000",
            CodeShape.PROVINCE: code[4:] == "00000" and code[2:4] != "00",
            CodeShape.CITY_MUNICIPALITY: code[6:] == "000" and code[4:6] != "00",
            CodeShape.BARANGAY: code[6:] != "000",
        }
        matching = [shape for shape, hit in patterns.items() if hit]
        assert matching == [classify(code)]

    def test_non_canonical_rejected(self):
        with pytest.raises(InvalidCode):
            classify("13740100")

    def test_all_zero_unclassifiable(self):
        with pytest.raises(UnclassifiableCode):
            classify("000000000")

    def test_city_municipality_shape_has_two_levels(self):
        assert levels_for_shape(CodeShape.CITY_MUNICIPALITY) == (Level.CITY, Level.MUNICIPALITY)
        assert levels_for_shape(CodeShape.BARANGAY) == (Level.BARANGAY,)


class TestParentCode:
    def test_city_ancestors(self):
        assert parent_code("137401000", Level.PROVINCE) == "137400000"
        assert parent_code("137401000", Level.REGION) == "130000000"

    def test_barangay_parent_is_shared_city_municipality_code(self):
        assert parent_code("042111001", Level.MUNICIPALITY) == "042111000"
        assert parent_code("042111001", Level.CITY) == "042111000"
        assert parent_code("042111001", CodeShape.CITY_MUNICIPALITY) == "042111000"

    def test_barangay_reaches_region_in_three_steps(self):
        code = "137401001"
        steps = [CodeShape.CITY_MUNICIPALITY, CodeShape.PROVINCE, CodeShape.REGION]
        chain = []
        for shape in steps:
            code = parent_code(code, shape)
            chain.append(code)
        assert chain == ["137401000", "137400000", "130000000"]
        assert classify(chain[-1]) is CodeShape.REGION

    @pytest.mark.parametrize(
        "code,target",
        [
            ("130000000", Level.REGION),
            ("137400000", Level.CITY),
            ("137401000", Level.MUNICIPALITY),
            ("137401001", Level.BARANGAY),
        ],
    )
    def test_non_ancestor_rejected(self, code, target):
        with pytest.raises(InvalidAncestorRequest):
            parent_code(code, target)


class TestLevelHelpers:
    def test_rank_city_equals_municipality(self):
        assert level_rank(Level.CITY) == level_rank(Level.MUNICIPALITY) == 2
        assert level_rank(Level.REGION) < level_rank(Level.PROVINCE) < level_rank(Level.BARANGAY)

    def test_code_prefix(self):
        assert code_prefix("137401001", Level.REGION) == "13"
        assert code_prefix("137401001", Level.PROVINCE) == "1374"
        assert code_prefix("137401001", Level.CITY) == "137401"
        assert code_prefix("137401001", Level.BARANGAY) == "137401001"

    def test_table_names(self):
        assert Level.MUNICIPALITY.table == "municipalities"
        assert Level.CITY.table == "cities"
