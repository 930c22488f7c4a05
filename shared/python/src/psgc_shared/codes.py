"""
codes.py — PSGC code grammar.

Every geographic entity is keyed by a 9-digit Philippine Standard
Geographic Code laid out as RR PP MM BBB:

    Region             XX0000000
    Province           XXYY00000
    City/Municipality  XXYYZZ000
    Barangay           XXYYZZBBB   (BBB != 000)

Source files disagree on representation (integers that lost their leading
zero, Excel floats, 10-digit PSGC with a leading zero, dashed strings), so
every code passes through normalize() before anything else touches it.

Usage:
    from psgc_shared.codes import normalize, classify, parent_code, Level

    code = normalize("0137401000")              # "137401000"
    classify(code)                              # CodeShape.CITY_MUNICIPALITY
    parent_code(code, Level.PROVINCE)           # "137400000"
"""

from __future__ import annotations

import re
from enum import Enum

from psgc_shared.errors import InvalidAncestorRequest, InvalidCode, UnclassifiableCode

CODE_LENGTH = 9
NO_CODE = "0" * CODE_LENGTH

_NON_DIGIT = re.compile(r"\D")
_FLOAT_TEXT = re.compile(r"^\s*(\d+)\.0*\s*$")
_CANONICAL = re.compile(r"^\d{9}$")


class Level(str, Enum):
    REGION = "region"
    PROVINCE = "province"
    CITY = "city"
    MUNICIPALITY = "municipality"
    BARANGAY = "barangay"

    @property
    def table(self) -> str:
        return LEVEL_TABLES[self]


class CodeShape(str, Enum):
    REGION = "region"
    PROVINCE = "province"
    CITY_MUNICIPALITY = "city_municipality"
    BARANGAY = "barangay"


# Dependency order: parents are always loaded before children.
LEVEL_ORDER: tuple[Level, ...] = (
    Level.REGION,
    Level.PROVINCE,
    Level.CITY,
    Level.MUNICIPALITY,
    Level.BARANGAY,
)

LEVEL_TABLES: dict[Level, str] = {
    Level.REGION: "regions",
    Level.PROVINCE: "provinces",
    Level.CITY: "cities",
    Level.MUNICIPALITY: "municipalities",
    Level.BARANGAY: "barangays",
}

_SHAPE_RANK: dict[CodeShape, int] = {
    CodeShape.REGION: 0,
    CodeShape.PROVINCE: 1,
    CodeShape.CITY_MUNICIPALITY: 2,
    CodeShape.BARANGAY: 3,
}

_LEVEL_SHAPE: dict[Level, CodeShape] = {
    Level.REGION: CodeShape.REGION,
    Level.PROVINCE: CodeShape.PROVINCE,
    Level.CITY: CodeShape.CITY_MUNICIPALITY,
    Level.MUNICIPALITY: CodeShape.CITY_MUNICIPALITY,
    Level.BARANGAY: CodeShape.BARANGAY,
}

# Number of significant leading digits kept when truncating to an ancestor.
_PREFIX_DIGITS: dict[CodeShape, int] = {
    CodeShape.REGION: 2,
    CodeShape.PROVINCE: 4,
    CodeShape.CITY_MUNICIPALITY: 6,
}


# ---------------------------------------------------------------------------
# Level helpers
# ---------------------------------------------------------------------------


def shape_for_level(level: Level) -> CodeShape:
    """Return the code shape every entity of *level* must have."""
    return _LEVEL_SHAPE[Level(level)]


def levels_for_shape(shape: CodeShape) -> tuple[Level, ...]:
    """Return the levels a code of *shape* can belong to."""
    if shape is CodeShape.CITY_MUNICIPALITY:
        return (Level.CITY, Level.MUNICIPALITY)
    return (Level(shape.value),)


def level_rank(level: Level | CodeShape) -> int:
    """Depth in the hierarchy: region 0 … barangay 3 (city == municipality)."""
    if isinstance(level, CodeShape):
        return _SHAPE_RANK[level]
    return _SHAPE_RANK[shape_for_level(level)]


# ---------------------------------------------------------------------------
# Grammar
# ---------------------------------------------------------------------------


def normalize(raw: object) -> str:
    """
    Normalize a raw code to its canonical 9-digit form.

    Steps:
    1. Integral floats (Excel cells) and "123.0" strings lose the fraction
    2. Strip every non-digit character
    3. Exactly 10 digits with a leading zero → drop the leading zero
    4. Left-pad to 9 digits, keep the first 9

    Raises:
        InvalidCode: empty input, no digits, or the all-zero "no code" value.
    """
    if raw is None or isinstance(raw, bool):
        raise InvalidCode(raw, "empty")

    if isinstance(raw, float):
        if not raw.is_integer():
            raise InvalidCode(raw, "not an integral number")
        text = str(int(raw))
    else:
        text = str(raw)
        match = _FLOAT_TEXT.match(text)
        if match:
            text = match.group(1)

    digits = _NON_DIGIT.sub("", text)
    if not digits:
        raise InvalidCode(raw, "no digits")

    if len(digits) == CODE_LENGTH + 1 and digits.startswith("0"):
        digits = digits[1:]

    code = digits.zfill(CODE_LENGTH)[:CODE_LENGTH]
    if code == NO_CODE:
        raise InvalidCode(raw, "all zeros denotes no code")
    return code


def is_canonical(code: object) -> bool:
    """True if *code* is already a 9-digit, non-zero string."""
    return isinstance(code, str) and bool(_CANONICAL.match(code)) and code != NO_CODE


def classify(code: str) -> CodeShape:
    """
    Classify a canonical code by shape, most specific first.

    Raises:
        InvalidCode:        *code* is not a 9-digit string.
        UnclassifiableCode: no shape matches (only 000000000).
    """
    if not isinstance(code, str) or not _CANONICAL.match(code):
        raise InvalidCode(code, "not a canonical 9-digit code")

    if code[6:] != "000":
        return CodeShape.BARANGAY
    if code[4:6] != "00":
        return CodeShape.CITY_MUNICIPALITY
    if code[2:4] != "00":
        return CodeShape.PROVINCE
    if code[:2] != "00":
        return CodeShape.REGION
    raise UnclassifiableCode(code)


def parent_code(code: str, target: Level | CodeShape) -> str:
    """
    Derive the ancestor code at *target* level by positional truncation.

    City and Municipality share the XXYYZZ000 ancestor code.

    Raises:
        InvalidAncestorRequest: *target* is not strictly above the code's level.
    """
    shape = classify(code)
    target_shape = target if isinstance(target, CodeShape) else shape_for_level(target)
    if _SHAPE_RANK[target_shape] >= _SHAPE_RANK[shape]:
        raise InvalidAncestorRequest(code, getattr(target, "value", str(target)))

    keep = _PREFIX_DIGITS[target_shape]
    return code[:keep] + "0" * (CODE_LENGTH - keep)


def code_prefix(code: str, level: Level) -> str:
    """Return the significant leading digits of *code* for *level* ("13", "1374", …)."""
    shape = shape_for_level(level)
    if shape is CodeShape.BARANGAY:
        return code
    return code[: _PREFIX_DIGITS[shape]]
