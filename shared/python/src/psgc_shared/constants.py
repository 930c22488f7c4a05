"""
constants.py — Source field aliases and classification vocabulary.

Provider files name the same logical field many ways ("code", "PSGC",
"Correspondence Code", "10-digit PSGC" …). Aliases are listed in priority
order and matched against record keys after collapsing whitespace and
lowercasing, so "Income\\nClassification (DOF DO No. 074.2024)" matches
the prefix alias "income classification*".

Usage:
    from psgc_shared.constants import FIELD_ALIASES, CITY_NAME_PHRASES
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Logical field → ordered aliases ("*" suffix = prefix match)
# ---------------------------------------------------------------------------
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "code": (
        "code",
        "psgc_code",
        "psgc",
        "psgc code",
        "correspondence code",
        "10-digit psgc",
        "psgc code/geographic code",
        "geographic code",
    ),
    "name": (
        "name",
        "geographic area",
        "geographic area/name",
        "geographic area name",
        "name/geographic area",
        "area",
    ),
    "type": (
        "type",
        "level",
        "geographic level",
        "geographic level/type",
        "level/type",
    ),
    "city_class": ("city_class", "cityclass", "city class", "city_classification"),
    "income_class": ("income_class", "incomeclass", "income classification*"),
    "is_capital": ("is_capital", "iscapital", "capital"),
    "urban_rural": ("urban_rural", "urbanrural", "urban / rural*"),
    "island_group_code": ("island_group_code", "islandgroupcode", "island group code"),
    "island_group_name": ("island_group_name", "islandgroupname", "island group"),
    "region_code": ("region_code", "regioncode", "region code", "region"),
    "province_code": ("province_code", "provincecode", "province code", "province"),
    "city_code": ("city_code", "citycode", "city code"),
    "municipality_code": ("municipality_code", "municipalitycode", "municipality code"),
    "is_placeholder": ("is_placeholder", "isplaceholder"),
}

# Values treated as "no value" in spreadsheet exports
BLANK_VALUES: frozenset[str] = frozenset({"", "nan", "none", "null", "n/a", "-"})

TRUTHY_VALUES: frozenset[str] = frozenset({"1", "true", "yes", "y", "capital"})

# ---------------------------------------------------------------------------
# Explicit type/level values (DILG/PSA use abbreviations: Reg, Prov, City, Mun, Bgy)
# ---------------------------------------------------------------------------
CITY_TYPE_PREFIX = "cit"
MUNICIPALITY_TYPE_PREFIX = "mun"
UNSUPPORTED_TYPES: frozenset[str] = frozenset({"dist", "district", "submun", "sub-municipality"})

TYPE_LEVEL_PREFIXES: dict[str, str] = {
    "reg": "region",
    "pro": "province",
    "cit": "city",
    "mun": "municipality",
    "bgy": "barangay",
    "bar": "barangay",
}

# ---------------------------------------------------------------------------
# City/municipality name heuristics
# ---------------------------------------------------------------------------
MUNICIPALITY_NAME_PHRASES: tuple[str, ...] = ("municipality of",)
CITY_NAME_PHRASES: tuple[str, ...] = (
    "city of",
    "highly urbanized",
    "independent component",
    "component city",
)
CITY_NAME_SUFFIX = " city"

CITY_CLASSES: tuple[str, ...] = ("HUC", "ICC", "CC")
