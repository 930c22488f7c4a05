"""
transforms/classify.py — Entity classifier for raw PSGC records.

Turns one raw record (a mapping of provider field name → value) into a
typed geography entity, or a Rejected outcome that explains why it could
not be used. The classifier is pure: the same record always produces the
same output, and nothing outside the record is consulted except the
injected CityHeuristic.

City and Municipality share the XXYYZZ000 code shape, so the choice
between them is delegated to a CityHeuristic. NameHeuristic is the
default; LookupHeuristic wraps an authoritative code → level table.

Usage:
    from psgc_pipeline.transforms.classify import classify_record, classify_records

    entity = classify_record({"Code": "137401000", "Name": "City of Manila"})
    # City(code="137401000", province_code="137400000", region_code="130000000", ...)

    outcomes = classify_records(rows)               # list[Entity | Rejected]
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol, Union

import structlog

from psgc_shared.codes import (
    CodeShape,
    Level,
    classify,
    levels_for_shape,
    normalize,
    parent_code,
    shape_for_level,
)
from psgc_shared.constants import (
    BLANK_VALUES,
    CITY_NAME_PHRASES,
    CITY_NAME_SUFFIX,
    CITY_TYPE_PREFIX,
    FIELD_ALIASES,
    MUNICIPALITY_NAME_PHRASES,
    MUNICIPALITY_TYPE_PREFIX,
    TRUTHY_VALUES,
    TYPE_LEVEL_PREFIXES,
    UNSUPPORTED_TYPES,
)
from psgc_shared.errors import InvalidCode, IssueKind, UnclassifiableCode
from psgc_shared.models.geography import (
    Barangay,
    City,
    Municipality,
    Province,
    Region,
)

log = structlog.get_logger(__name__)

RawRecord = Mapping[str, Any]

_WHITESPACE = re.compile(r"\s+")


# ---------------------------------------------------------------------------
# Rejections
# ---------------------------------------------------------------------------


class RejectReason(str, Enum):
    MISSING_CODE = "missing_code"
    MISSING_NAME = "missing_name"
    INVALID_CODE = "invalid_code"
    UNCLASSIFIABLE_CODE = "unclassifiable_code"
    UNSUPPORTED_LEVEL = "unsupported_level"


_REASON_ISSUE: dict[RejectReason, IssueKind] = {
    RejectReason.MISSING_CODE: IssueKind.MISSING_REQUIRED_FIELD,
    RejectReason.MISSING_NAME: IssueKind.MISSING_REQUIRED_FIELD,
    RejectReason.INVALID_CODE: IssueKind.INVALID_CODE,
    RejectReason.UNCLASSIFIABLE_CODE: IssueKind.UNCLASSIFIABLE_CODE,
    RejectReason.UNSUPPORTED_LEVEL: IssueKind.UNSUPPORTED_LEVEL,
}


@dataclass(frozen=True)
class Rejected:
    """A record excluded from the batch, with enough context to find it again."""

    reason: RejectReason
    raw_code: str | None = None
    name: str | None = None
    source_index: int | None = None
    level: Level | None = None
    detail: str = ""

    @property
    def issue_kind(self) -> IssueKind:
        return _REASON_ISSUE[self.reason]


ClassifyOutcome = Union[Region, Province, City, Municipality, Barangay, Rejected]


# ---------------------------------------------------------------------------
# Field resolution
# ---------------------------------------------------------------------------


def _normalize_key(key: object) -> str:
    return _WHITESPACE.sub(" ", str(key)).strip().lower()


def _clean_value(value: Any) -> Any:
    """Return None for blank/NaN-like cells; strip strings."""
    if value is None:
        return None
    if isinstance(value, float) and value != value:  # NaN
        return None
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.lower() in BLANK_VALUES:
            return None
        return stripped
    return value


class FieldView:
    """Alias-aware read access to one raw record."""

    def __init__(self, record: RawRecord) -> None:
        self._values: dict[str, Any] = {}
        for key, value in record.items():
            normalized = _normalize_key(key)
            # First occurrence wins when two provider columns collapse to one key
            self._values.setdefault(normalized, value)

    def raw(self, field: str) -> Any:
        """Return the first non-blank value among *field*'s aliases."""
        for alias in FIELD_ALIASES[field]:
            if alias.endswith("*"):
                prefix = alias[:-1]
                for key, value in self._values.items():
                    if key.startswith(prefix):
                        cleaned = _clean_value(value)
                        if cleaned is not None:
                            return cleaned
                continue
            cleaned = _clean_value(self._values.get(alias))
            if cleaned is not None:
                return cleaned
        return None

    def text(self, field: str) -> str | None:
        value = self.raw(field)
        if value is None:
            return None
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        return str(value).strip() or None

    def flag(self, field: str) -> bool:
        value = self.raw(field)
        if isinstance(value, bool):
            return value
        if value is None:
            return False
        if isinstance(value, (int, float)):
            return value != 0
        return str(value).strip().lower() in TRUTHY_VALUES


# ---------------------------------------------------------------------------
# City / Municipality strategies
# ---------------------------------------------------------------------------


class CityHeuristic(Protocol):
    """Decides City vs Municipality for an XXYYZZ000 code."""

    def decide(
        self,
        code: str,
        name: str,
        *,
        type_hint: str | None = None,
        city_class: str | None = None,
    ) -> Level: ...


class NameHeuristic:
    """
    Priority-ordered guess from the record's own signals.

      1. name contains "municipality of"          → Municipality (overrides all)
      2. explicit type "cit…" / "mun…"            → City / Municipality
      3. a city class (HUC/ICC/CC) is present     → City
      4. "city of", "… city", HUC/ICC/CC phrases  → City
      5. otherwise                                → Municipality
    """

    def decide(
        self,
        code: str,
        name: str,
        *,
        type_hint: str | None = None,
        city_class: str | None = None,
    ) -> Level:
        lowered = name.lower()

        if any(phrase in lowered for phrase in MUNICIPALITY_NAME_PHRASES):
            return Level.MUNICIPALITY

        if type_hint:
            hint = type_hint.lower()
            if hint.startswith(CITY_TYPE_PREFIX):
                return Level.CITY
            if hint.startswith(MUNICIPALITY_TYPE_PREFIX):
                return Level.MUNICIPALITY

        if city_class:
            return Level.CITY

        if lowered.endswith(CITY_NAME_SUFFIX) or any(
            phrase in lowered for phrase in CITY_NAME_PHRASES
        ):
            return Level.CITY

        return Level.MUNICIPALITY


class LookupHeuristic:
    """Authoritative code → level table; codes it lacks go to *fallback*."""

    def __init__(
        self,
        table: Mapping[str, Level],
        fallback: CityHeuristic | None = None,
    ) -> None:
        self._table = dict(table)
        self._fallback = fallback or NameHeuristic()

    def decide(
        self,
        code: str,
        name: str,
        *,
        type_hint: str | None = None,
        city_class: str | None = None,
    ) -> Level:
        level = self._table.get(code)
        if level in (Level.CITY, Level.MUNICIPALITY):
            return level
        return self._fallback.decide(
            code, name, type_hint=type_hint, city_class=city_class
        )


DEFAULT_HEURISTIC: CityHeuristic = NameHeuristic()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _type_level(type_hint: str) -> Level | None:
    value = TYPE_LEVEL_PREFIXES.get(type_hint.lower()[:3])
    return Level(value) if value else None


def _is_unsupported(type_hint: str) -> bool:
    hint = type_hint.lower().replace(" ", "")
    return hint in UNSUPPORTED_TYPES or hint.startswith("submun")


def _explicit_parent(fields: FieldView, field: str, code: str, target: Level) -> str:
    """An explicitly supplied parent code, else the positional ancestor."""
    derived = parent_code(code, target)
    raw = fields.raw(field)
    if raw is None:
        return derived
    try:
        candidate = normalize(raw)
        if classify(candidate) is shape_for_level(target):
            return candidate
    except (InvalidCode, UnclassifiableCode):
        pass
    log.debug("explicit_parent_ignored", code=code, field=field, value=str(raw))
    return derived


def _explicit_barangay_parent(fields: FieldView, code: str) -> tuple[str | None, str | None]:
    """city_code / municipality_code exactly as supplied; at most one survives."""
    prefix = parent_code(code, CodeShape.CITY_MUNICIPALITY)
    found: dict[str, str] = {}
    for field in ("city_code", "municipality_code"):
        raw = fields.raw(field)
        if raw is None:
            continue
        try:
            candidate = normalize(raw)
            if classify(candidate) is CodeShape.CITY_MUNICIPALITY:
                found[field] = candidate
        except (InvalidCode, UnclassifiableCode):
            log.debug("explicit_parent_ignored", code=code, field=field, value=str(raw))

    if len(found) == 2:
        # Keep the one that agrees with the code prefix; city otherwise.
        keep = "city_code"
        if found["municipality_code"] == prefix and found["city_code"] != prefix:
            keep = "municipality_code"
        found = {keep: found[keep]}
    return found.get("city_code"), found.get("municipality_code")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def classify_record(
    record: RawRecord,
    *,
    source_index: int | None = None,
    heuristic: CityHeuristic | None = None,
) -> ClassifyOutcome:
    """
    Classify one raw record.

    Args:
        record:       Provider field name → value.
        source_index: Position in the source file, carried on Rejected.
        heuristic:    City/Municipality strategy (default NameHeuristic).

    Returns:
        A Region/Province/City/Municipality/Barangay model, or Rejected.
    """
    fields = FieldView(record)
    heuristic = heuristic or DEFAULT_HEURISTIC

    raw_code = fields.raw("code")
    name = fields.text("name")
    raw_text = None if raw_code is None else str(raw_code)

    if raw_code is None:
        return Rejected(RejectReason.MISSING_CODE, None, name, source_index)

    try:
        code = normalize(raw_code)
    except InvalidCode as exc:
        return Rejected(
            RejectReason.INVALID_CODE, raw_text, name, source_index, detail=exc.reason
        )

    if not name:
        return Rejected(RejectReason.MISSING_NAME, raw_text, None, source_index)

    try:
        shape = classify(code)
    except UnclassifiableCode as exc:
        log.error("unclassifiable_code", code=code, name=name, source_index=source_index)
        return Rejected(
            RejectReason.UNCLASSIFIABLE_CODE, raw_text, name, source_index, detail=str(exc)
        )

    type_hint = fields.text("type")
    candidates = levels_for_shape(shape)

    if type_hint:
        if _is_unsupported(type_hint):
            return Rejected(
                RejectReason.UNSUPPORTED_LEVEL,
                raw_text,
                name,
                source_index,
                level=candidates[0] if len(candidates) == 1 else None,
                detail=type_hint,
            )
        declared = _type_level(type_hint)
        if declared is not None and declared not in candidates:
            log.info(
                "type_conflicts_with_code",
                code=code,
                name=name,
                declared=type_hint,
                shape=shape.value,
            )
            type_hint = None

    city_class = fields.text("city_class")
    if city_class:
        city_class = city_class.upper()

    if shape is CodeShape.CITY_MUNICIPALITY:
        level = heuristic.decide(code, name, type_hint=type_hint, city_class=city_class)
    else:
        level = candidates[0]

    common: dict[str, Any] = {
        "code": code,
        "name": name,
        "is_placeholder": fields.flag("is_placeholder"),
    }

    if level is Level.REGION:
        return Region(
            **common,
            island_group_code=fields.text("island_group_code"),
            island_group_name=fields.text("island_group_name"),
        )

    region_code = _explicit_parent(fields, "region_code", code, Level.REGION)

    if level is Level.PROVINCE:
        return Province(
            **common,
            region_code=region_code,
            island_group_code=fields.text("island_group_code"),
        )

    province_code = _explicit_parent(fields, "province_code", code, Level.PROVINCE)

    if level is Level.CITY:
        return City(
            **common,
            province_code=province_code,
            region_code=region_code,
            city_class=city_class,
            income_class=fields.text("income_class"),
            is_capital=fields.flag("is_capital"),
        )

    if level is Level.MUNICIPALITY:
        return Municipality(
            **common,
            province_code=province_code,
            region_code=region_code,
            income_class=fields.text("income_class"),
            is_capital=fields.flag("is_capital"),
        )

    city_code, municipality_code = _explicit_barangay_parent(fields, code)
    return Barangay(
        **common,
        city_code=city_code,
        municipality_code=municipality_code,
        province_code=province_code,
        region_code=region_code,
        urban_rural=fields.text("urban_rural"),
    )


def classify_records(
    records: Iterable[RawRecord],
    *,
    heuristic: CityHeuristic | None = None,
) -> list[ClassifyOutcome]:
    """
    Classify a batch; Rejected outcomes carry their position in *records*.

    Returns:
        One outcome per input record, in input order.
    """
    outcomes = [
        classify_record(record, source_index=index, heuristic=heuristic)
        for index, record in enumerate(records)
    ]
    rejected = sum(1 for outcome in outcomes if isinstance(outcome, Rejected))
    log.info("records_classified", total=len(outcomes), rejected=rejected)
    return outcomes

