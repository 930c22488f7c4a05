"""
models/geography.py — Pydantic models for the five geography tables.

Each model matches one table row: regions, provinces, cities,
municipalities, barangays. The `level` field is a Literal so a list of
mixed entities can be dispatched on it (tagged variant).
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from psgc_shared.codes import Level


class GeoEntity(BaseModel):
    """Fields shared by every geography table row."""

    model_config = ConfigDict(frozen=True)

    code: str
    name: str
    is_placeholder: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> "GeoEntity":
        return cls(**{k: v for k, v in row.items() if k in cls.model_fields})

    def to_insert_dict(self) -> dict[str, Any]:
        return self.model_dump(exclude={"level", "created_at", "updated_at"})

    def ref(self) -> dict[str, str]:
        """The {code, name} pair embedded in hierarchical API responses."""
        return {"code": self.code, "name": self.name}


class Region(GeoEntity):
    level: Literal[Level.REGION] = Level.REGION
    island_group_code: str | None = None
    island_group_name: str | None = None


class Province(GeoEntity):
    level: Literal[Level.PROVINCE] = Level.PROVINCE
    region_code: str
    island_group_code: str | None = None


class City(GeoEntity):
    level: Literal[Level.CITY] = Level.CITY
    province_code: str
    region_code: str
    city_class: str | None = None
    income_class: str | None = None
    is_capital: bool = False


class Municipality(GeoEntity):
    level: Literal[Level.MUNICIPALITY] = Level.MUNICIPALITY
    province_code: str
    region_code: str
    income_class: str | None = None
    is_capital: bool = False


class Barangay(GeoEntity):
    """A barangay; after reconciliation exactly one of city/municipality is set."""

    level: Literal[Level.BARANGAY] = Level.BARANGAY
    city_code: str | None = None
    municipality_code: str | None = None
    province_code: str
    region_code: str
    urban_rural: str | None = None

    @model_validator(mode="after")
    def _single_parent(self) -> "Barangay":
        if self.city_code and self.municipality_code:
            raise ValueError(
                f"Barangay {self.code} cannot belong to both city {self.city_code} "
                f"and municipality {self.municipality_code}"
            )
        return self

    @property
    def parent_code(self) -> str | None:
        return self.city_code or self.municipality_code


Entity = Annotated[
    Union[Region, Province, City, Municipality, Barangay],
    Field(discriminator="level"),
]

MODEL_FOR_LEVEL: dict[Level, type[GeoEntity]] = {
    Level.REGION: Region,
    Level.PROVINCE: Province,
    Level.CITY: City,
    Level.MUNICIPALITY: Municipality,
    Level.BARANGAY: Barangay,
}

# Parent reference columns per level, nearest parent first.
PARENT_COLUMNS: dict[Level, tuple[tuple[str, Level], ...]] = {
    Level.REGION: (),
    Level.PROVINCE: (("region_code", Level.REGION),),
    Level.CITY: (("province_code", Level.PROVINCE), ("region_code", Level.REGION)),
    Level.MUNICIPALITY: (("province_code", Level.PROVINCE), ("region_code", Level.REGION)),
    Level.BARANGAY: (
        ("city_code", Level.CITY),
        ("municipality_code", Level.MUNICIPALITY),
        ("province_code", Level.PROVINCE),
        ("region_code", Level.REGION),
    ),
}
