"""Barangay endpoints. Lists are capped (default 1000) since there are ~42k rows."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from psgc_shared.codes import Level
from psgc_shared.config import settings

from psgc_api.dependencies import GeoStore, get_store
from psgc_api.responses import item_response, list_response, not_found
from psgc_api.services import geo_service

router = APIRouter(prefix="/barangays", tags=["barangays"])

LimitQuery = Query(None, ge=1, description="Maximum rows (default 1000)")


def _limit(limit: int | None) -> int:
    return limit or settings.barangay_default_limit


@router.get("")
async def list_barangays(
    limit: int | None = LimitQuery,
    store: GeoStore = Depends(get_store),
):
    """List barangays by name, with the overall total."""
    rows = geo_service.list_all(store, Level.BARANGAY, limit=_limit(limit))
    return list_response(rows, total=geo_service.count(store, Level.BARANGAY))


@router.get("/city/{city_code}")
async def barangays_by_city(city_code: str, store: GeoStore = Depends(get_store)):
    return list_response(
        geo_service.list_by_parent(store, Level.BARANGAY, Level.CITY, city_code)
    )


@router.get("/municipality/{municipality_code}")
async def barangays_by_municipality(
    municipality_code: str, store: GeoStore = Depends(get_store)
):
    return list_response(
        geo_service.list_by_parent(store, Level.BARANGAY, Level.MUNICIPALITY, municipality_code)
    )


@router.get("/province/{province_code}")
async def barangays_by_province(
    province_code: str,
    limit: int | None = LimitQuery,
    store: GeoStore = Depends(get_store),
):
    rows = geo_service.list_by_parent(
        store, Level.BARANGAY, Level.PROVINCE, province_code, limit=_limit(limit)
    )
    return list_response(rows)


@router.get("/region/{region_code}")
async def barangays_by_region(
    region_code: str,
    limit: int | None = LimitQuery,
    store: GeoStore = Depends(get_store),
):
    rows = geo_service.list_by_parent(
        store, Level.BARANGAY, Level.REGION, region_code, limit=_limit(limit)
    )
    return list_response(rows)


@router.get("/{code}")
async def get_barangay(code: str, store: GeoStore = Depends(get_store)):
    """Barangay with its city or municipality, province and region embedded."""
    barangay = geo_service.get_with_ancestors(store, Level.BARANGAY, code)
    if barangay is None:
        raise not_found("Barangay", code)
    return item_response(barangay)
