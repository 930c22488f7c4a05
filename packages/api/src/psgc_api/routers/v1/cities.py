"""City endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from psgc_shared.codes import Level

from psgc_api.dependencies import GeoStore, get_store
from psgc_api.responses import item_response, list_response, not_found
from psgc_api.services import geo_service

router = APIRouter(prefix="/cities", tags=["cities"])


@router.get("")
async def list_cities(store: GeoStore = Depends(get_store)):
    """List all cities."""
    return list_response(geo_service.list_all(store, Level.CITY))


@router.get("/province/{province_code}")
async def cities_by_province(province_code: str, store: GeoStore = Depends(get_store)):
    rows = geo_service.list_by_parent(store, Level.CITY, Level.PROVINCE, province_code)
    return list_response(rows)


@router.get("/region/{region_code}")
async def cities_by_region(region_code: str, store: GeoStore = Depends(get_store)):
    rows = geo_service.list_by_parent(store, Level.CITY, Level.REGION, region_code)
    return list_response(rows)


@router.get("/{code}")
async def get_city(code: str, store: GeoStore = Depends(get_store)):
    """City with its province and region embedded."""
    city = geo_service.get_with_ancestors(store, Level.CITY, code)
    if city is None:
        raise not_found("City", code)
    return item_response(city)


@router.get("/{code}/barangays")
async def city_barangays(code: str, store: GeoStore = Depends(get_store)):
    city = geo_service.get_entity(store, Level.CITY, code)
    if city is None:
        raise not_found("City", code)
    rows = geo_service.list_by_parent(store, Level.BARANGAY, Level.CITY, code)
    return list_response(rows, city=city.ref())
