"""Province endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from psgc_shared.codes import Level
from psgc_shared.config import settings

from psgc_api.dependencies import GeoStore, get_store
from psgc_api.responses import item_response, list_response, not_found
from psgc_api.services import geo_service

router = APIRouter(prefix="/provinces", tags=["provinces"])


@router.get("")
async def list_provinces(store: GeoStore = Depends(get_store)):
    """List all provinces."""
    return list_response(geo_service.list_all(store, Level.PROVINCE))


@router.get("/region/{region_code}")
async def provinces_by_region(region_code: str, store: GeoStore = Depends(get_store)):
    rows = geo_service.list_by_parent(store, Level.PROVINCE, Level.REGION, region_code)
    return list_response(rows)


@router.get("/{code}")
async def get_province(code: str, store: GeoStore = Depends(get_store)):
    """Province with its region embedded."""
    province = geo_service.get_with_ancestors(store, Level.PROVINCE, code)
    if province is None:
        raise not_found("Province", code)
    return item_response(province)


async def _children(store: GeoStore, code: str, level: Level, limit: int | None = None):
    province = geo_service.get_entity(store, Level.PROVINCE, code)
    if province is None:
        raise not_found("Province", code)
    rows = geo_service.list_by_parent(store, level, Level.PROVINCE, code, limit=limit)
    return list_response(rows, province=province.ref())


@router.get("/{code}/cities")
async def province_cities(code: str, store: GeoStore = Depends(get_store)):
    return await _children(store, code, Level.CITY)


@router.get("/{code}/municipalities")
async def province_municipalities(code: str, store: GeoStore = Depends(get_store)):
    return await _children(store, code, Level.MUNICIPALITY)


@router.get("/{code}/barangays")
async def province_barangays(code: str, store: GeoStore = Depends(get_store)):
    return await _children(store, code, Level.BARANGAY, settings.barangay_default_limit)
