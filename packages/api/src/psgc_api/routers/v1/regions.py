"""Region endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from psgc_shared.codes import Level

from psgc_api.dependencies import GeoStore, get_store
from psgc_api.responses import item_response, list_response, not_found
from psgc_api.services import geo_service

router = APIRouter(prefix="/regions", tags=["regions"])


@router.get("")
async def list_regions(store: GeoStore = Depends(get_store)):
    """List all regions."""
    return list_response(geo_service.list_all(store, Level.REGION))


@router.get("/{code}")
async def get_region(code: str, store: GeoStore = Depends(get_store)):
    region = geo_service.get_with_ancestors(store, Level.REGION, code)
    if region is None:
        raise not_found("Region", code)
    return item_response(region)


async def _children(store: GeoStore, code: str, level: Level):
    region = geo_service.get_entity(store, Level.REGION, code)
    if region is None:
        raise not_found("Region", code)
    rows = geo_service.list_by_parent(store, level, Level.REGION, code)
    return list_response(rows, region=region.ref())


@router.get("/{code}/provinces")
async def region_provinces(code: str, store: GeoStore = Depends(get_store)):
    return await _children(store, code, Level.PROVINCE)


@router.get("/{code}/cities")
async def region_cities(code: str, store: GeoStore = Depends(get_store)):
    return await _children(store, code, Level.CITY)


@router.get("/{code}/municipalities")
async def region_municipalities(code: str, store: GeoStore = Depends(get_store)):
    return await _children(store, code, Level.MUNICIPALITY)
