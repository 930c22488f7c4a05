"""Municipality endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from psgc_shared.codes import Level

from psgc_api.dependencies import GeoStore, get_store
from psgc_api.responses import item_response, list_response, not_found
from psgc_api.services import geo_service

router = APIRouter(prefix="/municipalities", tags=["municipalities"])


@router.get("")
async def list_municipalities(store: GeoStore = Depends(get_store)):
    """List all municipalities."""
    return list_response(geo_service.list_all(store, Level.MUNICIPALITY))


@router.get("/province/{province_code}")
async def municipalities_by_province(province_code: str, store: GeoStore = Depends(get_store)):
    rows = geo_service.list_by_parent(store, Level.MUNICIPALITY, Level.PROVINCE, province_code)
    return list_response(rows)


@router.get("/region/{region_code}")
async def municipalities_by_region(region_code: str, store: GeoStore = Depends(get_store)):
    rows = geo_service.list_by_parent(store, Level.MUNICIPALITY, Level.REGION, region_code)
    return list_response(rows)


@router.get("/{code}")
async def get_municipality(code: str, store: GeoStore = Depends(get_store)):
    """Municipality with its province and region embedded."""
    municipality = geo_service.get_with_ancestors(store, Level.MUNICIPALITY, code)
    if municipality is None:
        raise not_found("Municipality", code)
    return item_response(municipality)


@router.get("/{code}/barangays")
async def municipality_barangays(code: str, store: GeoStore = Depends(get_store)):
    municipality = geo_service.get_entity(store, Level.MUNICIPALITY, code)
    if municipality is None:
        raise not_found("Municipality", code)
    rows = geo_service.list_by_parent(store, Level.BARANGAY, Level.MUNICIPALITY, code)
    return list_response(rows, municipality=municipality.ref())
