from fastapi import APIRouter

from psgc_api.routers.v1 import (
    barangays,
    cities,
    municipalities,
    provinces,
    regions,
    search,
)

v1_router = APIRouter(prefix="/api/v1")

v1_router.include_router(regions.router)
v1_router.include_router(provinces.router)
v1_router.include_router(cities.router)
v1_router.include_router(municipalities.router)
v1_router.include_router(barangays.router)
v1_router.include_router(search.router)
