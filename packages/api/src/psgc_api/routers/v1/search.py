"""Name search endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from psgc_shared.config import settings

from psgc_api.dependencies import GeoStore, get_store
from psgc_api.services import search_service

router = APIRouter(tags=["search"])


@router.get("/search")
async def search(
    q: str | None = Query(None, description="Search text (substring of the name)"),
    type: str = Query(search_service.ALL, description="all, regions, provinces, ..."),
    limit: int | None = Query(None, ge=1, le=1000, description="Maximum results per level"),
    store: GeoStore = Depends(get_store),
):
    """Search names across every level, or just one."""
    if q is None or not q.strip():
        raise HTTPException(status_code=400, detail='Query parameter "q" is required')
    try:
        return search_service.search(
            store, q.strip(), type=type, limit=limit or settings.search_default_limit
        )
    except search_service.InvalidSearchType as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
