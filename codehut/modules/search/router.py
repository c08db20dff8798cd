from typing import Any, Optional
from fastapi import APIRouter, Depends, Query

from codehut.core import deps
from codehut.modules.search import service
from codehut.store.base import MarketplaceStore

router = APIRouter()

@router.get("")
async def global_search(
    q: Optional[str] = None,
    type: str = "all",
    limit: int = Query(20, ge=1, le=100),
    store: MarketplaceStore = Depends(deps.get_store),
) -> Any:
    return await service.global_search(store, q, type, limit)

@router.get("/suggestions")
async def search_suggestions(
    q: Optional[str] = None,
    limit: int = Query(10, ge=1, le=50),
    store: MarketplaceStore = Depends(deps.get_store),
) -> Any:
    return await service.suggestions(store, q, limit)

@router.get("/filters")
async def search_filters(
    store: MarketplaceStore = Depends(deps.get_store),
) -> Any:
    return await service.filters(store)
