from typing import Any
from fastapi import APIRouter, Depends, Query

from codehut.core import deps
from codehut.modules.stats import service
from codehut.store.base import MarketplaceStore

router = APIRouter()

@router.get("")
async def marketplace_stats(
    store: MarketplaceStore = Depends(deps.get_store),
) -> Any:
    return await service.marketplace_stats(store)

@router.get("/trending")
async def trending(
    days: int = Query(7, ge=1, le=365),
    store: MarketplaceStore = Depends(deps.get_store),
) -> Any:
    return await service.trending(store, days)
