from typing import Any
from fastapi import APIRouter, Depends, Query

from codehut.core import deps
from codehut.modules.users import service
from codehut.store.base import MarketplaceStore

router = APIRouter()

@router.get("")
async def list_users(
    sortBy: str = "created_at",
    sortOrder: str = "desc",
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    store: MarketplaceStore = Depends(deps.get_store),
) -> Any:
    return await service.list_users(store, sortBy, sortOrder, page, limit)

@router.get("/top-authors")
async def top_authors(
    limit: int = Query(10, ge=1, le=50),
    store: MarketplaceStore = Depends(deps.get_store),
) -> Any:
    return await service.top_authors(store, limit)

@router.get("/username/{username}")
async def get_user_by_username(
    username: str,
    store: MarketplaceStore = Depends(deps.get_store),
) -> Any:
    return await service.get_user_by_username(store, username)

@router.get("/{user_id}")
async def get_user(
    user_id: str,
    store: MarketplaceStore = Depends(deps.get_store),
) -> Any:
    return await service.get_user(store, user_id)
