from typing import Any, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from codehut.core import deps
from codehut.modules.auth.models import User, UserRole
from codehut.modules.purchases import service
from codehut.store.base import MarketplaceStore

router = APIRouter()

class PurchaseRequest(BaseModel):
    userId: Optional[str] = None
    snippetId: Optional[str] = None

@router.post("", status_code=201)
async def purchase_snippet(
    payload: PurchaseRequest,
    current_user: User = Depends(deps.get_current_user),
    store: MarketplaceStore = Depends(deps.get_store),
) -> Any:
    return await service.purchase_directly(store, current_user, payload.userId, payload.snippetId)

@router.get("/user/{user_id}")
async def user_purchases(
    user_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(deps.get_current_user),
    store: MarketplaceStore = Depends(deps.get_store),
) -> Any:
    if current_user.id != user_id and current_user.role != UserRole.ADMIN:
        raise HTTPException(status_code=403, detail="Cannot view another user's purchases")
    return await service.purchases_for_user(store, user_id, page, limit)

@router.get("/snippet/{snippet_id}")
async def snippet_purchase_stats(
    snippet_id: str,
    store: MarketplaceStore = Depends(deps.get_store),
) -> Any:
    return await service.snippet_sales(store, snippet_id)

@router.get("/check/{user_id}/{snippet_id}")
async def check_purchase_status(
    user_id: str,
    snippet_id: str,
    store: MarketplaceStore = Depends(deps.get_store),
) -> Any:
    return await service.check_purchase(store, user_id, snippet_id)
