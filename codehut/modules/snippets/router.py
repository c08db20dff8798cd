from typing import Any, Optional
from decimal import Decimal
from fastapi import APIRouter, Depends, Query

from codehut.core import deps
from codehut.modules.auth.models import User
from codehut.modules.snippets import schemas, service
from codehut.store.base import MarketplaceStore, SnippetQuery

router = APIRouter()

@router.get("")
async def list_snippets(
    language: Optional[str] = None,
    framework: Optional[str] = None,
    author: Optional[str] = None,
    minPrice: Optional[Decimal] = Query(None, ge=0),
    maxPrice: Optional[Decimal] = Query(None, ge=0),
    search: Optional[str] = None,
    sortBy: str = "created_at",
    sortOrder: str = "desc",
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    store: MarketplaceStore = Depends(deps.get_store),
) -> Any:
    query = SnippetQuery(
        language=language,
        framework=framework,
        author=author,
        min_price=minPrice,
        max_price=maxPrice,
        search=search,
        sort_by=sortBy,
        descending=sortOrder.lower() != "asc",
    )
    return await service.list_snippets(store, query, page, limit)

@router.get("/popular")
async def popular_snippets(
    limit: int = Query(10, ge=1, le=50),
    store: MarketplaceStore = Depends(deps.get_store),
) -> Any:
    return await service.popular_snippets(store, limit)

@router.get("/author/{author_id}")
async def snippets_by_author(
    author_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    store: MarketplaceStore = Depends(deps.get_store),
) -> Any:
    return await service.snippets_by_author(store, author_id, page, limit)

@router.get("/{snippet_id}/access")
async def check_access(
    snippet_id: str,
    current_user: Optional[User] = Depends(deps.get_current_user_optional),
    store: MarketplaceStore = Depends(deps.get_store),
) -> Any:
    return await service.access_check(store, snippet_id, current_user)

@router.get("/{snippet_id}")
async def get_snippet(
    snippet_id: str,
    current_user: Optional[User] = Depends(deps.get_current_user_optional),
    store: MarketplaceStore = Depends(deps.get_store),
) -> Any:
    """Snippet detail. The code body is withheld unless the caller is entitled."""
    return await service.snippet_detail(store, snippet_id, current_user)

@router.post("", status_code=201)
async def create_snippet(
    payload: schemas.SnippetCreate,
    current_user: User = Depends(deps.get_current_user),
    store: MarketplaceStore = Depends(deps.get_store),
) -> Any:
    return await service.create_snippet(store, current_user, payload)
