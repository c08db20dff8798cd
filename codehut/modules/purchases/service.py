import logging
from decimal import Decimal
from typing import Optional

from fastapi import HTTPException

from codehut.core.db import as_utc, new_id, utcnow
from codehut.core.errors import DuplicateRecordError
from codehut.modules.auth.models import User, UserRole
from codehut.modules.purchases.models import Purchase
from codehut.modules.snippets.service import snippet_out
from codehut.store.base import MarketplaceStore

logger = logging.getLogger(__name__)


def purchase_out(purchase: Purchase) -> dict:
    return {
        "id": purchase.id,
        "userId": purchase.user_id,
        "snippetId": purchase.snippet_id,
        "price": float(purchase.price),
        "purchaseDate": as_utc(purchase.purchase_date).isoformat() if purchase.purchase_date else None,
        "orderId": purchase.order_id,
    }


async def purchase_directly(store: MarketplaceStore, caller: User, user_id: Optional[str],
                            snippet_id: Optional[str]) -> dict:
    """Grants an entitlement without a payment. Kept for clients of the old API."""
    user_id = user_id or caller.id
    if not snippet_id:
        raise HTTPException(status_code=400, detail="Snippet ID is required")
    if user_id != caller.id and caller.role != UserRole.ADMIN:
        raise HTTPException(status_code=403, detail="Cannot purchase on behalf of another user")

    user = await store.get_user(user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    snippet = await store.get_snippet(snippet_id)
    if snippet is None:
        raise HTTPException(status_code=404, detail="Snippet not found")
    if await store.get_purchase(user_id, snippet_id):
        raise HTTPException(status_code=409, detail="You have already purchased this snippet")
    if snippet.author_id == user_id:
        raise HTTPException(status_code=400, detail="You cannot purchase your own snippet")

    purchase = Purchase(
        id=new_id("purchase"),
        user_id=user_id,
        snippet_id=snippet_id,
        price=Decimal(snippet.price),
        purchase_date=utcnow(),
        order_id=None,
    )
    try:
        await store.record_purchase(purchase)
    except DuplicateRecordError:
        raise HTTPException(status_code=409, detail="You have already purchased this snippet")

    snippet = await store.get_snippet(snippet_id) or snippet
    logger.info(f"[Purchases] {user_id} purchased {snippet_id} directly")
    return {
        "purchase": purchase_out(purchase),
        "snippet": snippet_out(snippet),
        "message": "Purchase successful",
    }


async def purchases_for_user(store: MarketplaceStore, user_id: str, page: int, limit: int) -> dict:
    purchases, total = await store.purchases_for_user(user_id, (page - 1) * limit, limit)
    rows = []
    for purchase in purchases:
        row = purchase_out(purchase)
        snippet = await store.get_snippet(purchase.snippet_id)
        row["snippet"] = snippet_out(snippet, include_code=True) if snippet else None
        rows.append(row)
    return {"purchases": rows, "total": total, "page": page, "limit": limit}


async def snippet_sales(store: MarketplaceStore, snippet_id: str) -> dict:
    snippet = await store.get_snippet(snippet_id)
    if snippet is None:
        raise HTTPException(status_code=404, detail="Snippet not found")

    purchases = await store.purchases_for_snippet(snippet_id)
    revenue = sum((Decimal(p.price) for p in purchases), Decimal("0"))
    by_date = {}
    for purchase in purchases:
        day = as_utc(purchase.purchase_date).date().isoformat()
        by_date[day] = by_date.get(day, 0) + 1

    return {
        "snippet": snippet_out(snippet),
        "stats": {
            "totalSales": len(purchases),
            "totalRevenue": float(revenue),
            "averagePrice": float(revenue / len(purchases)) if purchases else 0,
            "salesByDate": by_date,
        },
    }


async def check_purchase(store: MarketplaceStore, user_id: str, snippet_id: str) -> dict:
    purchase = await store.get_purchase(user_id, snippet_id)
    return {
        "hasPurchased": purchase is not None,
        "purchase": purchase_out(purchase) if purchase else None,
    }
