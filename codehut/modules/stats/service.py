from collections import Counter
from datetime import timedelta
from decimal import Decimal

from codehut.core.db import as_utc, utcnow
from codehut.modules.snippets.service import snippet_out
from codehut.store.base import MarketplaceStore


def _price_band(price: Decimal) -> str:
    if price == 0:
        return "free"
    if price <= 5:
        return "budget"
    if price <= 15:
        return "standard"
    return "premium"


async def marketplace_stats(store: MarketplaceStore) -> dict:
    snippets = await store.all_snippets()
    users = await store.all_users()
    purchases = await store.all_purchases()

    revenue = sum((Decimal(p.price) for p in purchases), Decimal("0"))
    prices = [Decimal(s.price) for s in snippets]
    average_price = sum(prices, Decimal("0")) / len(prices) if prices else Decimal("0")
    average_rating = sum(s.rating or 0 for s in snippets) / len(snippets) if snippets else 0.0

    languages = Counter(s.language for s in snippets)
    frameworks = Counter(s.framework for s in snippets if s.framework)
    tags = Counter(tag for s in snippets for tag in (s.tags or []))
    bands = {"free": 0, "budget": 0, "standard": 0, "premium": 0}
    for price in prices:
        bands[_price_band(price)] += 1

    since = utcnow() - timedelta(days=30)
    popular = sorted(snippets, key=lambda s: (s.downloads or 0) * 0.7 + (s.rating or 0) * 20, reverse=True)[:5]

    return {
        "overview": {
            "totalSnippets": len(snippets),
            "totalUsers": len(users),
            "totalPurchases": len(purchases),
            "totalRevenue": round(float(revenue), 2),
            "averagePrice": round(float(average_price), 2),
            "averageRating": round(average_rating, 1),
        },
        "distributions": {
            "languages": dict(languages),
            "frameworks": dict(frameworks),
            "priceRanges": bands,
            "topTags": [{"tag": tag, "count": count} for tag, count in tags.most_common(10)],
        },
        "recentActivity": {
            "newSnippets": sum(1 for s in snippets if as_utc(s.created_at) > since),
            "newPurchases": sum(1 for p in purchases if as_utc(p.purchase_date) > since),
        },
        "popularSnippets": [
            {
                "id": s.id,
                "title": s.title,
                "author": s.author_username,
                "downloads": s.downloads or 0,
                "rating": s.rating or 0,
                "price": float(s.price),
            }
            for s in popular
        ],
    }


async def trending(store: MarketplaceStore, days: int) -> dict:
    since = utcnow() - timedelta(days=days)
    recent = [p for p in await store.all_purchases() if as_utc(p.purchase_date) > since]
    snippets = {s.id: s for s in await store.all_snippets()}

    per_snippet = Counter(p.snippet_id for p in recent)
    trending_snippets = []
    for snippet_id, count in per_snippet.most_common(5):
        snippet = snippets.get(snippet_id)
        if snippet is None:
            continue
        row = snippet_out(snippet)
        row["recentPurchases"] = count
        trending_snippets.append(row)

    tags = Counter(
        tag
        for p in recent
        if p.snippet_id in snippets
        for tag in (snippets[p.snippet_id].tags or [])
    )
    return {
        "period": f"{days} days",
        "trendingSnippets": trending_snippets,
        "trendingTags": [{"tag": tag, "count": count} for tag, count in tags.most_common(10)],
        "totalTrendingPurchases": len(recent),
    }
