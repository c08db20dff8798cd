from collections import defaultdict

from fastapi import HTTPException

from codehut.modules.auth.schemas import user_out
from codehut.modules.snippets.service import snippet_out
from codehut.store.base import MarketplaceStore, SnippetQuery


async def list_users(store: MarketplaceStore, sort_by: str, sort_order: str, page: int, limit: int) -> dict:
    users, total = await store.list_users(sort_by, sort_order.lower() != "asc", (page - 1) * limit, limit)
    return {"users": [user_out(u) for u in users], "total": total, "page": page, "limit": limit}


async def top_authors(store: MarketplaceStore, limit: int) -> dict:
    """Ranks authors by downloads * 0.3 + average rating * 20 + snippet count * 5."""
    by_author = defaultdict(list)
    for snippet in await store.all_snippets():
        by_author[snippet.author_id].append(snippet)

    ranked = []
    for user in await store.all_users():
        snippets = by_author.get(user.id, [])
        downloads = sum(s.downloads or 0 for s in snippets)
        average = sum(s.rating or 0 for s in snippets) / len(snippets) if snippets else 0.0
        score = downloads * 0.3 + average * 20 + len(snippets) * 5 if snippets else 0.0
        row = user_out(user)
        row.update({
            "snippetCount": len(snippets),
            "totalDownloads": downloads,
            "averageRating": round(average, 1),
            "authorScore": round(score, 2),
        })
        ranked.append(row)

    ranked.sort(key=lambda row: row["authorScore"], reverse=True)
    return {"authors": ranked[:limit], "total": len(ranked)}


async def _profile(store: MarketplaceStore, user) -> dict:
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    snippets, _ = await store.query_snippets(SnippetQuery(author_id=user.id, limit=1000))
    return {"user": user_out(user), "snippets": [snippet_out(s) for s in snippets]}


async def get_user(store: MarketplaceStore, user_id: str) -> dict:
    return await _profile(store, await store.get_user(user_id))


async def get_user_by_username(store: MarketplaceStore, username: str) -> dict:
    return await _profile(store, await store.get_user_by_username(username))
