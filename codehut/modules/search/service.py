from collections import Counter

from fastapi import HTTPException

from codehut.modules.auth.schemas import user_out
from codehut.modules.snippets.service import snippet_out
from codehut.store.base import MarketplaceStore

SEARCH_TYPES = ("all", "snippets", "users")

SORT_OPTIONS = [
    {"value": "created_at", "label": "Newest"},
    {"value": "rating", "label": "Highest Rated"},
    {"value": "downloads", "label": "Most Downloaded"},
    {"value": "price", "label": "Price"},
]


def _require_query(q) -> str:
    if not q or not q.strip():
        raise HTTPException(status_code=400, detail="Search query is required")
    return q.strip()


def _snippet_hit(snippet, term: str) -> bool:
    fields = [snippet.title, snippet.description, snippet.author_username, snippet.language, snippet.framework or ""]
    fields.extend(snippet.tags or [])
    return any(term in (value or "").lower() for value in fields)


def _user_hit(user, term: str) -> bool:
    return any(term in (value or "").lower() for value in (user.username, user.email, user.bio))


async def global_search(store: MarketplaceStore, q, search_type: str, limit: int) -> dict:
    q = _require_query(q)
    if search_type not in SEARCH_TYPES:
        raise HTTPException(status_code=400, detail=f"type must be one of {', '.join(SEARCH_TYPES)}")
    term = q.lower()

    snippets = []
    users = []
    if search_type in ("all", "snippets"):
        cap = limit if search_type == "snippets" else int(limit * 0.7)
        hits = [s for s in await store.all_snippets() if _snippet_hit(s, term)]
        # Title matches first, then best rated
        hits.sort(key=lambda s: (term not in s.title.lower(), -(s.rating or 0)))
        snippets = hits[:cap]
    if search_type in ("all", "users"):
        cap = limit if search_type == "users" else int(limit * 0.3)
        hits = [u for u in await store.all_users() if _user_hit(u, term)]
        hits.sort(key=lambda u: (term not in u.username.lower(), -(u.rating or 0)))
        users = hits[:cap]

    return {
        "query": q,
        "type": search_type,
        "results": {
            "snippets": [snippet_out(s) for s in snippets],
            "users": [user_out(u) for u in users],
        },
        "total": {
            "snippets": len(snippets),
            "users": len(users),
            "all": len(snippets) + len(users),
        },
    }


async def suggestions(store: MarketplaceStore, q, limit: int) -> dict:
    q = _require_query(q)
    term = q.lower()
    tags = Counter()
    titles = Counter()
    for snippet in await store.all_snippets():
        for tag in snippet.tags or []:
            if term in tag.lower():
                tags[tag] += 1
        for word in snippet.title.lower().split():
            if len(word) > 2 and term in word:
                titles[snippet.title] += 1

    found = [{"text": tag, "type": "tag", "category": "Tags"} for tag, _ in tags.most_common(int(limit * 0.6))]
    found += [{"text": title, "type": "title", "category": "Snippets"}
              for title, _ in titles.most_common(int(limit * 0.4))]
    return {"query": q, "suggestions": found[:limit]}


async def filters(store: MarketplaceStore) -> dict:
    snippets = await store.all_snippets()
    prices = [float(s.price) for s in snippets]
    ratings = [s.rating or 0 for s in snippets]
    return {
        "languages": sorted({s.language for s in snippets if s.language}),
        "frameworks": sorted({s.framework for s in snippets if s.framework}),
        "tags": sorted({tag for s in snippets for tag in (s.tags or [])}),
        "priceRange": {"min": min(prices, default=0), "max": max(prices, default=0)},
        "ratingRange": {"min": min(ratings, default=0), "max": max(ratings, default=0)},
        "sortOptions": SORT_OPTIONS,
    }
