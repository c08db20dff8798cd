import logging
import math
from decimal import Decimal
from typing import Optional

from fastapi import HTTPException

from codehut.core.db import as_utc, new_id, utcnow
from codehut.modules.auth.models import User
from codehut.modules.snippets.models import Snippet, SNIPPET_APPROVED
from codehut.modules.snippets.schemas import SnippetCreate
from codehut.modules.purchases.access import is_snippet_accessible
from codehut.store.base import MarketplaceStore, SnippetQuery

logger = logging.getLogger(__name__)


def _iso(value) -> Optional[str]:
    value = as_utc(value)
    return value.isoformat() if value else None


def snippet_out(snippet: Snippet, include_code: bool = False) -> dict:
    data = {
        "id": snippet.id,
        "title": snippet.title,
        "description": snippet.description,
        "price": float(snippet.price),
        "rating": snippet.rating or 0.0,
        "author": snippet.author_username,
        "authorId": snippet.author_id,
        "tags": list(snippet.tags or []),
        "language": snippet.language,
        "framework": snippet.framework,
        "downloads": snippet.downloads or 0,
        "status": snippet.status,
        "createdAt": _iso(snippet.created_at),
        "updatedAt": _iso(snippet.updated_at),
    }
    if include_code:
        data["code"] = snippet.code
    return data


def popularity(snippet: Snippet) -> float:
    return (snippet.downloads or 0) * 0.7 + (snippet.rating or 0) * 30


def _pagination(page: int, limit: int, total: int) -> dict:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": math.ceil(total / limit) if limit else 0,
    }


async def list_snippets(store: MarketplaceStore, query: SnippetQuery, page: int, limit: int) -> dict:
    query.offset = (page - 1) * limit
    query.limit = limit
    snippets, total = await store.query_snippets(query)
    return {
        "snippets": [snippet_out(s) for s in snippets],
        "pagination": _pagination(page, limit, total),
    }


async def popular_snippets(store: MarketplaceStore, limit: int) -> dict:
    snippets = sorted(await store.all_snippets(), key=popularity, reverse=True)[:limit]
    return {"snippets": [snippet_out(s) for s in snippets]}


async def snippets_by_author(store: MarketplaceStore, author_id: str, page: int, limit: int) -> dict:
    query = SnippetQuery(author_id=author_id, sort_by="created_at", descending=True,
                         offset=(page - 1) * limit, limit=limit)
    snippets, total = await store.query_snippets(query)
    return {
        "snippets": [snippet_out(s) for s in snippets],
        "pagination": _pagination(page, limit, total),
    }


async def get_snippet_or_404(store: MarketplaceStore, snippet_id: str) -> Snippet:
    snippet = await store.get_snippet(snippet_id)
    if snippet is None:
        raise HTTPException(status_code=404, detail="Snippet not found")
    return snippet


async def snippet_detail(store: MarketplaceStore, snippet_id: str, user: Optional[User]) -> dict:
    snippet = await get_snippet_or_404(store, snippet_id)
    accessible = await is_snippet_accessible(store, snippet, user.id if user else None)
    data = snippet_out(snippet, include_code=True)
    if not accessible:
        data["code"] = None
    data["locked"] = not accessible
    return {"snippet": data}


async def access_check(store: MarketplaceStore, snippet_id: str, user: Optional[User]) -> dict:
    snippet = await get_snippet_or_404(store, snippet_id)
    accessible = await is_snippet_accessible(store, snippet, user.id if user else None)
    return {"snippetId": snippet.id, "accessible": accessible}


async def create_snippet(store: MarketplaceStore, author: User, payload: SnippetCreate) -> dict:
    now = utcnow()
    snippet = Snippet(
        id=new_id("snippet"),
        title=payload.title.strip(),
        description=payload.description.strip(),
        code=payload.code,
        price=Decimal(str(payload.price)).quantize(Decimal("0.01")),
        rating=0.0,
        author_id=author.id,
        author_username=author.username,
        tags=[tag.strip() for tag in payload.tags if tag.strip()],
        language=payload.language,
        framework=payload.framework or None,
        downloads=0,
        status=SNIPPET_APPROVED,
        created_at=now,
        updated_at=now,
    )
    await store.add_snippet(snippet)
    logger.info(f"[Snippets] {author.username} published {snippet.id} at {snippet.price}")
    return {"snippet": snippet_out(snippet, include_code=True), "message": "Snippet created successfully"}
