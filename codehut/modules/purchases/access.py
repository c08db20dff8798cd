import logging
from decimal import Decimal
from typing import Optional

from codehut.modules.snippets.models import Snippet
from codehut.store.base import MarketplaceStore

logger = logging.getLogger(__name__)


def is_free(snippet: Snippet) -> bool:
    return Decimal(snippet.price or 0) == 0


async def is_snippet_accessible(store: MarketplaceStore, snippet: Snippet, user_id: Optional[str]) -> bool:
    """Whether ``user_id`` may see the full code of ``snippet``.

    Free snippets are open to everyone, anonymous callers included. A paid
    snippet needs a purchase row (or authorship). Any failure answers False.
    """
    if is_free(snippet):
        return True
    if not user_id:
        return False
    if snippet.author_id == user_id:
        return True
    try:
        return await store.get_purchase(user_id, snippet.id) is not None
    except Exception as e:
        logger.error(f"[Access] Could not check entitlement of {user_id} on {snippet.id}, denying: {e}")
        return False
