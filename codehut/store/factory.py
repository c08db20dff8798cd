import logging

from codehut.core.config import Settings
from codehut.store.base import MarketplaceStore
from codehut.store.memory import MemoryStore
from codehut.store.sample_data import sample_marketplace
from codehut.store.sql import SqlStore

logger = logging.getLogger(__name__)


async def build_store(settings: Settings) -> MarketplaceStore:
    """Picks the store for this process. There is no fallback between the two."""
    if settings.database_enabled:
        store = SqlStore(settings.async_database_url)
        await store.init()
        return store

    logger.warning("[Store] DATABASE_URL not set, running on the in-memory store. Data is lost on restart.")
    store = MemoryStore()
    await store.init()
    if settings.SEED_SAMPLE_DATA:
        users, snippets, purchases = sample_marketplace(settings.BCRYPT_ROUNDS)
        await store.bulk_load(users, snippets, purchases)
        logger.info(f"[Store] Loaded sample data: {len(users)} users, {len(snippets)} snippets")
    return store
