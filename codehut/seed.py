import asyncio
import logging
import sys

from codehut.core.config import settings
from codehut.store.sample_data import ADMIN_PASSWORD, DEMO_PASSWORD, sample_marketplace
from codehut.store.sql import SqlStore


async def seed_sample_data() -> int:
    if not settings.database_enabled:
        print("DATABASE_URL is not set, nothing to seed.")
        return 1

    store = SqlStore(settings.async_database_url)
    await store.init()
    try:
        # Check if the sample set is already there
        if await store.get_user("user-1") is not None:
            print("Sample data already loaded.")
            return 0

        print("Loading sample marketplace...")
        users, snippets, purchases = sample_marketplace(settings.BCRYPT_ROUNDS)
        await store.bulk_load(users, snippets, purchases)
        print(f"Loaded {len(users)} users, {len(snippets)} snippets, {len(purchases)} purchases.")
        print(f"Demo users password: {DEMO_PASSWORD}")
        print(f"Admin: admin@codehut.com / {ADMIN_PASSWORD}")
        return 0
    finally:
        await store.close()


if __name__ == "__main__":
    logging.basicConfig(level=settings.LOG_LEVEL)
    sys.exit(asyncio.run(seed_sample_data()))
