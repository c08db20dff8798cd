import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from codehut.core.config import Settings, settings as default_settings
from codehut.core.errors import register_exception_handlers
from codehut.modules.auth.router import router as auth_router
from codehut.modules.payments.gateway import RazorpayGateway
from codehut.modules.payments.router import router as payments_router
from codehut.modules.purchases.router import router as purchases_router
from codehut.modules.search.router import router as search_router
from codehut.modules.snippets.router import router as snippets_router
from codehut.modules.stats.router import router as stats_router
from codehut.modules.users.router import router as users_router
from codehut.store.base import MarketplaceStore
from codehut.store.factory import build_store

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[MarketplaceStore] = None,
    gateway: Optional[RazorpayGateway] = None,
) -> FastAPI:
    """Builds the API. Tests pass their own store and gateway."""
    settings = settings or default_settings
    logging.basicConfig(level=settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        openapi_url=f"{settings.API_PREFIX}/openapi.json"
    )
    app.state.settings = settings
    app.state.store = store
    app.state.gateway = gateway or RazorpayGateway.from_settings(settings)

    @app.on_event("startup")
    async def startup_event():
        if app.state.store is None:
            app.state.store = await build_store(settings)
        else:
            await app.state.store.init()
        mode = "demo" if app.state.gateway.is_demo else "live"
        logger.info(f"[API] {settings.PROJECT_NAME} started, payments in {mode} mode")

    @app.on_event("shutdown")
    async def shutdown_event():
        if app.state.store is not None:
            await app.state.store.close()

    register_exception_handlers(app)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get(f"{settings.API_PREFIX}/ping")
    def ping():
        return {"message": settings.PING_MESSAGE or "ping"}

    prefix = settings.API_PREFIX
    app.include_router(auth_router, prefix=f"{prefix}/auth", tags=["auth"])
    app.include_router(snippets_router, prefix=f"{prefix}/snippets", tags=["snippets"])
    app.include_router(users_router, prefix=f"{prefix}/users", tags=["users"])
    app.include_router(purchases_router, prefix=f"{prefix}/purchases", tags=["purchases"])
    app.include_router(payments_router, prefix=f"{prefix}/payments", tags=["payments"])
    app.include_router(search_router, prefix=f"{prefix}/search", tags=["search"])
    app.include_router(stats_router, prefix=f"{prefix}/stats", tags=["stats"])

    return app


app = create_app()
