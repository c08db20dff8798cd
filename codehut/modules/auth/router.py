from typing import Any
from fastapi import APIRouter, Depends

from codehut.core import deps
from codehut.core.config import Settings
from codehut.modules.auth import schemas, service
from codehut.modules.auth.models import User
from codehut.store.base import MarketplaceStore

router = APIRouter()

@router.post("/signup", status_code=201)
async def signup(
    payload: schemas.SignupRequest,
    store: MarketplaceStore = Depends(deps.get_store),
    settings: Settings = Depends(deps.get_settings),
) -> Any:
    return await service.signup(store, settings, payload.username, payload.email, payload.password, payload.bio)

@router.post("/login")
async def login(
    payload: schemas.LoginRequest,
    store: MarketplaceStore = Depends(deps.get_store),
    settings: Settings = Depends(deps.get_settings),
) -> Any:
    return await service.login(store, settings, payload.email, payload.password, payload.rememberMe)

@router.post("/refresh")
async def refresh_token(
    payload: schemas.RefreshRequest,
    store: MarketplaceStore = Depends(deps.get_store),
    settings: Settings = Depends(deps.get_settings),
) -> Any:
    return await service.refresh(store, settings, payload.refreshToken)

@router.post("/logout")
async def logout(
    current_user: User = Depends(deps.get_current_user),
    store: MarketplaceStore = Depends(deps.get_store),
) -> Any:
    return await service.logout(store, current_user)

@router.get("/me")
async def read_users_me(
    current_user: User = Depends(deps.get_current_user),
    store: MarketplaceStore = Depends(deps.get_store),
) -> Any:
    return await service.me(store, current_user)

@router.put("/change-password")
async def change_password(
    payload: schemas.ChangePasswordRequest,
    current_user: User = Depends(deps.get_current_user),
    store: MarketplaceStore = Depends(deps.get_store),
    settings: Settings = Depends(deps.get_settings),
) -> Any:
    return await service.change_password(store, settings, current_user, payload.currentPassword, payload.newPassword)

@router.get("/sessions")
async def list_sessions(
    current_user: User = Depends(deps.require_admin),
    store: MarketplaceStore = Depends(deps.get_store),
) -> Any:
    """Admin view of every open session."""
    return await service.list_sessions(store)

@router.post("/demo/{username}")
async def demo_login(
    username: str,
    store: MarketplaceStore = Depends(deps.get_store),
    settings: Settings = Depends(deps.get_settings),
) -> Any:
    return await service.demo_login(store, settings, username)
