import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError

from codehut.core.config import Settings, settings as default_settings
from codehut.core import security
from codehut.modules.auth.models import User, UserRole
from codehut.modules.payments.gateway import RazorpayGateway
from codehut.store.base import MarketplaceStore

logger = logging.getLogger(__name__)

DEMO_BUYER_ID = "demo-user"

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{default_settings.API_PREFIX}/auth/login", auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> MarketplaceStore:
    return request.app.state.store


def get_gateway(request: Request) -> RazorpayGateway:
    return request.app.state.gateway


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _user_from_token(token: str, store: MarketplaceStore, settings: Settings) -> User:
    try:
        payload = security.decode_token(token, settings)
    except JWTError:
        raise _unauthorized("Invalid or expired token")

    if payload.get("type") != security.ACCESS_TOKEN:
        raise _unauthorized("Invalid token type")
    user_id = payload.get("userId")
    if not user_id:
        raise _unauthorized("Invalid token payload")

    user = await store.get_user(user_id)
    if user is None:
        raise _unauthorized("User not found")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is deactivated")
    return user


async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    store: MarketplaceStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> User:
    if not token:
        raise _unauthorized("Access token required")
    return await _user_from_token(token, store, settings)


async def get_current_user_optional(
    token: Optional[str] = Depends(oauth2_scheme),
    store: MarketplaceStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> Optional[User]:
    # A bad token on a public route is treated as anonymous
    if not token:
        return None
    try:
        return await _user_from_token(token, store, settings)
    except HTTPException:
        return None


def require_roles(*roles: UserRole):
    allowed = set(roles)

    async def checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return current_user

    return checker


require_admin = require_roles(UserRole.ADMIN)
require_moderator = require_roles(UserRole.ADMIN, UserRole.MODERATOR)


async def get_payment_buyer(
    token: Optional[str] = Depends(oauth2_scheme),
    store: MarketplaceStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> str:
    """Buyer id for checkout routes.

    With payments configured a valid bearer token is mandatory. In demo
    payments mode an anonymous caller checks out as ``demo-user``.
    """
    if settings.payments_enabled:
        if not token:
            raise _unauthorized("Access token required")
        user = await _user_from_token(token, store, settings)
        return user.id

    user = None
    if token:
        try:
            user = await _user_from_token(token, store, settings)
        except HTTPException:
            user = None
    return user.id if user is not None else DEMO_BUYER_ID
