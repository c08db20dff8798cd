import logging
import re
from datetime import timedelta
from typing import Optional

from fastapi import HTTPException
from jose import JWTError

from codehut.core import security
from codehut.core.config import Settings
from codehut.core.db import as_utc, new_id, utcnow
from codehut.core.errors import DuplicateRecordError
from codehut.modules.auth.models import User, UserRole, UserSession
from codehut.modules.auth.schemas import user_out
from codehut.store.base import MarketplaceStore
from codehut.store.sample_data import DEMO_PASSWORD

logger = logging.getLogger(__name__)

USERNAME_RE = re.compile(r"^[a-zA-Z0-9_-]{3,20}$")
ACTIVE_SESSION_WINDOW = timedelta(hours=1)


def avatar_url(username: str) -> str:
    return f"https://ui-avatars.com/api/?name={username}&background=random"


async def open_session(store: MarketplaceStore, settings: Settings, user: User, remember_me: bool = False) -> dict:
    """Issues a token pair and replaces the user's session with a fresh one."""
    expires_in = settings.REFRESH_TOKEN_EXPIRES_IN if remember_me else settings.JWT_EXPIRES_IN
    lifetime = security.parse_duration(expires_in)
    now = utcnow()

    access_token = security.create_access_token(user, settings)
    refresh_token = security.create_refresh_token(user.id, settings, lifetime)
    await store.replace_session(UserSession(
        id=new_id("session"),
        user_id=user.id,
        refresh_token=refresh_token,
        expires_at=now + lifetime,
        created_at=now,
        last_activity=now,
    ))
    return {"accessToken": access_token, "refreshToken": refresh_token, "expiresIn": expires_in}


async def signup(store: MarketplaceStore, settings: Settings, username: str, email: str,
                 password: str, bio: Optional[str] = None) -> dict:
    if not USERNAME_RE.match(username):
        raise HTTPException(
            status_code=400,
            detail="Username must be 3-20 characters and contain only letters, numbers, underscores, and hyphens",
        )
    complaint = security.validate_password(password)
    if complaint:
        raise HTTPException(status_code=400, detail=complaint)

    if await store.get_user_by_username(username):
        raise HTTPException(status_code=409, detail="Username already taken")
    if await store.get_user_by_email(email):
        raise HTTPException(status_code=409, detail="Email already registered")

    now = utcnow()
    user = User(
        id=new_id("user"),
        username=username,
        email=email.lower(),
        password_hash=security.get_password_hash(password, settings.BCRYPT_ROUNDS),
        bio=bio or "",
        avatar=avatar_url(username),
        role=UserRole.USER,
        total_snippets=0,
        total_downloads=0,
        rating=0.0,
        is_active=True,
        email_verified=False,
        created_at=now,
        updated_at=now,
        last_login_at=now,
    )
    try:
        await store.add_user(user)
    except DuplicateRecordError:
        raise HTTPException(status_code=409, detail="Username or email already registered")

    tokens = await open_session(store, settings, user)
    logger.info(f"[Auth] New account {user.username} ({user.id})")
    return {
        "user": user_out(user),
        "accessToken": tokens["accessToken"],
        "refreshToken": tokens["refreshToken"],
        "message": "Account created successfully",
    }


async def login(store: MarketplaceStore, settings: Settings, email: str, password: str,
                remember_me: bool = False) -> dict:
    user = await store.get_user_by_email(email)
    if user is None or not security.verify_password(password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account is deactivated")

    user = await store.update_user(user.id, last_login_at=utcnow()) or user
    tokens = await open_session(store, settings, user, remember_me)
    logger.info(f"[Auth] {user.username} logged in")
    return {"user": user_out(user), **tokens, "message": "Login successful"}


async def refresh(store: MarketplaceStore, settings: Settings, refresh_token: Optional[str]) -> dict:
    if not refresh_token:
        raise HTTPException(status_code=400, detail="Refresh token required")
    try:
        payload = security.decode_token(refresh_token, settings)
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or expired refresh token")
    if payload.get("type") != security.REFRESH_TOKEN:
        raise HTTPException(status_code=401, detail="Invalid token type")

    user_id = payload.get("userId")
    session = await store.get_session(user_id) if user_id else None
    if session is None or session.refresh_token != refresh_token or as_utc(session.expires_at) <= utcnow():
        raise HTTPException(status_code=401, detail="Session expired or invalid")

    user = await store.get_user(user_id)
    if user is None or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found or inactive")

    tokens = await open_session(store, settings, user)
    return {"user": user_out(user), **tokens, "message": "Token refreshed successfully"}


async def logout(store: MarketplaceStore, user: User) -> dict:
    await store.delete_session(user.id)
    logger.info(f"[Auth] {user.username} logged out")
    return {"message": "Logged out successfully"}


async def me(store: MarketplaceStore, user: User) -> dict:
    await store.touch_session(user.id, utcnow())
    return {"user": user_out(user)}


async def change_password(store: MarketplaceStore, settings: Settings, user: User,
                          current_password: Optional[str], new_password: Optional[str]) -> dict:
    if not current_password or not new_password:
        raise HTTPException(status_code=400, detail="Current password and new password are required")
    complaint = security.validate_password(new_password)
    if complaint:
        raise HTTPException(status_code=400, detail=complaint)
    if not security.verify_password(current_password, user.password_hash):
        raise HTTPException(status_code=401, detail="Current password is incorrect")

    await store.update_user(
        user.id,
        password_hash=security.get_password_hash(new_password, settings.BCRYPT_ROUNDS),
        updated_at=utcnow(),
    )
    return {"message": "Password changed successfully"}


async def list_sessions(store: MarketplaceStore) -> dict:
    now = utcnow()
    sessions = await store.list_sessions()
    rows = []
    active = 0
    for session in sessions:
        user = await store.get_user(session.user_id)
        last_activity = as_utc(session.last_activity)
        is_active = last_activity is not None and now - last_activity < ACTIVE_SESSION_WINDOW
        if is_active:
            active += 1
        rows.append({
            "userId": session.user_id,
            "username": user.username if user else None,
            "loginTime": as_utc(session.created_at).isoformat() if session.created_at else None,
            "lastActivity": last_activity.isoformat() if last_activity else None,
            "expiresAt": as_utc(session.expires_at).isoformat(),
            "active": is_active,
        })
    return {"sessions": rows, "totalSessions": len(rows), "activeSessions": active}


async def demo_login(store: MarketplaceStore, settings: Settings, username: str) -> dict:
    """Logs in as ``username``, creating a throwaway account the first time."""
    user = await store.get_user_by_username(username)
    if user is None:
        result = await signup(store, settings, username, f"{username.lower()}@demo.codehut.dev", DEMO_PASSWORD)
        result["message"] = "Demo account created"
        return result
    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account is deactivated")
    tokens = await open_session(store, settings, user)
    return {"user": user_out(user), **tokens, "message": "Demo login successful"}
