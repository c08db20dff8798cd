import re
import uuid
from datetime import timedelta
from typing import Any, Dict, Optional

import bcrypt
from jose import jwt

from codehut.core.config import Settings
from codehut.core.db import utcnow

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration(value: str) -> timedelta:
    """Turn "7d", "15m", "12h" or a bare number of seconds into a timedelta."""
    match = _DURATION_RE.match(str(value))
    if not match:
        raise ValueError(f"Unrecognised duration: {value!r}")
    amount, unit = match.groups()
    return timedelta(seconds=int(amount) * _UNITS[unit])


def get_password_hash(password: str, rounds: int = 12) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # Malformed hash in storage
        return False


def validate_password(password: str) -> Optional[str]:
    """Returns the first complaint about a password, or None when it is acceptable."""
    if len(password) < 8:
        return "Password must be at least 8 characters long"
    if not re.search(r"[a-z]", password):
        return "Password must contain at least one lowercase letter"
    if not re.search(r"[A-Z]", password):
        return "Password must contain at least one uppercase letter"
    if not re.search(r"\d", password):
        return "Password must contain at least one number"
    return None


def _encode(claims: Dict[str, Any], lifetime: timedelta, settings: Settings) -> str:
    now = utcnow()
    to_encode = dict(claims)
    to_encode.update({
        "iat": now,
        "exp": now + lifetime,
        "iss": settings.JWT_ISSUER,
        "aud": settings.JWT_AUDIENCE,
        "jti": uuid.uuid4().hex,
    })
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def create_access_token(user, settings: Settings) -> str:
    role = user.role.value if hasattr(user.role, "value") else user.role
    claims = {
        "userId": user.id,
        "username": user.username,
        "email": user.email,
        "role": role,
        "type": ACCESS_TOKEN,
    }
    return _encode(claims, parse_duration(settings.JWT_EXPIRES_IN), settings)


def create_refresh_token(user_id: str, settings: Settings, lifetime: Optional[timedelta] = None) -> str:
    lifetime = lifetime or parse_duration(settings.REFRESH_TOKEN_EXPIRES_IN)
    return _encode({"userId": user_id, "type": REFRESH_TOKEN}, lifetime, settings)


def decode_token(token: str, settings: Settings) -> Dict[str, Any]:
    """Raises jose.JWTError on a bad signature, expiry, issuer or audience."""
    return jwt.decode(
        token,
        settings.JWT_SECRET,
        algorithms=[settings.JWT_ALGORITHM],
        audience=settings.JWT_AUDIENCE,
        issuer=settings.JWT_ISSUER,
    )
