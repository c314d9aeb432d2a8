# notes_app/core/security.py
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.hash import argon2

from notes_app.core.config import settings

# fixed work factor; raising it only affects newly created hashes
_hasher = argon2.using(time_cost=2, memory_cost=102400, parallelism=8)


def hash_password(plain: str) -> str:
    return _hasher.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return argon2.verify(plain, hashed)
    except ValueError:
        # not an argon2 hash
        return False


def encode_signed(purpose: str, data: Dict[str, Any], max_age: Optional[int] = None) -> str:
    """Sign ``data`` for a single purpose (one cookie kind cannot be replayed as another)."""
    claims: Dict[str, Any] = {"pur": purpose, "data": data, "iat": datetime.utcnow()}
    if max_age is not None:
        claims["exp"] = datetime.utcnow() + timedelta(seconds=max_age)
    return jwt.encode(claims, settings.SESSION_SECRET, algorithm=settings.JWT_ALG)


def decode_signed(purpose: str, token: Optional[str]) -> Optional[Dict[str, Any]]:
    """Return the signed payload, or None for a missing, tampered, expired or foreign token."""
    if not token:
        return None
    try:
        payload = jwt.decode(token, settings.SESSION_SECRET, algorithms=[settings.JWT_ALG])
    except JWTError:
        return None
    if payload.get("pur") != purpose:
        return None
    data = payload.get("data")
    return data if isinstance(data, dict) else None
