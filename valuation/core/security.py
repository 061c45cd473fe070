# valuation/core/security.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from valuation.core.config import get_settings
from valuation.policies.rbac import Principal

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(raw: str) -> str:
    return pwd_context.hash(raw)


def verify_password(raw: str, hashed: Optional[str]) -> bool:
    if not raw or not hashed:
        return False
    return pwd_context.verify(raw, hashed)


def principal_claims(principal: Principal) -> Dict[str, Any]:
    return {
        "username": principal.username,
        "client_id": principal.client_id,
        "role": principal.role.value,
        "display_name": principal.display_name,
    }


def create_access_token(principal: Principal, expires_minutes: Optional[int] = None) -> str:
    """Signed bearer token; `sub` is "<client_id>:<username>"."""
    settings = get_settings()
    now = datetime.now(timezone.utc)
    ttl = timedelta(minutes=expires_minutes or settings.jwt_access_token_minutes)
    payload = {
        "sub": f"{principal.client_id}:{principal.username}",
        "iat": int(now.timestamp()),
        "exp": int((now + ttl).timestamp()),
        **principal_claims(principal),
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Dict[str, Any]:
    """Raises ValueError for a bad signature, malformed token or expiry."""
    settings = get_settings()
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        raise ValueError(f"Invalid token: {e}") from e
