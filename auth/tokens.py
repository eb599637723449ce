"""
auth/tokens.py -- Access-token codec and refresh-token generation.

Access tokens are HS256 JWTs (python-jose) signed with SECRET_KEY. Every
flow that issues one uses the same lifetime, ACCESS_TOKEN_EXPIRE_SECONDS.

Refresh tokens are opaque: "<token_id>.<secret>". token_id is 8 random bytes
in hex and is stored in clear as a unique indexed lookup key; secret is 32
random bytes in hex and only its bcrypt hash is stored (auth/credentials.py).
Splitting the two keeps refresh lookup O(1) while the secret half still gets
bcrypt's brute-force resistance.

There is deliberately no decode-without-verify helper here.

Layer rule: no imports from api/ or social/.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt

from auth.errors import RefreshTokenInvalid, TokenExpired, TokenInvalid
from auth.models import AccessClaims
from core.config import get_settings

logger = logging.getLogger("meomeo.auth")

_ALGORITHM = "HS256"
_TOKEN_TYPE = "access"

_settings = get_settings()


def create_access_token(user_id: int, username: str, expire_seconds: int = 0) -> str:
    """Issue a signed access token for the given user.

    expire_seconds=0 means "use the configured lifetime". Tests pass a
    negative value to mint tokens that are already expired.
    """
    ttl = expire_seconds or _settings.access_token_expire_seconds
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "user_id": user_id,
        "username": username,
        "type": _TOKEN_TYPE,
        "iat": now,
        "exp": now + timedelta(seconds=ttl),
    }
    return jwt.encode(payload, _settings.secret_key, algorithm=_ALGORITHM)


def decode_access_token(token: str) -> AccessClaims:
    """Verify signature, expiry and claim shape.

    Raises TokenExpired past exp, TokenInvalid for anything else wrong.
    """
    try:
        payload = jwt.decode(token, _settings.secret_key, algorithms=[_ALGORITHM])
    except ExpiredSignatureError as exc:
        raise TokenExpired() from exc
    except JWTError as exc:
        raise TokenInvalid() from exc

    user_id = payload.get("user_id")
    username = payload.get("username")
    if payload.get("type") != _TOKEN_TYPE or not isinstance(user_id, int) or not isinstance(username, str):
        raise TokenInvalid()
    return AccessClaims(user_id=user_id, username=username)


def generate_refresh_token() -> str:
    return f"{secrets.token_hex(8)}.{secrets.token_hex(32)}"


def split_refresh_token(token: str) -> tuple[str, str]:
    """Return (token_id, secret). Raises RefreshTokenInvalid on malformed input."""
    token_id, sep, secret = token.partition(".")
    if not sep or len(token_id) != 16 or len(secret) != 64:
        raise RefreshTokenInvalid()
    return token_id, secret
