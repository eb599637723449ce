"""
auth/credentials.py -- bcrypt hashing for passwords and refresh-token secrets.

bcrypt is used directly (not via passlib, which is unmaintained). The work
factor comes from BCRYPT_ROUNDS (minimum 10, enforced in core/config.py).

Security:
  authenticate_user() runs a bcrypt comparison even when the username does
  not exist, against _DUMMY_HASH, so response time does not reveal whether a
  handle is registered. Always use it for password login; never inline
  get_by_username() + verify_password().
"""

from __future__ import annotations

import logging

import bcrypt

from auth.models import User
from core.config import get_settings

logger = logging.getLogger("meomeo.auth")

_settings = get_settings()


def hash_secret(plaintext: str) -> str:
    salt = bcrypt.gensalt(rounds=_settings.bcrypt_rounds)
    return bcrypt.hashpw(plaintext.encode(), salt).decode()


def verify_secret(hashed: str | None, plaintext: str) -> bool:
    """Constant-time check of plaintext against a bcrypt hash.

    Returns False for a missing or malformed hash instead of raising, so a
    corrupt row reads as "no match".
    """
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(plaintext.encode(), hashed.encode())
    except ValueError:
        return False


hash_password = hash_secret
verify_password = verify_secret

_DUMMY_HASH = hash_secret("meomeo_timing_dummy")


def authenticate_user(store, username: str, password: str) -> User | None:
    """Return the user when (username, password) match an active account.

    Provisional and Google-only accounts never match: the former are not
    yet usable and the latter have no password hash.
    """
    user = store.get_by_username(username)
    if user is None or not user.password_hash or user.is_provisional:
        verify_secret(_DUMMY_HASH, password)
        return None
    if not verify_secret(user.password_hash, password):
        return None
    return user
