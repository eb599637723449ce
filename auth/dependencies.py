"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Requests authenticate with an "Authorization: Bearer <access token>" header.
There is no cookie path and no transparent refresh: an expired access token
is a 401 and the client calls POST /refresh explicitly.

try_get_current_user() is the soft variant (returns None on failure) used
by public reads that change behaviour for the owner.
get_current_user() raises the matching AuthError when unauthenticated.

Layer rule: no imports from api/ or social/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Request

from auth.errors import AuthError, MissingCredentials, TokenInvalid
from auth.models import User
from auth.sessions import SessionService
from auth.tokens import decode_access_token


def _bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    return None


def get_current_user(request: Request) -> User:
    """Require a valid bearer token for an active account.

    Raises MissingCredentials, TokenExpired or TokenInvalid; the app-level
    AuthError handler turns them into 401 responses.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user: User = Depends(get_current_user)): ...
    """
    token = _bearer_token(request)
    if token is None:
        raise MissingCredentials()
    claims = decode_access_token(token)
    user = request.app.state.user_store.get_by_id(claims.user_id)
    if user is None or user.is_provisional:
        raise TokenInvalid()
    return user


def try_get_current_user(request: Request) -> User | None:
    """Return the authenticated user, or None. Never raises for auth failures."""
    try:
        return get_current_user(request)
    except AuthError:
        return None


def get_session_service(request: Request) -> SessionService:
    return SessionService(request.app.state.user_store)
