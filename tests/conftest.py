"""
tests/conftest.py -- Shared test fixtures for MeoMeo unit and integration tests.

This module provides:
  - engine / user_store / social_store: fresh in-memory DB per test (unit tests)
  - StubIdentityVerifier: stands in for Google; maps raw tokens to identities
  - _patch_lifespan(): wires test stores and the stub verifier into app.state
  - api_client: module-scoped TestClient plus a ready user (client, token, uid)
  - other_user: a second active account on the same client (token, uid)

Design: integration fixtures use named shared-memory SQLite URIs (not plain
:memory:) because TestClient runs sync handlers in a thread pool. The named
URI format (file:name?mode=memory&cache=shared&uri=true) shares one
in-memory instance across all connections in the process.

Environment variables must be set before any api/auth/core import so
get_settings() sees them: DEBUG auto-generates SECRET_KEY, rate limiting is
switched off, and bcrypt runs at its minimum allowed cost for speed.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set before any auth/core import so get_settings() picks them up.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("BCRYPT_ROUNDS", "10")
os.environ.setdefault("GOOGLE_CLIENT_ID", "test-client-id.apps.googleusercontent.com")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.credentials import hash_password
from auth.errors import IdentityMissingEmail, IdentityTokenInvalid
from auth.models import GoogleIdentity, User
from auth.store import UserStore
from auth.tokens import create_access_token
from core.database import create_db_engine
from social.store import SocialStore

TEST_PASSWORD = "purr-purr-123"


# ---------------------------------------------------------------------------
# Google stand-in
# ---------------------------------------------------------------------------


class StubIdentityVerifier:
    """Replaces GoogleIdentityVerifier in integration tests.

    Tokens registered with add() verify to their identity; "no-email" raises
    IdentityMissingEmail; anything else is rejected as invalid.
    """

    def __init__(self) -> None:
        self.identities: dict[str, GoogleIdentity] = {}

    def add(self, raw_token: str, identity: GoogleIdentity) -> None:
        self.identities[raw_token] = identity

    def verify(self, raw_token: str) -> GoogleIdentity:
        if raw_token == "no-email":
            raise IdentityMissingEmail()
        identity = self.identities.get(raw_token)
        if identity is None:
            raise IdentityTokenInvalid()
        return identity


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def make_user(store: UserStore, username: str, password: str = TEST_PASSWORD, **fields) -> tuple[int, str]:
    """Create an active password user and return (id, access token)."""
    uid = store.create_user(User(username=username, password_hash=hash_password(password), **fields))
    return uid, create_access_token(uid, username)


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _shared_memory_url(prefix: str) -> str:
    return f"sqlite:///file:{prefix}_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"


def _patch_lifespan(engine, user_store: UserStore, social_store: SocialStore, verifier: StubIdentityVerifier):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores into app.state so TestClient routes see
    isolated test DBs and never reach Google.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.engine = engine
        app.state.user_store = user_store
        app.state.social_store = social_store
        app.state.identity_verifier = verifier
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Unit-test fixtures -- fresh database per test
# ---------------------------------------------------------------------------


@pytest.fixture
def engine():
    eng = create_db_engine(_shared_memory_url("unit"))
    # Hold one connection open so the shared in-memory DB outlives pool churn.
    keepalive = eng.connect()
    yield eng
    keepalive.close()
    eng.dispose()


@pytest.fixture
def user_store(engine) -> UserStore:
    return UserStore(engine)


@pytest.fixture
def social_store(engine) -> SocialStore:
    return SocialStore(engine)


# ---------------------------------------------------------------------------
# Module-scoped integration fixtures -- one TestClient per test module
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client() -> Generator[tuple[TestClient, str, int], None, None]:
    """Yield (client, token, user_id) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so
    tests hit real route handlers but use an isolated in-memory database.
    The user "mimi" (password TEST_PASSWORD) exists before the client starts.
    """
    engine = create_db_engine(_shared_memory_url("api"))
    keepalive = engine.connect()
    user_store = UserStore(engine)
    social_store = SocialStore(engine)
    verifier = StubIdentityVerifier()

    uid, token = make_user(user_store, "mimi", display_name="Mimi")

    app.router.lifespan_context = _patch_lifespan(engine, user_store, social_store, verifier)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, token, uid

    keepalive.close()
    engine.dispose()


@pytest.fixture(scope="module")
def other_user(api_client) -> tuple[str, int]:
    """A second active account ("tom") on the api_client database: (token, uid)."""
    client, _token, _uid = api_client
    uid, token = make_user(client.app.state.user_store, "tom")
    return token, uid
