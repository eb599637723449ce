"""
auth/google.py -- Google ID-token verification.

The frontend obtains an ID token from Google Identity Services and posts it
to /google-auth. GoogleIdentityVerifier checks it the way Google documents:

  1. The signature matches a key in Google's published JWKS.
  2. iss is accounts.google.com (with or without https://).
  3. aud equals our GOOGLE_CLIENT_ID.
  4. exp has not passed.

JWKS documents are fetched with a module-level requests.Session and cached
in-process for GOOGLE_JWKS_CACHE_SECONDS. A kid miss forces one refetch,
since Google rotates keys without notice. Claim validation is delegated to
Authlib's JOSE implementation.

Every failure surfaces as IdentityTokenInvalid except a verified token with
no email claim, which is IdentityMissingEmail.

Layer rule: no imports from api/ or social/.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

import requests
from authlib.jose import JsonWebKey, JsonWebToken
from authlib.jose.errors import JoseError

from auth.errors import IdentityMissingEmail, IdentityTokenInvalid
from auth.models import GoogleIdentity
from core.config import Settings

logger = logging.getLogger("meomeo.auth.google")

# Module-level session shared across JWKS fetches for connection pooling.
_session = requests.Session()
_session.max_redirects = 3

_jwt = JsonWebToken(["RS256"])


def fetch_jwks(url: str) -> dict:
    """GET a JWKS document. Raises requests.RequestException on failure."""
    resp = _session.get(url, timeout=10)
    resp.raise_for_status()
    return resp.json()


class GoogleIdentityVerifier:
    """Verify Google ID tokens against a single OAuth client id.

    jwks_fetcher is injectable so tests can sign tokens with a local RSA key
    instead of reaching Google.
    """

    def __init__(
        self,
        client_id: str,
        jwks_url: str,
        issuers: list[str],
        jwks_ttl_seconds: int = 3600,
        jwks_fetcher: Callable[[], dict] | None = None,
    ) -> None:
        self.client_id = client_id
        self.issuers = list(issuers)
        self.jwks_ttl_seconds = jwks_ttl_seconds
        self._fetch = jwks_fetcher or (lambda: fetch_jwks(jwks_url))
        self._key_set = None
        self._fetched_at = 0.0
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> GoogleIdentityVerifier:
        return cls(
            client_id=settings.google_client_id,
            jwks_url=settings.google_jwks_url,
            issuers=settings.google_issuers,
            jwks_ttl_seconds=settings.google_jwks_cache_seconds,
        )

    # ------------------------------------------------------------------
    # Key management
    # ------------------------------------------------------------------

    def _keys(self, force: bool = False):
        # The lock only guards the cached pair; the HTTP fetch runs outside it.
        with self._lock:
            stale = time.monotonic() - self._fetched_at > self.jwks_ttl_seconds
            if not (force or self._key_set is None or stale):
                return self._key_set
        try:
            document = self._fetch()
        except requests.RequestException as exc:
            logger.warning("Google JWKS fetch failed: %s", exc)
            raise IdentityTokenInvalid() from exc
        key_set = JsonWebKey.import_key_set(document)
        with self._lock:
            self._key_set = key_set
            self._fetched_at = time.monotonic()
        return key_set

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def _decode(self, raw_token: str, key_set):
        claims = _jwt.decode(
            raw_token,
            key_set,
            claims_options={
                "iss": {"essential": True, "values": self.issuers},
                "aud": {"essential": True, "value": self.client_id},
                "exp": {"essential": True},
                "sub": {"essential": True},
            },
        )
        claims.validate()
        return claims

    def verify(self, raw_token: str) -> GoogleIdentity:
        if not self.client_id:
            logger.error("GOOGLE_CLIENT_ID is not configured; rejecting Google sign-in")
            raise IdentityTokenInvalid()
        if not raw_token:
            raise IdentityTokenInvalid()

        try:
            claims = self._decode(raw_token, self._keys())
        except ValueError:
            # Authlib raises ValueError when no key matches the token's kid.
            try:
                claims = self._decode(raw_token, self._keys(force=True))
            except (JoseError, ValueError) as exc:
                logger.info("Google ID token rejected: %s", exc)
                raise IdentityTokenInvalid() from exc
        except JoseError as exc:
            logger.info("Google ID token rejected: %s", exc)
            raise IdentityTokenInvalid() from exc

        email = claims.get("email")
        if not email:
            raise IdentityMissingEmail()
        return GoogleIdentity(
            subject=str(claims["sub"]),
            email=email,
            name=claims.get("name"),
            picture=claims.get("picture"),
        )
