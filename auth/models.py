"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and the
session service do the work; routes map these onto response models.

Layer rule: no imports from api/ or social/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A MeoMeo account, active or provisional.

    password_hash is None for Google-only accounts. A row whose
    onboarding_expires_at is set is a provisional account created on first
    Google contact: it holds a temporary handle and cannot authenticate
    until onboarding completes.

    refresh_token_id is the non-secret lookup half of the current refresh
    token; refresh_token_hash is the bcrypt hash of the secret half.
    """

    username: str
    id: int | None = None
    display_name: str | None = None
    avatar_url: str | None = None
    avatar_bg_color: str = "#1a1a1a"
    password_hash: str | None = None
    google_id: str | None = None
    google_email: str | None = None
    onboarding_expires_at: str | None = None
    refresh_token_id: str | None = None
    refresh_token_hash: str | None = None
    refresh_token_expires_at: str | None = None
    meomeo_score: int = 0
    theme_preference: str = "default"
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def is_provisional(self) -> bool:
        return self.onboarding_expires_at is not None


@dataclass(frozen=True)
class AccessClaims:
    """Verified contents of an access token."""

    user_id: int
    username: str


@dataclass(frozen=True)
class GoogleIdentity:
    """Claims extracted from a verified Google ID token."""

    subject: str
    email: str
    name: str | None = None
    picture: str | None = None


@dataclass
class Session:
    """Tokens issued to an authenticated user.

    refresh_token is None only when a refresh call ran with rotation
    disabled; the caller keeps using the token it already holds.
    """

    user: User
    access_token: str
    expires_in: int
    refresh_token: str | None = None
    account_linked: bool = False


@dataclass(frozen=True)
class OnboardingChallenge:
    """Returned instead of a Session when a Google identity has no account yet."""

    session_id: str
    expires_at: str
    email: str
    name: str | None = None
    picture: str | None = None
