"""
auth/sessions.py -- Session orchestration: login, refresh, Google sign-in, onboarding.

SessionService is the only place that decides whether a caller gets tokens.
Routes hand it validated primitives and map the results onto response
models; every failure is an AuthError subclass carrying its HTTP status.

Google sign-in resolution order:
  1. google_id matches an active account          -> full session
  2. google_id matches a provisional account
       still valid                                -> same onboarding challenge
       expired                                    -> unlink it, fall through to 4
  3. unlinked account pre-registered with the email -> link, full session
  4. otherwise                                    -> new provisional account

Onboarding validation order: session first, then handle format, then
palette colour, then handle availability. An expired session therefore
fails as OnboardingSessionInvalid whatever the handle and colour are.

Layer rule: no imports from api/ or social/.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import IntegrityError

from auth.credentials import authenticate_user, hash_secret, verify_secret
from auth.errors import (
    HandleInvalid,
    HandleTaken,
    InvalidColor,
    InvalidCredentials,
    OnboardingSessionInvalid,
    RefreshTokenExpired,
    RefreshTokenInvalid,
)
from auth.models import GoogleIdentity, OnboardingChallenge, Session, User
from auth.store import UserStore
from auth.tokens import create_access_token, generate_refresh_token, split_refresh_token
from core.config import Settings, get_settings

logger = logging.getLogger("meomeo.auth")

HANDLE_PATTERN = re.compile(r"^[A-Za-z0-9_]{1,50}$")

AVATAR_PALETTE = (
    "#1a1a1a",
    "#FF5733",
    "#33FF57",
    "#3357FF",
    "#FF33F5",
    "#F5FF33",
    "#33FFF5",
    "#FF8C33",
    "#8C33FF",
    "#FF3366",
    "#33FF8C",
    "#338CFF",
    "#FFD700",
    "#FF6347",
    "#00CED1",
    "#9370DB",
    "#FF1493",
    "#00FF7F",
    "#FF4500",
    "#4169E1",
)
_PALETTE_LOWER = {c.lower() for c in AVATAR_PALETTE}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _is_past(iso: str | None) -> bool:
    """True when iso is missing, unparseable, or not after now."""
    if not iso:
        return True
    try:
        moment = datetime.fromisoformat(iso)
    except ValueError:
        return True
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment <= _now()


def is_valid_handle(username: str) -> bool:
    return bool(HANDLE_PATTERN.fullmatch(username))


def is_palette_color(color: str) -> bool:
    return color.lower() in _PALETTE_LOWER


class SessionService:
    """Issue and renew sessions against a UserStore.

    Usage:
        service = SessionService(user_store)
        session = service.login("mimi", "secret")
        renewed = service.refresh(session.refresh_token)
    """

    def __init__(self, store: UserStore, settings: Settings | None = None) -> None:
        self.store = store
        self.settings = settings or get_settings()

    # ------------------------------------------------------------------
    # Token issuance
    # ------------------------------------------------------------------

    def _issue_refresh_token(self, user_id: int) -> str:
        token = generate_refresh_token()
        token_id, secret = split_refresh_token(token)
        expires_at = (_now() + timedelta(days=self.settings.refresh_token_expire_days)).isoformat()
        self.store.set_refresh_token(user_id, token_id, hash_secret(secret), expires_at)
        return token

    def _session_for(self, user: User, rotate: bool = True, account_linked: bool = False) -> Session:
        refresh_token = self._issue_refresh_token(user.id) if rotate else None
        return Session(
            user=user,
            access_token=create_access_token(user.id, user.username),
            expires_in=self.settings.access_token_expire_seconds,
            refresh_token=refresh_token,
            account_linked=account_linked,
        )

    # ------------------------------------------------------------------
    # Password login
    # ------------------------------------------------------------------

    def login(self, username: str, password: str) -> Session:
        user = authenticate_user(self.store, username, password)
        if user is None:
            logger.info("Password login failed for handle %r", username)
            raise InvalidCredentials()
        return self._session_for(user)

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    def refresh(self, plaintext: str) -> Session:
        """Exchange a refresh token for a new access token.

        A hash match on an expired row is still rejected: expiry is checked
        after verification so the two failures stay distinguishable.
        """
        token_id, secret = split_refresh_token(plaintext)
        user = self.store.get_by_refresh_token_id(token_id)
        if user is None or not verify_secret(user.refresh_token_hash, secret):
            logger.info("Refresh rejected: no matching token")
            raise RefreshTokenInvalid()
        if _is_past(user.refresh_token_expires_at):
            logger.info("Refresh rejected: token expired for user %d", user.id)
            raise RefreshTokenExpired()
        return self._session_for(user, rotate=self.settings.rotate_refresh_tokens)

    def logout(self, user_id: int) -> None:
        self.store.clear_refresh_token(user_id)

    # ------------------------------------------------------------------
    # Google sign-in
    # ------------------------------------------------------------------

    def _challenge_for(self, user: User, identity: GoogleIdentity) -> OnboardingChallenge:
        return OnboardingChallenge(
            session_id=str(user.id),
            expires_at=user.onboarding_expires_at,
            email=identity.email,
            name=identity.name,
            picture=identity.picture,
        )

    def google_sign_in(self, identity: GoogleIdentity) -> Session | OnboardingChallenge:
        user = self.store.get_by_google_id(identity.subject)
        if user is not None:
            if not user.is_provisional:
                return self._session_for(user)
            if not _is_past(user.onboarding_expires_at):
                return self._challenge_for(user, identity)
            logger.info("Provisional account %d expired; starting a new onboarding", user.id)
            self.store.unlink_google(user.id)

        existing = self.store.get_unlinked_by_google_email(identity.email)
        if existing is not None and not existing.is_provisional:
            self.store.link_google(existing.id, identity.subject, identity.email)
            linked = self.store.get_by_id(existing.id)
            logger.info("Linked Google identity to existing account %d", existing.id)
            return self._session_for(linked, account_linked=True)

        expires_at = (_now() + timedelta(hours=self.settings.onboarding_expire_hours)).isoformat()
        user_id = self.store.create_user(
            User(
                username=f"temp_{identity.subject}",
                google_id=identity.subject,
                google_email=identity.email,
                onboarding_expires_at=expires_at,
            )
        )
        return self._challenge_for(self.store.get_by_id(user_id), identity)

    # ------------------------------------------------------------------
    # Onboarding
    # ------------------------------------------------------------------

    def _load_onboarding_row(self, session_id: str) -> User:
        # Only a plain decimal id; int() would also take "1_2", "+12" and " 12 ".
        if not isinstance(session_id, str) or not session_id.isascii() or not session_id.isdigit():
            raise OnboardingSessionInvalid()
        user = self.store.get_by_id(int(session_id))
        if user is None or not user.google_id or not user.is_provisional:
            raise OnboardingSessionInvalid()
        if _is_past(user.onboarding_expires_at):
            raise OnboardingSessionInvalid()
        return user

    def complete_onboarding(self, session_id: str, username: str, avatar_bg_color: str) -> Session:
        user = self._load_onboarding_row(session_id)
        if not is_valid_handle(username):
            raise HandleInvalid()
        if not is_palette_color(avatar_bg_color):
            raise InvalidColor()
        if self.store.is_username_taken(username, exclude_user_id=user.id):
            raise HandleTaken()

        try:
            self.store.update_user(
                user.id,
                username=username,
                avatar_bg_color=avatar_bg_color,
                onboarding_expires_at=None,
            )
        except IntegrityError as exc:
            # Another request claimed the handle between the check and the write.
            raise HandleTaken() from exc

        logger.info("Onboarding completed for user %d", user.id)
        return self._session_for(self.store.get_by_id(user.id))

    # ------------------------------------------------------------------
    # Handle availability
    # ------------------------------------------------------------------

    def check_username(self, username: str) -> tuple[bool, bool]:
        """Return (valid, available). An invalid handle is never available."""
        if not is_valid_handle(username):
            return False, False
        return True, not self.store.is_username_taken(username)
