"""
api/routes/auth.py -- Session endpoints: password login, Google sign-in, onboarding, refresh.

Routes:
  POST /login        -- password login; returns access + refresh tokens
  POST /google-auth  -- verify a Google ID token; session or onboarding challenge
  POST /onboarding   -- finish a provisional Google account (handle + colour)
  POST /refresh      -- exchange a refresh token for a new access token
  POST /logout       -- revoke the caller's refresh token

Security:
  /login, /google-auth and /onboarding are rate-limited per IP (LOGIN_RATE_LIMIT).
  /refresh has its own, looser limit (REFRESH_RATE_LIMIT).
  Cache-Control: no-store on every response that carries tokens.
  All credential failures use generic messages; AuthErrors raised by
  SessionService are rendered by the handler in api/main.py.
"""

from fastapi import APIRouter, Depends, Request, Response

from api.limiter import limiter
from api.models import (
    GoogleAuthRequest,
    GoogleSessionResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    OnboardingRequest,
    OnboardingRequiredResponse,
    RefreshedUser,
    RefreshRequest,
    RefreshResponse,
    SessionResponse,
)
from auth.dependencies import get_current_user, get_session_service
from auth.models import OnboardingChallenge, User
from auth.sessions import SessionService
from core.config import get_settings

_settings = get_settings()

# Auth policy:
# - POST /login:        public
# - POST /google-auth:  public (the Google ID token is the credential)
# - POST /onboarding:   public (the onboarding session id is the credential)
# - POST /refresh:      public (the refresh token is the credential)
# - POST /logout:       requires auth (get_current_user)
router = APIRouter()


def _no_store(response: Response) -> None:
    response.headers["Cache-Control"] = "no-store"


@router.post("/login", response_model=LoginResponse)
@limiter.limit(_settings.login_rate_limit)
def login(
    request: Request,
    response: Response,
    body: LoginRequest,
    service: SessionService = Depends(get_session_service),
) -> LoginResponse:
    """Authenticate with handle and password.

    Unknown handle and wrong password produce the same 401 "Invalid
    credentials" so the endpoint does not reveal which handles exist.
    """
    _no_store(response)
    session = service.login(body.username, body.password)
    return LoginResponse.from_session(session)


@router.post("/google-auth", response_model=GoogleSessionResponse | OnboardingRequiredResponse)
@limiter.limit(_settings.login_rate_limit)
def google_auth(
    request: Request,
    response: Response,
    body: GoogleAuthRequest,
    service: SessionService = Depends(get_session_service),
) -> GoogleSessionResponse | OnboardingRequiredResponse:
    """Sign in with a Google ID token.

    Known Google identities get a session. Unknown ones get a provisional
    account and an onboarding challenge; no tokens are issued until
    POST /onboarding completes.
    """
    _no_store(response)
    identity = request.app.state.identity_verifier.verify(body.id_token)
    result = service.google_sign_in(identity)
    if isinstance(result, OnboardingChallenge):
        return OnboardingRequiredResponse.from_challenge(result)
    return GoogleSessionResponse.from_session(result, account_linked=result.account_linked)


@router.post("/onboarding", response_model=SessionResponse)
@limiter.limit(_settings.login_rate_limit)
def onboarding(
    request: Request,
    response: Response,
    body: OnboardingRequest,
    service: SessionService = Depends(get_session_service),
) -> SessionResponse:
    """Choose a handle and avatar colour for a provisional Google account."""
    _no_store(response)
    session = service.complete_onboarding(body.session_id, body.username, body.avatar_bg_color)
    return SessionResponse.from_session(session)


@router.post("/refresh", response_model=RefreshResponse)
@limiter.limit(_settings.refresh_rate_limit)
def refresh(
    request: Request,
    response: Response,
    body: RefreshRequest,
    service: SessionService = Depends(get_session_service),
) -> RefreshResponse:
    """Issue a new access token.

    With ROTATE_REFRESH_TOKENS on, the refresh token is replaced too and the
    old one stops working; clients must store the returned value.
    """
    _no_store(response)
    session = service.refresh(body.refresh_token)
    return RefreshResponse(
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        expires_in=session.expires_in,
        user=RefreshedUser(id=session.user.id, username=session.user.username),
    )


@router.post("/logout", response_model=MessageResponse)
def logout(
    current_user: User = Depends(get_current_user),
    service: SessionService = Depends(get_session_service),
) -> MessageResponse:
    """Revoke the stored refresh token. Outstanding access tokens expire on their own."""
    service.logout(current_user.id)
    return MessageResponse(message="Logged out.")
