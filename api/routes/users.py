"""
api/routes/users.py -- Leaderboard, profiles, handle availability and preferences.

Routes:
  GET /users                      -- leaderboard with today's scores
  GET /users/check-username       -- is a handle valid and free? (public)
  PUT /users/me                   -- update avatar URL, display name, avatar colour
  PUT /users/me/theme             -- update theme preference
  GET /users/{id}                 -- profile with today's score
  GET /users/{id}/daily-score     -- today's score only

Static paths are registered before /users/{user_id} so they are never
captured by the path parameter.

The leaderboard scores every active user with compute_daily_scores(), three
grouped queries regardless of user count, instead of one score per user.
"""

from fastapi import APIRouter, Depends, Query, Request

from api.errors import api_error
from api.limiter import limiter
from api.models import (
    DailyScoreResponse,
    LeaderboardEntry,
    LeaderboardResponse,
    ProfileUpdate,
    ThemeResponse,
    ThemeUpdate,
    UserProfileResponse,
    UsernameAvailabilityResponse,
)
from auth.dependencies import get_current_user, get_session_service
from auth.models import User
from auth.sessions import SessionService
from auth.store import UserStore
from social.scores import compute_daily_score, compute_daily_scores

# Auth policy:
# - GET /users/check-username: public -- used on the onboarding screen
# - every other route: requires auth (get_current_user)
router = APIRouter()

_SORT_FIELDS = ("meomeo_score", "username")
_ORDERS = ("asc", "desc")


def _with_display_name(user: User) -> User:
    if not user.display_name:
        user.display_name = user.username
    return user


@router.get("/users", response_model=LeaderboardResponse)
def list_users(
    request: Request,
    sort: str = Query(default="meomeo_score"),
    order: str = Query(default="desc"),
    current_user: User = Depends(get_current_user),
) -> LeaderboardResponse:
    """All active users with today's score.

    sort=meomeo_score orders by score; ties keep username order.
    """
    if sort not in _SORT_FIELDS:
        raise api_error(400, "Invalid sort field")
    if order not in _ORDERS:
        raise api_error(400, "Invalid order")

    user_store: UserStore = request.app.state.user_store
    users = user_store.list_active_users(order="asc")
    scores = compute_daily_scores(request.app.state.social_store, [u.id for u in users])

    if sort == "meomeo_score":
        users.sort(key=lambda u: scores[u.id], reverse=(order == "desc"))
    elif order == "desc":
        users.reverse()

    return LeaderboardResponse(
        users=[
            LeaderboardEntry(
                id=u.id,
                username=u.username,
                display_name=u.display_name or u.username,
                avatar_url=u.avatar_url,
                avatar_bg_color=u.avatar_bg_color,
                daily_meomeo_score=scores[u.id],
            )
            for u in users
        ]
    )


@router.get("/users/check-username", response_model=UsernameAvailabilityResponse)
@limiter.limit("60/minute")
def check_username(
    request: Request,
    username: str = Query(...),
    service: SessionService = Depends(get_session_service),
) -> UsernameAvailabilityResponse:
    """Report whether a handle is well-formed and not taken (case-insensitive)."""
    valid, available = service.check_username(username)
    return UsernameAvailabilityResponse(username=username, valid=valid, available=available)


@router.put("/users/me", response_model=UserProfileResponse)
def update_profile(
    request: Request,
    body: ProfileUpdate,
    current_user: User = Depends(get_current_user),
) -> UserProfileResponse:
    fields = body.model_dump(exclude_unset=True, exclude_none=True)
    if not fields:
        raise api_error(400, "No fields to update")
    user_store: UserStore = request.app.state.user_store
    user_store.update_user(current_user.id, **fields)
    user = _with_display_name(user_store.get_by_id(current_user.id))
    return UserProfileResponse.from_user(user, compute_daily_score(request.app.state.social_store, user.id))


@router.put("/users/me/theme", response_model=ThemeResponse)
def update_theme(
    request: Request,
    body: ThemeUpdate,
    current_user: User = Depends(get_current_user),
) -> ThemeResponse:
    request.app.state.user_store.update_user(current_user.id, theme_preference=body.theme.value)
    return ThemeResponse(id=current_user.id, username=current_user.username, theme_preference=body.theme.value)


@router.get("/users/{user_id}", response_model=UserProfileResponse)
def get_user(user_id: int, request: Request, current_user: User = Depends(get_current_user)) -> UserProfileResponse:
    user = request.app.state.user_store.get_by_id(user_id)
    if user is None or user.is_provisional:
        raise api_error(404, "User not found")
    daily = compute_daily_score(request.app.state.social_store, user.id)
    return UserProfileResponse.from_user(_with_display_name(user), daily)


@router.get("/users/{user_id}/daily-score", response_model=DailyScoreResponse)
def get_daily_score(
    user_id: int, request: Request, current_user: User = Depends(get_current_user)
) -> DailyScoreResponse:
    user = request.app.state.user_store.get_by_id(user_id)
    if user is None or user.is_provisional:
        raise api_error(404, "User not found")
    return DailyScoreResponse(
        user_id=user.id,
        daily_meomeo_score=compute_daily_score(request.app.state.social_store, user.id),
    )
