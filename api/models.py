"""
API request and response models for MeoMeo REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
social/models.py, which own the internal domain representation. Route
handlers map between the two with the from_* constructors below.

Separation of concerns: domain dataclasses = storage truth; api/ models = API contract.

Field names on the wire follow the existing frontend: snake_case, except the
like/comment counters (isLiked, likeCount, commentCount), which use
field aliases (populate_by_name lets handlers construct them by field name).
"""

from __future__ import annotations

from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from auth.models import OnboardingChallenge, Session, User
from social.models import Comment, Share, Story

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

STORY_MAX_LENGTH = 5000
COMMENT_MAX_LENGTH = 2000
DISPLAY_NAME_MAX_LENGTH = 50
HEX_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


def _trimmed_non_empty(value: str, label: str, max_length: int) -> str:
    value = value.strip()
    if not value:
        raise ValueError(f"{label} cannot be empty")
    if len(value) > max_length:
        raise ValueError(f"{label} must be {max_length} characters or less")
    return value


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class VisibilityEnum(str, Enum):
    public = "public"
    private = "private"


class ThemeEnum(str, Enum):
    default = "default"
    orange_cat = "orange-cat"
    gray_cat = "gray-cat"
    calico_cat = "calico-cat"


# ---------------------------------------------------------------------------
# Auth request models
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    username: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=1024)


class GoogleAuthRequest(BaseModel):
    id_token: str = Field(min_length=1)


class OnboardingRequest(BaseModel):
    """Handle and colour are validated by SessionService, after the session
    itself, so an expired session is reported before a bad handle."""

    session_id: str = Field(min_length=1)
    username: str = Field(min_length=1)
    avatar_bg_color: str = Field(min_length=1)


class RefreshRequest(BaseModel):
    refresh_token: str = Field(min_length=1)


# ---------------------------------------------------------------------------
# Auth response models
# ---------------------------------------------------------------------------


class UserSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    avatar_bg_color: str = "#1a1a1a"
    meomeo_score: int = 0
    theme_preference: str = "default"

    @classmethod
    def from_user(cls, user: User) -> UserSummary:
        return cls(
            id=user.id,
            username=user.username,
            display_name=user.display_name,
            avatar_url=user.avatar_url,
            avatar_bg_color=user.avatar_bg_color,
            meomeo_score=user.meomeo_score,
            theme_preference=user.theme_preference,
        )


class SessionResponse(BaseModel):
    """Tokens for a freshly authenticated user.

    LoginResponse adds token, a copy of access_token kept for older clients
    of the password-login payload.
    """

    model_config = ConfigDict(frozen=True)

    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_in: int
    user: UserSummary

    @classmethod
    def from_session(cls, session: Session, **extra) -> SessionResponse:
        return cls(
            access_token=session.access_token,
            refresh_token=session.refresh_token,
            expires_in=session.expires_in,
            user=UserSummary.from_user(session.user),
            **extra,
        )


class LoginResponse(SessionResponse):
    token: str

    @classmethod
    def from_session(cls, session: Session, **extra) -> LoginResponse:
        return super().from_session(session, token=session.access_token, **extra)


class GoogleSessionResponse(SessionResponse):
    requires_onboarding: Literal[False] = False
    account_linked: bool = False


class OnboardingSessionInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    session_id: str
    expires_at: str


class GoogleUserInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    email: str
    name: Optional[str] = None
    picture: Optional[str] = None


class OnboardingRequiredResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    requires_onboarding: Literal[True] = True
    onboarding_session: OnboardingSessionInfo
    google_user: GoogleUserInfo

    @classmethod
    def from_challenge(cls, challenge: OnboardingChallenge) -> OnboardingRequiredResponse:
        return cls(
            onboarding_session=OnboardingSessionInfo(session_id=challenge.session_id, expires_at=challenge.expires_at),
            google_user=GoogleUserInfo(email=challenge.email, name=challenge.name, picture=challenge.picture),
        )


class RefreshedUser(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    username: str


class RefreshResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_in: int
    user: RefreshedUser


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


# ---------------------------------------------------------------------------
# Story models
# ---------------------------------------------------------------------------


class StoryCreate(BaseModel):
    content: str
    visibility: VisibilityEnum = VisibilityEnum.public

    @field_validator("content")
    @classmethod
    def normalize_content(cls, value: str) -> str:
        return _trimmed_non_empty(value, "Content", STORY_MAX_LENGTH)


class StoryVisibilityUpdate(BaseModel):
    visibility: VisibilityEnum


class StoryResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    user_id: int
    content: str
    visibility: str
    archived: bool = False
    created_at: str
    updated_at: str
    username: Optional[str] = None
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    avatar_bg_color: Optional[str] = None
    like_count: int = 0
    comment_count: int = 0

    @classmethod
    def from_story(cls, story: Story, **extra) -> StoryResponse:
        return cls(
            id=story.id,
            user_id=story.user_id,
            content=story.content,
            visibility=story.visibility,
            archived=story.archived,
            created_at=story.created_at,
            updated_at=story.updated_at,
            username=story.username,
            # Fall back to the handle so the client always has a label.
            display_name=story.display_name or story.username,
            avatar_url=story.avatar_url,
            avatar_bg_color=story.avatar_bg_color,
            like_count=story.like_count,
            comment_count=story.comment_count,
            **extra,
        )


class StoryCreatedResponse(StoryResponse):
    meomeo_score: int
    daily_meomeo_score: int
    updated_user_id: int


class StoryFeedResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    stories: list[StoryResponse]
    total: int
    limit: int
    offset: int


class StoryListResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    stories: list[StoryResponse]


# ---------------------------------------------------------------------------
# Like / comment / share models
# ---------------------------------------------------------------------------


class LikeRequest(BaseModel):
    story_id: int


class LikeStatusResponse(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    is_liked: bool = Field(alias="isLiked")
    like_count: int = Field(alias="likeCount")


class LikeMutationResponse(LikeStatusResponse):
    daily_meomeo_score: int
    updated_user_id: int


class CommentCreate(BaseModel):
    story_id: int
    content: str

    @field_validator("content")
    @classmethod
    def normalize_content(cls, value: str) -> str:
        return _trimmed_non_empty(value, "Comment", COMMENT_MAX_LENGTH)


class CommentResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    story_id: int
    user_id: int
    username: Optional[str] = None
    content: str
    created_at: str
    updated_at: str

    @classmethod
    def from_comment(cls, comment: Comment, **extra) -> CommentResponse:
        return cls(
            id=comment.id,
            story_id=comment.story_id,
            user_id=comment.user_id,
            username=comment.username,
            content=comment.content,
            created_at=comment.created_at,
            updated_at=comment.updated_at,
            **extra,
        )


class CommentCreatedResponse(CommentResponse):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    comment_count: int = Field(alias="commentCount")
    daily_meomeo_score: int
    updated_user_id: int


class CommentListResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    comments: list[CommentResponse]
    total: int


class ShareRequest(BaseModel):
    story_id: int


class ShareCreatedResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    token: str
    story_id: int
    expires_at: str

    @classmethod
    def from_share(cls, share: Share) -> ShareCreatedResponse:
        return cls(token=share.token, story_id=share.story_id, expires_at=share.expires_at)


class ShareResolveResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    story_id: int
    visibility: str


# ---------------------------------------------------------------------------
# User models
# ---------------------------------------------------------------------------


class LeaderboardEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    avatar_bg_color: str = "#1a1a1a"
    daily_meomeo_score: int = 0


class LeaderboardResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    users: list[LeaderboardEntry]


class UserProfileResponse(LeaderboardEntry):
    theme_preference: str = "default"
    meomeo_score: int = 0
    created_at: Optional[str] = None

    @classmethod
    def from_user(cls, user: User, daily_score: int) -> UserProfileResponse:
        return cls(
            id=user.id,
            username=user.username,
            display_name=user.display_name,
            avatar_url=user.avatar_url,
            avatar_bg_color=user.avatar_bg_color,
            daily_meomeo_score=daily_score,
            theme_preference=user.theme_preference,
            meomeo_score=user.meomeo_score,
            created_at=user.created_at,
        )


class DailyScoreResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: int
    daily_meomeo_score: int


class ProfileUpdate(BaseModel):
    """PUT /users/me body. At least one field must be present (checked in the route)."""

    avatar_url: Optional[str] = Field(default=None, max_length=2048)
    display_name: Optional[str] = None
    avatar_bg_color: Optional[str] = Field(default=None, pattern=HEX_COLOR_PATTERN)

    @field_validator("display_name")
    @classmethod
    def normalize_display_name(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return _trimmed_non_empty(value, "Display name", DISPLAY_NAME_MAX_LENGTH)


class ThemeUpdate(BaseModel):
    theme: ThemeEnum


class ThemeResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    theme_preference: str


class UsernameAvailabilityResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    username: str
    valid: bool
    available: bool


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = {}
