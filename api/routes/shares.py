"""
api/routes/shares.py -- Shareable links to stories.

Routes:
  POST /shares          -- mint a share token for a story the caller can see
  GET  /shares/{token}  -- resolve a token to its story id; 410 once expired

Resolving a token does not bypass story visibility: the client still loads
the story through GET /stories/{id}, which applies the private-story rule.
"""

from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, Request

from api.errors import api_error
from api.models import ShareCreatedResponse, ShareRequest, ShareResolveResponse
from api.routes.stories import get_visible_story
from auth.dependencies import get_current_user
from auth.models import User
from core.config import get_settings
from social.store import SocialStore

# Auth policy:
# - POST /shares:         requires auth (get_current_user)
# - GET  /shares/{token}: public -- the token is the capability
router = APIRouter()


@router.post("/shares", response_model=ShareCreatedResponse)
def create_share(
    request: Request,
    body: ShareRequest,
    current_user: User = Depends(get_current_user),
) -> ShareCreatedResponse:
    store: SocialStore = request.app.state.social_store
    story = get_visible_story(store, body.story_id, current_user)
    expires_at = datetime.now(timezone.utc) + timedelta(days=get_settings().share_expire_days)
    share = store.create_share(story.id, expires_at.isoformat())
    return ShareCreatedResponse.from_share(share)


@router.get("/shares/{token}", response_model=ShareResolveResponse)
def resolve_share(token: str, request: Request) -> ShareResolveResponse:
    store: SocialStore = request.app.state.social_store
    share = store.get_share(token)
    if share is None:
        raise api_error(404, "Share link not found")
    if datetime.fromisoformat(share.expires_at) <= datetime.now(timezone.utc):
        raise api_error(410, "Share link has expired")
    story = store.get_story(share.story_id)
    if story is None:
        raise api_error(404, "Story not found")
    return ShareResolveResponse(story_id=story.id, visibility=story.visibility)
