"""
api/routes/stories.py -- Story CRUD endpoints.

Routes:
  GET    /stories               -- public, non-archived feed (paginated)
  POST   /stories               -- create a story; returns the author's daily score
  GET    /stories/me            -- caller's own stories, private and archived included
  GET    /stories/{id}          -- one story; private stories only for their owner
  PUT    /stories/{id}          -- change visibility (owner only)
  PUT    /stories/{id}/archive  -- hide from the public feed (owner only)
  DELETE /stories/{id}          -- delete with likes, comments and shares (owner only)

/stories/me is registered before /stories/{id} so "me" is never parsed as an id.
Owner checks return 404 for a missing story before 403 for someone else's.
"""

from fastapi import APIRouter, Depends, Query, Request

from api.errors import api_error
from api.models import (
    MessageResponse,
    StoryCreate,
    StoryCreatedResponse,
    StoryFeedResponse,
    StoryListResponse,
    StoryResponse,
    StoryVisibilityUpdate,
)
from auth.dependencies import get_current_user, try_get_current_user
from auth.models import User
from social.models import Story
from social.scores import compute_daily_score
from social.store import SocialStore

# Auth policy:
# - GET    /stories:              requires auth (get_current_user)
# - POST   /stories:              requires auth (get_current_user)
# - GET    /stories/me:           requires auth (get_current_user)
# - GET    /stories/{id}:         optional auth (try_get_current_user); private -> owner only
# - PUT    /stories/{id}:         requires auth + ownership
# - PUT    /stories/{id}/archive: requires auth + ownership
# - DELETE /stories/{id}:         requires auth + ownership
router = APIRouter()


def _social(request: Request) -> SocialStore:
    return request.app.state.social_store


def get_visible_story(store: SocialStore, story_id: int, viewer: User | None) -> Story:
    """Return the story if viewer may see it: 404 when missing, 403 when private and not theirs."""
    story = store.get_story(story_id)
    if story is None:
        raise api_error(404, "Story not found")
    if not story.is_public and (viewer is None or viewer.id != story.user_id):
        raise api_error(403, "This story is private")
    return story


def _owned_story(store: SocialStore, story_id: int, user: User) -> Story:
    story = store.get_story(story_id)
    if story is None:
        raise api_error(404, "Story not found")
    if story.user_id != user.id:
        raise api_error(403, "You can only modify your own stories")
    return story


@router.get("/stories", response_model=StoryFeedResponse)
def list_stories(
    request: Request,
    limit: int = Query(default=20, ge=1),
    offset: int = Query(default=0, ge=0),
    current_user: User = Depends(get_current_user),
) -> StoryFeedResponse:
    """Public feed, newest first. limit is capped at 100."""
    limit = min(limit, 100)
    page, total = _social(request).list_public_feed(limit=limit, offset=offset)
    return StoryFeedResponse(
        stories=[StoryResponse.from_story(s) for s in page],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.post("/stories", response_model=StoryCreatedResponse, status_code=201)
def create_story(
    request: Request,
    body: StoryCreate,
    current_user: User = Depends(get_current_user),
) -> StoryCreatedResponse:
    """Create a story and return it with the author's refreshed daily score.

    updated_user_id tells the client whose score changed.
    """
    store = _social(request)
    story_id = store.create_story(
        Story(user_id=current_user.id, content=body.content, visibility=body.visibility.value)
    )
    daily = compute_daily_score(store, current_user.id)
    return StoryCreatedResponse.from_story(
        store.get_story(story_id),
        meomeo_score=daily,
        daily_meomeo_score=daily,
        updated_user_id=current_user.id,
    )


@router.get("/stories/me", response_model=StoryListResponse)
def my_stories(request: Request, current_user: User = Depends(get_current_user)) -> StoryListResponse:
    stories = _social(request).list_user_stories(current_user.id)
    return StoryListResponse(stories=[StoryResponse.from_story(s) for s in stories])


@router.get("/stories/{story_id}", response_model=StoryResponse)
def get_story(story_id: int, request: Request) -> StoryResponse:
    """Fetch one story. Anonymous callers may read public stories."""
    story = get_visible_story(_social(request), story_id, try_get_current_user(request))
    return StoryResponse.from_story(story)


@router.put("/stories/{story_id}", response_model=StoryResponse)
def update_story(
    story_id: int,
    request: Request,
    body: StoryVisibilityUpdate,
    current_user: User = Depends(get_current_user),
) -> StoryResponse:
    store = _social(request)
    _owned_story(store, story_id, current_user)
    store.update_story(story_id, visibility=body.visibility.value)
    return StoryResponse.from_story(store.get_story(story_id))


@router.put("/stories/{story_id}/archive", response_model=StoryResponse)
def archive_story(story_id: int, request: Request, current_user: User = Depends(get_current_user)) -> StoryResponse:
    """Archive a story. It stays visible to its owner via /stories/me and by id."""
    store = _social(request)
    _owned_story(store, story_id, current_user)
    store.update_story(story_id, archived=True)
    return StoryResponse.from_story(store.get_story(story_id))


@router.delete("/stories/{story_id}", response_model=MessageResponse)
def delete_story(story_id: int, request: Request, current_user: User = Depends(get_current_user)) -> MessageResponse:
    store = _social(request)
    _owned_story(store, story_id, current_user)
    store.delete_story(story_id)
    return MessageResponse(message="Story deleted successfully")
