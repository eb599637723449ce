"""
api/routes/likes.py -- Like / unlike a story and read like status.

Routes:
  GET    /likes?story_id=  -- {isLiked, likeCount} for the caller
  POST   /likes            -- like; 400 if already liked
  DELETE /likes?story_id=  -- unlike; idempotent

Mutations recompute the story author's daily score and return it together
with updated_user_id, so the client can refresh that user's score display.
"""

from fastapi import APIRouter, Depends, Query, Request

from api.errors import api_error
from api.models import LikeMutationResponse, LikeRequest, LikeStatusResponse
from api.routes.stories import get_visible_story
from auth.dependencies import get_current_user
from auth.models import User
from social.scores import compute_daily_score
from social.store import SocialStore

# Auth policy: every route requires auth (get_current_user).
router = APIRouter()


@router.get("/likes", response_model=LikeStatusResponse)
def like_status(
    request: Request,
    story_id: int = Query(...),
    current_user: User = Depends(get_current_user),
) -> LikeStatusResponse:
    store: SocialStore = request.app.state.social_store
    get_visible_story(store, story_id, current_user)
    return LikeStatusResponse(
        is_liked=store.has_liked(current_user.id, story_id),
        like_count=store.count_likes(story_id),
    )


@router.post("/likes", response_model=LikeMutationResponse)
def like_story(
    request: Request,
    body: LikeRequest,
    current_user: User = Depends(get_current_user),
) -> LikeMutationResponse:
    """Like a story. The unique (user, story) constraint decides duplicates."""
    store: SocialStore = request.app.state.social_store
    story = get_visible_story(store, body.story_id, current_user)
    if not store.add_like(current_user.id, story.id):
        raise api_error(400, "Story already liked")
    return LikeMutationResponse(
        is_liked=True,
        like_count=store.count_likes(story.id),
        daily_meomeo_score=compute_daily_score(store, story.user_id),
        updated_user_id=story.user_id,
    )


@router.delete("/likes", response_model=LikeMutationResponse)
def unlike_story(
    request: Request,
    story_id: int = Query(...),
    current_user: User = Depends(get_current_user),
) -> LikeMutationResponse:
    store: SocialStore = request.app.state.social_store
    story = get_visible_story(store, story_id, current_user)
    store.remove_like(current_user.id, story_id)
    return LikeMutationResponse(
        is_liked=False,
        like_count=store.count_likes(story_id),
        daily_meomeo_score=compute_daily_score(store, story.user_id),
        updated_user_id=story.user_id,
    )
