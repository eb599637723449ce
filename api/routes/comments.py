"""
api/routes/comments.py -- Comment on a story and list a story's comments.

Comments are append-only: there is no edit or delete endpoint.
"""

from fastapi import APIRouter, Depends, Query, Request

from api.models import CommentCreate, CommentCreatedResponse, CommentListResponse, CommentResponse
from api.routes.stories import get_visible_story
from auth.dependencies import get_current_user, try_get_current_user
from auth.models import User
from social.models import Comment
from social.scores import compute_daily_score
from social.store import SocialStore

# Auth policy:
# - GET  /comments: optional auth; comments on a private story are owner only
# - POST /comments: requires auth (get_current_user)
router = APIRouter()


@router.get("/comments", response_model=CommentListResponse)
def list_comments(request: Request, story_id: int = Query(...)) -> CommentListResponse:
    store: SocialStore = request.app.state.social_store
    get_visible_story(store, story_id, try_get_current_user(request))
    comments = store.list_comments(story_id)
    return CommentListResponse(comments=[CommentResponse.from_comment(c) for c in comments], total=len(comments))


@router.post("/comments", response_model=CommentCreatedResponse, status_code=201)
def create_comment(
    request: Request,
    body: CommentCreate,
    current_user: User = Depends(get_current_user),
) -> CommentCreatedResponse:
    """Add a comment and return it with the story author's refreshed daily score."""
    store: SocialStore = request.app.state.social_store
    story = get_visible_story(store, body.story_id, current_user)
    comment_id = store.add_comment(Comment(user_id=current_user.id, story_id=story.id, content=body.content))
    return CommentCreatedResponse.from_comment(
        store.get_comment(comment_id),
        comment_count=store.count_comments(story.id),
        daily_meomeo_score=compute_daily_score(store, story.user_id),
        updated_user_id=story.user_id,
    )
