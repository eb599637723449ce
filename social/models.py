"""
social/models.py -- Domain dataclasses for stories and their interactions.

Pattern: Data class (pure data container, zero logic).
"""

from __future__ import annotations

from dataclasses import dataclass

VISIBILITIES = ("public", "private")


@dataclass
class Story:
    """A short text post.

    The author_* fields and the counts are populated by feed queries that
    join users and aggregate likes/comments; plain lookups leave them at
    their defaults.
    """

    user_id: int
    content: str
    visibility: str = "public"
    id: int | None = None
    archived: bool = False
    created_at: str | None = None
    updated_at: str | None = None
    username: str | None = None
    display_name: str | None = None
    avatar_url: str | None = None
    avatar_bg_color: str | None = None
    like_count: int = 0
    comment_count: int = 0

    @property
    def is_public(self) -> bool:
        return self.visibility == "public"


@dataclass
class Comment:
    user_id: int
    story_id: int
    content: str
    id: int | None = None
    username: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass
class Share:
    """A bearer link to a story, resolvable until expires_at."""

    story_id: int
    token: str
    expires_at: str
    id: int | None = None
    created_at: str | None = None
