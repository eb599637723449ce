"""
social/store.py -- SQLAlchemy Core persistence for stories, likes, comments and shares.

Pattern: Repository + Data Mapper.
SocialStore is the repository; _row_to_story / _row_to_comment /
_row_to_share are the mappers. Route code never touches SQL directly.

Feed queries join the author row and compute like/comment counts with
correlated scalar subqueries, so one SELECT returns a renderable page
instead of 1 + 2N queries.

Daily activity counts are grouped by user over a half-open ISO timestamp
range [start, end). Timestamps are UTC ISO-8601 strings, so lexical
comparison against "YYYY-MM-DD" bounds is equivalent to date comparison.

Security:
  All queries use bound parameters. No f-strings in SQL.
  Ownership checks are the caller's job; the store never filters by viewer.

Layer rule: no imports from api/ or auth/.
"""

from __future__ import annotations

import secrets

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from core.database import comments, daily_score_history, likes, now_iso, shares, stories, users
from social.models import Comment, Share, Story

# ---------------------------------------------------------------------------
# Query building blocks
# ---------------------------------------------------------------------------

_like_count = (
    select(func.count(likes.c.id)).where(likes.c.story_id == stories.c.id).scalar_subquery().label("like_count")
)
_comment_count = (
    select(func.count(comments.c.id))
    .where(comments.c.story_id == stories.c.id)
    .scalar_subquery()
    .label("comment_count")
)

_story_with_author = (
    select(
        stories,
        users.c.username,
        users.c.display_name,
        users.c.avatar_url,
        users.c.avatar_bg_color,
        _like_count,
        _comment_count,
    )
    .select_from(stories.join(users, stories.c.user_id == users.c.id))
)


class SocialStore:
    """Repository for Story, Like, Comment and Share entities.

    Usage:
        store = SocialStore(engine)
        story_id = store.create_story(Story(user_id=1, content="hello"))
        page, total = store.list_public_feed(limit=20, offset=0)
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    # ------------------------------------------------------------------
    # Stories
    # ------------------------------------------------------------------

    def create_story(self, story: Story) -> int:
        stamp = now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                stories.insert().values(
                    user_id=story.user_id,
                    content=story.content,
                    visibility=story.visibility,
                    archived=0,
                    created_at=stamp,
                    updated_at=stamp,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_story(self, story_id: int) -> Story | None:
        """Story with author fields and counts, or None."""
        with self.engine.connect() as conn:
            row = conn.execute(_story_with_author.where(stories.c.id == story_id)).fetchone()
        return _row_to_story(row) if row is not None else None

    def list_public_feed(self, limit: int, offset: int) -> tuple[list[Story], int]:
        """Public, non-archived stories newest first, plus the total count."""
        visible = (stories.c.visibility == "public") & (stories.c.archived == 0)
        with self.engine.connect() as conn:
            rows = conn.execute(
                _story_with_author.where(visible)
                .order_by(stories.c.created_at.desc(), stories.c.id.desc())
                .limit(limit)
                .offset(offset)
            ).fetchall()
            total = conn.execute(select(func.count()).select_from(stories).where(visible)).scalar()
        return [_row_to_story(r) for r in rows], total or 0

    def list_user_stories(self, user_id: int) -> list[Story]:
        """All of a user's stories, private and archived included."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _story_with_author.where(stories.c.user_id == user_id).order_by(
                    stories.c.created_at.desc(), stories.c.id.desc()
                )
            ).fetchall()
        return [_row_to_story(r) for r in rows]

    def update_story(self, story_id: int, **fields) -> bool:
        """Update visibility/archived on a story. Returns False if not found."""
        if "archived" in fields:
            fields["archived"] = 1 if fields["archived"] else 0
        fields["updated_at"] = now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(stories.update().where(stories.c.id == story_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    def delete_story(self, story_id: int) -> bool:
        """Delete a story; likes, comments and shares go with it (ON DELETE CASCADE)."""
        with self.engine.connect() as conn:
            result = conn.execute(stories.delete().where(stories.c.id == story_id))
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Likes
    # ------------------------------------------------------------------

    def add_like(self, user_id: int, story_id: int) -> bool:
        """Insert a like. Returns False if this user already liked the story.

        The (user_id, story_id) unique constraint makes this race-free: two
        concurrent likes from the same user cannot both succeed.
        """
        try:
            with self.engine.connect() as conn:
                conn.execute(likes.insert().values(user_id=user_id, story_id=story_id, created_at=now_iso()))
                conn.commit()
        except IntegrityError:
            return False
        return True

    def remove_like(self, user_id: int, story_id: int) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(likes.delete().where((likes.c.user_id == user_id) & (likes.c.story_id == story_id)))
            conn.commit()
        return result.rowcount > 0

    def has_liked(self, user_id: int, story_id: int) -> bool:
        with self.engine.connect() as conn:
            row = conn.execute(
                select(likes.c.id).where((likes.c.user_id == user_id) & (likes.c.story_id == story_id))
            ).fetchone()
        return row is not None

    def count_likes(self, story_id: int) -> int:
        with self.engine.connect() as conn:
            count = conn.execute(select(func.count()).select_from(likes).where(likes.c.story_id == story_id)).scalar()
        return count or 0

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    def add_comment(self, comment: Comment) -> int:
        stamp = now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                comments.insert().values(
                    user_id=comment.user_id,
                    story_id=comment.story_id,
                    content=comment.content,
                    created_at=stamp,
                    updated_at=stamp,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_comment(self, comment_id: int) -> Comment | None:
        stmt = (
            select(comments, users.c.username)
            .select_from(comments.join(users, comments.c.user_id == users.c.id))
            .where(comments.c.id == comment_id)
        )
        with self.engine.connect() as conn:
            row = conn.execute(stmt).fetchone()
        return _row_to_comment(row) if row is not None else None

    def list_comments(self, story_id: int) -> list[Comment]:
        """Comments on a story, oldest first, with the commenter's handle."""
        stmt = (
            select(comments, users.c.username)
            .select_from(comments.join(users, comments.c.user_id == users.c.id))
            .where(comments.c.story_id == story_id)
            .order_by(comments.c.created_at.asc(), comments.c.id.asc())
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [_row_to_comment(r) for r in rows]

    def count_comments(self, story_id: int) -> int:
        with self.engine.connect() as conn:
            count = conn.execute(
                select(func.count()).select_from(comments).where(comments.c.story_id == story_id)
            ).scalar()
        return count or 0

    # ------------------------------------------------------------------
    # Shares
    # ------------------------------------------------------------------

    def create_share(self, story_id: int, expires_at: str) -> Share:
        """Mint a 32-byte hex share token for a story."""
        share = Share(story_id=story_id, token=secrets.token_hex(32), expires_at=expires_at, created_at=now_iso())
        with self.engine.connect() as conn:
            result = conn.execute(
                shares.insert().values(
                    story_id=share.story_id,
                    token=share.token,
                    expires_at=share.expires_at,
                    created_at=share.created_at,
                )
            )
            conn.commit()
            share.id = result.inserted_primary_key[0]
        return share

    def get_share(self, token: str) -> Share | None:
        with self.engine.connect() as conn:
            row = conn.execute(shares.select().where(shares.c.token == token)).fetchone()
        return _row_to_share(row) if row is not None else None

    # ------------------------------------------------------------------
    # Daily activity (engagement scoring)
    # ------------------------------------------------------------------

    def count_stories_authored(self, user_ids: list[int], start: str, end: str) -> dict[int, int]:
        """Stories each user posted in [start, end)."""
        stmt = (
            select(stories.c.user_id, func.count(stories.c.id).label("n"))
            .where(stories.c.user_id.in_(user_ids) & (stories.c.created_at >= start) & (stories.c.created_at < end))
            .group_by(stories.c.user_id)
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return {row.user_id: row.n for row in rows}

    def count_likes_received(self, user_ids: list[int], start: str, end: str) -> dict[int, int]:
        """Likes placed in [start, end) on stories each user authored."""
        stmt = (
            select(stories.c.user_id, func.count(likes.c.id).label("n"))
            .select_from(likes.join(stories, likes.c.story_id == stories.c.id))
            .where(stories.c.user_id.in_(user_ids) & (likes.c.created_at >= start) & (likes.c.created_at < end))
            .group_by(stories.c.user_id)
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return {row.user_id: row.n for row in rows}

    def count_comments_received(self, user_ids: list[int], start: str, end: str) -> dict[int, int]:
        """Comments written in [start, end) on stories each user authored."""
        stmt = (
            select(stories.c.user_id, func.count(comments.c.id).label("n"))
            .select_from(comments.join(stories, comments.c.story_id == stories.c.id))
            .where(stories.c.user_id.in_(user_ids) & (comments.c.created_at >= start) & (comments.c.created_at < end))
            .group_by(stories.c.user_id)
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return {row.user_id: row.n for row in rows}

    def upsert_daily_scores(self, date: str, scores: dict[int, int]) -> None:
        """Write one day's snapshots for many users in a single transaction.

        Uses the dialect's native ON CONFLICT upsert as one executemany where
        available and an update-then-insert fallback elsewhere.
        """
        if not scores:
            return
        created_at = now_iso()
        rows = [
            {"user_id": uid, "date": date, "score": score, "created_at": created_at} for uid, score in scores.items()
        ]
        dialect = self.engine.dialect.name
        with self.engine.connect() as conn:
            if dialect in ("sqlite", "postgresql"):
                insert = sqlite_insert if dialect == "sqlite" else pg_insert
                stmt = insert(daily_score_history)
                stmt = stmt.on_conflict_do_update(
                    index_elements=["user_id", "date"],
                    set_={"score": stmt.excluded.score},
                )
                conn.execute(stmt, rows)
            else:
                for row in rows:
                    result = conn.execute(
                        daily_score_history.update()
                        .where(
                            (daily_score_history.c.user_id == row["user_id"])
                            & (daily_score_history.c.date == date)
                        )
                        .values(score=row["score"])
                    )
                    if result.rowcount == 0:
                        conn.execute(daily_score_history.insert().values(**row))
            conn.commit()

    def get_daily_score_snapshot(self, user_id: int, date: str) -> int | None:
        with self.engine.connect() as conn:
            row = conn.execute(
                select(daily_score_history.c.score).where(
                    (daily_score_history.c.user_id == user_id) & (daily_score_history.c.date == date)
                )
            ).fetchone()
        return row.score if row is not None else None

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_story(row) -> Story:
    return Story(
        id=row.id,
        user_id=row.user_id,
        content=row.content,
        visibility=row.visibility,
        archived=bool(row.archived),
        created_at=row.created_at,
        updated_at=row.updated_at,
        username=row.username,
        display_name=row.display_name,
        avatar_url=row.avatar_url,
        avatar_bg_color=row.avatar_bg_color,
        like_count=row.like_count or 0,
        comment_count=row.comment_count or 0,
    )


def _row_to_comment(row) -> Comment:
    return Comment(
        id=row.id,
        user_id=row.user_id,
        story_id=row.story_id,
        content=row.content,
        username=row.username,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_share(row) -> Share:
    return Share(
        id=row.id,
        story_id=row.story_id,
        token=row.token,
        expires_at=row.expires_at,
        created_at=row.created_at,
    )
