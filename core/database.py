"""
core/database.py -- Shared SQLAlchemy Core schema and engine factory.

Every MeoMeo table lives on one MetaData so foreign keys between users and
the social tables resolve inside a single database. UserStore and
SocialStore are both constructed from the engine returned by
create_db_engine().

Integrity rules enforced by the schema rather than by application code:
  - lower(username) is unique, so handles collide case-insensitively.
  - refresh_token_id is unique, giving an O(1) refresh-token lookup.
  - (user_id, story_id) is unique on likes; a duplicate insert raises
    IntegrityError, which is the authoritative "already liked" signal.
  - (user_id, date) is unique on daily_score_history for the snapshot upsert.
  - Story deletion cascades to likes, comments and shares. SQLite honours
    ON DELETE only with PRAGMA foreign_keys=ON, set per connection below.

Layer rule: core/ is the kernel. No imports from api/, auth/, or social/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
    event,
    func,
)
from sqlalchemy.engine import Engine

metadata = MetaData()

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False),
    Column("display_name", String(50)),
    Column("avatar_url", Text),
    Column("avatar_bg_color", String(7), nullable=False, server_default="#1a1a1a"),
    Column("password_hash", Text),  # NULL for Google-only accounts
    Column("google_id", String(255)),
    Column("google_email", String(320)),
    Column("onboarding_expires_at", String(32)),  # non-NULL marks a provisional row
    Column("refresh_token_id", String(32), unique=True),
    Column("refresh_token_hash", Text),
    Column("refresh_token_expires_at", String(32)),
    Column("meomeo_score", Integer, nullable=False, server_default="0"),
    Column("theme_preference", String(30), nullable=False, server_default="default"),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

Index("ix_users_username_lower", func.lower(users.c.username), unique=True)
Index("ix_users_google_id", users.c.google_id)
Index("ix_users_google_email", users.c.google_email)

stories = Table(
    "stories",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("content", Text, nullable=False),
    Column("visibility", String(10), nullable=False, server_default="public"),
    Column("archived", Integer, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    Index("ix_stories_user_id", "user_id"),
    Index("ix_stories_created_at", "created_at"),
)

likes = Table(
    "likes",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("story_id", Integer, ForeignKey("stories.id", ondelete="CASCADE"), nullable=False),
    Column("created_at", String(32), nullable=False),
    UniqueConstraint("user_id", "story_id", name="uq_likes_user_story"),
    Index("ix_likes_story_id", "story_id"),
)

comments = Table(
    "comments",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("story_id", Integer, ForeignKey("stories.id", ondelete="CASCADE"), nullable=False),
    Column("content", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    Index("ix_comments_story_id", "story_id"),
)

shares = Table(
    "shares",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("story_id", Integer, ForeignKey("stories.id", ondelete="CASCADE"), nullable=False),
    Column("token", String(64), nullable=False, unique=True),
    Column("expires_at", String(32), nullable=False),
    Column("created_at", String(32), nullable=False),
)

daily_score_history = Table(
    "daily_score_history",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("date", String(10), nullable=False),  # UTC YYYY-MM-DD
    Column("score", Integer, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
    UniqueConstraint("user_id", "date", name="uq_daily_score_user_date"),
)


# ---------------------------------------------------------------------------
# SQLite connection hooks
# ---------------------------------------------------------------------------


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable WAL journaling and foreign-key enforcement.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool. In-memory databases silently keep their
    "memory" journal mode, which is fine for tests.
    """
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def create_db_engine(db_url: str, create_schema: bool = True) -> Engine:
    """Build an Engine for db_url and create any missing tables.

    check_same_thread=False is required for SQLite because FastAPI runs sync
    handlers in a thread pool and pooled connections move between threads.
    """
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_sqlite_pragmas)
    if create_schema:
        metadata.create_all(engine)
    return engine
