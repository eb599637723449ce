"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper.
UserStore is the repository; _row_to_user is the mapper.
Route and service code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  Handle uniqueness is case-insensitive and enforced by the unique index on
  lower(username) in core/database.py. is_username_taken() gives a friendly
  early answer; the index is what actually closes the race, surfacing as
  IntegrityError from create_user() / update_user().

Accounts are never hard-deleted. Expired provisional rows are unlinked from
their Google identity instead (unlink_google()), which leaves them unusable.

Layer rule: no imports from api/ or social/.
"""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.engine import Engine

from auth.models import User
from core.database import now_iso, users


class UserStore:
    """Repository for User entities.

    Usage:
        engine = create_db_engine("sqlite:///meomeo.db")
        store = UserStore(engine)
        uid = store.create_user(User(username="mimi", password_hash=hash_password("secret")))
        user = store.get_by_username("mimi")
        store.close()
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    # ------------------------------------------------------------------
    # Inserts
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError if the handle collides
        case-insensitively with an existing one.
        """
        stamp = now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                users.insert().values(
                    username=user.username,
                    display_name=user.display_name,
                    avatar_url=user.avatar_url,
                    avatar_bg_color=user.avatar_bg_color,
                    password_hash=user.password_hash,
                    google_id=user.google_id,
                    google_email=user.google_email,
                    onboarding_expires_at=user.onboarding_expires_at,
                    meomeo_score=user.meomeo_score,
                    theme_preference=user.theme_preference,
                    created_at=stamp,
                    updated_at=stamp,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_by_id(self, user_id: int) -> User | None:
        with self.engine.connect() as conn:
            row = conn.execute(users.select().where(users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_username(self, username: str) -> User | None:
        """Exact-match lookup used by password login."""
        with self.engine.connect() as conn:
            row = conn.execute(users.select().where(users.c.username == username)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_google_id(self, google_id: str) -> User | None:
        with self.engine.connect() as conn:
            row = conn.execute(users.select().where(users.c.google_id == google_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_unlinked_by_google_email(self, email: str) -> User | None:
        """Find an account pre-registered with this Google email but never linked."""
        with self.engine.connect() as conn:
            row = conn.execute(
                users.select().where((users.c.google_email == email) & (users.c.google_id.is_(None))).limit(1)
            ).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_refresh_token_id(self, token_id: str) -> User | None:
        """O(1) lookup via the unique refresh_token_id index."""
        with self.engine.connect() as conn:
            row = conn.execute(users.select().where(users.c.refresh_token_id == token_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def is_username_taken(self, username: str, exclude_user_id: int | None = None) -> bool:
        """Case-insensitive handle check, optionally ignoring one row."""
        query = select(func.count()).select_from(users).where(func.lower(users.c.username) == username.lower())
        if exclude_user_id is not None:
            query = query.where(users.c.id != exclude_user_id)
        with self.engine.connect() as conn:
            count = conn.execute(query).scalar()
        return (count or 0) > 0

    def list_active_users(self, order: str = "asc") -> list[User]:
        """All non-provisional users ordered by username."""
        column = users.c.username.desc() if order == "desc" else users.c.username.asc()
        with self.engine.connect() as conn:
            rows = conn.execute(
                users.select().where(users.c.onboarding_expires_at.is_(None)).order_by(column)
            ).fetchall()
        return [_row_to_user(r) for r in rows]

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    def update_user(self, user_id: int, **fields) -> bool:
        """Update columns on an existing user and stamp updated_at.

        Column names come from call sites in this codebase, never from
        request bodies. Returns False if user_id was not found.
        Raises IntegrityError if a new username collides.
        """
        fields["updated_at"] = now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(users.update().where(users.c.id == user_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    def link_google(self, user_id: int, google_id: str, google_email: str) -> None:
        self.update_user(user_id, google_id=google_id, google_email=google_email)

    def unlink_google(self, user_id: int) -> None:
        """Detach a dead provisional row from its Google identity.

        The temporary handle is also released. The replacement contains a
        colon, which no valid handle can, so it never collides.
        """
        self.update_user(user_id, username=f"expired:{user_id}", google_id=None, google_email=None)

    def set_refresh_token(self, user_id: int, token_id: str | None, token_hash: str | None, expires_at: str | None) -> None:
        self.update_user(
            user_id,
            refresh_token_id=token_id,
            refresh_token_hash=token_hash,
            refresh_token_expires_at=expires_at,
        )

    def clear_refresh_token(self, user_id: int) -> None:
        self.set_refresh_token(user_id, None, None, None)

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        display_name=row.display_name,
        avatar_url=row.avatar_url,
        avatar_bg_color=row.avatar_bg_color or "#1a1a1a",
        password_hash=row.password_hash,
        google_id=row.google_id,
        google_email=row.google_email,
        onboarding_expires_at=row.onboarding_expires_at,
        refresh_token_id=row.refresh_token_id,
        refresh_token_hash=row.refresh_token_hash,
        refresh_token_expires_at=row.refresh_token_expires_at,
        meomeo_score=row.meomeo_score or 0,
        theme_preference=row.theme_preference or "default",
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
