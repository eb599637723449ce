"""
social/scores.py -- Daily engagement ("meomeo") score.

A user's score for a UTC calendar day is:

    stories they posted that day
  + likes their stories received that day
  + comments their stories received that day

The score is always recomputed from the source tables. The
daily_score_history row written afterwards is a write-through snapshot for
reporting, never read back to answer a request, so computing the same
score twice yields the same value whether or not a snapshot already exists.

A failed snapshot write is logged and swallowed: the caller still gets the
freshly computed score.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone

from sqlalchemy.exc import SQLAlchemyError

from social.store import SocialStore

logger = logging.getLogger("meomeo.scores")


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def _day_bounds(day: date) -> tuple[str, str]:
    return day.isoformat(), (day + timedelta(days=1)).isoformat()


def _snapshot(store: SocialStore, day: date, scores: dict[int, int]) -> None:
    try:
        store.upsert_daily_scores(day.isoformat(), scores)
    except SQLAlchemyError as exc:
        logger.warning("Daily score snapshot failed for %d user(s) on %s: %s", len(scores), day, exc)


def compute_daily_scores(store: SocialStore, user_ids: list[int], today: date | None = None) -> dict[int, int]:
    """Scores for many users with three grouped queries and one snapshot write.

    Every requested user id is present in the result, zero when inactive.
    """
    if not user_ids:
        return {}
    day = today or utc_today()
    start, end = _day_bounds(day)
    authored = store.count_stories_authored(user_ids, start, end)
    liked = store.count_likes_received(user_ids, start, end)
    commented = store.count_comments_received(user_ids, start, end)

    scores = {uid: authored.get(uid, 0) + liked.get(uid, 0) + commented.get(uid, 0) for uid in user_ids}
    _snapshot(store, day, scores)
    return scores


def compute_daily_score(store: SocialStore, user_id: int, today: date | None = None) -> int:
    return compute_daily_scores(store, [user_id], today)[user_id]
